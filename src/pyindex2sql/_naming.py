"""Query-constructor name derivation."""

from __future__ import annotations

import re

from pyindex2sql._operators import STRUCTURAL_NAME_TOKENS
from pyindex2sql._types import IndexDescriptor
from pyindex2sql._utils import is_expression, normalize_column_name
from pyindex2sql.config import Configuration

# Rails-style "index_<table>_on_<columns>"
_INDEX_ON_RE = re.compile(r"^index_\w+?_on_")
_PARTIAL_PREFIX_RE = re.compile(r"^(index_|idx_)")


def strip_structural_name(index_name: str, table_name: str | None = None) -> str:
    """Reduce an index name to its descriptive part.

    Drops the Rails ``index_<table>_on_`` prefix, a leading table name, and
    tokens such as ``idx`` or access-method names.
    """
    name = normalize_column_name(index_name)
    name = _INDEX_ON_RE.sub("", name)
    if table_name:
        table_prefix = f"{normalize_column_name(table_name)}_"
        if name.startswith(table_prefix):
            name = name[len(table_prefix):]
    parts = [part for part in name.split("_") if part and part not in STRUCTURAL_NAME_TOKENS]
    return "_".join(parts) or normalize_column_name(index_name)


def partial_scope_name(index: IndexDescriptor) -> str:
    """Partial indexes are named after the index itself, without a scope prefix."""
    return _PARTIAL_PREFIX_RE.sub("", normalize_column_name(index.name))


def build_scope_name(
    index: IndexDescriptor,
    config: Configuration,
    table_name: str | None = None,
) -> str:
    """Derive the constructor name for an index.

    Args:
        index: The index being generated for.
        config: Supplies the scope prefix and the composite separator.
        table_name: Stripped from expression-index names when present.

    Returns:
        ``<index name>`` for partial indexes, ``<prefix><descriptive index
        name>`` for expression indexes, and ``<prefix><col><sep><col>...``
        otherwise.
    """
    if index.predicate:
        return partial_scope_name(index)
    if any(is_expression(column) for column in index.columns):
        return f"{config.scope_prefix}{strip_structural_name(index.name, table_name)}"
    columns = config.separator.join(normalize_column_name(c) for c in index.columns)
    return f"{config.scope_prefix}{columns}"
