"""Process-wide configuration for query-constructor generation."""

from __future__ import annotations

import dataclasses
import threading
from dataclasses import dataclass
from typing import Any

from pyindex2sql._constants import (
    DEFAULT_FULLTEXT_LANGUAGE,
    DEFAULT_SCOPE_PREFIX,
    DEFAULT_SEPARATOR,
    DEFAULT_SIMILARITY_THRESHOLD,
)


@dataclass(frozen=True)
class Configuration:
    """Naming and table-filter options.

    Args:
        scope_prefix: Prefix for names built from columns or expressions.
        separator: Joins normalized column names of composite indexes.
        included_tables: Tables to generate for. Empty means all tables.
        excluded_tables: Tables never generated for. Wins over inclusion.
        fulltext_language: Text search configuration for full-text search.
        similarity_threshold: Default pg_trgm similarity cut-off.
    """

    scope_prefix: str = DEFAULT_SCOPE_PREFIX
    separator: str = DEFAULT_SEPARATOR
    included_tables: tuple[str, ...] = ()
    excluded_tables: tuple[str, ...] = ()
    fulltext_language: str = DEFAULT_FULLTEXT_LANGUAGE
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD

    def include_table(self, table_name: str) -> bool:
        if table_name in self.excluded_tables:
            return False
        if not self.included_tables:
            return True
        return table_name in self.included_tables

    def with_options(self, **overrides: Any) -> Configuration:
        for key in ("included_tables", "excluded_tables"):
            if key in overrides:
                overrides[key] = tuple(overrides[key])
        return dataclasses.replace(self, **overrides)


_lock = threading.Lock()
_configuration = Configuration()


def get_configuration() -> Configuration:
    return _configuration


def configure(**overrides: Any) -> Configuration:
    """Replace the process-wide configuration with an updated copy.

    Raises:
        TypeError: If an option name is unknown.
    """
    global _configuration
    with _lock:
        _configuration = _configuration.with_options(**overrides)
        return _configuration


def reset_configuration() -> None:
    global _configuration
    with _lock:
        _configuration = Configuration()
