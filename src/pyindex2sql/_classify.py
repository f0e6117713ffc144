"""Index classification and strategy selection.

Both cascades are ordered rule tables: the first matching rule wins, so the
precedence is readable from the tables themselves.
"""

from __future__ import annotations

from collections.abc import Callable

from pyindex2sql._operators import (
    JSONB_OPCLASS_MARKER,
    JSONB_TYPE,
    TRIGRAM_OPCLASS_MARKER,
    TSVECTOR_CONSTRUCTORS,
    TSVECTOR_TYPE,
)
from pyindex2sql._types import (
    AccessMethod,
    Classification,
    GinKind,
    IndexDescriptor,
    Strategy,
)
from pyindex2sql._utils import is_expression, unquote_identifier


def expression_of(index: IndexDescriptor) -> str | None:
    """The first index key that is an expression rather than a plain column."""
    for column in index.columns:
        if is_expression(column):
            return column
    return None


def _sole_column_type(index: IndexDescriptor) -> str | None:
    if len(index.columns) != 1:
        return None
    return index.column_types.get(unquote_identifier(index.columns[0]))


def _has_jsonb_opclass_or_type(index: IndexDescriptor) -> bool:
    if any(JSONB_OPCLASS_MARKER in opclass for opclass in index.operator_classes):
        return True
    return _sole_column_type(index) == JSONB_TYPE


def _builds_tsvector(index: IndexDescriptor) -> bool:
    sources = [expression_of(index) or "", index.definition or ""]
    for source in sources:
        lowered = source.lower()
        if any(f"{call}(" in lowered for call in TSVECTOR_CONSTRUCTORS):
            return True
    return _sole_column_type(index) == TSVECTOR_TYPE


def _has_trigram_opclass(index: IndexDescriptor) -> bool:
    return any(TRIGRAM_OPCLASS_MARKER in opclass for opclass in index.operator_classes)


GIN_KIND_RULES: tuple[tuple[GinKind, Callable[[IndexDescriptor], bool]], ...] = (
    (GinKind.JSONB, _has_jsonb_opclass_or_type),
    (GinKind.FULLTEXT, _builds_tsvector),
    (GinKind.TRIGRAM, _has_trigram_opclass),
)


def gin_kind(index: IndexDescriptor) -> GinKind | None:
    """Exclusive GIN sub-kind, or None when the index is not GIN."""
    if index.access_method.lower() != AccessMethod.GIN:
        return None
    for kind, matches in GIN_KIND_RULES:
        if matches(index):
            return kind
    return GinKind.GENERIC


def classify(index: IndexDescriptor) -> Classification:
    """Derive categorical tags for an index."""
    kind = gin_kind(index)
    return Classification(
        composite=len(index.columns) > 1,
        single_column=len(index.columns) == 1,
        partial=bool(index.predicate),
        expression=expression_of(index),
        gin_kind=kind,
        jsonb=kind is GinKind.JSONB,
        fulltext=kind in (GinKind.FULLTEXT, GinKind.TRIGRAM),
        trigram=kind is GinKind.TRIGRAM,
        gist=index.access_method.lower() == AccessMethod.GIST,
    )


STRATEGY_RULES: tuple[tuple[Strategy, Callable[[Classification], bool]], ...] = (
    (Strategy.PARTIAL, lambda c: c.partial),
    # a full-text index's expression is its search vector
    (Strategy.EXPRESSION, lambda c: c.expression is not None and c.gin_kind is not GinKind.FULLTEXT),
    (Strategy.JSONB, lambda c: c.gin_kind is GinKind.JSONB),
    (Strategy.FULLTEXT, lambda c: c.gin_kind is GinKind.FULLTEXT),
    (Strategy.TRIGRAM, lambda c: c.gin_kind is GinKind.TRIGRAM),
)


def select_strategy(classification: Classification) -> Strategy:
    """Pick the generation strategy; gist, brin, hash and plain GIN fall to STANDARD."""
    for strategy, matches in STRATEGY_RULES:
        if matches(classification):
            return strategy
    return Strategy.STANDARD
