"""Domain types for index analysis and query generation."""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


class AccessMethod(enum.StrEnum):
    """PostgreSQL index access methods."""

    BTREE = "btree"
    HASH = "hash"
    GIN = "gin"
    GIST = "gist"
    SPGIST = "spgist"
    BRIN = "brin"


class GinKind(enum.Enum):
    """Mutually exclusive sub-kinds of a GIN index, highest priority first."""

    JSONB = "jsonb"
    FULLTEXT = "fulltext"
    TRIGRAM = "trigram"
    GENERIC = "generic"


class Strategy(enum.Enum):
    """Query generation strategies."""

    PARTIAL = "partial"
    EXPRESSION = "expression"
    JSONB = "jsonb"
    FULLTEXT = "fulltext"
    TRIGRAM = "trigram"
    STANDARD = "standard"


class PredicateTemplate(enum.Enum):
    """Operator shapes a generated query constructor can apply."""

    EQUALITY = "equality"
    CONTAINS = "contains"
    CONTAINED = "contained"
    HAS_KEY = "has_key"
    HAS_ALL_KEYS = "has_all_keys"
    PATH_TEXT = "path_text"
    SIMILARITY = "similarity"
    FULLTEXT = "fulltext"


class ParameterShape(enum.Enum):
    """Argument shapes accepted by query constructors."""

    SINGLE = "single"
    PAIR = "pair"
    NAMED = "named"


@dataclass(frozen=True)
class GenericIndex:
    """Access-method-agnostic index metadata from schema reflection."""

    name: str
    columns: tuple[str, ...]
    unique: bool = False
    predicate: str | None = None
    expression: str | None = None


@dataclass(frozen=True)
class CatalogRow:
    """A native pg_index row for one index."""

    name: str
    definition: str | None
    access_method: str
    unique: bool
    predicate: str | None


@dataclass(frozen=True)
class IndexDescriptor:
    """Unified metadata for one physical index."""

    name: str
    columns: tuple[str, ...]
    access_method: str = "btree"
    unique: bool = False
    predicate: str | None = None
    parsed_conditions: dict[str, Any] = field(default_factory=dict)
    operator_classes: tuple[str, ...] = ()
    definition: str | None = None
    column_types: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.columns:
            raise ValueError(f"index {self.name!r} has no columns")


@dataclass(frozen=True)
class Classification:
    """Categorical tags derived from an IndexDescriptor."""

    composite: bool
    single_column: bool
    partial: bool
    expression: str | None
    gin_kind: GinKind | None
    jsonb: bool
    fulltext: bool
    trigram: bool
    gist: bool


@dataclass(frozen=True)
class ParameterContract:
    """Arity and shape of a query constructor's arguments."""

    shape: ParameterShape
    names: tuple[str, ...]
    optional: bool = False
    defaults: tuple[tuple[str, Any], ...] = ()

    @property
    def required(self) -> tuple[str, ...]:
        defaulted = {name for name, _ in self.defaults}
        return tuple(n for n in self.names if n not in defaulted)


@dataclass(frozen=True)
class QueryDescriptor:
    """A named, parameter-checked query constructor generated from an index."""

    scope_name: str
    index_name: str
    strategy: Strategy
    contract: ParameterContract
    template: PredicateTemplate | None
    always_applied_predicate: str | None
    build: Callable[..., Any] = field(repr=False, compare=False)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.build(*args, **kwargs)
