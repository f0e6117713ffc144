"""Abstract base class for SQL dialects."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from io import StringIO


class DialectName(enum.StrEnum):
    POSTGRESQL = "postgresql"


WriteFunc = Callable[[], None]
"""Callback that writes a sub-expression to the shared StringIO buffer."""


class Dialect(ABC):
    """Abstract base class defining the SQL dialect interface.

    All SQL-syntax-specific code lives behind this interface.
    Methods receive a StringIO writer and callback functions for sub-expressions.
    """

    name: DialectName

    # --- Literals and identifiers ---

    @abstractmethod
    def write_string_literal(self, w: StringIO, value: str) -> None: ...

    @abstractmethod
    def write_param_placeholder(self, w: StringIO, param_index: int) -> None: ...

    @abstractmethod
    def write_identifier(self, w: StringIO, name: str) -> None: ...

    @abstractmethod
    def write_qualified_table(
        self, w: StringIO, table_name: str, schema_name: str | None
    ) -> None: ...

    # --- Boolean structure ---

    @abstractmethod
    def write_and(self, w: StringIO) -> None: ...

    @abstractmethod
    def write_grouped(self, w: StringIO, write_expr: WriteFunc) -> None: ...

    # --- Comparison ---

    @abstractmethod
    def write_equality(
        self, w: StringIO, write_lhs: WriteFunc, write_rhs: WriteFunc
    ) -> None: ...

    @abstractmethod
    def write_is_null(self, w: StringIO, write_expr: WriteFunc) -> None: ...

    # --- JSONB ---

    @abstractmethod
    def write_jsonb_contains(
        self, w: StringIO, write_column: WriteFunc, write_value: WriteFunc
    ) -> None: ...

    @abstractmethod
    def write_jsonb_contained(
        self, w: StringIO, write_column: WriteFunc, write_value: WriteFunc
    ) -> None: ...

    @abstractmethod
    def write_jsonb_has_key(
        self, w: StringIO, write_column: WriteFunc, write_key: WriteFunc
    ) -> None: ...

    @abstractmethod
    def write_jsonb_has_all_keys(
        self, w: StringIO, write_column: WriteFunc, write_keys: Sequence[WriteFunc]
    ) -> None: ...

    @abstractmethod
    def write_jsonb_path_text(
        self,
        w: StringIO,
        write_column: WriteFunc,
        write_path: WriteFunc,
        write_value: WriteFunc,
    ) -> None: ...

    # --- Text search ---

    @abstractmethod
    def write_fulltext_match(
        self,
        w: StringIO,
        write_vector: WriteFunc,
        language: str,
        write_query: WriteFunc,
    ) -> None: ...

    @abstractmethod
    def write_trigram_match(
        self,
        w: StringIO,
        write_column: WriteFunc,
        write_text: WriteFunc,
        write_similarity_text: WriteFunc,
        write_threshold: WriteFunc,
    ) -> None: ...

    @abstractmethod
    def write_similarity_order(
        self, w: StringIO, write_column: WriteFunc, write_text: WriteFunc
    ) -> None: ...

    # --- Capabilities ---

    @abstractmethod
    def supports_jsonb(self) -> bool: ...

    @abstractmethod
    def supports_trigram(self) -> bool: ...
