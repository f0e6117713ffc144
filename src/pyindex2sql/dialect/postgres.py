"""PostgreSQL dialect implementation."""

from __future__ import annotations

from collections.abc import Sequence
from io import StringIO

from pyindex2sql._utils import escape_string_literal, quote_identifier
from pyindex2sql.dialect._base import Dialect, DialectName, WriteFunc


class PostgresDialect(Dialect):
    """PostgreSQL dialect for index-backed query constructors."""

    name = DialectName.POSTGRESQL

    # --- Literals and identifiers ---

    def write_string_literal(self, w: StringIO, value: str) -> None:
        w.write(f"'{escape_string_literal(value)}'")

    def write_param_placeholder(self, w: StringIO, param_index: int) -> None:
        w.write(f"${param_index}")

    def write_identifier(self, w: StringIO, name: str) -> None:
        w.write(quote_identifier(name))

    def write_qualified_table(
        self, w: StringIO, table_name: str, schema_name: str | None
    ) -> None:
        if schema_name:
            self.write_identifier(w, schema_name)
            w.write(".")
        self.write_identifier(w, table_name)

    # --- Boolean structure ---

    def write_and(self, w: StringIO) -> None:
        w.write(" AND ")

    def write_grouped(self, w: StringIO, write_expr: WriteFunc) -> None:
        w.write("(")
        write_expr()
        w.write(")")

    # --- Comparison ---

    def write_equality(
        self, w: StringIO, write_lhs: WriteFunc, write_rhs: WriteFunc
    ) -> None:
        write_lhs()
        w.write(" = ")
        write_rhs()

    def write_is_null(self, w: StringIO, write_expr: WriteFunc) -> None:
        write_expr()
        w.write(" IS NULL")

    # --- JSONB ---

    def write_jsonb_contains(
        self, w: StringIO, write_column: WriteFunc, write_value: WriteFunc
    ) -> None:
        write_column()
        w.write(" @> ")
        write_value()
        w.write("::jsonb")

    def write_jsonb_contained(
        self, w: StringIO, write_column: WriteFunc, write_value: WriteFunc
    ) -> None:
        write_column()
        w.write(" <@ ")
        write_value()
        w.write("::jsonb")

    def write_jsonb_has_key(
        self, w: StringIO, write_column: WriteFunc, write_key: WriteFunc
    ) -> None:
        write_column()
        w.write(" ? ")
        write_key()

    def write_jsonb_has_all_keys(
        self, w: StringIO, write_column: WriteFunc, write_keys: Sequence[WriteFunc]
    ) -> None:
        write_column()
        w.write(" ?& ")
        if not write_keys:
            w.write("ARRAY[]::text[]")
            return
        w.write("ARRAY[")
        for i, write_key in enumerate(write_keys):
            if i > 0:
                w.write(", ")
            write_key()
        w.write("]")

    def write_jsonb_path_text(
        self,
        w: StringIO,
        write_column: WriteFunc,
        write_path: WriteFunc,
        write_value: WriteFunc,
    ) -> None:
        write_column()
        w.write(" #>> ")
        write_path()
        w.write("::text[] = ")
        write_value()

    # --- Text search ---

    def write_fulltext_match(
        self,
        w: StringIO,
        write_vector: WriteFunc,
        language: str,
        write_query: WriteFunc,
    ) -> None:
        write_vector()
        w.write(" @@ plainto_tsquery(")
        self.write_string_literal(w, language)
        w.write(", ")
        write_query()
        w.write(")")

    def write_trigram_match(
        self,
        w: StringIO,
        write_column: WriteFunc,
        write_text: WriteFunc,
        write_similarity_text: WriteFunc,
        write_threshold: WriteFunc,
    ) -> None:
        write_column()
        w.write(" % ")
        write_text()
        w.write(" AND similarity(")
        write_column()
        w.write(", ")
        write_similarity_text()
        w.write(") > ")
        write_threshold()

    def write_similarity_order(
        self, w: StringIO, write_column: WriteFunc, write_text: WriteFunc
    ) -> None:
        w.write("similarity(")
        write_column()
        w.write(", ")
        write_text()
        w.write(") DESC")

    # --- Capabilities ---

    def supports_jsonb(self) -> bool:
        return True

    def supports_trigram(self) -> bool:
        return True
