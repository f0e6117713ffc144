"""Composable, parameterized WHERE-clause values produced by query constructors."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from io import StringIO
from typing import Any

from pyindex2sql._utils import is_parenthesized, validate_identifier
from pyindex2sql.dialect._base import Dialect, WriteFunc
from pyindex2sql.dialect.postgres import PostgresDialect

# A quoted string literal (left untouched) or a $n placeholder
_PLACEHOLDER_RE = re.compile(r"'(?:[^']|'')*'|\$(\d+)")


@dataclass(frozen=True)
class Result:
    """A complete statement with its bound parameters."""

    sql: str
    parameters: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class QueryFilter:
    """A WHERE fragment with $1..$n placeholders plus optional ORDER BY terms.

    Placeholders in ``order_by`` continue the numbering of ``sql``, and
    ``parameters`` holds one value per placeholder in that order.
    """

    sql: str
    parameters: list[Any] = field(default_factory=list)
    order_by: tuple[str, ...] = ()

    @property
    def where_parameter_count(self) -> int:
        return len(_placeholders(self.sql))

    def and_(self, other: QueryFilter) -> QueryFilter:
        """Combine two filters with AND, renumbering placeholders."""
        own_where = self.where_parameter_count
        other_where = other.where_parameter_count
        own_total = len(self.parameters)

        other_sql = _shift_placeholders(other.sql, own_where)
        if self.sql and other_sql:
            sql = f"{self.sql} AND {other_sql}"
        else:
            sql = self.sql or other_sql

        order_by = tuple(
            _shift_placeholders(term, other_where) for term in self.order_by
        ) + tuple(
            _shift_placeholders(term, own_total) for term in other.order_by
        )
        parameters = (
            self.parameters[:own_where]
            + other.parameters[:other_where]
            + self.parameters[own_where:]
            + other.parameters[other_where:]
        )
        return QueryFilter(sql=sql, parameters=parameters, order_by=order_by)

    def __and__(self, other: QueryFilter) -> QueryFilter:
        if not isinstance(other, QueryFilter):
            return NotImplemented
        return self.and_(other)

    def select(
        self,
        table_name: str,
        schema_name: str | None = None,
        *,
        dialect: Dialect | None = None,
    ) -> Result:
        """Render a complete ``SELECT *`` statement over ``table_name``."""
        validate_identifier(table_name)
        if schema_name:
            validate_identifier(schema_name)
        if dialect is None:
            dialect = PostgresDialect()

        w = StringIO()
        w.write("SELECT * FROM ")
        dialect.write_qualified_table(w, table_name, schema_name)
        if self.sql:
            w.write(f" WHERE {self.sql}")
        if self.order_by:
            w.write(f" ORDER BY {', '.join(self.order_by)}")
        return Result(sql=w.getvalue(), parameters=list(self.parameters))


def _placeholders(sql: str) -> list[int]:
    return [int(m.group(1)) for m in _PLACEHOLDER_RE.finditer(sql) if m.group(1)]


def _shift_placeholders(sql: str, offset: int) -> str:
    if offset == 0:
        return sql

    def _shift(match: re.Match[str]) -> str:
        if match.group(1) is None:
            return match.group(0)
        return f"${int(match.group(1)) + offset}"

    return _PLACEHOLDER_RE.sub(_shift, sql)


class FilterWriter:
    """Accumulates AND-ed clauses, bound parameters, and ORDER BY terms.

    Placeholders are numbered as they are written, so parameters always
    line up with placeholder order.
    """

    def __init__(self, dialect: Dialect) -> None:
        self._dialect = dialect
        self._w = StringIO()
        self._parameters: list[Any] = []
        self._param_count = 0
        self._clause_count = 0
        self._order_terms: list[WriteFunc] = []

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def w(self) -> StringIO:
        return self._w

    def _add_param(self, value: Any) -> int:
        """Add a parameter and return its 1-based index."""
        self._param_count += 1
        self._parameters.append(value)
        return self._param_count

    def param(self, value: Any) -> WriteFunc:
        def write() -> None:
            idx = self._add_param(value)
            self._dialect.write_param_placeholder(self._w, idx)

        return write

    def raw(self, text: str) -> WriteFunc:
        def write() -> None:
            self._w.write(text)

        return write

    def clause(self) -> StringIO:
        """Start a new clause, writing the AND separator when needed."""
        if self._clause_count > 0:
            self._dialect.write_and(self._w)
        self._clause_count += 1
        return self._w

    def equality(self, column: str, value: Any) -> None:
        w = self.clause()
        if value is None:
            self._dialect.write_is_null(w, self.raw(column))
        else:
            self._dialect.write_equality(w, self.raw(column), self.param(value))

    def expression_equality(self, expression: str, value: Any) -> None:
        w = self.clause()

        def write_expr() -> None:
            self._dialect.write_grouped(w, self.raw(expression))

        if value is None:
            self._dialect.write_is_null(w, write_expr)
        else:
            self._dialect.write_equality(w, write_expr, self.param(value))

    def predicate(self, text: str | None) -> None:
        if not text:
            return
        w = self.clause()
        if is_parenthesized(text):
            w.write(text.strip())
        else:
            self._dialect.write_grouped(w, self.raw(text))

    def order(self, write_term: WriteFunc) -> None:
        self._order_terms.append(write_term)

    def result(self) -> QueryFilter:
        sql = self._w.getvalue()
        order_by: list[str] = []
        for write_term in self._order_terms:
            self._w = StringIO()
            write_term()
            order_by.append(self._w.getvalue())
        return QueryFilter(sql=sql, parameters=list(self._parameters), order_by=tuple(order_by))
