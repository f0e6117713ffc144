"""Index catalog reader: merges generic reflection with native pg_index detail."""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Sequence

from pyindex2sql._constants import DEFAULT_ACCESS_METHOD, DEFAULT_SCHEMA_NAME
from pyindex2sql._errors import (
    ERR_MSG_CATALOG_READ_FAILED,
    ERR_MSG_UNSUPPORTED_BACKEND,
    IndexScopeError,
    IntrospectionError,
    UnsupportedBackendError,
)
from pyindex2sql._predicate import parse_predicate
from pyindex2sql._types import CatalogRow, GenericIndex, IndexDescriptor
from pyindex2sql._utils import unquote_identifier, validate_identifier
from pyindex2sql.dialect import get_dialect
from pyindex2sql.dialect._base import Dialect
from pyindex2sql.introspect.postgres import (
    PgConnection,
    PgCursor,
    backend_name,
    fetch_catalog_rows,
    introspect_postgres,
    reflect_generic_indexes,
)
from pyindex2sql.schema import Schema

logger = logging.getLogger(__name__)

OPCLASS_RE = re.compile(r"\b(\w+_ops)\b")


class FetchStrategy(enum.Enum):
    """How native index rows are read.

    BULK reads every row for the table in one query; INCREMENTAL reads one
    row per generic index. Both produce identical descriptors.
    """

    BULK = "bulk"
    INCREMENTAL = "incremental"


def extract_operator_classes(definition: str | None) -> tuple[str, ...]:
    """Operator classes named in an index definition, unique, in order of appearance."""
    if not definition:
        return ()
    return tuple(dict.fromkeys(OPCLASS_RE.findall(definition)))


def build_descriptor(
    generic: GenericIndex,
    row: CatalogRow | None,
    column_types: dict[str, str] | None = None,
) -> IndexDescriptor:
    """Merge one generic index with its native row (if any)."""
    columns = tuple(str(c) for c in generic.columns)
    if not columns and generic.expression:
        columns = (generic.expression,)

    predicate = generic.predicate or (row.predicate if row is not None else None)
    definition = row.definition if row is not None else None
    access_method = DEFAULT_ACCESS_METHOD
    if row is not None and row.access_method:
        access_method = row.access_method.lower()

    types = column_types or {}
    return IndexDescriptor(
        name=generic.name,
        columns=columns,
        access_method=access_method,
        unique=generic.unique,
        predicate=predicate,
        parsed_conditions=parse_predicate(predicate),
        operator_classes=extract_operator_classes(definition),
        definition=definition,
        column_types={
            unquote_identifier(c): types[unquote_identifier(c)]
            for c in columns
            if unquote_identifier(c) in types
        },
    )


class IndexCatalog:
    """Reads and memoizes the index descriptors of one table.

    Args:
        conn: A PostgreSQL DB-API connection (e.g. ``psycopg.Connection``).
        table_name: Table whose indexes are read.
        schema_name: Schema the table lives in.
        generic_indexes: Generic index list from schema reflection. Read
            from the catalog when omitted.
        columns: Column types for the table. Introspected when omitted.
        strategy: How native rows are fetched. Defaults to INCREMENTAL when
            ``generic_indexes`` is supplied and BULK otherwise.
        dialect: SQL dialect used by generated constructors.

    Raises:
        UnsupportedBackendError: If ``conn`` is not a PostgreSQL connection.
    """

    def __init__(
        self,
        conn: PgConnection,
        table_name: str,
        *,
        schema_name: str = DEFAULT_SCHEMA_NAME,
        generic_indexes: Sequence[GenericIndex] | None = None,
        columns: Schema | None = None,
        strategy: FetchStrategy | None = None,
        dialect: Dialect | None = None,
    ) -> None:
        backend = backend_name(conn)
        try:
            native_dialect = get_dialect(backend)
        except ValueError as e:
            raise UnsupportedBackendError(
                ERR_MSG_UNSUPPORTED_BACKEND,
                internal_details=f"unsupported database backend {backend!r}",
                wrapped=e,
            ) from e

        validate_identifier(table_name)
        validate_identifier(schema_name)

        self._conn = conn
        self._table_name = table_name
        self._schema_name = schema_name
        self._generic = None if generic_indexes is None else list(generic_indexes)
        self._columns = columns
        if strategy is None:
            strategy = FetchStrategy.BULK if generic_indexes is None else FetchStrategy.INCREMENTAL
        self._strategy = strategy
        self._dialect = dialect or native_dialect
        self._indexes: list[IndexDescriptor] | None = None

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def schema_name(self) -> str:
        return self._schema_name

    @property
    def strategy(self) -> FetchStrategy:
        return self._strategy

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    def indexes(self) -> list[IndexDescriptor]:
        """Index descriptors for the table, read on first access."""
        if self._indexes is None:
            self._indexes = self._read()
            logger.debug(
                "read %d indexes for %s.%s (%s)",
                len(self._indexes), self._schema_name, self._table_name, self._strategy.value,
            )
        return list(self._indexes)

    def _read(self) -> list[IndexDescriptor]:
        try:
            column_types = self._column_types()
            cur = self._conn.cursor()
            try:
                generic = self._generic
                if generic is None:
                    generic = reflect_generic_indexes(cur, self._table_name, self._schema_name)
                if self._strategy is FetchStrategy.BULK:
                    return self._merge_bulk(cur, generic, column_types)
                return self._merge_incremental(cur, generic, column_types)
            finally:
                cur.close()
        except IndexScopeError:
            raise
        except Exception as e:
            raise IntrospectionError(
                ERR_MSG_CATALOG_READ_FAILED,
                internal_details=(
                    f"reading indexes of {self._schema_name}.{self._table_name} failed: {e}"
                ),
                wrapped=e,
            ) from e

    def _column_types(self) -> dict[str, str]:
        columns = self._columns
        if columns is None:
            schemas = introspect_postgres(
                self._conn, table_names=[self._table_name], schema_name=self._schema_name
            )
            columns = schemas[self._table_name]
        return columns.column_types()

    def _merge_bulk(
        self,
        cur: PgCursor,
        generic: list[GenericIndex],
        column_types: dict[str, str],
    ) -> list[IndexDescriptor]:
        rows = fetch_catalog_rows(cur, self._table_name, self._schema_name)
        by_name = {row.name: row for row in rows}
        return [build_descriptor(g, by_name.get(g.name), column_types) for g in generic]

    def _merge_incremental(
        self,
        cur: PgCursor,
        generic: list[GenericIndex],
        column_types: dict[str, str],
    ) -> list[IndexDescriptor]:
        descriptors = []
        for g in generic:
            rows = fetch_catalog_rows(
                cur, self._table_name, self._schema_name, index_name=g.name
            )
            descriptors.append(build_descriptor(g, rows[0] if rows else None, column_types))
        return descriptors

    def __repr__(self) -> str:
        return f"IndexCatalog({self._schema_name}.{self._table_name}, {self._strategy.value})"
