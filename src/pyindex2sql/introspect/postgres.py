"""PostgreSQL catalog introspection: column types and index metadata."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pyindex2sql._errors import ERR_MSG_TABLE_NOT_FOUND, IntrospectionError
from pyindex2sql._types import CatalogRow, GenericIndex
from pyindex2sql.schema import FieldSchema, Schema


@runtime_checkable
class PgCursor(Protocol):
    """Minimal cursor protocol for PostgreSQL drivers."""

    def execute(self, query: str, params: Any = ..., /) -> Any: ...
    def fetchall(self) -> list[tuple[Any, ...]]: ...
    def close(self) -> None: ...


@runtime_checkable
class PgConnection(Protocol):
    """Minimal connection protocol for PostgreSQL drivers."""

    def cursor(self) -> PgCursor: ...


# Driver module -> backend name, for connections that do not report a vendor
_DRIVER_BACKENDS: dict[str, str] = {
    "psycopg": "postgresql",
    "psycopg2": "postgresql",
    "pg8000": "postgresql",
    "asyncpg": "postgresql",
}

_INDEX_FROM = """
    FROM pg_index idx
    JOIN pg_class c ON c.oid = idx.indrelid
    JOIN pg_namespace n ON n.oid = c.relnamespace
    JOIN pg_class ic ON ic.oid = idx.indexrelid
    JOIN pg_am am ON am.oid = ic.relam
    WHERE n.nspname = %s
      AND c.relname = %s
      AND NOT idx.indisprimary
"""

NATIVE_INDEXES_QUERY = """
    SELECT ic.relname AS name,
           pg_get_indexdef(idx.indexrelid) AS definition,
           am.amname AS access_method,
           idx.indisunique AS is_unique,
           pg_get_expr(idx.indpred, idx.indrelid) AS predicate
""" + _INDEX_FROM

GENERIC_INDEXES_QUERY = """
    SELECT ic.relname AS name,
           ARRAY(
               SELECT pg_get_indexdef(idx.indexrelid, k, true)
               FROM generate_series(1, idx.indnkeyatts) AS k
               ORDER BY k
           ) AS columns,
           idx.indisunique AS is_unique,
           pg_get_expr(idx.indpred, idx.indrelid) AS predicate
""" + _INDEX_FROM


def backend_name(conn: Any) -> str:
    """Best-effort name of the database behind a DB-API connection."""
    for attr in ("dialect_name", "backend"):
        value = getattr(conn, attr, None)
        if isinstance(value, str):
            return value.lower()
    vendor = getattr(getattr(conn, "info", None), "vendor", None)
    if isinstance(vendor, str):
        return vendor.lower()
    module = type(conn).__module__.split(".")[0]
    return _DRIVER_BACKENDS.get(module, module)


def introspect_postgres(
    conn: PgConnection,
    *,
    table_names: list[str],
    schema_name: str = "public",
) -> dict[str, Schema]:
    """Introspect PostgreSQL column types.

    Args:
        conn: A PostgreSQL connection (e.g. ``psycopg.Connection``).
        table_names: Tables to introspect.
        schema_name: Schema name (default ``"public"``).

    Returns:
        Mapping of table name to :class:`~pyindex2sql.schema.Schema`.

    Raises:
        IntrospectionError: If a requested table is not found.
    """
    if not table_names:
        return {}

    cur = conn.cursor()
    try:
        return _introspect(cur, table_names, schema_name)
    finally:
        cur.close()


def _introspect(
    cur: PgCursor,
    table_names: list[str],
    schema_name: str,
) -> dict[str, Schema]:
    placeholders = ", ".join(["%s"] * len(table_names))
    query = f"""
        SELECT table_name, column_name, data_type, udt_name
        FROM information_schema.columns
        WHERE table_schema = %s
          AND table_name IN ({placeholders})
        ORDER BY table_name, ordinal_position
    """
    cur.execute(query, [schema_name, *table_names])
    rows = cur.fetchall()

    columns_by_table: dict[str, list[FieldSchema]] = {}
    for table_name, column_name, data_type, udt_name in rows:
        field = _map_column(str(column_name), str(data_type), str(udt_name))
        columns_by_table.setdefault(str(table_name), []).append(field)

    result: dict[str, Schema] = {}
    for name in table_names:
        if name not in columns_by_table:
            raise IntrospectionError(
                ERR_MSG_TABLE_NOT_FOUND,
                internal_details=f"table {name!r} not found in schema {schema_name!r}",
            )
        result[name] = Schema(columns_by_table[name])

    return result


def _map_column(column_name: str, data_type: str, udt_name: str) -> FieldSchema:
    repeated = data_type.upper() == "ARRAY"
    return FieldSchema(
        name=column_name,
        type=udt_name,
        repeated=repeated,
        is_json=udt_name in ("json", "jsonb"),
        is_jsonb=udt_name == "jsonb",
    )


def fetch_catalog_rows(
    cur: PgCursor,
    table_name: str,
    schema_name: str = "public",
    *,
    index_name: str | None = None,
) -> list[CatalogRow]:
    """Read native index rows for a table, or for one of its indexes.

    Primary-key indexes are excluded.
    """
    query = NATIVE_INDEXES_QUERY
    params = [schema_name, table_name]
    if index_name is not None:
        query += "      AND ic.relname = %s\n"
        params.append(index_name)
    query += "    ORDER BY ic.relname\n"
    cur.execute(query, params)

    return [
        CatalogRow(
            name=str(name),
            definition=None if definition is None else str(definition),
            access_method=str(access_method or ""),
            unique=bool(is_unique),
            predicate=None if predicate is None else str(predicate),
        )
        for name, definition, access_method, is_unique, predicate in cur.fetchall()
    ]


def reflect_generic_indexes(
    cur: PgCursor,
    table_name: str,
    schema_name: str = "public",
) -> list[GenericIndex]:
    """Read access-method-agnostic index metadata for a table.

    Key columns come back as column names or, for expression keys, as the
    deparsed expression text.
    """
    cur.execute(GENERIC_INDEXES_QUERY + "    ORDER BY ic.relname\n", [schema_name, table_name])
    return [
        GenericIndex(
            name=str(name),
            columns=tuple(str(column) for column in (columns or ())),
            unique=bool(is_unique),
            predicate=None if predicate is None else str(predicate),
        )
        for name, columns, is_unique, predicate in cur.fetchall()
    ]
