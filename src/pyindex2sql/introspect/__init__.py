"""Catalog introspection for index-backed query generation.

Reads column types and index metadata from live PostgreSQL connections.
"""

from __future__ import annotations

from pyindex2sql.introspect.postgres import (
    PgConnection,
    PgCursor,
    backend_name,
    fetch_catalog_rows,
    introspect_postgres,
    reflect_generic_indexes,
)

__all__ = [
    "PgConnection",
    "PgCursor",
    "backend_name",
    "fetch_catalog_rows",
    "introspect_postgres",
    "reflect_generic_indexes",
]
