"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any
from unittest.mock import MagicMock

import pytest

import pyindex2sql
from pyindex2sql.config import reset_configuration
from pyindex2sql.dialect.postgres import PostgresDialect

TODO_COLUMNS = [
    ("todos", "id", "integer", "int4"),
    ("todos", "title", "character varying", "varchar"),
    ("todos", "user_id", "integer", "int4"),
    ("todos", "status", "character varying", "varchar"),
    ("todos", "due_at", "date", "date"),
    ("todos", "completed", "boolean", "bool"),
    ("todos", "metadata", "jsonb", "jsonb"),
    ("todos", "content", "text", "text"),
    ("todos", "search_vector", "tsvector", "tsvector"),
    ("todos", "tags", "ARRAY", "_text"),
    ("todos", "deleted_at", "timestamp without time zone", "timestamp"),
]

# (name, key columns, unique, predicate) as returned by the generic reflection query
TODO_GENERIC = [
    ("idx_todos_open_by_user", ["user_id", "status"], False, "(deleted_at IS NULL)"),
    ("idx_todos_pending_due", ["due_at"], False, "(NOT completed)"),
    ("index_todos_on_content_fts", ["to_tsvector('english'::regconfig, content)"], False, None),
    ("index_todos_on_lower_title", ["lower(title::text)"], False, None),
    ("index_todos_on_metadata", ["metadata"], False, None),
    ("index_todos_on_title_trgm", ["title"], False, None),
    ("index_todos_on_user_id", ["user_id"], False, None),
    ("index_todos_on_user_id_and_status", ["user_id", "status"], True, None),
]

# (name, definition, access method, unique, predicate) as returned by the native query
TODO_NATIVE = [
    (
        "idx_todos_open_by_user",
        "CREATE INDEX idx_todos_open_by_user ON public.todos USING btree (user_id, status) "
        "WHERE (deleted_at IS NULL)",
        "btree", False, "(deleted_at IS NULL)",
    ),
    (
        "idx_todos_pending_due",
        "CREATE INDEX idx_todos_pending_due ON public.todos USING btree (due_at) "
        "WHERE (NOT completed)",
        "btree", False, "(NOT completed)",
    ),
    (
        "index_todos_on_content_fts",
        "CREATE INDEX index_todos_on_content_fts ON public.todos "
        "USING gin (to_tsvector('english'::regconfig, content))",
        "gin", False, None,
    ),
    (
        "index_todos_on_lower_title",
        "CREATE INDEX index_todos_on_lower_title ON public.todos USING btree (lower((title)::text))",
        "btree", False, None,
    ),
    (
        "index_todos_on_metadata",
        "CREATE INDEX index_todos_on_metadata ON public.todos USING gin (metadata)",
        "gin", False, None,
    ),
    (
        "index_todos_on_title_trgm",
        "CREATE INDEX index_todos_on_title_trgm ON public.todos USING gin (title gin_trgm_ops)",
        "gin", False, None,
    ),
    (
        "index_todos_on_user_id",
        "CREATE INDEX index_todos_on_user_id ON public.todos USING btree (user_id)",
        "btree", False, None,
    ),
    (
        "index_todos_on_user_id_and_status",
        "CREATE UNIQUE INDEX index_todos_on_user_id_and_status ON public.todos "
        "USING btree (user_id, status)",
        "btree", True, None,
    ),
]

TODO_SCOPES = [
    "index_content_fts_search",
    "index_lower_title",
    "index_metadata_contained",
    "index_metadata_contains",
    "index_metadata_has_key",
    "index_metadata_has_keys",
    "index_metadata_path",
    "index_title_similar",
    "index_user_id",
    "index_user_id_status",
    "todos_open_by_user",
    "todos_pending_due",
]


def make_pg_conn(
    *,
    columns: Sequence[tuple[Any, ...]] = TODO_COLUMNS,
    generic: Sequence[tuple[Any, ...]] = TODO_GENERIC,
    native: Sequence[tuple[Any, ...]] = TODO_NATIVE,
) -> MagicMock:
    """A mock psycopg-style connection answering the catalog queries."""
    cur = MagicMock()

    def execute_side_effect(query: str, params: Any = ()) -> None:
        if "information_schema.columns" in query:
            tables = set(params[1:])
            rows = [row for row in columns if row[0] in tables]
        elif "generate_series" in query:
            rows = list(generic)
        elif "AS definition" in query:
            rows = list(native)
            if "ic.relname = %s" in query:
                rows = [row for row in rows if row[0] == params[-1]]
        else:
            rows = []
        cur.fetchall.return_value = rows

    cur.execute.side_effect = execute_side_effect
    conn = MagicMock()
    conn.dialect_name = "postgresql"
    conn.cursor.return_value = cur
    return conn


@pytest.fixture
def pg_conn() -> MagicMock:
    return make_pg_conn()


@pytest.fixture
def pg_dialect() -> PostgresDialect:
    return PostgresDialect()


@pytest.fixture(autouse=True)
def _clean_state() -> Iterator[None]:
    pyindex2sql.reset_scopes()
    reset_configuration()
    yield
    pyindex2sql.reset_scopes()
    reset_configuration()
