"""Fixtures and helpers for integration tests against a real PostgreSQL."""

from __future__ import annotations

import json
import os
import re
import shutil
import subprocess
from typing import Any

import pytest

from pyindex2sql import QueryFilter

# ---------------------------------------------------------------------------
# Container runtime detection (Docker or Podman)
# ---------------------------------------------------------------------------


def _get_podman_socket() -> str | None:
    """Get the Podman machine socket path, if available."""
    try:
        result = subprocess.run(
            ["podman", "machine", "inspect", "--format",
             "{{.ConnectionInfo.PodmanSocket.Path}}"],
            capture_output=True, text=True, check=True, timeout=5,
        )
        sock = result.stdout.strip()
        if sock and os.path.exists(sock):
            return sock
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired,
            FileNotFoundError):
        pass
    return None


def _container_runtime_available() -> bool:
    """Check if Docker or Podman is available as a container runtime."""
    for cmd in ["docker", "podman"]:
        if shutil.which(cmd):
            try:
                subprocess.run(
                    [cmd, "info"], capture_output=True, check=True, timeout=10,
                )
                return True
            except (subprocess.CalledProcessError, subprocess.TimeoutExpired,
                    FileNotFoundError):
                continue
    return False


def _configure_testcontainers_for_podman() -> None:
    """Configure testcontainers to work with Podman."""
    if not shutil.which("podman"):
        return
    # Ryuk (resource reaper) is not always supported by Podman
    os.environ.setdefault("TESTCONTAINERS_RYUK_DISABLED", "true")
    if "DOCKER_HOST" not in os.environ:
        sock = _get_podman_socket()
        if sock:
            os.environ["DOCKER_HOST"] = f"unix://{sock}"


CONTAINER_RUNTIME_AVAILABLE = _container_runtime_available()

if CONTAINER_RUNTIME_AVAILABLE:
    _configure_testcontainers_for_podman()


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

SEED_ROWS = [
    {
        "title": "Buy milk",
        "user_id": 1,
        "status": "open",
        "due_at": "2024-01-10",
        "completed": False,
        "metadata": {"priority": "high", "tags": {"home": True}},
        "content": "buy fresh milk from the corner store",
        "deleted_at": None,
    },
    {
        "title": "Buy bread",
        "user_id": 1,
        "status": "done",
        "due_at": "2024-01-10",
        "completed": True,
        "metadata": {"priority": "low"},
        "content": "the bakery sells sourdough bread",
        "deleted_at": None,
    },
    {
        "title": "Write report",
        "user_id": 2,
        "status": "open",
        "due_at": "2024-02-01",
        "completed": False,
        "metadata": {"priority": "high", "owner": "ann"},
        "content": "quarterly report for the finance team",
        "deleted_at": "2024-03-01T00:00:00",
    },
    {
        "title": "Call mom",
        "user_id": 2,
        "status": "open",
        "due_at": None,
        "completed": False,
        "metadata": {},
        "content": "call mom on sunday afternoon",
        "deleted_at": None,
    },
]

INDEX_DDL = [
    "CREATE INDEX index_todos_on_user_id ON todos (user_id)",
    "CREATE INDEX index_todos_on_user_id_and_status ON todos (user_id, status)",
    "CREATE INDEX index_todos_on_metadata ON todos USING gin (metadata)",
    "CREATE INDEX index_todos_on_title_trgm ON todos USING gin (title gin_trgm_ops)",
    "CREATE INDEX index_todos_on_content_fts ON todos USING gin (to_tsvector('english', content))",
    "CREATE INDEX index_todos_on_lower_title ON todos (lower(title))",
    "CREATE INDEX idx_todos_pending_due ON todos (due_at) WHERE completed = false",
    "CREATE INDEX idx_todos_open_by_user ON todos (user_id, status) WHERE deleted_at IS NULL",
]


def _setup_postgres(conn) -> None:
    cur = conn.cursor()
    cur.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")
    cur.execute("""
        CREATE TABLE IF NOT EXISTS todos (
            id SERIAL PRIMARY KEY,
            title VARCHAR(255) NOT NULL,
            user_id INTEGER NOT NULL,
            status VARCHAR(32) NOT NULL,
            due_at DATE,
            completed BOOLEAN NOT NULL DEFAULT false,
            metadata JSONB NOT NULL DEFAULT '{}',
            content TEXT,
            deleted_at TIMESTAMP
        )
    """)
    for ddl in INDEX_DDL:
        cur.execute(ddl)
    for row in SEED_ROWS:
        cur.execute(
            """INSERT INTO todos (title, user_id, status, due_at, completed, metadata, content, deleted_at)
               VALUES (%s, %s, %s, %s, %s, %s, %s, %s)""",
            (
                row["title"], row["user_id"], row["status"], row["due_at"],
                row["completed"], json.dumps(row["metadata"]), row["content"],
                row["deleted_at"],
            ),
        )
    conn.commit()
    cur.close()


# ---------------------------------------------------------------------------
# Session-scoped fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def pg_container():
    if not CONTAINER_RUNTIME_AVAILABLE:
        pytest.skip("No container runtime (Docker/Podman) available")
    from testcontainers.postgres import PostgresContainer
    with PostgresContainer("postgres:16") as pg:
        yield pg


@pytest.fixture(scope="session")
def pg_db(pg_container):
    import psycopg
    # psycopg3 connection parameters (not a SQLAlchemy URL)
    host = pg_container.get_container_host_ip()
    port = pg_container.get_exposed_port(5432)
    conn = psycopg.connect(
        host=host, port=port,
        user=pg_container.username,
        password=pg_container.password,
        dbname=pg_container.dbname,
    )
    _setup_postgres(conn)
    conn.autocommit = True
    yield conn
    conn.close()


# ---------------------------------------------------------------------------
# Query execution helpers
# ---------------------------------------------------------------------------


def _adapt_params_for_driver(sql: str) -> str:
    """Rewrite $1, $2, ... as psycopg %s placeholders.

    Literal ``%`` (the pg_trgm similarity operator) is escaped first.
    """
    return re.sub(r"\$\d+", "%s", sql.replace("%", "%%"))


def _rows_to_dicts(cur) -> list[dict[str, Any]]:
    columns = [d[0] for d in cur.description]
    return [dict(zip(columns, row)) for row in cur.fetchall()]


def execute_filter(conn, query_filter: QueryFilter, table_name: str = "todos") -> list[dict[str, Any]]:
    """Run ``SELECT *`` for a generated filter and return row dicts in result order."""
    result = query_filter.select(table_name)
    cur = conn.cursor()
    cur.execute(_adapt_params_for_driver(result.sql), tuple(result.parameters))
    rows = _rows_to_dicts(cur)
    cur.close()
    return rows


def get_titles(rows: list[dict[str, Any]]) -> set[str]:
    """Extract the set of 'title' values from result rows."""
    return {row["title"] for row in rows}
