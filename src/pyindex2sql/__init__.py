"""pyindex2sql - Generate index-backed query constructors from PostgreSQL indexes."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyindex2sql")
except PackageNotFoundError:  # running from a source tree
    __version__ = "0.0.0.dev0"

from pyindex2sql._catalog import FetchStrategy, IndexCatalog, extract_operator_classes
from pyindex2sql._classify import classify, select_strategy
from pyindex2sql._constants import DEFAULT_SCHEMA_NAME
from pyindex2sql._errors import (
    ConnectionKindError,
    IndexScopeError,
    IntrospectionError,
    InvalidArgumentsError,
    InvalidIdentifierError,
    MissingArgumentError,
    UnsupportedBackendError,
)
from pyindex2sql._filters import QueryFilter, Result
from pyindex2sql._generator import ScopeGenerator
from pyindex2sql._naming import build_scope_name
from pyindex2sql._predicate import parse_predicate
from pyindex2sql._types import (
    AccessMethod,
    CatalogRow,
    Classification,
    GenericIndex,
    GinKind,
    IndexDescriptor,
    ParameterContract,
    ParameterShape,
    PredicateTemplate,
    QueryDescriptor,
    Strategy,
)
from pyindex2sql.config import Configuration, configure, get_configuration, reset_configuration
from pyindex2sql.dialect._base import Dialect
from pyindex2sql.dialect.postgres import PostgresDialect
from pyindex2sql.introspect.postgres import PgConnection
from pyindex2sql.registry import Registry
from pyindex2sql.schema import FieldSchema, Schema

__all__ = [
    "generate_scopes",
    "get_registry",
    "index_scopes",
    "reset_scopes",
    "configure",
    "get_configuration",
    "reset_configuration",
    "classify",
    "select_strategy",
    "build_scope_name",
    "parse_predicate",
    "extract_operator_classes",
    "AccessMethod",
    "CatalogRow",
    "Classification",
    "Configuration",
    "Dialect",
    "FetchStrategy",
    "FieldSchema",
    "GenericIndex",
    "GinKind",
    "IndexCatalog",
    "IndexDescriptor",
    "ParameterContract",
    "ParameterShape",
    "PostgresDialect",
    "PredicateTemplate",
    "QueryDescriptor",
    "QueryFilter",
    "Registry",
    "Result",
    "Schema",
    "ScopeGenerator",
    "Strategy",
    "ConnectionKindError",
    "IndexScopeError",
    "IntrospectionError",
    "InvalidArgumentsError",
    "InvalidIdentifierError",
    "MissingArgumentError",
    "UnsupportedBackendError",
]

logger = logging.getLogger(__name__)

_TableKey = tuple[str, str]

_state_lock = threading.Lock()
_registries: dict[_TableKey, Registry] = {}
_descriptors: dict[_TableKey, list[IndexDescriptor]] = {}


def get_registry(table_name: str, *, schema_name: str = DEFAULT_SCHEMA_NAME) -> Registry:
    """Return the process-wide registry for a table, creating it empty if needed."""
    key = (schema_name, table_name)
    with _state_lock:
        registry = _registries.get(key)
        if registry is None:
            registry = Registry(table_name, schema_name=schema_name)
            _registries[key] = registry
        return registry


def generate_scopes(
    conn: PgConnection,
    table_name: str,
    *,
    schema_name: str = DEFAULT_SCHEMA_NAME,
    config: Configuration | None = None,
    generic_indexes: Sequence[GenericIndex] | None = None,
    columns: Schema | None = None,
    strategy: FetchStrategy | None = None,
    dialect: Dialect | None = None,
    reserved: Iterable[str] = (),
) -> Registry:
    """Analyze a table's indexes and register a query constructor for each.

    Index descriptors are read once per table and memoized for the process.
    Calling again is idempotent: names already registered are left untouched.

    Args:
        conn: A PostgreSQL connection (e.g. ``psycopg.Connection``).
        table_name: Table to analyze.
        schema_name: Schema of the table (default ``"public"``).
        config: Naming and table-filter options. Defaults to the
            process-wide configuration.
        generic_indexes: Generic index list from schema reflection. Read
            from the catalog when omitted.
        columns: Column types for the table. Introspected when omitted.
        strategy: How native index rows are fetched.
        dialect: SQL dialect for rendering. Defaults to PostgreSQL.
        reserved: Names owned by other capabilities; never generated.

    Returns:
        The table's Registry.

    Raises:
        UnsupportedBackendError: If ``conn`` is not a PostgreSQL connection.
        IntrospectionError: If reading the catalog fails.
    """
    if config is None:
        config = get_configuration()

    registry = get_registry(table_name, schema_name=schema_name)
    if not config.include_table(table_name):
        logger.debug("skipping excluded table %s.%s", schema_name, table_name)
        return registry

    key = (schema_name, table_name)
    with registry.writer():
        registry.reserve(reserved)
        indexes = _descriptors.get(key)
        if indexes is None:
            catalog = IndexCatalog(
                conn,
                table_name,
                schema_name=schema_name,
                generic_indexes=generic_indexes,
                columns=columns,
                strategy=strategy,
                dialect=dialect,
            )
            indexes = catalog.indexes()
            _descriptors[key] = indexes
            dialect = catalog.dialect

        generator = ScopeGenerator(registry, config=config, dialect=dialect, table_name=table_name)
        created = generator.generate(indexes)

    logger.info(
        "generated %d query constructors for %s.%s (%d registered)",
        len(created), schema_name, table_name, len(registry),
    )
    return registry


def index_scopes(table_name: str, *, schema_name: str = DEFAULT_SCHEMA_NAME) -> list[str]:
    """Names of all query constructors registered for a table."""
    return get_registry(table_name, schema_name=schema_name).names()


def reset_scopes() -> None:
    """Forget all memoized index descriptors and registries."""
    with _state_lock:
        _registries.clear()
        _descriptors.clear()
