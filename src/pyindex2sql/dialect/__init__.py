"""SQL dialect system for index-backed query constructors."""

from pyindex2sql.dialect._base import Dialect, DialectName
from pyindex2sql.dialect.postgres import PostgresDialect

__all__ = [
    "Dialect",
    "DialectName",
    "PostgresDialect",
    "get_dialect",
]

_REGISTRY: dict[str, type[Dialect]] = {
    DialectName.POSTGRESQL: PostgresDialect,
}


def get_dialect(name: str) -> Dialect:
    """Get a dialect instance by name.

    Args:
        name: Dialect name (currently only "postgresql").

    Returns:
        A Dialect instance.

    Raises:
        ValueError: If the dialect name is unknown.
    """
    cls = _REGISTRY.get(name)
    if cls is None:
        raise ValueError(
            f"unknown dialect: {name!r}. "
            f"Available: {', '.join(sorted(_REGISTRY))}"
        )
    return cls()
