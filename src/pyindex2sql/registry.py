"""Per-table registry of generated query constructors."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from pyindex2sql._constants import DEFAULT_SCHEMA_NAME
from pyindex2sql._filters import QueryFilter
from pyindex2sql._types import ParameterContract, QueryDescriptor


class Registry:
    """Named query constructors for one table.

    Entries are immutable once registered: registering a name that already
    exists (or is reserved) is a no-op, so the first registration wins.
    """

    def __init__(
        self,
        table_name: str,
        *,
        schema_name: str = DEFAULT_SCHEMA_NAME,
        reserved: Iterable[str] = (),
    ) -> None:
        self._table_name = table_name
        self._schema_name = schema_name
        self._entries: dict[str, QueryDescriptor] = {}
        self._reserved: set[str] = set(reserved)
        self._lock = threading.RLock()

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def schema_name(self) -> str:
        return self._schema_name

    @contextmanager
    def writer(self) -> Iterator[Registry]:
        """Hold the table's write lock for a whole generation pass."""
        with self._lock:
            yield self

    def reserve(self, names: Iterable[str]) -> None:
        """Mark names taken by capabilities outside this registry."""
        with self._lock:
            self._reserved.update(names)

    def register(self, descriptor: QueryDescriptor) -> bool:
        """Add a descriptor unless its name is taken. Returns True when added."""
        with self._lock:
            if descriptor.scope_name in self:
                return False
            self._entries[descriptor.scope_name] = descriptor
            return True

    def get(self, name: str) -> QueryDescriptor | None:
        return self._entries.get(name)

    def contract(self, name: str) -> ParameterContract:
        return self[name].contract

    def invoke(self, name: str, *args: Any, **kwargs: Any) -> QueryFilter:
        """Call the named query constructor.

        Raises:
            KeyError: If no constructor is registered under ``name``.
            MissingArgumentError: If a composite constructor lacks keys.
            InvalidArgumentsError: If the arguments do not fit the contract.
        """
        return self[name](*args, **kwargs)

    def names(self) -> list[str]:
        return sorted(self._entries)

    def __getitem__(self, name: str) -> QueryDescriptor:
        return self._entries[name]

    def __contains__(self, name: object) -> bool:
        return name in self._entries or name in self._reserved

    def __iter__(self) -> Iterator[QueryDescriptor]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Registry({self._schema_name}.{self._table_name}, {len(self)} constructors)"
