"""Table column schema used to classify indexes by column type."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldSchema:
    """Schema for a single column."""

    name: str
    type: str = "text"
    repeated: bool = False
    is_json: bool = False
    is_jsonb: bool = False


class Schema:
    """Table schema with O(1) column lookup."""

    def __init__(self, fields: list[FieldSchema]) -> None:
        self._fields = list(fields)
        self._index: dict[str, FieldSchema] = {f.name: f for f in fields}

    @property
    def fields(self) -> list[FieldSchema]:
        return list(self._fields)

    def find_field(self, name: str) -> FieldSchema | None:
        return self._index.get(name)

    def column_types(self) -> dict[str, str]:
        return {f.name: f.type for f in self._fields}

    def __len__(self) -> int:
        return len(self._fields)
