"""Identifier helpers, escaping, and value checks."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pyindex2sql._errors import InvalidIdentifierError

MAX_POSTGRESQL_IDENTIFIER_LENGTH = 63

IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_$]*$")

_NON_WORD_RE = re.compile(r"\W+")


def validate_identifier(name: str) -> None:
    """Validate a table or schema name before it is quoted into SQL."""
    if not name:
        raise InvalidIdentifierError(
            "identifier cannot be empty",
            "empty identifier provided",
        )
    if len(name) > MAX_POSTGRESQL_IDENTIFIER_LENGTH:
        raise InvalidIdentifierError(
            "identifier too long",
            f"identifier '{name}' exceeds {MAX_POSTGRESQL_IDENTIFIER_LENGTH} characters",
        )
    if "\x00" in name:
        raise InvalidIdentifierError(
            "identifier cannot contain null bytes",
            f"null byte found in identifier: {name!r}",
        )


def quote_identifier(name: str) -> str:
    """Double-quote an identifier unless it is a plain lower-case name."""
    if IDENTIFIER_RE.match(name) and name == name.lower():
        return name
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


def unquote_identifier(name: str) -> str:
    if len(name) >= 2 and name.startswith('"') and name.endswith('"'):
        return name[1:-1].replace('""', '"')
    return name


def escape_string_literal(value: str) -> str:
    """Escape a string for use as a SQL string literal."""
    return value.replace("'", "''")


def is_expression(column: str) -> bool:
    """Whether an index key is an expression (function call or cast) rather than a column."""
    return "(" in column or "::" in column


def normalize_column_name(column: str) -> str:
    """Reduce an index key to a lower-case word suitable for a constructor name."""
    cleaned = _NON_WORD_RE.sub("_", unquote_identifier(column).lower())
    return cleaned.strip("_")


def is_blank(value: Any) -> bool:
    """None, whitespace-only strings, and empty collections are blank."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, Mapping)):
        return len(value) == 0
    return False


def is_parenthesized(text: str) -> bool:
    """Whether the whole of ``text`` is wrapped in one matching pair of parentheses."""
    text = text.strip()
    if not (text.startswith("(") and text.endswith(")")):
        return False
    depth = 0
    in_string = False
    for i, ch in enumerate(text):
        if ch == "'":
            in_string = not in_string
        elif in_string:
            continue
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0 and i < len(text) - 1:
                return False
    return depth == 0
