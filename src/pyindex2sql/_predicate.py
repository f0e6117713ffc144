"""Partial-index predicate parsing.

Turns a deparsed index predicate (as returned by ``pg_get_expr``) into a
mapping of structured conditions. Parsing is best-effort: the raw predicate
is always what gets applied to queries, and text the grammar rejects is
scanned with regular expressions instead.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from lark import Lark, Token, Tree
from lark.exceptions import LarkError
from lark.visitors import Interpreter

from pyindex2sql._utils import unquote_identifier

logger = logging.getLogger(__name__)

PREDICATE_GRAMMAR = r"""
?predicate: disjunction

?disjunction: conjunction (_OR conjunction)*
?conjunction: negation (_AND negation)*

?negation: _NOT negation                -> negated
         | condition

?condition: operand "=" operand         -> equality
          | operand COMPARE_OP operand  -> comparison
          | operand _IS NULL            -> is_null
          | operand _IS _NOT NULL       -> is_not_null
          | operand _IS BOOLEAN         -> is_boolean
          | operand _IS _NOT BOOLEAN    -> is_not_boolean
          | operand

?operand: term
        | operand "::" type_name        -> cast

?term: STRING
     | NUMBER
     | BOOLEAN
     | NULL
     | column_ref
     | function_call
     | "(" disjunction ")"              -> group

column_ref: (NAME | QUOTED_NAME) ("." (NAME | QUOTED_NAME))*
function_call: column_ref "(" [arguments] ")"
arguments: disjunction ("," disjunction)*

type_name: (NAME | QUOTED_NAME)+ type_modifier? ARRAY_SUFFIX*
type_modifier: "(" NUMBER ("," NUMBER)* ")"

_OR.2: /or\b/i
_AND.2: /and\b/i
_NOT.2: /not\b/i
_IS.2: /is\b/i
NULL.2: /null\b/i
BOOLEAN.2: /(true|false)\b/i

COMPARE_OP: /<>|!=|<=|>=|@>|<@|&&|!~~\*?|~~\*?|!~\*?|~\*?|<|>/
ARRAY_SUFFIX: "[]"
STRING: /'(?:[^']|'')*'/
NUMBER: /-?\d+(\.\d+)?([eE][-+]?\d+)?/
NAME: /[a-zA-Z_][a-zA-Z0-9_$]*/
QUOTED_NAME: /"(?:[^"]|"")*"/

%import common.WS
%ignore WS
"""

_parser = Lark(PREDICATE_GRAMMAR, start="predicate", parser="lalr")

# Fallback scans, applied cumulatively when the grammar rejects a predicate.
# Each tolerates "(column)::type" on the left and a cast after the literal.
_CAST = r"(?:::[a-zA-Z_][\w ]*?)?"
EQUALITY_RE = re.compile(r"\(?(\w+)\)?" + _CAST + r"\s*=\s*'((?:[^']|'')*)'")
BOOLEAN_RE = re.compile(r"\(?(\w+)\)?" + _CAST + r"\s*=\s*(true|false)\b", re.IGNORECASE)
NULL_RE = re.compile(r"\(?(\w+)\)?\s+IS\s+NULL\b", re.IGNORECASE)
NOT_NULL_RE = re.compile(r"\(?(\w+)\)?\s+IS\s+NOT\s+NULL\b", re.IGNORECASE)

_NO_VALUE = object()


def not_null_key(column: str) -> str:
    return f"{column}_not_null"


class ConditionCollector(Interpreter):
    """Walks a predicate parse tree collecting equality and null conditions.

    Conditions are collected wherever they appear; the predicate itself is
    never rewritten from them.
    """

    def __init__(self) -> None:
        self._conditions: dict[str, Any] = {}

    @property
    def conditions(self) -> dict[str, Any]:
        return dict(self._conditions)

    def collect(self, tree: Tree | Token) -> dict[str, Any]:
        self._visit_condition(tree)
        return self.conditions

    def _visit_condition(self, node: Tree | Token) -> None:
        """Visit a node in boolean position."""
        if not isinstance(node, Tree):
            return
        if node.data == "column_ref":
            # a bare boolean column
            self._conditions[_column_ref_name(node)] = True
            return
        if node.data in _CONDITION_RULES:
            self.visit(node)

    # --- Boolean structure ---

    def disjunction(self, tree: Tree) -> None:
        for child in tree.children:
            self._visit_condition(child)

    def conjunction(self, tree: Tree) -> None:
        for child in tree.children:
            self._visit_condition(child)

    def group(self, tree: Tree) -> None:
        for child in tree.children:
            self._visit_condition(child)

    def negated(self, tree: Tree) -> None:
        column = _column_name(tree.children[0], allow_cast=False)
        if column is not None:
            self._conditions[column] = False

    # --- Conditions ---

    def equality(self, tree: Tree) -> None:
        lhs, rhs = tree.children
        column = _column_name(lhs)
        value = _literal_value(rhs)
        if column is None or value is _NO_VALUE:
            column = _column_name(rhs)
            value = _literal_value(lhs)
        if column is not None and value is not _NO_VALUE:
            self._conditions[column] = value

    def is_null(self, tree: Tree) -> None:
        column = _column_name(tree.children[0])
        if column is not None:
            self._conditions[column] = None

    def is_not_null(self, tree: Tree) -> None:
        column = _column_name(tree.children[0])
        if column is not None:
            self._conditions[not_null_key(column)] = True

    def is_boolean(self, tree: Tree) -> None:
        column = _column_name(tree.children[0])
        if column is not None:
            self._conditions[column] = str(tree.children[1]).lower() == "true"

    def is_not_boolean(self, tree: Tree) -> None:
        pass

    def comparison(self, tree: Tree) -> None:
        pass


_CONDITION_RULES = {
    "disjunction",
    "conjunction",
    "group",
    "negated",
    "equality",
    "is_null",
    "is_not_null",
    "is_boolean",
    "is_not_boolean",
    "comparison",
}


def _column_ref_name(tree: Tree) -> str:
    return unquote_identifier(str(tree.children[-1]))


def _column_name(node: Tree | Token, *, allow_cast: bool = True) -> str | None:
    """Extract a column name, looking through parentheses and casts."""
    while isinstance(node, Tree):
        if node.data == "column_ref":
            return _column_ref_name(node)
        if node.data == "group" and len(node.children) == 1:
            node = node.children[0]
        elif node.data == "cast" and allow_cast:
            node = node.children[0]
        else:
            return None
    return None


def _literal_value(node: Tree | Token) -> Any:
    """Extract a quoted-string or boolean literal, looking through casts."""
    while isinstance(node, Tree):
        if node.data in ("group", "cast"):
            node = node.children[0]
        else:
            return _NO_VALUE
    if node.type == "STRING":
        return str(node)[1:-1].replace("''", "'")
    if node.type == "BOOLEAN":
        return str(node).lower() == "true"
    return _NO_VALUE


def scan_conditions(predicate: str) -> dict[str, Any]:
    """Regular-expression scan for the recognized predicate shapes."""
    conditions: dict[str, Any] = {}
    for column, value in EQUALITY_RE.findall(predicate):
        conditions[column] = value.replace("''", "'")
    for column, value in BOOLEAN_RE.findall(predicate):
        conditions[column] = value.lower() == "true"
    for column in NULL_RE.findall(predicate):
        conditions[column] = None
    for column in NOT_NULL_RE.findall(predicate):
        conditions[not_null_key(column)] = True
    return conditions


def parse_predicate(predicate: str | None) -> dict[str, Any]:
    """Parse a partial-index predicate into structured conditions.

    Args:
        predicate: Raw predicate text, e.g. ``((status)::text = 'open'::text)``.

    Returns:
        Mapping of column name to literal value; ``None`` for ``IS NULL``;
        ``"<column>_not_null": True`` for ``IS NOT NULL``. Empty when nothing
        is recognized. Never raises.
    """
    if predicate is None or not predicate.strip():
        return {}

    try:
        tree = _parser.parse(predicate)
    except LarkError as e:
        logger.debug("predicate %r not parsed (%s); scanning instead", predicate, e)
        return scan_conditions(predicate)

    return ConditionCollector().collect(tree)
