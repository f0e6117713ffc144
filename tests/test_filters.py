"""Tests for QueryFilter composition and the PostgreSQL dialect writers."""

from io import StringIO

import pytest

from pyindex2sql._errors import InvalidIdentifierError
from pyindex2sql._filters import FilterWriter, QueryFilter, Result
from pyindex2sql.dialect import get_dialect
from pyindex2sql.dialect.postgres import PostgresDialect


def _similar(text, threshold=0.3):
    return QueryFilter(
        "title % $1 AND similarity(title, $2) > $3",
        [text, text, threshold, text],
        ("similarity(title, $4) DESC",),
    )


class TestAnd:
    def test_renumbers_placeholders(self):
        combined = QueryFilter("user_id = $1", [1]) & QueryFilter("status = $1", ["open"])
        assert combined == QueryFilter("user_id = $1 AND status = $2", [1, "open"])

    def test_and_method(self):
        combined = QueryFilter("a = $1", [1]).and_(QueryFilter("b = $1 AND c = $2", [2, 3]))
        assert combined.sql == "a = $1 AND b = $2 AND c = $3"
        assert combined.parameters == [1, 2, 3]

    def test_string_literals_untouched(self):
        combined = QueryFilter("a = $1", [1]) & QueryFilter("note <> 'cost $1' AND b = $1", [2])
        assert combined.sql == "a = $1 AND note <> 'cost $1' AND b = $2"

    def test_empty_sides(self):
        predicate_only = QueryFilter("(NOT completed)")
        assert (QueryFilter("") & predicate_only) == predicate_only
        assert (predicate_only & QueryFilter("")) == predicate_only

    def test_order_terms_follow_where_parameters(self):
        combined = QueryFilter("user_id = $1", [7]) & _similar("milk")
        assert combined.sql == (
            "user_id = $1 AND title % $2 AND similarity(title, $3) > $4"
        )
        assert combined.order_by == ("similarity(title, $5) DESC",)
        assert combined.parameters == [7, "milk", "milk", 0.3, "milk"]

    def test_order_terms_on_left(self):
        combined = _similar("milk") & QueryFilter("user_id = $1", [7])
        assert combined.sql == (
            "title % $1 AND similarity(title, $2) > $3 AND user_id = $4"
        )
        assert combined.order_by == ("similarity(title, $5) DESC",)
        assert combined.parameters == ["milk", "milk", 0.3, 7, "milk"]

    def test_two_ordered_filters(self):
        combined = _similar("a") & _similar("b", 0.5)
        assert combined.order_by == (
            "similarity(title, $7) DESC",
            "similarity(title, $8) DESC",
        )
        assert combined.parameters == ["a", "a", 0.3, "b", "b", 0.5, "a", "b"]

    def test_non_filter_operand(self):
        with pytest.raises(TypeError):
            QueryFilter("a = $1", [1]) & "b = 2"


class TestSelect:
    def test_where(self):
        result = QueryFilter("user_id = $1", [5]).select("todos")
        assert result == Result("SELECT * FROM todos WHERE user_id = $1", [5])

    def test_no_where(self):
        assert QueryFilter("").select("todos").sql == "SELECT * FROM todos"

    def test_schema_qualified(self):
        result = QueryFilter("a = $1", [1]).select("todos", "app")
        assert result.sql == "SELECT * FROM app.todos WHERE a = $1"

    def test_quoted_table(self):
        assert QueryFilter("").select("Todo Items").sql == 'SELECT * FROM "Todo Items"'

    def test_order_by(self):
        result = _similar("milk").select("todos")
        assert result.sql == (
            "SELECT * FROM todos WHERE title % $1 AND similarity(title, $2) > $3 "
            "ORDER BY similarity(title, $4) DESC"
        )
        assert result.parameters == ["milk", "milk", 0.3, "milk"]

    def test_invalid_table(self):
        with pytest.raises(InvalidIdentifierError):
            QueryFilter("").select("")


class TestFilterWriter:
    def test_clauses_joined_with_and(self, pg_dialect):
        writer = FilterWriter(pg_dialect)
        writer.equality("a", 1)
        writer.equality("b", "x")
        assert writer.result() == QueryFilter("a = $1 AND b = $2", [1, "x"])

    def test_none_is_null(self, pg_dialect):
        writer = FilterWriter(pg_dialect)
        writer.equality("deleted_at", None)
        assert writer.result() == QueryFilter("deleted_at IS NULL", [])

    def test_expression_equality(self, pg_dialect):
        writer = FilterWriter(pg_dialect)
        writer.expression_equality("lower(email)", "a@b.c")
        assert writer.result() == QueryFilter("(lower(email)) = $1", ["a@b.c"])

    def test_predicate_grouped_once(self, pg_dialect):
        writer = FilterWriter(pg_dialect)
        writer.predicate("(NOT completed)")
        writer.predicate("completed = false")
        assert writer.result().sql == "(NOT completed) AND (completed = false)"

    def test_predicate_with_separate_groups(self, pg_dialect):
        writer = FilterWriter(pg_dialect)
        writer.predicate("(a IS NULL) OR (b IS NULL)")
        assert writer.result().sql == "((a IS NULL) OR (b IS NULL))"

    def test_empty_predicate_skipped(self, pg_dialect):
        writer = FilterWriter(pg_dialect)
        writer.predicate(None)
        writer.predicate("")
        assert writer.result() == QueryFilter("", [])


class TestPostgresDialect:
    def test_get_dialect(self):
        assert isinstance(get_dialect("postgresql"), PostgresDialect)

    def test_get_dialect_unknown(self):
        with pytest.raises(ValueError, match="unknown dialect"):
            get_dialect("mysql")

    def test_string_literal(self, pg_dialect):
        w = StringIO()
        pg_dialect.write_string_literal(w, "it's")
        assert w.getvalue() == "'it''s'"

    def test_has_all_keys_empty(self, pg_dialect):
        w = StringIO()
        pg_dialect.write_jsonb_has_all_keys(w, lambda: w.write("data"), [])
        assert w.getvalue() == "data ?& ARRAY[]::text[]"

    def test_fulltext_language(self, pg_dialect):
        w = StringIO()
        pg_dialect.write_fulltext_match(
            w, lambda: w.write("body_tsv"), "simple", lambda: w.write("$1")
        )
        assert w.getvalue() == "body_tsv @@ plainto_tsquery('simple', $1)"

    def test_capabilities(self, pg_dialect):
        assert pg_dialect.supports_jsonb()
        assert pg_dialect.supports_trigram()
