"""Query-descriptor generation.

Each classified index is dispatched to one strategy, which registers one or
more named query constructors. A constructor validates its arguments against
its ParameterContract and renders a QueryFilter.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from pyindex2sql._classify import classify, select_strategy
from pyindex2sql._errors import (
    ERR_MSG_INVALID_ARGUMENTS,
    InvalidArgumentsError,
    MissingArgumentError,
)
from pyindex2sql._filters import FilterWriter, QueryFilter
from pyindex2sql._naming import build_scope_name
from pyindex2sql._types import (
    Classification,
    IndexDescriptor,
    ParameterContract,
    ParameterShape,
    PredicateTemplate,
    QueryDescriptor,
    Strategy,
)
from pyindex2sql._utils import is_blank, is_expression, unquote_identifier
from pyindex2sql.config import Configuration, get_configuration
from pyindex2sql.dialect._base import Dialect
from pyindex2sql.dialect.postgres import PostgresDialect
from pyindex2sql.registry import Registry

logger = logging.getLogger(__name__)

FilterBody = Callable[[FilterWriter, dict[str, Any]], None]


def _invalid(scope_name: str, message: str, wrapped: Exception | None = None) -> InvalidArgumentsError:
    return InvalidArgumentsError(
        f"{ERR_MSG_INVALID_ARGUMENTS}: {message}",
        f"{scope_name}: {message}",
        wrapped,
    )


def bind_arguments(
    contract: ParameterContract,
    scope_name: str,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> dict[str, Any]:
    """Map call arguments onto a contract's names.

    NAMED contracts take keyword arguments or a single mapping (``None`` for
    an empty set). SINGLE and PAIR contracts take positional arguments, with
    keywords allowed for any declared name.
    """
    if contract.shape is ParameterShape.NAMED:
        if len(args) > 1:
            raise _invalid(scope_name, "expected keyword arguments or a single mapping")
        if args:
            if kwargs:
                raise _invalid(scope_name, "cannot mix a mapping with keyword arguments")
            only = args[0]
            if only is None:
                return {}
            if not isinstance(only, Mapping):
                raise _invalid(scope_name, "expected keyword arguments or a single mapping")
            return dict(only)
        return dict(kwargs)

    if contract.optional and not args and not kwargs:
        return {}
    if len(args) > len(contract.names):
        raise _invalid(
            scope_name,
            f"expected at most {len(contract.names)} positional argument(s), got {len(args)}",
        )
    values = dict(zip(contract.names, args))
    for key, value in kwargs.items():
        if key not in contract.names:
            raise _invalid(scope_name, f"unexpected argument {key!r}")
        if key in values:
            raise _invalid(scope_name, f"argument {key!r} given twice")
        values[key] = value
    for name in contract.required:
        if name not in values:
            raise _invalid(scope_name, f"missing positional argument {name!r}")
    for name, default in contract.defaults:
        values.setdefault(name, default)
    return values


def require_all(keys: Sequence[str], values: Mapping[str, Any], scope_name: str) -> None:
    """Raise MissingArgumentError naming every absent key."""
    missing = [key for key in keys if key not in values]
    if missing:
        raise MissingArgumentError(missing, scope_name)


# --- Argument coercion ---


def _json_document(value: Any, scope_name: str) -> str:
    if not isinstance(value, (Mapping, list, tuple)):
        raise _invalid(scope_name, "expected a mapping or a list")
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise _invalid(scope_name, "value is not JSON serializable", e) from e


def _key_list(keys: Any, scope_name: str) -> list[str]:
    if isinstance(keys, str):
        return [keys]
    if not isinstance(keys, (list, tuple, set, frozenset)):
        raise _invalid(scope_name, "expected a key or a sequence of keys")
    result = list(keys)
    if not all(isinstance(key, str) for key in result):
        raise _invalid(scope_name, "keys must be strings")
    return result


def _path_list(path: Any, scope_name: str) -> list[str]:
    if isinstance(path, str):
        return [path]
    if isinstance(path, (list, tuple)) and path:
        return [str(part) for part in path]
    raise _invalid(scope_name, "expected a path string or a non-empty sequence")


def _path_text(value: Any, scope_name: str) -> str:
    """The text form ``#>>`` produces for a JSON value."""
    if value is None:
        raise _invalid(scope_name, "path value cannot be None")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (Mapping, list, tuple)):
        return _json_document(value, scope_name)
    return str(value)


def _text(value: Any, scope_name: str, name: str) -> str:
    if not isinstance(value, str):
        raise _invalid(scope_name, f"{name} must be a string")
    return value


def _threshold(value: Any, scope_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _invalid(scope_name, "threshold must be a number")
    if not 0 <= value <= 1:
        raise _invalid(scope_name, "threshold must be between 0 and 1")
    return float(value)


class ScopeGenerator:
    """Generates and registers query constructors for a table's indexes.

    Args:
        registry: Destination registry; names already present are skipped.
        config: Naming options. Defaults to the process-wide configuration.
        dialect: SQL dialect for rendering. Defaults to PostgreSQL.
        table_name: Used when deriving expression-index names.
    """

    def __init__(
        self,
        registry: Registry,
        *,
        config: Configuration | None = None,
        dialect: Dialect | None = None,
        table_name: str | None = None,
    ) -> None:
        self._registry = registry
        self._config = config or get_configuration()
        self._dialect = dialect or PostgresDialect()
        self._table_name = table_name or registry.table_name
        self._handlers: dict[
            Strategy, Callable[[IndexDescriptor, Classification], list[QueryDescriptor]]
        ] = {
            Strategy.PARTIAL: self._generate_partial,
            Strategy.EXPRESSION: self._generate_expression,
            Strategy.JSONB: self._generate_jsonb,
            Strategy.FULLTEXT: self._generate_fulltext,
            Strategy.TRIGRAM: self._generate_trigram,
            Strategy.STANDARD: self._generate_standard,
        }

    def generate(self, indexes: Sequence[IndexDescriptor]) -> list[QueryDescriptor]:
        """Generate for every index; returns only newly registered descriptors."""
        created: list[QueryDescriptor] = []
        for index in indexes:
            created.extend(self.generate_for_index(index))
        return created

    def generate_for_index(self, index: IndexDescriptor) -> list[QueryDescriptor]:
        classification = classify(index)
        strategy = select_strategy(classification)
        if strategy is Strategy.JSONB and not self._dialect.supports_jsonb():
            strategy = Strategy.STANDARD
        elif strategy is Strategy.TRIGRAM and not self._dialect.supports_trigram():
            strategy = Strategy.STANDARD
        logger.debug(
            "index %s: %s via %s (gin kind %s)",
            index.name,
            strategy.value,
            index.access_method,
            classification.gin_kind.value if classification.gin_kind else "-",
        )
        return self._handlers[strategy](index, classification)

    # --- Registration ---

    def _constructor(
        self, scope_name: str, contract: ParameterContract, body: FilterBody
    ) -> Callable[..., QueryFilter]:
        dialect = self._dialect

        def build(*args: Any, **kwargs: Any) -> QueryFilter:
            values = bind_arguments(contract, scope_name, args, kwargs)
            writer = FilterWriter(dialect)
            body(writer, values)
            return writer.result()

        build.__name__ = scope_name
        return build

    def _add(
        self,
        scope_name: str,
        index: IndexDescriptor,
        strategy: Strategy,
        contract: ParameterContract,
        template: PredicateTemplate,
        body: FilterBody,
    ) -> list[QueryDescriptor]:
        if scope_name in self._registry:
            logger.debug("skipping %s for index %s: name already registered", scope_name, index.name)
            return []
        descriptor = QueryDescriptor(
            scope_name=scope_name,
            index_name=index.name,
            strategy=strategy,
            contract=contract,
            template=template,
            always_applied_predicate=index.predicate,
            build=self._constructor(scope_name, contract, body),
        )
        if not self._registry.register(descriptor):
            return []
        return [descriptor]

    # --- Strategies ---

    def _generate_partial(
        self, index: IndexDescriptor, classification: Classification
    ) -> list[QueryDescriptor]:
        scope_name = build_scope_name(index, self._config, self._table_name)
        predicate = index.predicate
        keys = tuple(unquote_identifier(c) for c in index.columns)

        if classification.single_column:
            column, key = index.columns[0], keys[0]
            contract = ParameterContract(ParameterShape.SINGLE, (key,), optional=True)

            def body(writer: FilterWriter, values: dict[str, Any]) -> None:
                writer.predicate(predicate)
                value = values.get(key)
                # blank values mean "no column filter", not "column IS NULL"
                if is_blank(value):
                    return
                if is_expression(column):
                    writer.expression_equality(column, value)
                else:
                    writer.equality(column, value)

        else:
            contract = ParameterContract(ParameterShape.NAMED, keys, optional=True)

            def body(writer: FilterWriter, values: dict[str, Any]) -> None:
                writer.predicate(predicate)
                if not values:
                    return
                require_all(keys, values, scope_name)
                for column, key in zip(index.columns, keys):
                    writer.equality(column, values[key])

        return self._add(
            scope_name, index, Strategy.PARTIAL, contract, PredicateTemplate.EQUALITY, body
        )

    def _generate_expression(
        self, index: IndexDescriptor, classification: Classification
    ) -> list[QueryDescriptor]:
        scope_name = build_scope_name(index, self._config, self._table_name)
        expression = classification.expression or index.columns[0]
        contract = ParameterContract(ParameterShape.SINGLE, ("value",))

        def body(writer: FilterWriter, values: dict[str, Any]) -> None:
            writer.expression_equality(expression, values["value"])
            writer.predicate(index.predicate)

        return self._add(
            scope_name, index, Strategy.EXPRESSION, contract, PredicateTemplate.EQUALITY, body
        )

    def _generate_jsonb(
        self, index: IndexDescriptor, classification: Classification
    ) -> list[QueryDescriptor]:
        base = build_scope_name(index, self._config, self._table_name)
        column = index.columns[0]
        dialect = self._dialect
        created: list[QueryDescriptor] = []

        contains_name = f"{base}_contains"

        def contains(writer: FilterWriter, values: dict[str, Any]) -> None:
            document = _json_document(values["value"], contains_name)
            dialect.write_jsonb_contains(writer.clause(), writer.raw(column), writer.param(document))
            writer.predicate(index.predicate)

        created += self._add(
            contains_name, index, Strategy.JSONB,
            ParameterContract(ParameterShape.SINGLE, ("value",)),
            PredicateTemplate.CONTAINS, contains,
        )

        contained_name = f"{base}_contained"

        def contained(writer: FilterWriter, values: dict[str, Any]) -> None:
            document = _json_document(values["value"], contained_name)
            dialect.write_jsonb_contained(writer.clause(), writer.raw(column), writer.param(document))
            writer.predicate(index.predicate)

        created += self._add(
            contained_name, index, Strategy.JSONB,
            ParameterContract(ParameterShape.SINGLE, ("value",)),
            PredicateTemplate.CONTAINED, contained,
        )

        has_key_name = f"{base}_has_key"

        def has_key(writer: FilterWriter, values: dict[str, Any]) -> None:
            key = _text(values["key"], has_key_name, "key")
            dialect.write_jsonb_has_key(writer.clause(), writer.raw(column), writer.param(key))
            writer.predicate(index.predicate)

        created += self._add(
            has_key_name, index, Strategy.JSONB,
            ParameterContract(ParameterShape.SINGLE, ("key",)),
            PredicateTemplate.HAS_KEY, has_key,
        )

        has_keys_name = f"{base}_has_keys"

        def has_keys(writer: FilterWriter, values: dict[str, Any]) -> None:
            keys = _key_list(values["keys"], has_keys_name)
            dialect.write_jsonb_has_all_keys(
                writer.clause(), writer.raw(column), [writer.param(key) for key in keys]
            )
            writer.predicate(index.predicate)

        created += self._add(
            has_keys_name, index, Strategy.JSONB,
            ParameterContract(ParameterShape.SINGLE, ("keys",)),
            PredicateTemplate.HAS_ALL_KEYS, has_keys,
        )

        path_name = f"{base}_path"

        def path(writer: FilterWriter, values: dict[str, Any]) -> None:
            parts = _path_list(values["path"], path_name)
            expected = _path_text(values["value"], path_name)
            dialect.write_jsonb_path_text(
                writer.clause(), writer.raw(column), writer.param(parts), writer.param(expected)
            )
            writer.predicate(index.predicate)

        created += self._add(
            path_name, index, Strategy.JSONB,
            ParameterContract(ParameterShape.PAIR, ("path", "value")),
            PredicateTemplate.PATH_TEXT, path,
        )
        return created

    def _generate_fulltext(
        self, index: IndexDescriptor, classification: Classification
    ) -> list[QueryDescriptor]:
        scope_name = f"{build_scope_name(index, self._config, self._table_name)}_search"
        vector = classification.expression or index.columns[0]
        language = self._config.fulltext_language
        dialect = self._dialect

        def body(writer: FilterWriter, values: dict[str, Any]) -> None:
            query = _text(values["query"], scope_name, "query")
            dialect.write_fulltext_match(writer.clause(), writer.raw(vector), language, writer.param(query))
            writer.predicate(index.predicate)

        return self._add(
            scope_name, index, Strategy.FULLTEXT,
            ParameterContract(ParameterShape.SINGLE, ("query",)),
            PredicateTemplate.FULLTEXT, body,
        )

    def _generate_trigram(
        self, index: IndexDescriptor, classification: Classification
    ) -> list[QueryDescriptor]:
        scope_name = f"{build_scope_name(index, self._config, self._table_name)}_similar"
        column = index.columns[0]
        dialect = self._dialect
        contract = ParameterContract(
            ParameterShape.SINGLE,
            ("text", "threshold"),
            defaults=(("threshold", self._config.similarity_threshold),),
        )

        def body(writer: FilterWriter, values: dict[str, Any]) -> None:
            text = _text(values["text"], scope_name, "text")
            threshold = _threshold(values["threshold"], scope_name)
            dialect.write_trigram_match(
                writer.clause(),
                writer.raw(column),
                writer.param(text),
                writer.param(text),
                writer.param(threshold),
            )
            writer.predicate(index.predicate)
            writer.order(
                lambda: dialect.write_similarity_order(writer.w, writer.raw(column), writer.param(text))
            )

        return self._add(
            scope_name, index, Strategy.TRIGRAM, contract, PredicateTemplate.SIMILARITY, body
        )

    def _generate_standard(
        self, index: IndexDescriptor, classification: Classification
    ) -> list[QueryDescriptor]:
        scope_name = build_scope_name(index, self._config, self._table_name)
        keys = tuple(unquote_identifier(c) for c in index.columns)

        if classification.single_column:
            column, key = index.columns[0], keys[0]
            contract = ParameterContract(ParameterShape.SINGLE, (key,))

            def body(writer: FilterWriter, values: dict[str, Any]) -> None:
                writer.equality(column, values[key])
                writer.predicate(index.predicate)

        else:
            contract = ParameterContract(ParameterShape.NAMED, keys)

            def body(writer: FilterWriter, values: dict[str, Any]) -> None:
                require_all(keys, values, scope_name)
                for column, key in zip(index.columns, keys):
                    writer.equality(column, values[key])
                writer.predicate(index.predicate)

        return self._add(
            scope_name, index, Strategy.STANDARD, contract, PredicateTemplate.EQUALITY, body
        )
