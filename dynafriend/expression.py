"""
Fluent query expressions.

A query starts with ``new_query(key)``, which returns a partial expression
bound to that key. Applying a comparator records a filter and hands back the
full QueryExpr, so conditions chain with ``.and_(key)``:

    expr = (
        new_query("tenant").equals("t1")
        .and_("ts").between(100, 200)
        .and_("status").equals("active")
        .limit(50)
    )

Declaring two conditions on one key does not raise while chaining. The first
conflict is recorded and raised by ``build()`` (and therefore by
``Table.query()``); the first filter for the key stays in place.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from boto3.dynamodb.conditions import ConditionBase as Boto3ConditionBase

from ._logging import LoggerLike, logger, redact_key
from .conditions import Condition, extract_raw
from .exceptions import FilterConflictError
from .filters import FilterType, QueryFilter


@dataclass(frozen=True)
class QuerySpec:
    """
    Immutable snapshot of a QueryExpr, handed to index selection and compilation.
    """

    filters: Mapping[str, QueryFilter]
    limit: int | None = None
    attributes: tuple[str, ...] | None = None
    order_key: str | None = None
    order_descending: bool = False
    max_pagination: int | None = None
    consistent_read: bool = False
    additional_conditions: tuple[Boto3ConditionBase, ...] = ()
    logger: LoggerLike = field(default=logger, compare=False, repr=False)

    @property
    def order_matters(self) -> bool:
        return self.order_key is not None

    @property
    def attributes_specified(self) -> bool:
        return self.attributes is not None

    def keys_of_type(self, filter_type: FilterType) -> set[str]:
        """Returns the attribute keys carrying a filter of the given type."""
        return {key for key, f in self.filters.items() if f.type is filter_type}


class QueryExpr:
    """
    A query expression under construction.

    Mutated by the fluent methods below; ``build()`` freezes it into a QuerySpec.
    """

    def __init__(self, logger_: LoggerLike | None = None) -> None:
        self.filters: dict[str, QueryFilter] = {}
        self.limit_val: int | None = None
        self.attributes: tuple[str, ...] | None = None
        self.order_key: str | None = None
        self.descending = False
        self.max_pagination_val: int | None = None
        self.consistent_read_val = False
        self.additional_conditions: list[Boto3ConditionBase] = []
        self.logger: LoggerLike = logger_ or logger
        self.build_error: FilterConflictError | None = None

    # --- CONDITIONS ---

    def and_(self, key: str) -> QueryExprKey:
        """Extends the query with a condition on another key."""
        return QueryExprKey(self, key)

    def _add_filter(self, query_filter: QueryFilter) -> QueryExpr:
        key = query_filter.key
        if key in self.filters:
            err = FilterConflictError(key, query_filter.condition_name)
            self.logger.error(
                "Conflicting query condition",
                extra={"key": key, "condition": query_filter.condition_name, "error": str(err)},
            )
            # Only the first conflict is reported
            if self.build_error is None:
                self.build_error = err
            return self

        self.filters[key] = query_filter
        self.logger.debug(
            "Query condition added",
            extra={
                "key": key,
                "condition": query_filter.condition_name,
                "value_hash": redact_key(query_filter.operands),
            },
        )
        return self

    def with_filter(self, condition: Condition) -> QueryExpr:
        """
        Adds a free-form condition to the filter expression.

        Use it for what per-key filters cannot say: OR, NOT, ``contains``,
        existence checks. All such conditions are ANDed with the rest.

        Usage:
            expr.with_filter((Attr("kind") == "a") | (Attr("kind") == "b"))
        """
        self.additional_conditions.append(extract_raw(condition))
        self.logger.debug(
            "Additional filter condition attached",
            extra={"additional_conditions": len(self.additional_conditions)},
        )
        return self

    # --- QUERY OPTIONS ---

    def limit(self, count: int) -> QueryExpr:
        """Restricts the number of items the query returns."""
        self.limit_val = count
        self.logger.debug("Query limit set", extra={"limit": count})
        return self

    def select(self, *attributes: str) -> QueryExpr:
        """
        Restricts the attributes returned by the query.

        Only indexes projecting every selected attribute stay viable. Called with
        no attributes, the selection is cleared and all attributes are returned.
        """
        self.attributes = tuple(attributes) or None
        self.logger.debug(
            "Query requires index projecting selected attributes",
            extra={"attributes": list(attributes)},
        )
        return self

    def order_ascending(self, sort_key: str) -> QueryExpr:
        """Orders results by ``sort_key``, lowest first. Requires an index sorted on it."""
        self.order_key = sort_key
        self.descending = False
        self.logger.debug(
            "Query requires index sorted on key", extra={"sort_key": sort_key, "order": "asc"}
        )
        return self

    def order_descending(self, sort_key: str) -> QueryExpr:
        """Orders results by ``sort_key``, highest first. Requires an index sorted on it."""
        self.order_key = sort_key
        self.descending = True
        self.logger.debug(
            "Query requires index sorted on key", extra={"sort_key": sort_key, "order": "desc"}
        )
        return self

    def max_pagination(self, count: int) -> QueryExpr:
        """
        Caps the number of pages requested from DynamoDB.

        While a consistent read is requested the cap stays at 1.
        """
        if self.consistent_read_val and count != 1:
            self.logger.warning(
                "Max pagination kept at 1 for consistent read",
                extra={"requested_max_pagination": count, "max_pagination": 1},
            )
            count = 1
        self.max_pagination_val = count
        self.logger.debug("Query max pagination set", extra={"max_pagination": count})
        return self

    def consistent_read(self, value: bool = True) -> QueryExpr:
        """
        Sets read consistency.

        A consistent read needs the table's primary index or a local secondary
        index, and is limited to a single page: max pagination is forced to 1.
        """
        self.consistent_read_val = value
        if value:
            self.max_pagination_val = 1
            self.logger.debug(
                "Consistent read requested, max pagination set to 1",
                extra={"consistent_read": True, "max_pagination": 1},
            )
        else:
            self.logger.debug("Consistent read disabled", extra={"consistent_read": False})
        return self

    def with_logger(self, logger_: LoggerLike) -> QueryExpr:
        """Sets the logger used for this expression and the queries it drives."""
        self.logger = logger_
        self.logger.debug("Query logger set")
        return self

    # --- TERMINAL ---

    def build(self) -> QuerySpec:
        """
        Freezes the expression.

        Raises:
            FilterConflictError: If two conditions were declared on the same key
        """
        if self.build_error is not None:
            raise self.build_error

        return QuerySpec(
            filters=MappingProxyType(dict(self.filters)),
            limit=self.limit_val,
            attributes=self.attributes,
            order_key=self.order_key,
            order_descending=self.descending,
            max_pagination=self.max_pagination_val,
            consistent_read=self.consistent_read_val,
            additional_conditions=tuple(self.additional_conditions),
            logger=self.logger,
        )

    def __repr__(self) -> str:
        conditions = " AND ".join(str(f) for f in self.filters.values())
        return f"QueryExpr({conditions})"


class QueryExprKey:
    """
    A partial expression: a key waiting for its comparator.
    """

    def __init__(self, expr: QueryExpr, key: str) -> None:
        self.expr = expr
        self.key = key

    def equals(self, value: Any) -> QueryExpr:
        return self.expr._add_filter(QueryFilter.equals(self.key, value))

    def less_than(self, value: Any) -> QueryExpr:
        return self.expr._add_filter(QueryFilter.less_than(self.key, value))

    def greater_than(self, value: Any) -> QueryExpr:
        return self.expr._add_filter(QueryFilter.greater_than(self.key, value))

    def less_than_equal(self, value: Any) -> QueryExpr:
        return self.expr._add_filter(QueryFilter.less_than_equal(self.key, value))

    def greater_than_equal(self, value: Any) -> QueryExpr:
        return self.expr._add_filter(QueryFilter.greater_than_equal(self.key, value))

    def between(self, low: Any, high: Any) -> QueryExpr:
        """Inclusive range: ``low <= value <= high``."""
        return self.expr._add_filter(QueryFilter.between(self.key, low, high))

    def begins_with(self, prefix: str) -> QueryExpr:
        return self.expr._add_filter(QueryFilter.begins_with(self.key, prefix))

    def __repr__(self) -> str:
        return f"QueryExprKey({self.key!r})"


def new_query(key: str, logger: LoggerLike | None = None) -> QueryExprKey:
    """
    Begins a new query expression with a condition on ``key``.

    Usage:
        new_query("id").equals(42)
    """
    return QueryExprKey(QueryExpr(logger), key)
