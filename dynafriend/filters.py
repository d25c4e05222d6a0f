"""
Per-attribute query filters.

A QueryFilter is one condition on one attribute (``status = "active"``,
``ts BETWEEN 100 AND 200``, ...). Filters are plain value objects tagged with
a FilterType. Translation into boto3 conditions dispatches on that tag:
key conditions (``boto3.dynamodb.conditions.Key``) for the key condition
expression, attribute conditions (``Attr``) for the filter expression.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from boto3.dynamodb.conditions import Attr as Boto3Attr
from boto3.dynamodb.conditions import ConditionBase as Boto3ConditionBase
from boto3.dynamodb.conditions import Key as Boto3Key

from .exceptions import UnknownFilterTypeError


class FilterType(Enum):
    """The comparison a QueryFilter applies. Values are human-readable names."""

    EQUALS = "equals"
    LESS_THAN = "less than"
    GREATER_THAN = "greater than"
    LESS_THAN_EQUAL = "less than or equal"
    GREATER_THAN_EQUAL = "greater than or equal"
    BETWEEN = "between"
    BEGINS_WITH = "begins with"


@dataclass(frozen=True)
class QueryFilter:
    """
    A single condition on a single attribute.

    Attributes:
        key: Attribute name the condition applies to
        type: The comparison to apply
        operands: One value, a (low, high) pair for BETWEEN, or the prefix for BEGINS_WITH
    """

    key: str
    type: FilterType
    operands: tuple[Any, ...]

    @classmethod
    def equals(cls, key: str, value: Any) -> QueryFilter:
        return cls(key, FilterType.EQUALS, (value,))

    @classmethod
    def less_than(cls, key: str, value: Any) -> QueryFilter:
        return cls(key, FilterType.LESS_THAN, (value,))

    @classmethod
    def greater_than(cls, key: str, value: Any) -> QueryFilter:
        return cls(key, FilterType.GREATER_THAN, (value,))

    @classmethod
    def less_than_equal(cls, key: str, value: Any) -> QueryFilter:
        return cls(key, FilterType.LESS_THAN_EQUAL, (value,))

    @classmethod
    def greater_than_equal(cls, key: str, value: Any) -> QueryFilter:
        return cls(key, FilterType.GREATER_THAN_EQUAL, (value,))

    @classmethod
    def between(cls, key: str, low: Any, high: Any) -> QueryFilter:
        return cls(key, FilterType.BETWEEN, (low, high))

    @classmethod
    def begins_with(cls, key: str, prefix: str) -> QueryFilter:
        return cls(key, FilterType.BEGINS_WITH, (prefix,))

    @property
    def value(self) -> Any:
        """The single operand of a one-operand filter."""
        return self.operands[0]

    @property
    def condition_name(self) -> str:
        return self.type.value

    def to_key_condition(self) -> Boto3ConditionBase:
        """Translates the filter into a key condition on its attribute."""
        return _translate(Boto3Key(self.key), self)

    def to_condition(self) -> Boto3ConditionBase:
        """Translates the filter into a filter-expression condition on its attribute."""
        return _translate(Boto3Attr(self.key), self)

    def __str__(self) -> str:
        if self.type is FilterType.BETWEEN:
            return f"{self.key} {self.condition_name} {self.operands[0]!r} and {self.operands[1]!r}"
        return f"{self.key} {self.condition_name} {self.value!r}"


def _translate(builder: Any, query_filter: QueryFilter) -> Boto3ConditionBase:
    """
    Applies the comparator matching the filter's type to a boto3 Key/Attr builder.

    Raises:
        UnknownFilterTypeError: If the filter type has no translation
    """
    filter_type = query_filter.type
    operands = query_filter.operands

    if filter_type is FilterType.EQUALS:
        return builder.eq(operands[0])
    if filter_type is FilterType.LESS_THAN:
        return builder.lt(operands[0])
    if filter_type is FilterType.GREATER_THAN:
        return builder.gt(operands[0])
    if filter_type is FilterType.LESS_THAN_EQUAL:
        return builder.lte(operands[0])
    if filter_type is FilterType.GREATER_THAN_EQUAL:
        return builder.gte(operands[0])
    if filter_type is FilterType.BETWEEN:
        return builder.between(operands[0], operands[1])
    if filter_type is FilterType.BEGINS_WITH:
        return builder.begins_with(operands[0])

    raise UnknownFilterTypeError(filter_type)
