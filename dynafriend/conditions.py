"""
Free-form condition DSL.

Per-attribute filters (see ``filters``) cover one comparison per key. Anything
else (OR, NOT, ``contains``, ``attribute_exists``, two conditions on the same
attribute) is written with ``Attr`` and attached to a query through
``QueryExpr.with_filter()``, or passed as the condition of ``Table.put()``.

DynCondition wraps a boto3 ``ConditionBase`` (kept in ``.raw``); building the
expression string and placeholders is left to boto3's
``ConditionExpressionBuilder``.

Usage:
    from dynafriend import Attr

    expr = (
        new_query("tenant").equals("t1")
        .with_filter((Attr("status") == "open") | (Attr("status") == "pending"))
    )

    table.put(order, condition=Attr("order_id").not_exists())
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Union

from boto3.dynamodb.conditions import And as Boto3And
from boto3.dynamodb.conditions import Attr as Boto3Attr
from boto3.dynamodb.conditions import ConditionBase as Boto3ConditionBase
from boto3.dynamodb.conditions import ConditionExpressionBuilder
from boto3.dynamodb.conditions import Not as Boto3Not
from boto3.dynamodb.conditions import Or as Boto3Or

if TYPE_CHECKING:
    from .serializer import DynamoSerializer

# Accepted wherever a condition is expected: our wrapper or a raw boto3 condition
Condition = Union["DynCondition", Boto3ConditionBase]


class DynCondition:
    """
    A boto3 condition (``.raw``) that composes with ``&`` (AND), ``|`` (OR)
    and ``~`` (NOT). Either side of ``&``/``|`` may be a raw boto3 condition.
    """

    __slots__ = ("raw",)

    def __init__(self, raw: Boto3ConditionBase) -> None:
        self.raw = raw

    def __and__(self, other: Condition) -> DynCondition:
        return DynCondition(Boto3And(self.raw, extract_raw(other)))

    def __rand__(self, other: Condition) -> DynCondition:
        return DynCondition(Boto3And(extract_raw(other), self.raw))

    def __or__(self, other: Condition) -> DynCondition:
        return DynCondition(Boto3Or(self.raw, extract_raw(other)))

    def __ror__(self, other: Condition) -> DynCondition:
        return DynCondition(Boto3Or(extract_raw(other), self.raw))

    def __invert__(self) -> DynCondition:
        return DynCondition(Boto3Not(self.raw))

    def __repr__(self) -> str:
        return f"DynCondition({self.raw!r})"


class Attr:
    """
    Names an item attribute in a free-form condition.

    Python comparison operators build conditions instead of comparing:

        Attr("amount") >= 100
        Attr("status") != "closed"
        Attr("order_id").not_exists()
        Attr("tags").contains("vip")
        Attr("status").is_in(["open", "pending"])
    """

    __slots__ = ("name", "_target")

    def __init__(self, name: str) -> None:
        self.name = name
        self._target = Boto3Attr(name)

    def __eq__(self, value: Any) -> DynCondition:  # type: ignore[override]
        return DynCondition(self._target.eq(value))

    def __ne__(self, value: Any) -> DynCondition:  # type: ignore[override]
        return DynCondition(self._target.ne(value))

    def __lt__(self, value: Any) -> DynCondition:
        return DynCondition(self._target.lt(value))

    def __le__(self, value: Any) -> DynCondition:
        return DynCondition(self._target.lte(value))

    def __gt__(self, value: Any) -> DynCondition:
        return DynCondition(self._target.gt(value))

    def __ge__(self, value: Any) -> DynCondition:
        return DynCondition(self._target.gte(value))

    def exists(self) -> DynCondition:
        return DynCondition(self._target.exists())

    def not_exists(self) -> DynCondition:
        """Typical guard for a put that must not overwrite."""
        return DynCondition(self._target.not_exists())

    def begins_with(self, prefix: str) -> DynCondition:
        return DynCondition(self._target.begins_with(prefix))

    def contains(self, value: Any) -> DynCondition:
        """Substring of a string attribute, or member of a list/set attribute."""
        return DynCondition(self._target.contains(value))

    def between(self, low: Any, high: Any) -> DynCondition:
        return DynCondition(self._target.between(low, high))

    def is_in(self, values: list[Any]) -> DynCondition:
        return DynCondition(self._target.is_in(values))

    def __repr__(self) -> str:
        return f"Attr({self.name!r})"


def extract_raw(condition: Condition) -> Boto3ConditionBase:
    """
    Returns the boto3 condition behind a DynCondition, or the condition itself
    when a raw boto3 condition was passed.

    Raises:
        TypeError: If condition is neither DynCondition nor boto3 ConditionBase
    """
    if isinstance(condition, DynCondition):
        return condition.raw
    elif isinstance(condition, Boto3ConditionBase):
        return condition
    else:
        raise TypeError(
            f"Expected DynCondition or boto3 ConditionBase, got {type(condition).__name__}"
        )


def compile_condition(
    condition: Condition,
    serializer: DynamoSerializer,
) -> dict[str, Any]:
    """
    Compiles a standalone condition into low-level request parameters.

    Returns:
        Dict with ConditionExpression, and ExpressionAttributeNames /
        ExpressionAttributeValues when non-empty (values serialized to
        DynamoDB JSON).
    """
    builder = ConditionExpressionBuilder()
    expression = builder.build_expression(extract_raw(condition), is_key_condition=False)

    result: dict[str, Any] = {
        "ConditionExpression": expression.condition_expression,
    }

    if expression.attribute_name_placeholders:
        result["ExpressionAttributeNames"] = dict(expression.attribute_name_placeholders)

    if expression.attribute_value_placeholders:
        result["ExpressionAttributeValues"] = {
            placeholder: serializer.to_dynamo_value(value)
            for placeholder, value in expression.attribute_value_placeholders.items()
        }

    return result
