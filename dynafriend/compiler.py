"""
Compiles a QuerySpec into a low-level DynamoDB Query request for a chosen index.
"""

from dataclasses import dataclass, field
from functools import reduce
from typing import Any

from boto3.dynamodb.conditions import ConditionBase as Boto3ConditionBase
from boto3.dynamodb.conditions import ConditionExpressionBuilder

from .expression import QuerySpec
from .filters import FilterType
from .indexes import IndexDescriptor
from .serializer import DynamoSerializer


@dataclass(frozen=True)
class CompiledQuery:
    """
    A ready-to-send Query request, minus the continuation token.

    Attribute values are already serialized to DynamoDB JSON.
    """

    table_name: str
    key_condition_expression: str
    index_name: str | None = None
    filter_expression: str | None = None
    projection_expression: str | None = None
    expression_attribute_names: dict[str, str] = field(default_factory=dict)
    expression_attribute_values: dict[str, Any] = field(default_factory=dict)
    scan_index_forward: bool | None = None
    consistent_read: bool | None = None
    limit: int | None = None

    def to_request(self, exclusive_start_key: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Renders the boto3 ``client.query`` keyword arguments for one page.

        Args:
            exclusive_start_key: LastEvaluatedKey of the previous page, in DynamoDB JSON
        """
        kwargs: dict[str, Any] = {
            "TableName": self.table_name,
            "KeyConditionExpression": self.key_condition_expression,
        }

        if self.index_name:
            kwargs["IndexName"] = self.index_name
        if self.filter_expression:
            kwargs["FilterExpression"] = self.filter_expression
        if self.projection_expression:
            kwargs["ProjectionExpression"] = self.projection_expression
        if self.expression_attribute_names:
            kwargs["ExpressionAttributeNames"] = dict(self.expression_attribute_names)
        if self.expression_attribute_values:
            kwargs["ExpressionAttributeValues"] = dict(self.expression_attribute_values)
        if self.scan_index_forward is not None:
            kwargs["ScanIndexForward"] = self.scan_index_forward
        if self.consistent_read is not None:
            kwargs["ConsistentRead"] = self.consistent_read
        if self.limit is not None:
            kwargs["Limit"] = self.limit
        if exclusive_start_key:
            kwargs["ExclusiveStartKey"] = exclusive_start_key

        return kwargs


def compile_query(
    spec: QuerySpec, index: IndexDescriptor, serializer: DynamoSerializer
) -> CompiledQuery:
    """
    Builds the Query request for ``spec`` against ``index``.

    The partition key equals condition, plus the sort key condition when the
    index is composite and the sort key is filtered, form the key condition.
    Every other filter and every additional condition is ANDed into the
    filter expression.

    Raises:
        ValueError: If the index partition key has no equals filter
            (the index was not selected by ``choose_index``)
        UnknownFilterTypeError: If a filter type cannot be translated
    """
    log = spec.logger
    remaining = dict(spec.filters)

    partition_filter = remaining.pop(index.partition_key, None)
    if partition_filter is None or partition_filter.type is not FilterType.EQUALS:
        raise ValueError(
            f'Index "{index.name}" requires an equals condition on "{index.partition_key}"'
        )
    key_condition = partition_filter.to_key_condition()

    if index.sort_key is not None and index.sort_key in remaining:
        key_condition = key_condition & remaining.pop(index.sort_key).to_key_condition()

    terms: list[Boto3ConditionBase] = [f.to_condition() for f in remaining.values()]
    terms.extend(spec.additional_conditions)

    # One builder for every expression keeps placeholders unique across them
    builder = ConditionExpressionBuilder()
    names: dict[str, str] = {}
    raw_values: dict[str, Any] = {}

    built_key = builder.build_expression(key_condition, is_key_condition=True)
    names.update(built_key.attribute_name_placeholders)
    raw_values.update(built_key.attribute_value_placeholders)

    filter_expression: str | None = None
    if terms:
        filter_condition = reduce(lambda left, right: left & right, terms)
        built_filter = builder.build_expression(filter_condition, is_key_condition=False)
        filter_expression = built_filter.condition_expression
        names.update(built_filter.attribute_name_placeholders)
        raw_values.update(built_filter.attribute_value_placeholders)

    projection_expression: str | None = None
    if spec.attributes_specified:
        placeholders = []
        for position, attribute in enumerate(spec.attributes):
            placeholder = f"#p{position}"
            names[placeholder] = attribute
            placeholders.append(placeholder)
        projection_expression = ", ".join(placeholders)

    values = {
        placeholder: serializer.to_dynamo_value(value) for placeholder, value in raw_values.items()
    }

    compiled = CompiledQuery(
        table_name=index.table_name,
        index_name=None if index.is_primary else index.name,
        key_condition_expression=built_key.condition_expression,
        filter_expression=filter_expression,
        projection_expression=projection_expression,
        expression_attribute_names=names,
        expression_attribute_values=values,
        scan_index_forward=(not spec.order_descending) if spec.order_matters else None,
        consistent_read=True if spec.consistent_read else None,
        limit=spec.limit,
    )

    log.debug(
        "Compiled query",
        extra={
            "table": compiled.table_name,
            "index": compiled.index_name,
            "key_condition": compiled.key_condition_expression,
            "filter_expression": compiled.filter_expression,
            "projection": compiled.projection_expression,
        },
    )
    return compiled
