"""
Client and table handles.

``Client`` wraps a low-level boto3 DynamoDB client; ``Client.table(name)``
returns a ``Table`` bound to it. A Table learns its indexes from DescribeTable
the first time it runs a query and keeps them until ``invalidate_indexes()``.

Usage:
    client = Client(region_name="eu-west-1", read_timeout=5)
    orders = client.table("orders")

    expr = new_query("customer_id").equals("CUST-1").and_("status").equals("OPEN")
    for order in orders.query(expr, model=Order):
        ...
"""

from typing import Any

import boto3
from botocore.config import Config
from pydantic import BaseModel

from ._logging import logger, redact_key
from .compiler import compile_query
from .conditions import Condition, compile_condition
from .exceptions import handle_dynamo_errors
from .expression import QueryExpr
from .indexes import IndexDescriptor, load_index_descriptors
from .pagination import QueryParser
from .selector import choose_index
from .serializer import DynamoSerializer


class Client:
    """
    High-level entry point around a boto3 DynamoDB client.

    Args:
        base: An already configured boto3 DynamoDB client. When omitted, one is
            created from the remaining arguments.
        region_name: AWS region for the created client
        endpoint_url: Custom endpoint (LocalStack, DynamoDB Local)
        connect_timeout: Seconds to wait for a connection
        read_timeout: Seconds to wait for a response; a query page that takes
            longer fails with RequestTimeoutError and can be retried
        max_attempts: Total attempts botocore makes per request
    """

    def __init__(
        self,
        base: Any | None = None,
        region_name: str | None = None,
        endpoint_url: str | None = None,
        connect_timeout: float | None = None,
        read_timeout: float | None = None,
        max_attempts: int | None = None,
    ) -> None:
        if base is None:
            base = boto3.client(
                "dynamodb",
                region_name=region_name,
                endpoint_url=endpoint_url,
                config=build_config(connect_timeout, read_timeout, max_attempts),
            )
        self.base = base

    def table(self, table_name: str) -> "Table":
        """Returns a handle for ``table_name``. Does not call DynamoDB."""
        return Table(self.base, table_name)


def build_config(
    connect_timeout: float | None = None,
    read_timeout: float | None = None,
    max_attempts: int | None = None,
) -> Config:
    """Maps client options onto a botocore Config, leaving unset ones at botocore defaults."""
    options: dict[str, Any] = {}
    if connect_timeout is not None:
        options["connect_timeout"] = connect_timeout
    if read_timeout is not None:
        options["read_timeout"] = read_timeout
    if max_attempts is not None:
        options["retries"] = {"max_attempts": max_attempts, "mode": "standard"}
    return Config(**options)


class Table:
    """
    A DynamoDB table: runs queries and puts, and caches index metadata.
    """

    def __init__(
        self,
        client: Any,
        name: str,
        serializer: DynamoSerializer | None = None,
    ) -> None:
        self.client = client
        self.name = name
        self.serializer = serializer or DynamoSerializer()
        self._indexes: dict[str, IndexDescriptor] | None = None

    # --- INDEX METADATA ---

    def fetch_index_metadata(self) -> dict[str, IndexDescriptor]:
        """
        Reloads every index descriptor from DescribeTable.

        The previous cache is dropped first; if the call fails the cache stays
        empty and the next query tries again.
        """
        self._indexes = None

        logger.debug("Describing table", extra={"table": self.name, "operation": "describe"})
        with handle_dynamo_errors(table_name=self.name):
            response = self.client.describe_table(TableName=self.name)

        self._indexes = load_index_descriptors(self.name, response["Table"])
        logger.info(
            "Loaded index metadata",
            extra={"table": self.name, "indexes": list(self._indexes)},
        )
        return self._indexes

    def indexes(self) -> dict[str, IndexDescriptor]:
        """Returns the table's indexes, fetching them on first use."""
        if self._indexes is None:
            return self.fetch_index_metadata()
        return self._indexes

    def invalidate_indexes(self) -> None:
        """Forgets the cached index metadata; the next query describes the table again."""
        self._indexes = None

    # --- QUERY ---

    def query(self, expr: QueryExpr, model: Any = None) -> QueryParser:
        """
        Plans ``expr`` and returns a lazy parser over its results.

        No Query request is sent until the first item is pulled.

        Args:
            expr: The query expression
            model: Default type items are decoded into (plain dicts when omitted)

        Raises:
            FilterConflictError: If two conditions were declared on one key
            NoViableIndexError: If no index can serve the query
            DynafriendError: If describing the table fails
        """
        spec = expr.build()
        index = choose_index(spec, self.indexes(), self.name)
        compiled = compile_query(spec, index, self.serializer)

        partition_filter = spec.filters[index.partition_key]
        spec.logger.info(
            "Starting query",
            extra={
                "table": self.name,
                "index": index.name,
                "pk_hash": redact_key(partition_filter.value),
                "has_filter": compiled.filter_expression is not None,
                "limit": spec.limit,
            },
        )
        return QueryParser(self, spec, compiled, model=model)

    # --- WRITE ---

    def put(self, item: BaseModel | dict[str, Any], condition: Condition | None = None) -> None:
        """
        Writes an item, replacing any item with the same key.

        Args:
            item: A pydantic model or a plain dict
            condition: Optional condition the existing item must satisfy

        Raises:
            ConditionalCheckFailedError: If the condition is not satisfied

        Usage:
            table.put(order, condition=Attr("order_id").not_exists())
        """
        kwargs: dict[str, Any] = {
            "TableName": self.name,
            "Item": self.serializer.encode_item(item),
        }

        if condition is not None:
            kwargs.update(compile_condition(condition, self.serializer))

        logger.info(
            "Putting item",
            extra={
                "table": self.name,
                "operation": "put",
                "has_condition": condition is not None,
            },
        )

        with handle_dynamo_errors(table_name=self.name):
            self.client.put_item(**kwargs)
        logger.info("Put successful", extra={"table": self.name, "operation": "put"})

    def __repr__(self) -> str:
        return f"Table({self.name!r})"
