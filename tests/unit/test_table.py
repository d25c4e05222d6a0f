"""
Unit tests for Client/Table: index metadata caching, query planning and puts.
"""

import logging
from unittest.mock import MagicMock, patch

import pytest
from botocore.config import Config
from botocore.exceptions import ClientError

from dynafriend import Attr, Client, QueryParser, Table, new_query
from dynafriend.exceptions import (
    ConditionalCheckFailedError,
    FilterConflictError,
    NoViableIndexError,
    TableNotFoundError,
)
from dynafriend.indexes import PRIMARY_INDEX_NAME
from dynafriend.table import build_config


def not_found():
    return ClientError(
        {"Error": {"Code": "ResourceNotFoundException", "Message": "Requested resource not found"}},
        "DescribeTable",
    )


@pytest.mark.unit
class TestIndexMetadataCache:
    def test_indexes_are_fetched_once(self, orders_table, mock_client):
        first = orders_table.indexes()
        second = orders_table.indexes()

        assert first is second
        mock_client.describe_table.assert_called_once_with(TableName="orders")

    def test_queries_share_the_cache(self, orders_table, mock_client):
        orders_table.query(new_query("tenant").equals("t1"))
        orders_table.query(new_query("customer_id").equals("c-1"))

        assert mock_client.describe_table.call_count == 1

    def test_failed_fetch_is_retried_on_next_use(self, mock_client, users_description):
        mock_client.describe_table.side_effect = [not_found(), users_description]
        table = Table(mock_client, "users")

        with pytest.raises(TableNotFoundError) as exc_info:
            table.indexes()
        assert exc_info.value.table_name == "users"

        assert list(table.indexes()) == [PRIMARY_INDEX_NAME]
        assert mock_client.describe_table.call_count == 2

    def test_failed_refresh_leaves_cache_empty(self, mock_client, users_description):
        mock_client.describe_table.side_effect = [users_description, not_found(), users_description]
        table = Table(mock_client, "users")
        table.indexes()

        with pytest.raises(TableNotFoundError):
            table.fetch_index_metadata()

        table.indexes()
        assert mock_client.describe_table.call_count == 3

    def test_invalidate_forces_describe(self, orders_table, mock_client):
        orders_table.indexes()
        orders_table.invalidate_indexes()
        orders_table.indexes()

        assert mock_client.describe_table.call_count == 2

    def test_fetch_is_logged(self, orders_table, caplog):
        caplog.set_level(logging.DEBUG, logger="dynafriend")
        orders_table.indexes()
        assert "Loaded index metadata" in caplog.text


@pytest.mark.unit
class TestQuery:
    def test_returns_parser(self, users_table):
        parser = users_table.query(new_query("id").equals(42))

        assert isinstance(parser, QueryParser)
        assert parser.compiled.key_condition_expression == "#n0 = :v0"
        assert parser.items_parsed == 0

    def test_conflict_raises_before_any_backend_call(self, orders_table, mock_client):
        expr = new_query("tenant").equals("t1").and_("tenant").equals("t2")

        with pytest.raises(FilterConflictError):
            orders_table.query(expr)

        mock_client.describe_table.assert_not_called()
        mock_client.query.assert_not_called()

    def test_no_viable_index(self, orders_table, mock_client):
        with pytest.raises(NoViableIndexError):
            orders_table.query(new_query("status").equals("open"))
        mock_client.query.assert_not_called()

    def test_model_is_passed_to_parser(self, orders_table, order_model):
        parser = orders_table.query(new_query("tenant").equals("t1"), model=order_model)
        assert parser.model is order_model

    def test_start_is_logged_without_key_value(self, users_table, caplog):
        caplog.set_level(logging.INFO, logger="dynafriend")

        users_table.query(new_query("id").equals(123456789))

        started = [r for r in caplog.records if r.getMessage() == "Starting query"]
        assert started[0].index == PRIMARY_INDEX_NAME
        assert "123456789" not in str(started[0].pk_hash)


@pytest.mark.unit
class TestPut:
    def test_put_dict(self, users_table, mock_client):
        users_table.put({"id": 1, "name": "Alice", "score": 9.5})

        mock_client.put_item.assert_called_once_with(
            TableName="users",
            Item={"id": {"N": "1"}, "name": {"S": "Alice"}, "score": {"N": "9.5"}},
        )

    def test_put_model_skips_none(self, orders_table, mock_client, order_model):
        orders_table.put(order_model(tenant="t1", order_id="o-1", amount=12.5))

        item = mock_client.put_item.call_args.kwargs["Item"]
        assert item["tenant"] == {"S": "t1"}
        assert item["amount"] == {"N": "12.5"}
        assert "status" not in item

    def test_put_with_condition(self, users_table, mock_client):
        users_table.put({"id": 1}, condition=Attr("id").not_exists())

        kwargs = mock_client.put_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == "attribute_not_exists(#n0)"
        assert kwargs["ExpressionAttributeNames"] == {"#n0": "id"}

    def test_failed_condition(self, users_table, mock_client):
        mock_client.put_item.side_effect = ClientError(
            {"Error": {"Code": "ConditionalCheckFailedException", "Message": "failed"}}, "PutItem"
        )

        with pytest.raises(ConditionalCheckFailedError):
            users_table.put({"id": 1}, condition=Attr("id").not_exists())


@pytest.mark.unit
class TestClient:
    def test_wraps_given_client(self):
        base = MagicMock()
        client = Client(base)

        table = client.table("users")

        assert table.client is base
        assert table.name == "users"
        base.describe_table.assert_not_called()

    def test_creates_boto3_client(self):
        with patch("dynafriend.table.boto3.client") as boto3_client:
            Client(region_name="eu-south-1", endpoint_url="http://localhost:4566", read_timeout=3)

        args, kwargs = boto3_client.call_args
        assert args == ("dynamodb",)
        assert kwargs["region_name"] == "eu-south-1"
        assert kwargs["endpoint_url"] == "http://localhost:4566"
        assert kwargs["config"].read_timeout == 3

    def test_build_config(self):
        config = build_config(connect_timeout=1, read_timeout=2, max_attempts=4)

        assert isinstance(config, Config)
        assert config.connect_timeout == 1
        assert config.read_timeout == 2
        assert config.retries == {"max_attempts": 4, "mode": "standard"}

    def test_build_config_defaults(self):
        config = build_config()
        assert config.retries is None
