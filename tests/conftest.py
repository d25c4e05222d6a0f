"""
Shared pytest fixtures and configuration for dynafriend tests.

Unit tests run against a MagicMock standing in for the boto3 DynamoDB client,
fed with canned DescribeTable / Query responses. Integration tests use the
LocalStack fixtures at the bottom of this module.
"""

import os
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import boto3
import pytest

from dynafriend import Table
from tests.helpers.descriptions import describe_table_response, index_description
from tests.helpers.models import Order

if TYPE_CHECKING:
    from tests.helpers.localstack import LocalStackHelper


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests with mocked dependencies")
    config.addinivalue_line("markers", "integration: Integration tests against LocalStack")


@pytest.fixture
def mock_client():
    """
    Creates a fully mocked boto3 DynamoDB client.

    Tests set ``describe_table.return_value`` and ``query.side_effect``.
    """
    return MagicMock()


@pytest.fixture
def users_description():
    """A table keyed only by a numeric "id", no secondary indexes."""
    return describe_table_response("users", pk="id", item_count=3)


@pytest.fixture
def orders_description():
    """
    The "orders" table:

    - primary: tenant / order_id
    - GSI "customer-index": customer_id / ts, projects ALL
    - GSI "status-index": status / ts, INCLUDE amount
    - GSI "sku-index": sku, KEYS_ONLY
    - LSI "tenant-ts-index": tenant / ts, projects ALL
    """
    return describe_table_response(
        "orders",
        pk="tenant",
        sk="order_id",
        item_count=120,
        global_indexes=[
            index_description("customer-index", "customer_id", "ts", item_count=80),
            index_description(
                "status-index", "status", "ts", projection="INCLUDE", non_key_attributes=["amount"]
            ),
            index_description("sku-index", "sku", projection="KEYS_ONLY"),
        ],
        local_indexes=[index_description("tenant-ts-index", "tenant", "ts", item_count=120)],
    )


@pytest.fixture
def users_table(mock_client, users_description):
    """A Table over the "users" description."""
    mock_client.describe_table.return_value = users_description
    return Table(mock_client, "users")


@pytest.fixture
def orders_table(mock_client, orders_description):
    """A Table over the "orders" description."""
    mock_client.describe_table.return_value = orders_description
    return Table(mock_client, "orders")


@pytest.fixture
def orders_indexes(orders_table):
    """Index descriptors of the "orders" table."""
    return orders_table.indexes()


@pytest.fixture
def order_model():
    return Order


@pytest.fixture
def sample_orders():
    """Plain Python items for the orders table."""
    return [
        {"tenant": "t1", "order_id": "o-1", "customer_id": "c-1", "status": "open", "ts": 100},
        {"tenant": "t1", "order_id": "o-2", "customer_id": "c-1", "status": "open", "ts": 150},
        {"tenant": "t1", "order_id": "o-3", "customer_id": "c-2", "status": "closed", "ts": 200},
        {"tenant": "t1", "order_id": "o-4", "customer_id": "c-3", "status": "open", "ts": 250},
    ]


# Integration Test Fixtures


@pytest.fixture(scope="session")
def localstack_endpoint() -> str:
    """Get LocalStack endpoint URL from environment or default."""
    return os.getenv("LOCALSTACK_ENDPOINT", "http://localhost:4566")


@pytest.fixture(scope="session")
def localstack_client(localstack_endpoint: str):
    """
    Creates a boto3 client connected to LocalStack.

    This fixture is session-scoped to avoid creating multiple clients.
    """
    return boto3.client(
        "dynamodb",
        endpoint_url=localstack_endpoint,
        region_name="eu-south-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )


@pytest.fixture(scope="session")
def localstack_helper(localstack_endpoint: str) -> "LocalStackHelper":
    """Provides a LocalStackHelper, skipping the test when LocalStack is not running."""
    from tests.helpers.localstack import LocalStackHelper

    helper = LocalStackHelper(endpoint_url=localstack_endpoint)
    if not helper.is_available():
        pytest.skip(f"LocalStack is not reachable at {localstack_endpoint}")
    return helper
