"""
Example demonstrating index-aware queries.

dynafriend reads the table's indexes once (DescribeTable) and routes each
query to an index that can serve it. Run against LocalStack:

    LOCALSTACK_ENDPOINT=http://localhost:4566 python examples/query_examples.py

The "Orders" table is expected to exist with:

    primary key:           tenant (S) / order_id (S)
    GSI customer-index:    customer_id (S) / ts (N), projection ALL
    LSI tenant-ts-index:   tenant (S) / ts (N), projection ALL
"""

import logging
import os

from pydantic import BaseModel

from dynafriend import Attr, Client, FilterConflictError, NoViableIndexError, new_query


class Order(BaseModel):
    tenant: str
    order_id: str
    customer_id: str
    status: str
    ts: int
    amount: float


logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

client = Client(
    region_name="eu-south-1",
    endpoint_url=os.getenv("LOCALSTACK_ENDPOINT", "http://localhost:4566"),
    read_timeout=5,
    max_attempts=3,
)
orders = client.table("Orders")

# Create test data
print("Creating test orders...")
orders_data = [
    Order(tenant="acme", order_id="o-1", customer_id="c-1", status="open", ts=100, amount=12.5),
    Order(tenant="acme", order_id="o-2", customer_id="c-1", status="open", ts=150, amount=80.0),
    Order(tenant="acme", order_id="o-3", customer_id="c-2", status="closed", ts=200, amount=7.25),
    Order(tenant="acme", order_id="o-4", customer_id="c-3", status="open", ts=250, amount=42.0),
]

for order in orders_data:
    orders.put(order)

print(f"Created {len(orders_data)} orders\n")
print("Indexes:", ", ".join(orders.indexes()))

# ============================================================================
# INDEX SELECTION
# ============================================================================

print("=" * 80)
print("INDEX SELECTION")
print("=" * 80)

# Partition key only: served by the primary index
print("\n1. All orders of tenant 'acme':")
for order in orders.query(new_query("tenant").equals("acme"), model=Order):
    print(f"   - {order.order_id}: {order.status}, {order.amount}")

# Range on "ts": the local index sorted on ts is preferred
print("\n2. Orders of 'acme' with ts between 120 and 220:")
expr = new_query("tenant").equals("acme").and_("ts").between(120, 220)
for order in orders.query(expr, model=Order):
    print(f"   - {order.order_id} at {order.ts}")

# Different partition key: the customer GSI
print("\n3. Orders of customer 'c-1', newest first:")
expr = new_query("customer_id").equals("c-1").order_descending("ts")
for order in orders.query(expr, model=Order):
    print(f"   - {order.order_id} at {order.ts}")

# No index has "status" as partition key
print("\n4. Orders by status only:")
try:
    orders.query(new_query("status").equals("open"))
except NoViableIndexError as e:
    print(f"   ! {e}")

# ============================================================================
# FILTERS, LIMITS AND PAGINATION
# ============================================================================

print("\n" + "=" * 80)
print("FILTERS, LIMITS AND PAGINATION")
print("=" * 80)

# Non-key conditions end up in the filter expression
print("\n5. Open orders of 'acme' worth more than 20:")
expr = (
    new_query("tenant")
    .equals("acme")
    .and_("status")
    .equals("open")
    .with_filter(Attr("amount") > 20)
)
for order in orders.query(expr, model=Order):
    print(f"   - {order.order_id}: {order.amount}")

# Limit: the parser stops after N items
print("\n6. First two orders of 'acme':")
parser = orders.query(new_query("tenant").equals("acme").limit(2), model=Order)
for order in parser:
    print(f"   - {order.order_id}")
print(f"   stopped: {parser.completion_reason.value}")

# Consistent read is restricted to one page
print("\n7. Consistent read:")
parser = orders.query(new_query("tenant").equals("acme").consistent_read(True))
print(f"   {len(parser.all())} items in {parser.pages_parsed} page(s)")

# Conflicting conditions are reported when the query runs
print("\n8. Two conditions on one key:")
try:
    orders.query(new_query("tenant").equals("acme").and_("tenant").equals("other"))
except FilterConflictError as e:
    print(f"   ! {e}")
