"""
Item models shared by unit and integration tests.
"""

from pydantic import BaseModel


class Order(BaseModel):
    """Item type stored in the orders table fixtures."""

    tenant: str
    order_id: str
    customer_id: str | None = None
    status: str | None = None
    ts: int | None = None
    amount: float = 0.0
