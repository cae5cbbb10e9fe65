"""
Order Event Model

The single entity carried on the orders topic. Values are Avro-encoded with the
schema in resources/orders.avsc; keys are the order id as a UTF-8 string.

ORDER STRUCTURE:
{
    "id": "0b7c3c2e-9f43-4c8e-a0f4-3c1b6f0d3f55",  # also the message key
    "date": 1736519400123,                          # epoch milliseconds
    "amount": 417.0                                 # random integer 0-999 as double
}
"""

import json
import random
import time
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

# Upper bound (exclusive) for generated order amounts
MAX_AMOUNT = 1000


def current_millis() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class Order(BaseModel):
    """
    Immutable order event.

    Attributes:
        id: Non-empty order identifier, used as the Kafka message key
        date: Event timestamp in milliseconds since the epoch
        amount: Order amount
    """

    id: str = Field(min_length=1, description="Order identifier and message key")
    date: int = Field(description="Event timestamp, epoch milliseconds")
    amount: float = Field(description="Order amount")

    class Config:
        """Pydantic configuration."""

        frozen = True

    @classmethod
    def create(cls, key: str, rng: Optional[random.Random] = None) -> "Order":
        """
        Build a new order for `key` stamped with the current time.

        Args:
            key: Order id (normally a random UUID string)
            rng: Random source for the amount (module-level random by default)

        Returns:
            Order with id == key and a whole-number amount in [0, 999]

        Example:
            >>> order = Order.create("a1b2")
            >>> order.id
            'a1b2'
        """
        rng = rng or random
        return cls(
            id=key,
            date=current_millis(),
            amount=float(rng.randrange(MAX_AMOUNT)),
        )

    def __str__(self) -> str:
        return json.dumps(self.model_dump())


# ==============================================================================
# AVRO CONVERSION HOOKS
# ==============================================================================
# Signatures follow confluent_kafka's AvroSerializer(to_dict=...) and
# AvroDeserializer(from_dict=...): (value, SerializationContext)


def order_to_dict(order: Order, ctx: Any = None) -> Dict[str, Any]:
    """Convert an Order to the dict the Avro serializer writes."""
    return order.model_dump()


def dict_to_order(data: Optional[Dict[str, Any]], ctx: Any = None) -> Optional[Order]:
    """Convert a decoded Avro record back into an Order (None stays None)."""
    if data is None:
        return None
    return Order(**data)
