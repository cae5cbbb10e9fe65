"""
Order Consumer Service

Reads Avro-encoded order events from the orders topic and prints them.

PACKAGE STRUCTURE:
- config.py: Consumer and listener settings from environment variables
- consumer.py: OrderConsumer, the poll-based variant
- container.py: Listener registry, consumer factory and listener container
- listeners.py: Registered order listener
- main.py: Entry point (orders-consumer --mode poll|listener)
"""

from ccloud_orders.consumer.config import ConsumerConfig, load_config
from ccloud_orders.consumer.consumer import OrderConsumer
from ccloud_orders.consumer.container import (
    ConsumerFactory,
    ListenerContainer,
    ListenerRegistry,
    kafka_listener,
)

__all__ = [
    "ConsumerConfig",
    "ConsumerFactory",
    "ListenerContainer",
    "ListenerRegistry",
    "OrderConsumer",
    "kafka_listener",
    "load_config",
]
