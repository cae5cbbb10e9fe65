"""
Order Producer Service

Publishes Avro-encoded order events to the orders topic at a fixed cadence.

PACKAGE STRUCTURE:
- config.py: Producer settings from environment variables
- producer.py: OrderProducer (serialization, async send, delivery callbacks)
- main.py: Entry point (orders-producer)

USAGE:
    from ccloud_orders.producer import OrderProducer, load_config

    config = load_config()
    producer = OrderProducer(config, config.load_properties())
    producer.send_new_order()
    producer.close()
"""

from ccloud_orders.producer.config import ProducerConfig, load_config
from ccloud_orders.producer.producer import OrderProducer

__all__ = [
    "OrderProducer",
    "ProducerConfig",
    "load_config",
]
