"""
Order Listeners

Handlers registered with the default listener registry. Importing this module
registers them; the listener container then runs them.
"""

from ccloud_orders.consumer.container import kafka_listener
from ccloud_orders.shared.serde import ConsumerRecord


@kafka_listener()
def consume(record: ConsumerRecord) -> None:
    """Print every order received on the orders topic."""
    print(record.value)
