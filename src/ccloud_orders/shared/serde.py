"""
Order Serialization

Key and value (de)serialization for the orders topic:

- Key: the order id as a UTF-8 string (StringSerializer / StringDeserializer)
- Value: Avro via Schema Registry (AvroSerializer / AvroDeserializer)

WIRE FORMAT (value):
    [magic byte 0x00][4-byte schema id][Avro binary]

The serializer registers the schema under the subject "<topic>-value" on first
use; the deserializer fetches writer schemas by id and caches them.
"""

from importlib import resources
from typing import Any, Dict, NamedTuple, Optional, Tuple

from confluent_kafka import Message
from confluent_kafka.schema_registry import SchemaRegistryClient
from confluent_kafka.schema_registry.avro import AvroDeserializer, AvroSerializer
from confluent_kafka.schema_registry.error import SchemaRegistryError
from confluent_kafka.serialization import (
    MessageField,
    SerializationContext,
    SerializationError,
    StringDeserializer,
    StringSerializer,
)

from ccloud_orders.shared.models import Order, dict_to_order, order_to_dict

SCHEMA_FILE = "orders.avsc"

# Failures while turning a fetched message back into an Order. An unknown
# schema id surfaces as SchemaRegistryError from the writer schema lookup.
DECODE_ERRORS = (SerializationError, SchemaRegistryError, ValueError)


def load_order_schema() -> str:
    """Return the Avro schema for Order from ccloud_orders/resources."""
    resource = resources.files("ccloud_orders") / "resources" / SCHEMA_FILE
    return resource.read_text(encoding="utf-8")


def create_schema_registry_client(config: Dict[str, str]) -> SchemaRegistryClient:
    """
    Create a Schema Registry client from a {"url": ..., ...} config dict.

    A mock:// url gives the in-memory registry used for local runs and tests.
    """
    return SchemaRegistryClient.new_client(config)


class ConsumerRecord(NamedTuple):
    """A fetched message with its key and value already deserialized."""

    topic: str
    partition: int
    offset: int
    key: Optional[str]
    value: Optional[Order]
    timestamp: Optional[int] = None


class OrderSerde:
    """
    Serializer/deserializer pair for order messages.

    Attributes:
        key_serializer: UTF-8 string serializer for the order id
        key_deserializer: UTF-8 string deserializer for the order id
        value_serializer: Avro serializer writing Order values
        value_deserializer: Avro deserializer producing Order values
    """

    def __init__(self, schema_registry_client: Any, schema_str: Optional[str] = None):
        schema_str = schema_str or load_order_schema()

        self.key_serializer = StringSerializer("utf_8")
        self.key_deserializer = StringDeserializer("utf_8")
        self.value_serializer = AvroSerializer(
            schema_registry_client=schema_registry_client,
            schema_str=schema_str,
            to_dict=order_to_dict,
        )
        self.value_deserializer = AvroDeserializer(
            schema_registry_client=schema_registry_client,
            schema_str=schema_str,
            from_dict=dict_to_order,
        )

    def encode(self, topic: str, order: Order) -> Tuple[bytes, bytes]:
        """
        Serialize an order for `topic`.

        Returns:
            (key_bytes, value_bytes), the key being the order id

        Raises:
            SerializationError: If the value cannot be written with the schema
        """
        key = self.key_serializer(order.id, SerializationContext(topic, MessageField.KEY))
        value = self.value_serializer(order, SerializationContext(topic, MessageField.VALUE))
        return key, value

    def decode(self, msg: Message) -> ConsumerRecord:
        """
        Deserialize a fetched message.

        Raises:
            SerializationError: If the value is not valid schema-registry Avro
            ValueError: If the decoded record is not a valid Order
        """
        topic = msg.topic()
        headers = msg.headers()

        key = self.key_deserializer(
            msg.key(), SerializationContext(topic, MessageField.KEY, headers)
        )
        value = self.value_deserializer(
            msg.value(), SerializationContext(topic, MessageField.VALUE, headers)
        )
        _, timestamp = msg.timestamp()

        return ConsumerRecord(
            topic=topic,
            partition=msg.partition(),
            offset=msg.offset(),
            key=key,
            value=value,
            timestamp=timestamp,
        )
