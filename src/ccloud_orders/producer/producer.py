"""
Kafka Order Producer Implementation

Publishes Avro-encoded Order events to the orders topic, keyed by order id.

KAFKA PRODUCER CONCEPTS:
- **Asynchronous**: produce() only enqueues; delivery happens in librdkafka's threads
- **Delivery callback**: invoked from poll()/flush() once the broker acknowledged
  (or finally rejected) a message
- **Partitioning**: the key (order id) picks the partition, hash(key) % partitions
- **Serialization**: UTF-8 key, Avro value registered in Schema Registry

DELIVERY HANDLING:
- Success: prints "Order '<id>' created successfully!"
- Failure: logged at WARNING and counted; the application never retries
- Shutdown: close() flushes outstanding messages (best effort, bounded wait)
"""

import logging
import uuid
from typing import Any, Callable, Optional

from confluent_kafka import KafkaError, KafkaException, Message, Producer
from confluent_kafka.serialization import SerializationError

from ccloud_orders.producer.config import ProducerConfig
from ccloud_orders.shared.models import Order
from ccloud_orders.shared.properties import CloudProperties
from ccloud_orders.shared.serde import OrderSerde, create_schema_registry_client

logger = logging.getLogger(__name__)

DeliveryCallback = Callable[[Optional[KafkaError], Message], None]


# ==============================================================================
# KAFKA PRODUCER CLASS
# ==============================================================================

class OrderProducer:
    """
    Kafka producer for publishing order events.

    Attributes:
        config: Producer configuration
        topic: Kafka topic name
        serde: Key/value serializers
        producer: confluent_kafka.Producer instance
        delivery_callback: Callback receiving every delivery report
        messages_sent: Orders handed to the client
        messages_delivered: Orders acknowledged by the brokers
        messages_failed: Orders whose delivery failed
    """

    def __init__(
        self,
        config: ProducerConfig,
        properties: CloudProperties,
        schema_registry_client: Any = None,
        delivery_callback: Optional[DeliveryCallback] = None,
    ):
        """
        Initialize Kafka producer.

        Args:
            config: Producer configuration
            properties: Client properties bundle (connection and credentials)
            schema_registry_client: Registry client to use instead of one built
                from the bundle
            delivery_callback: Optional custom callback for delivery reports

        Raises:
            KafkaException: If producer initialization fails
            ConfigurationError: If no schema registry URL is configured
        """
        self.config = config
        self.topic = config.kafka_topic_orders

        self.messages_sent = 0
        self.messages_delivered = 0
        self.messages_failed = 0

        if schema_registry_client is None:
            schema_registry_client = create_schema_registry_client(
                config.schema_registry_config(properties)
            )
        self.serde = OrderSerde(schema_registry_client)

        self.delivery_callback = delivery_callback or self._default_delivery_callback

        producer_config = config.get_kafka_config(properties)

        try:
            self.producer = Producer(producer_config)
        except KafkaException as e:
            logger.error(
                "Failed to initialize Kafka producer",
                exc_info=True,
                extra={"error": str(e)}
            )
            raise

        logger.info(
            "Kafka producer initialized",
            extra={
                "bootstrap_servers": producer_config.get("bootstrap.servers"),
                "topic": self.topic,
                "client_id": producer_config.get("client.id"),
                "acks": producer_config.get("acks"),
            }
        )

    def _default_delivery_callback(self, err: Optional[KafkaError], msg: Message) -> None:
        """
        Default callback for message delivery reports.

        Runs from poll() or flush() on the thread that called them.

        Args:
            err: KafkaError if delivery failed, None if successful
            msg: Message with metadata (topic, partition, offset)
        """
        order_id = self._extract_order_id(msg)

        if err is not None:
            self.messages_failed += 1
            logger.warning(
                "Order delivery failed",
                extra={
                    "correlation_id": order_id,
                    "error": err.str(),
                    "error_code": err.code(),
                    "topic": msg.topic(),
                }
            )
            return

        self.messages_delivered += 1
        print(f"Order '{order_id}' created successfully!")

        logger.debug(
            "Order delivered",
            extra={
                "correlation_id": order_id,
                "topic": msg.topic(),
                "partition": msg.partition(),
                "offset": msg.offset(),
            }
        )

    @staticmethod
    def _extract_order_id(msg: Message) -> Optional[str]:
        """The order id is the message key."""
        key = msg.key() if msg is not None else None
        if key is None:
            return None
        return key.decode("utf-8") if isinstance(key, bytes) else str(key)

    def produce_order(self, order: Order) -> None:
        """
        Publish an order to the topic.

        Serializes the order, enqueues it with its id as key and serves any
        pending delivery callbacks without blocking.

        Args:
            order: Order to publish

        Raises:
            BufferError: Local producer queue is full
            KafkaException: Kafka client error
            SerializationError: Order could not be encoded with the schema
        """
        try:
            key, value = self.serde.encode(self.topic, order)

            self.producer.produce(
                topic=self.topic,
                key=key,
                value=value,
                on_delivery=self.delivery_callback,
            )

            # Serve delivery callbacks for earlier messages (non-blocking)
            self.producer.poll(0)

        except BufferError:
            logger.error(
                "Producer queue full",
                exc_info=True,
                extra={"correlation_id": order.id},
            )
            raise

        except KafkaException:
            logger.error(
                "Kafka error publishing order",
                exc_info=True,
                extra={"correlation_id": order.id},
            )
            raise

        except SerializationError:
            logger.error(
                "Failed to serialize order",
                exc_info=True,
                extra={"correlation_id": order.id},
            )
            raise

        self.messages_sent += 1
        logger.debug(
            "Order enqueued",
            extra={"correlation_id": order.id, "topic": self.topic, "amount": order.amount},
        )

    def send_new_order(self) -> Order:
        """
        Generate an order with a fresh random key and publish it.

        Returns:
            The order that was enqueued
        """
        order = Order.create(str(uuid.uuid4()))
        self.produce_order(order)
        return order

    def flush(self, timeout: float = 30.0) -> int:
        """
        Wait for all pending messages to be delivered.

        Args:
            timeout: Maximum time to wait in seconds

        Returns:
            Number of messages still in queue (0 = all delivered)
        """
        remaining = self.producer.flush(timeout)

        if remaining > 0:
            logger.warning(
                "Producer flush timeout",
                extra={"remaining_messages": remaining, "timeout": timeout}
            )

        return remaining

    def close(self, timeout: float = 30.0) -> int:
        """
        Flush pending messages before the process exits.

        confluent_kafka.Producer has no explicit close; its resources are
        released when the object is collected.

        Returns:
            Number of messages that were not delivered
        """
        logger.info("Shutting down producer")

        remaining = self.flush(timeout=timeout)
        if remaining > 0:
            logger.error(
                f"Producer closed with {remaining} messages undelivered",
                extra={"remaining_messages": remaining}
            )

        logger.info(
            "Producer shutdown complete",
            extra={
                "messages_sent": self.messages_sent,
                "messages_delivered": self.messages_delivered,
                "messages_failed": self.messages_failed,
            }
        )
        return remaining


# ==============================================================================
# USAGE EXAMPLES
# ==============================================================================
"""
from ccloud_orders.producer.config import load_config
from ccloud_orders.producer.producer import OrderProducer

config = load_config()
producer = OrderProducer(config, config.load_properties())

try:
    for _ in range(10):
        producer.send_new_order()
finally:
    producer.close()

# Custom delivery callback
def on_delivery(err, msg):
    if err:
        print(f"FAILED: {err}")
    else:
        print(f"partition={msg.partition()} offset={msg.offset()}")

producer = OrderProducer(config, properties, delivery_callback=on_delivery)
"""
