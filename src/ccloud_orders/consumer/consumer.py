"""
Kafka Order Consumer Implementation (poll-based)

Reads order events from the orders topic with the raw client API and prints
each one.

CONSUMER LIFECYCLE:
┌─────────────────────────────────────────────────────────────────────────┐
│  1. Subscribe to topic → join consumer group                            │
│  2. Fetch a batch of available records (bounded wait)                   │
│  3. Deserialize key (UTF-8) and value (Avro via Schema Registry)        │
│  4. Hand each record to the record handler (prints the order)           │
│  5. Repeat until stop() or a fatal broker error                         │
│  6. Close consumer (final auto-commit, leave the group)                 │
└─────────────────────────────────────────────────────────────────────────┘

OFFSETS:
- enable.auto.commit=true, auto.commit.interval.ms=1000
- No manual acknowledgment, ordering enforcement or duplicate detection

ERROR HANDLING:
- _PARTITION_EOF: informational, ignored
- Fatal client errors (all brokers down, authentication, topic authorization): stop
- Other client errors: logged, polling continues
- Undecodable records: logged and skipped
"""

import logging
from typing import Any, Callable, List, Optional

from confluent_kafka import Consumer, KafkaError, Message

from ccloud_orders.consumer.config import ConsumerConfig
from ccloud_orders.shared.logger import CorrelationAdapter
from ccloud_orders.shared.properties import CloudProperties
from ccloud_orders.shared.serde import (
    DECODE_ERRORS,
    ConsumerRecord,
    OrderSerde,
    create_schema_registry_client,
)

logger = logging.getLogger(__name__)

RecordHandler = Callable[[ConsumerRecord], Any]

FATAL_ERROR_CODES = (
    KafkaError._ALL_BROKERS_DOWN,
    KafkaError._AUTHENTICATION,
    KafkaError.TOPIC_AUTHORIZATION_FAILED,
)


def print_record(record: ConsumerRecord) -> None:
    """Default record handler: print the order."""
    print(record.value)


def is_fatal(error: KafkaError) -> bool:
    """True for client errors after which polling cannot make progress."""
    return error.fatal() or error.code() in FATAL_ERROR_CODES


# ==============================================================================
# KAFKA CONSUMER
# ==============================================================================


class OrderConsumer:
    """
    Poll-based Kafka consumer for order events.

    Attributes:
        config: Consumer configuration
        consumer: Confluent Kafka consumer instance
        serde: Key/value deserializers
        record_handler: Callable receiving every decoded record
        running: Flag for graceful shutdown
        messages_processed: Records handed to the handler
        messages_failed: Records that could not be decoded
    """

    def __init__(
        self,
        config: ConsumerConfig,
        properties: CloudProperties,
        schema_registry_client: Any = None,
        record_handler: Optional[RecordHandler] = None,
    ):
        """
        Initialize Kafka consumer and subscribe to the orders topic.

        Args:
            config: Consumer configuration
            properties: Client properties bundle (connection and credentials)
            schema_registry_client: Registry client to use instead of one built
                from the bundle
            record_handler: Called with each decoded record (prints by default)
        """
        self.config = config
        self.record_handler = record_handler or print_record

        self.messages_processed = 0
        self.messages_failed = 0
        self.running = True

        if schema_registry_client is None:
            schema_registry_client = create_schema_registry_client(
                config.schema_registry_config(properties)
            )
        self.serde = OrderSerde(schema_registry_client)

        kafka_config = config.get_kafka_config(properties)
        logger.debug(
            "Creating Kafka consumer",
            extra={"config": kafka_config},
        )
        self.consumer = Consumer(kafka_config)

        self.consumer.subscribe([config.kafka_topic_orders])

        logger.info(
            "Order consumer initialized",
            extra={
                "topic": config.kafka_topic_orders,
                "group_id": kafka_config["group.id"],
                "bootstrap_servers": kafka_config.get("bootstrap.servers"),
            },
        )

    def start(self) -> None:
        """
        Consume until stop() is called or a fatal error occurs.

        The consumer is closed when the loop ends, whatever the reason.
        """
        logger.info("Starting consumer loop...")

        try:
            while self.running:
                messages = self.poll_batch()
                for msg in messages:
                    if msg.error():
                        self._handle_kafka_error(msg.error())
                        continue

                    self._process_message(msg)

        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt, shutting down...")
        except Exception:
            logger.error("Fatal error in consumer loop", exc_info=True)
            raise
        finally:
            self._shutdown()

    def poll_batch(self) -> List[Message]:
        """Fetch up to consumer_batch_size records, waiting at most consumer_poll_timeout."""
        return self.consumer.consume(
            num_messages=self.config.consumer_batch_size,
            timeout=self.config.consumer_poll_timeout,
        )

    def _process_message(self, msg: Message) -> None:
        """Decode one message and pass it to the record handler."""
        try:
            record = self.serde.decode(msg)
        except DECODE_ERRORS:
            self.messages_failed += 1
            logger.error(
                "Failed to deserialize record, skipping",
                exc_info=True,
                extra={
                    "topic": msg.topic(),
                    "partition": msg.partition(),
                    "offset": msg.offset(),
                },
            )
            return

        order_logger = CorrelationAdapter(logger, {"correlation_id": record.key})
        order_logger.debug(
            "Record received",
            extra={"partition": record.partition, "offset": record.offset},
        )

        self.record_handler(record)
        self.messages_processed += 1

    def _handle_kafka_error(self, error: KafkaError) -> None:
        """
        Handle errors delivered in place of messages.

        Args:
            error: Kafka error
        """
        if error.code() == KafkaError._PARTITION_EOF:
            logger.debug("Reached end of partition")
            return

        logger.error(
            f"Kafka error: {error.str()}",
            extra={"error_code": error.code(), "error_name": error.name()},
        )

        if is_fatal(error):
            logger.critical("Fatal Kafka error, shutting down")
            self.stop()

    def stop(self) -> None:
        """
        Signal the consumer to stop.

        The loop finishes the current batch, then exits and closes the client.
        """
        logger.info("Stopping consumer...")
        self.running = False

    def _shutdown(self) -> None:
        """Close the Kafka consumer (final auto-commit, leave the group)."""
        logger.info(
            "Consumer shutting down",
            extra={
                "messages_processed": self.messages_processed,
                "messages_failed": self.messages_failed,
            },
        )

        try:
            self.consumer.close()
            logger.info("Kafka consumer closed")
        except Exception:
            logger.error("Error closing Kafka consumer", exc_info=True)
