"""
Listener Container

A small listener framework: handlers are registered declaratively and a
managed container owns the consumers, polls them and pushes every record to
its handler.

    from ccloud_orders.consumer.container import kafka_listener

    @kafka_listener(group_id="billing", concurrency=2)
    def on_order(record):
        ...

COMPONENTS:
- ListenerRegistry: collects endpoints (handler + topics + group + concurrency)
- ConsumerFactory: builds configured consumers and deserializers
- ListenerContainer: one dispatch thread per endpoint and concurrency slot,
  each with its own consumer in the endpoint's group

THREADING:
┌──────────────────────────────────────────────────────────────┐
│  main thread        start() → wait → stop() → join()         │
│  dispatch thread    consume → decode → handler(record) ...   │
│  dispatch thread    consume → decode → handler(record) ...   │
└──────────────────────────────────────────────────────────────┘
A consumer is only ever touched by the thread that owns it. Partitions of the
subscribed topics are spread over the consumers of the same group.

ERROR HANDLING:
- Handler exceptions: logged with record coordinates, dispatch continues
- Undecodable records: logged and skipped
- Fatal client errors: the whole container stops
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from confluent_kafka import Consumer, KafkaError, Message

from ccloud_orders.consumer.config import ConsumerConfig
from ccloud_orders.consumer.consumer import is_fatal
from ccloud_orders.shared.properties import CloudProperties
from ccloud_orders.shared.serde import (
    DECODE_ERRORS,
    ConsumerRecord,
    OrderSerde,
    create_schema_registry_client,
)

logger = logging.getLogger(__name__)

ListenerHandler = Callable[[ConsumerRecord], Any]


# ==============================================================================
# LISTENER REGISTRATION
# ==============================================================================


@dataclass(frozen=True)
class ListenerEndpoint:
    """
    A registered handler and where it listens.

    Unset topics, group_id and concurrency fall back to the container's
    configuration when the endpoint is started.
    """

    handler: ListenerHandler
    topics: Optional[Tuple[str, ...]] = None
    group_id: Optional[str] = None
    concurrency: Optional[int] = None

    @property
    def name(self) -> str:
        return getattr(self.handler, "__qualname__", repr(self.handler))


class ListenerRegistry:
    """Collection of listener endpoints, filled by the listener() decorator."""

    def __init__(self):
        self._endpoints: List[ListenerEndpoint] = []

    def listener(
        self,
        topics: Optional[List[str]] = None,
        group_id: Optional[str] = None,
        concurrency: Optional[int] = None,
    ) -> Callable[[ListenerHandler], ListenerHandler]:
        """
        Register the decorated function as a record handler.

        Args:
            topics: Topics to subscribe to (None = the configured orders topic)
            group_id: Consumer group (None = LISTENER_GROUP_ID)
            concurrency: Dispatch threads (None = LISTENER_CONCURRENCY)

        Returns:
            Decorator returning the handler unchanged

        Raises:
            ValueError: If concurrency is smaller than 1
        """
        if concurrency is not None and concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        def decorator(handler: ListenerHandler) -> ListenerHandler:
            endpoint = ListenerEndpoint(
                handler=handler,
                topics=tuple(topics) if topics else None,
                group_id=group_id,
                concurrency=concurrency,
            )
            self._endpoints.append(endpoint)
            logger.debug("Listener registered", extra={"listener": endpoint.name})
            return handler

        return decorator

    def endpoints(self) -> List[ListenerEndpoint]:
        return list(self._endpoints)

    def __len__(self) -> int:
        return len(self._endpoints)


# Default registry used by @kafka_listener
registry = ListenerRegistry()
kafka_listener = registry.listener


# ==============================================================================
# CONSUMER FACTORY
# ==============================================================================


class ConsumerFactory:
    """
    Builds consumers configured from ConsumerConfig and the properties bundle.

    Attributes:
        config: Consumer configuration
        properties: Client properties bundle
        schema_registry_client: Registry client shared by all deserializers
    """

    def __init__(
        self,
        config: ConsumerConfig,
        properties: CloudProperties,
        schema_registry_client: Any = None,
    ):
        self.config = config
        self.properties = properties
        if schema_registry_client is None:
            schema_registry_client = create_schema_registry_client(
                config.schema_registry_config(properties)
            )
        self.schema_registry_client = schema_registry_client

    def create_consumer(self, group_id: Optional[str] = None) -> Consumer:
        """Create an unsubscribed consumer in `group_id` (default LISTENER_GROUP_ID)."""
        kafka_config = self.config.get_kafka_config(
            self.properties, group_id=group_id or self.config.listener_group_id
        )
        return Consumer(kafka_config)

    def create_serde(self) -> OrderSerde:
        return OrderSerde(self.schema_registry_client)


# ==============================================================================
# LISTENER CONTAINER
# ==============================================================================


class ListenerContainer:
    """
    Runs every registered endpoint on its own dispatch threads.

    Attributes:
        factory: Source of consumers and deserializers
        registry: Endpoints to run
        config: Consumer configuration (defaults and poll settings)
        records_processed: Records handed to handlers without error
        records_failed: Records that could not be decoded
        handler_errors: Handler invocations that raised
    """

    def __init__(
        self,
        factory: ConsumerFactory,
        listener_registry: Optional[ListenerRegistry] = None,
        config: Optional[ConsumerConfig] = None,
    ):
        self.factory = factory
        self.registry = listener_registry if listener_registry is not None else registry
        self.config = config or factory.config

        self.records_processed = 0
        self.records_failed = 0
        self.handler_errors = 0

        self._stopped = threading.Event()
        self._lock = threading.Lock()
        self._threads: List[threading.Thread] = []

    def start(self) -> None:
        """
        Create the consumers and start the dispatch threads.

        If a consumer cannot be created or subscribed, the threads already
        started are stopped and joined before the error propagates.

        Raises:
            RuntimeError: If the container was already started
        """
        if self._threads:
            raise RuntimeError("Listener container already started")

        endpoints = self.registry.endpoints()
        if not endpoints:
            logger.warning("No listeners registered, nothing to start")
            return

        try:
            for endpoint in endpoints:
                self._start_endpoint(endpoint)
        except Exception:
            logger.error("Listener container failed to start", exc_info=True)
            self.stop()
            self.join()
            raise

    def _start_endpoint(self, endpoint: ListenerEndpoint) -> None:
        topics = list(endpoint.topics or (self.config.kafka_topic_orders,))
        group_id = endpoint.group_id or self.config.listener_group_id
        concurrency = endpoint.concurrency or self.config.listener_concurrency

        for index in range(concurrency):
            consumer = self.factory.create_consumer(group_id)
            try:
                consumer.subscribe(topics)
                serde = self.factory.create_serde()
            except Exception:
                consumer.close()
                raise

            thread = threading.Thread(
                target=self._dispatch,
                args=(endpoint, consumer, serde),
                name=f"{endpoint.name}-{index}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

        logger.info(
            "Listener started",
            extra={
                "listener": endpoint.name,
                "topics": topics,
                "group_id": group_id,
                "concurrency": concurrency,
            },
        )

    def stop(self) -> None:
        """Signal every dispatch thread to finish its batch and close its consumer."""
        if not self._stopped.is_set():
            logger.info("Stopping listener container...")
        self._stopped.set()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the dispatch threads to exit."""
        for thread in self._threads:
            thread.join(timeout)

        logger.info(
            "Listener container stopped",
            extra={
                "records_processed": self.records_processed,
                "records_failed": self.records_failed,
                "handler_errors": self.handler_errors,
            },
        )

    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def run_forever(self) -> None:
        """Start, block until stop() is called or every thread has exited, then join."""
        try:
            self.start()
            while not self._stopped.wait(timeout=0.5):
                if not self.is_running():
                    break
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt, shutting down...")
        finally:
            self.stop()
            self.join()

    # ==========================================================================
    # DISPATCH THREAD
    # ==========================================================================

    def _dispatch(self, endpoint: ListenerEndpoint, consumer: Consumer, serde: OrderSerde) -> None:
        try:
            while not self._stopped.is_set():
                messages = consumer.consume(
                    num_messages=self.config.consumer_batch_size,
                    timeout=self.config.consumer_poll_timeout,
                )
                for msg in messages:
                    if msg.error():
                        self._handle_kafka_error(endpoint, msg.error())
                        continue

                    self._deliver(endpoint, msg, serde)

        except Exception:
            logger.error(
                "Fatal error in listener thread",
                exc_info=True,
                extra={"listener": endpoint.name},
            )
            self.stop()
        finally:
            try:
                consumer.close()
            except Exception:
                logger.error("Error closing Kafka consumer", exc_info=True)

    def _deliver(self, endpoint: ListenerEndpoint, msg: Message, serde: OrderSerde) -> None:
        coordinates = {
            "listener": endpoint.name,
            "topic": msg.topic(),
            "partition": msg.partition(),
            "offset": msg.offset(),
        }

        try:
            record = serde.decode(msg)
        except DECODE_ERRORS:
            with self._lock:
                self.records_failed += 1
            logger.error("Failed to deserialize record, skipping", exc_info=True, extra=coordinates)
            return

        try:
            endpoint.handler(record)
        except Exception:
            with self._lock:
                self.handler_errors += 1
            logger.error("Listener raised, continuing", exc_info=True, extra=coordinates)
            return

        with self._lock:
            self.records_processed += 1

    def _handle_kafka_error(self, endpoint: ListenerEndpoint, error: KafkaError) -> None:
        if error.code() == KafkaError._PARTITION_EOF:
            return

        logger.error(
            f"Kafka error: {error.str()}",
            extra={
                "listener": endpoint.name,
                "error_code": error.code(),
                "error_name": error.name(),
            },
        )

        if is_fatal(error):
            logger.critical("Fatal Kafka error, stopping listener container")
            self.stop()
