"""
Unit Tests for the Poll-based Order Consumer

confluent_kafka.Consumer and the Avro serde are mocked; batches are fed
through consume() and the loop is stopped once they run out.
"""

import struct
from unittest.mock import MagicMock

import pytest
from confluent_kafka import KafkaError
from confluent_kafka.serialization import SerializationError

from ccloud_orders.consumer import consumer as consumer_module
from ccloud_orders.consumer import main as consumer_main
from ccloud_orders.consumer.consumer import OrderConsumer, is_fatal
from ccloud_orders.shared.models import Order
from ccloud_orders.shared.serde import ConsumerRecord, OrderSerde


class FakeSerde:
    """Decodes b"<id>" values into orders; b"bad" fails like a foreign payload."""

    def __init__(self, schema_registry_client):
        self.schema_registry_client = schema_registry_client

    def decode(self, msg):
        if msg.value() == b"bad":
            raise SerializationError("Unknown magic byte")
        order_id = msg.value().decode("utf-8")
        return ConsumerRecord(
            topic=msg.topic(),
            partition=msg.partition(),
            offset=msg.offset(),
            key=order_id,
            value=Order(id=order_id, date=1736519400123, amount=5.0),
        )


@pytest.fixture
def kafka_consumer(monkeypatch):
    """Mock confluent_kafka.Consumer class used by OrderConsumer."""
    consumer_class = MagicMock()
    monkeypatch.setattr(consumer_module, "Consumer", consumer_class)
    monkeypatch.setattr(consumer_module, "OrderSerde", FakeSerde)
    return consumer_class


def feed(order_consumer, batches):
    """Make consume() return `batches` one by one, then stop the consumer."""
    pending = list(batches)

    def consume(num_messages, timeout):
        if pending:
            return pending.pop(0)
        order_consumer.stop()
        return []

    order_consumer.consumer.consume.side_effect = consume


@pytest.mark.unit
def test_consumer_subscribes_with_group(kafka_consumer, consumer_config, cloud_properties):
    """Test the consumer joins its group and subscribes to the orders topic."""
    order_consumer = OrderConsumer(consumer_config, cloud_properties, schema_registry_client=MagicMock())

    (client_config,), _ = kafka_consumer.call_args
    assert client_config["group.id"] == "test-consumer-group"
    assert client_config["enable.auto.commit"] is True
    order_consumer.consumer.subscribe.assert_called_once_with(["test-orders"])


@pytest.mark.unit
def test_start_prints_every_record(kafka_consumer, consumer_config, cloud_properties, message_factory, capsys):
    """Test each fetched order is printed and the consumer is closed at the end."""
    order_consumer = OrderConsumer(consumer_config, cloud_properties, schema_registry_client=MagicMock())
    feed(order_consumer, [
        [message_factory(value=b"a", offset=0), message_factory(value=b"b", offset=1)],
        [message_factory(value=b"c", offset=2)],
    ])

    order_consumer.start()

    printed = capsys.readouterr().out
    for order_id in ("a", "b", "c"):
        assert f'"id": "{order_id}"' in printed
    assert order_consumer.messages_processed == 3
    _, kwargs = order_consumer.consumer.consume.call_args
    assert kwargs == {"num_messages": 10, "timeout": 0.1}
    order_consumer.consumer.close.assert_called_once()


@pytest.mark.unit
def test_undecodable_record_is_skipped(kafka_consumer, consumer_config, cloud_properties, message_factory):
    """Test a record that fails deserialization does not stop the loop."""
    seen = []
    order_consumer = OrderConsumer(
        consumer_config, cloud_properties, schema_registry_client=MagicMock(), record_handler=seen.append
    )
    feed(order_consumer, [[message_factory(value=b"bad"), message_factory(value=b"good")]])

    order_consumer.start()

    assert [record.key for record in seen] == ["good"]
    assert order_consumer.messages_failed == 1
    assert order_consumer.messages_processed == 1


@pytest.mark.unit
def test_unknown_schema_id_is_skipped(
    monkeypatch, kafka_consumer, consumer_config, cloud_properties, message_factory, schema_registry_client
):
    """Test a record framed with a schema id the registry does not know is skipped."""
    monkeypatch.setattr(consumer_module, "OrderSerde", OrderSerde)
    seen = []
    order_consumer = OrderConsumer(
        consumer_config, cloud_properties, schema_registry_client=schema_registry_client, record_handler=seen.append
    )
    key, value = order_consumer.serde.encode("test-orders", Order.create("known"))
    unknown = b"\x00" + struct.pack(">I", 9999) + b"\x00"
    feed(order_consumer, [[
        message_factory(topic="test-orders", key=b"k", value=unknown, offset=0),
        message_factory(topic="test-orders", key=key, value=value, offset=1),
    ]])

    order_consumer.start()

    assert [record.key for record in seen] == ["known"]
    assert order_consumer.messages_failed == 1
    assert order_consumer.messages_processed == 1
    order_consumer.consumer.close.assert_called_once()


@pytest.mark.unit
def test_partition_eof_is_ignored(kafka_consumer, consumer_config, cloud_properties, message_factory):
    """Test end-of-partition events neither stop nor reach the handler."""
    seen = []
    order_consumer = OrderConsumer(
        consumer_config, cloud_properties, schema_registry_client=MagicMock(), record_handler=seen.append
    )
    feed(order_consumer, [
        [message_factory(error=KafkaError(KafkaError._PARTITION_EOF))],
        [message_factory(value=b"after")],
    ])

    order_consumer.start()

    assert [record.key for record in seen] == ["after"]


@pytest.mark.unit
def test_fatal_error_stops_consumer(kafka_consumer, consumer_config, cloud_properties, message_factory):
    """Test an authentication failure stops the loop."""
    order_consumer = OrderConsumer(consumer_config, cloud_properties, schema_registry_client=MagicMock())
    order_consumer.consumer.consume.return_value = [
        message_factory(error=KafkaError(KafkaError._AUTHENTICATION))
    ]

    order_consumer.start()

    assert order_consumer.running is False
    assert order_consumer.consumer.consume.call_count == 1
    order_consumer.consumer.close.assert_called_once()


@pytest.mark.unit
def test_is_fatal():
    """Test which client errors are treated as fatal."""
    assert is_fatal(KafkaError(KafkaError._ALL_BROKERS_DOWN))
    assert is_fatal(KafkaError(KafkaError.TOPIC_AUTHORIZATION_FAILED))
    assert is_fatal(KafkaError(KafkaError._TRANSPORT, fatal=True))
    assert not is_fatal(KafkaError(KafkaError._TRANSPORT))


# ==============================================================================
# CLI TESTS
# ==============================================================================


@pytest.mark.unit
def test_parse_args_overrides_listener_group(consumer_config):
    """Test --group-id targets the group of the selected mode."""
    args = consumer_main.parse_args(["--mode", "listener", "--group-id", "g1", "--concurrency", "3"])

    config = consumer_main.apply_args(consumer_config, args)

    assert config.listener_group_id == "g1"
    assert config.consumer_group_id == "test-consumer-group"
    assert config.listener_concurrency == 3


@pytest.mark.unit
def test_parse_args_defaults_to_poll_mode():
    """Test the default consumer variant."""
    assert consumer_main.parse_args([]).mode == "poll"


@pytest.mark.unit
def test_run_consumer_startup_failure_returns_error(consumer_config):
    """Test that an unusable properties bundle exits with code 1."""
    consumer_config.ccloud_properties_file = None  # bundled template, placeholders unresolved

    assert consumer_main.run_consumer(consumer_config, "poll") == 1


@pytest.mark.unit
def test_run_consumer_listener_mode(monkeypatch, consumer_config):
    """Test listener mode runs the container until it returns."""
    container = MagicMock(spec=consumer_main.ListenerContainer)
    monkeypatch.setattr(consumer_main, "build_service", MagicMock(return_value=container))

    assert consumer_main.run_consumer(consumer_config, "listener") == 0
    container.run_forever.assert_called_once()
