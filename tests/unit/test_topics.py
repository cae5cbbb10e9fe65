"""
Unit Tests for Topic Provisioning

The admin client is replaced with a mock; create_topics futures are real
concurrent.futures.Future objects resolved by the test.
"""

from concurrent.futures import Future
from unittest.mock import MagicMock

import pytest
from confluent_kafka import KafkaError, KafkaException

from ccloud_orders.shared import topics
from ccloud_orders.shared.config import ServiceConfig
from ccloud_orders.shared.errors import TopicProvisioningError
from ccloud_orders.shared.topics import create_topic, ensure_topic


def make_admin(existing=(), creation_error=None):
    """Mock AdminClient listing `existing` topics; creation fails with `creation_error`."""
    admin = MagicMock()
    admin.list_topics.return_value.topics = {name: MagicMock() for name in existing}

    def create_topics(new_topics, **kwargs):
        futures = {}
        for new_topic in new_topics:
            future = Future()
            if creation_error is not None:
                future.set_exception(KafkaException(KafkaError(creation_error)))
            else:
                future.set_result(None)
            futures[new_topic.topic] = future
        return futures

    admin.create_topics.side_effect = create_topics
    return admin


@pytest.mark.unit
def test_create_topic_creates_missing_topic():
    """Test a missing topic is created with the requested layout."""
    admin = make_admin()

    assert create_topic({}, "orders", 4, 3, timeout=60.0, admin_client=admin) is True

    (new_topics,), kwargs = admin.create_topics.call_args
    assert len(new_topics) == 1
    assert new_topics[0].topic == "orders"
    assert new_topics[0].num_partitions == 4
    assert new_topics[0].replication_factor == 3
    assert kwargs["operation_timeout"] == 60.0
    admin.list_topics.assert_called_once_with(timeout=60.0)


@pytest.mark.unit
def test_create_topic_existing_topic_is_noop():
    """Test that an existing topic is left alone."""
    admin = make_admin(existing=["orders"])

    assert create_topic({}, "orders", admin_client=admin) is False
    admin.create_topics.assert_not_called()


@pytest.mark.unit
def test_create_topic_lost_race_is_success():
    """Test TOPIC_ALREADY_EXISTS from the broker is treated as success."""
    admin = make_admin(creation_error=KafkaError.TOPIC_ALREADY_EXISTS)

    assert create_topic({}, "orders", admin_client=admin) is False


@pytest.mark.unit
def test_create_topic_other_failure_raises():
    """Test that other creation errors raise TopicProvisioningError."""
    admin = make_admin(creation_error=KafkaError.INVALID_REPLICATION_FACTOR)

    with pytest.raises(TopicProvisioningError) as exc_info:
        create_topic({}, "orders", replication_factor=3, admin_client=admin)

    assert exc_info.value.topic == "orders"


@pytest.mark.unit
def test_create_topic_listing_failure_raises():
    """Test that an unreachable cluster raises TopicProvisioningError."""
    admin = MagicMock()
    admin.list_topics.side_effect = KafkaException(KafkaError(KafkaError._TRANSPORT))

    with pytest.raises(TopicProvisioningError):
        create_topic({}, "orders", admin_client=admin)


@pytest.mark.unit
def test_create_topic_is_idempotent():
    """Test that a second call after creation is a no-op."""
    created = []
    admin = make_admin()
    admin.create_topics.side_effect = None

    def create_topics(new_topics, **kwargs):
        created.extend(t.topic for t in new_topics)
        future = Future()
        future.set_result(None)
        return {t.topic: future for t in new_topics}

    def list_topics(timeout=None):
        metadata = MagicMock()
        metadata.topics = {name: MagicMock() for name in created}
        return metadata

    admin.create_topics.side_effect = create_topics
    admin.list_topics.side_effect = list_topics

    assert create_topic({}, "orders", admin_client=admin) is True
    assert create_topic({}, "orders", admin_client=admin) is False
    assert created == ["orders"]


@pytest.mark.unit
def test_ensure_topic_uses_config(monkeypatch, cloud_properties):
    """Test ensure_topic passes the configured topic layout."""
    create = MagicMock(return_value=True)
    monkeypatch.setattr(topics, "create_topic", create)
    config = ServiceConfig(
        kafka_topic_orders="test-orders",
        topic_partitions=2,
        topic_replication_factor=1,
        kafka_bootstrap_servers="localhost:9092",
    )

    assert ensure_topic(config, cloud_properties) is True

    (client_config,), kwargs = create.call_args
    assert client_config["bootstrap.servers"] == "localhost:9092"
    assert kwargs == {
        "topic": "test-orders",
        "num_partitions": 2,
        "replication_factor": 1,
        "timeout": 60.0,
    }


@pytest.mark.unit
def test_main_reports_state(monkeypatch, capsys, properties_file):
    """Test the orders-create-topic CLI output and exit code."""
    monkeypatch.setattr(topics, "ensure_topic", MagicMock(return_value=False))

    exit_code = topics.main(["--properties", str(properties_file), "--log-format", "text"])

    assert exit_code == 0
    assert "Topic 'orders' already present" in capsys.readouterr().out


@pytest.mark.unit
def test_main_returns_error_on_provisioning_failure(monkeypatch, properties_file):
    """Test that provisioning errors produce exit code 1."""
    failing = MagicMock(side_effect=TopicProvisioningError("orders", "boom"))
    monkeypatch.setattr(topics, "ensure_topic", failing)

    assert topics.main(["--properties", str(properties_file), "--log-format", "text"]) == 1


@pytest.mark.unit
def test_main_returns_error_on_invalid_environment(monkeypatch, capsys, properties_file):
    """Test an out-of-range setting in the environment exits with code 1 before provisioning."""
    monkeypatch.setenv("TOPIC_PARTITIONS", "0")
    provision = MagicMock()
    monkeypatch.setattr(topics, "ensure_topic", provision)

    assert topics.main(["--properties", str(properties_file)]) == 1

    assert "Failed to load configuration" in capsys.readouterr().err
    provision.assert_not_called()
