"""
Pytest Configuration and Shared Fixtures

Shared fixtures for the ccloud_orders test suite. Unit tests replace the Kafka
clients with unittest.mock doubles; integration tests run against a real
broker started with testcontainers.

FIXTURE SCOPES:
- session: Created once for entire test session (Kafka container)
- function: Created for each test function (configs, properties, messages)
"""

import logging
import os
from typing import Any, Generator, List, Optional

import pytest

from ccloud_orders.consumer.config import ConsumerConfig
from ccloud_orders.producer.config import ProducerConfig
from ccloud_orders.shared.logger import ROOT_LOGGER_NAME
from ccloud_orders.shared.models import Order
from ccloud_orders.shared.properties import CloudProperties, parse_properties
from ccloud_orders.shared.serde import create_schema_registry_client

# ==============================================================================
# PROPERTIES FIXTURES
# ==============================================================================

FILLED_PROPERTIES = """\
# Kafka cluster
bootstrap.servers=pkc-test.eu-west-1.aws.confluent.cloud:9092
ssl.endpoint.identification.algorithm=https
security.protocol=SASL_SSL
sasl.mechanism=PLAIN
sasl.jaas.config=org.apache.kafka.common.security.plain.PlainLoginModule required \\
    username="CLUSTERKEY" password="cluster/secret";

# Schema Registry
schema.registry.url=https://psrc-test.eu-west-1.aws.confluent.cloud
basic.auth.credentials.source=USER_INFO
schema.registry.basic.auth.user.info=SRKEY:SRSECRET
"""


@pytest.fixture
def properties_text() -> str:
    """Contents of a fully filled-in connection bundle."""
    return FILLED_PROPERTIES


@pytest.fixture
def properties_file(tmp_path, properties_text):
    """The filled-in bundle written to a temporary file."""
    path = tmp_path / "ccloud.properties"
    path.write_text(properties_text, encoding="utf-8")
    return path


@pytest.fixture
def cloud_properties(properties_text) -> CloudProperties:
    """Parsed filled-in bundle."""
    return CloudProperties(parse_properties(properties_text), source="<test>")


# ==============================================================================
# MESSAGE FIXTURES
# ==============================================================================


class FakeMessage:
    """Stand-in for confluent_kafka.Message, which cannot be built from Python."""

    def __init__(
        self,
        topic: str = "orders",
        partition: int = 0,
        offset: int = 0,
        key: Optional[bytes] = None,
        value: Optional[bytes] = None,
        error: Any = None,
        timestamp: int = 1736519400123,
        headers: Optional[List] = None,
    ):
        self._topic = topic
        self._partition = partition
        self._offset = offset
        self._key = key
        self._value = value
        self._error = error
        self._timestamp = timestamp
        self._headers = headers

    def topic(self):
        return self._topic

    def partition(self):
        return self._partition

    def offset(self):
        return self._offset

    def key(self):
        return self._key

    def value(self):
        return self._value

    def error(self):
        return self._error

    def timestamp(self):
        return (1, self._timestamp)

    def headers(self):
        return self._headers


@pytest.fixture
def message_factory():
    """Returns the FakeMessage class for building fetched messages."""
    return FakeMessage


@pytest.fixture
def sample_order() -> Order:
    """A valid order."""
    return Order(id="0b7c3c2e-9f43-4c8e-a0f4-3c1b6f0d3f55", date=1736519400123, amount=417.0)


# ==============================================================================
# CONFIG FIXTURES
# ==============================================================================


@pytest.fixture
def producer_config() -> ProducerConfig:
    """ProducerConfig with test-friendly values."""
    return ProducerConfig(
        kafka_topic_orders="test-orders",
        producer_client_id="test-producer",
        producer_interval_ms=1,
        producer_duration=0,
    )


@pytest.fixture
def consumer_config() -> ConsumerConfig:
    """ConsumerConfig with test-friendly values."""
    return ConsumerConfig(
        kafka_topic_orders="test-orders",
        consumer_group_id="test-consumer-group",
        listener_group_id="test-listener-group",
        consumer_poll_timeout=0.1,
        consumer_batch_size=10,
    )


# ==============================================================================
# SCHEMA REGISTRY FIXTURES
# ==============================================================================

MOCK_REGISTRY_URL = "mock://ccloud-orders-tests"


@pytest.fixture
def schema_registry_client():
    """In-memory Schema Registry client (confluent-kafka returns it for mock:// urls)."""
    return create_schema_registry_client({"url": MOCK_REGISTRY_URL})


# ==============================================================================
# KAFKA FIXTURES
# ==============================================================================


@pytest.fixture(scope="session")
def kafka_container() -> Generator[Any, None, None]:
    """
    Provides Kafka testcontainer for the entire test session.

    Scope: session (started once, shared across all tests)

    Yields:
        KafkaContainer instance with running Kafka broker
    """
    from testcontainers.kafka import KafkaContainer

    with KafkaContainer() as kafka:
        kafka.get_bootstrap_server()
        yield kafka


@pytest.fixture
def local_properties(kafka_container) -> CloudProperties:
    """Bundle pointing at the test container (plaintext, mock schema registry)."""
    return CloudProperties(
        {
            "bootstrap.servers": kafka_container.get_bootstrap_server(),
            "schema.registry.url": MOCK_REGISTRY_URL,
        },
        source="<testcontainer>",
    )


# ==============================================================================
# TEST ENVIRONMENT CONFIGURATION
# ==============================================================================


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers entry points attach, so each test binds to its own stdout."""
    yield
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)


def pytest_configure(config):
    """
    Pytest hook called during test configuration.

    Sets up test environment variables and markers.
    """
    os.environ["ENVIRONMENT"] = "test"
    os.environ["LOG_LEVEL"] = "DEBUG"

    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires containers)"
    )
    config.addinivalue_line("markers", "slow: mark test as slow (takes more than 5 seconds)")
    config.addinivalue_line("markers", "unit: mark test as unit test (no external dependencies)")
