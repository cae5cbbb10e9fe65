"""
Shared Service Configuration

Settings common to the producer, the poll-based consumer and the listener
container, loaded from environment variables with Pydantic validation.

CONFIGURATION SOURCES (priority order):
1. Command-line flags (applied by each main module)
2. Environment variables
3. .env file (loaded by python-dotenv)
4. Default values

CLUSTER CONNECTION:
Broker and Schema Registry endpoints and credentials come from the client
properties bundle (CCLOUD_PROPERTIES_FILE, see shared/properties.py). The
optional KAFKA_BOOTSTRAP_SERVERS and SCHEMA_REGISTRY_URL settings override the
bundle's endpoints, which is handy against a local cluster.
"""

from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

from ccloud_orders.shared.properties import CloudProperties

# Load .env file if present (local development)
load_dotenv()

DEFAULT_TOPIC = "orders"


class ServiceConfig(BaseSettings):
    """
    Base configuration shared by every entry point.

    Attributes:
        ccloud_properties_file: Path to the client properties bundle
        kafka_bootstrap_servers: Optional override for bootstrap.servers
        schema_registry_url: Optional override for schema.registry.url
        kafka_topic_orders: Topic carrying order events
        topic_partitions: Partition count used when creating the topic
        topic_replication_factor: Replication factor used when creating the topic
        topic_create_timeout: Admin operation timeout in seconds
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log output format (json or text)
    """

    # === CLUSTER CONNECTION ===
    ccloud_properties_file: Optional[str] = Field(
        default=None,
        description="Client properties bundle (None = bundled template)",
        json_schema_extra={"example": "/etc/ccloud/ccloud.properties"},
    )

    kafka_bootstrap_servers: Optional[str] = Field(
        default=None,
        description="Override for the bundle's bootstrap.servers",
        json_schema_extra={"example": "localhost:9092"},
    )

    schema_registry_url: Optional[str] = Field(
        default=None,
        description="Override for the bundle's schema.registry.url",
        json_schema_extra={"example": "http://localhost:8081"},
    )

    # === TOPIC ===
    kafka_topic_orders: str = Field(
        default=DEFAULT_TOPIC,
        min_length=1,
        description="Kafka topic for order events",
    )

    topic_partitions: int = Field(
        default=4,
        ge=1,
        description="Partition count when the topic has to be created",
    )

    topic_replication_factor: int = Field(
        default=3,
        ge=1,
        description="Replication factor when the topic has to be created",
        json_schema_extra={"note": "Use 1 against a single-broker development cluster"},
    )

    topic_create_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Admin operation timeout for topic creation (seconds)",
    )

    # === LOGGING CONFIGURATION ===
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    log_format: str = Field(
        default="json",
        description="Log output format (json for production, text for development)",
    )

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    def load_properties(self) -> CloudProperties:
        """
        Load the client properties bundle this configuration points at.

        Raises:
            ConfigurationError: If the bundle is unreadable or incomplete
        """
        return CloudProperties.load(self.ccloud_properties_file)

    def client_config(self, properties: CloudProperties) -> Dict[str, Any]:
        """
        Connection settings shared by every Kafka client (admin included).

        Args:
            properties: Loaded properties bundle

        Returns:
            librdkafka configuration dictionary
        """
        config = properties.kafka_config()
        if self.kafka_bootstrap_servers:
            config["bootstrap.servers"] = self.kafka_bootstrap_servers
        return config

    def schema_registry_config(self, properties: CloudProperties) -> Dict[str, str]:
        """
        Settings for confluent_kafka.schema_registry.SchemaRegistryClient.

        Raises:
            ConfigurationError: If no registry URL is configured anywhere
        """
        if self.schema_registry_url:
            config = {"url": self.schema_registry_url}
            user_info = properties.get("schema.registry.basic.auth.user.info")
            if user_info:
                config["basic.auth.user.info"] = user_info
            return config

        return properties.schema_registry_config()
