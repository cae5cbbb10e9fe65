"""
Producer Configuration Module

Producer-specific settings on top of the shared service configuration.

CLIENT CONFIG ASSEMBLY:
1. Hardcoded overrides (acks, client.id)
2. Client properties bundle, applied on top (bundle values win)
3. KAFKA_BOOTSTRAP_SERVERS override, if set

ENVIRONMENT VARIABLES:
    PRODUCER_CLIENT_ID       Producer client identifier (default: orders-producer)
    PRODUCER_ACKS            Acknowledgment level (default: all)
    PRODUCER_INTERVAL_MS     Pause between orders in ms (default: 100)
    PRODUCER_DURATION        Run duration in seconds, 0 = forever (default: 0)
    PRODUCER_FLUSH_TIMEOUT   Seconds to wait for deliveries on shutdown (default: 30)
    plus the shared settings in shared/config.py
"""

from typing import Any, Dict

from pydantic import Field

from ccloud_orders.shared.config import ServiceConfig
from ccloud_orders.shared.properties import CloudProperties


class ProducerConfig(ServiceConfig):
    """
    Producer service configuration with validation.

    Attributes:
        producer_client_id: Producer identifier (visible in broker logs)
        producer_acks: Acknowledgment level requested from the brokers
        producer_interval_ms: Pause between two generated orders
        producer_duration: How long to run (seconds, 0 = until stopped)
        producer_flush_timeout: Seconds to wait for pending deliveries on close

    Example:
        >>> config = ProducerConfig()
        >>> config.producer_interval_ms
        100
    """

    producer_client_id: str = Field(
        default="orders-producer",
        description="Producer client identifier (visible in broker logs and monitoring)",
    )

    producer_acks: str = Field(
        default="all",
        pattern=r"^(all|-1|0|1)$",
        description="Acknowledgment level (0=none, 1=leader, all/-1=all in-sync replicas)",
    )

    producer_interval_ms: int = Field(
        default=100,
        ge=1,
        le=60000,
        description="Milliseconds to wait between two orders",
        json_schema_extra={"example": 1000},
    )

    producer_duration: int = Field(
        default=0,
        ge=0,
        description="Producer run duration in seconds (0 = run until stopped)",
    )

    producer_flush_timeout: float = Field(
        default=30.0,
        ge=0,
        description="Seconds to wait for outstanding deliveries on shutdown",
    )

    def get_kafka_config(self, properties: CloudProperties) -> Dict[str, Any]:
        """
        Get confluent_kafka.Producer configuration.

        Args:
            properties: Loaded client properties bundle

        Returns:
            Producer configuration dictionary
        """
        config: Dict[str, Any] = {
            "acks": self.producer_acks,
            "client.id": self.producer_client_id,
        }
        config.update(self.client_config(properties))
        return config

    def display_config(self) -> str:
        """Human-readable configuration summary."""
        return f"""
Order Producer Configuration
=============================
Kafka:
  Properties: {self.ccloud_properties_file or '<bundled template>'}
  Bootstrap override: {self.kafka_bootstrap_servers or '-'}
  Topic: {self.kafka_topic_orders} ({self.topic_partitions} partitions, RF {self.topic_replication_factor})
  Client ID: {self.producer_client_id}
  Acks: {self.producer_acks}

Producer Settings:
  Interval: {self.producer_interval_ms}ms
  Duration: {self.producer_duration} seconds {'(infinite)' if self.producer_duration == 0 else ''}

Logging:
  Level: {self.log_level}
  Format: {self.log_format}
"""


def load_config() -> ProducerConfig:
    """
    Load and validate producer configuration.

    Raises:
        ValidationError: If configuration is invalid
    """
    return ProducerConfig()
