"""
Consumer Configuration Module

Settings for the poll-based consumer and the listener container. Offsets are
committed by the client's auto-commit timer; neither variant commits manually.
"""

from typing import Any, Dict, Optional

from pydantic import Field

from ccloud_orders.shared.config import ServiceConfig
from ccloud_orders.shared.properties import CloudProperties


class ConsumerConfig(ServiceConfig):
    """
    Consumer service configuration with validation.

    Includes the poll loop settings and the listener container settings.
    """

    # === KAFKA CONSUMER SETTINGS ===
    consumer_group_id: str = Field(
        default="native-consumer",
        description="Consumer group of the poll-based consumer",
    )

    consumer_client_id: str = Field(
        default="orders-consumer",
        description="Consumer client identifier",
    )

    consumer_auto_offset_reset: str = Field(
        default="latest",
        pattern=r"^(earliest|latest)$",
        description="Where to start without committed offsets: earliest or latest",
    )

    enable_auto_commit: bool = Field(
        default=True,
        description="Commit offsets on the client's auto-commit timer",
    )

    auto_commit_interval_ms: int = Field(
        default=1000,
        ge=100,
        description="Auto-commit interval in milliseconds",
    )

    # === POLL LOOP ===
    consumer_poll_timeout: float = Field(
        default=0.5,
        gt=0,
        le=60,
        description="Seconds to wait for a batch of records",
    )

    consumer_batch_size: int = Field(
        default=500,
        ge=1,
        le=100000,
        description="Maximum records fetched per poll",
    )

    # === LISTENER CONTAINER ===
    listener_group_id: str = Field(
        default="listener-consumer",
        description="Default consumer group of registered listeners",
    )

    listener_concurrency: int = Field(
        default=1,
        ge=1,
        le=64,
        description="Dispatch threads (one consumer each) per listener",
    )

    def get_kafka_config(
        self, properties: CloudProperties, group_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Get confluent_kafka.Consumer configuration.

        Args:
            properties: Loaded client properties bundle
            group_id: Consumer group (defaults to consumer_group_id)

        Returns:
            Consumer configuration dictionary (bundle values win over defaults)
        """
        config: Dict[str, Any] = {
            "group.id": group_id or self.consumer_group_id,
            "client.id": self.consumer_client_id,
            "auto.offset.reset": self.consumer_auto_offset_reset,
            "enable.auto.commit": self.enable_auto_commit,
            "auto.commit.interval.ms": self.auto_commit_interval_ms,
        }
        config.update(self.client_config(properties))
        return config


def load_config() -> ConsumerConfig:
    """Load and validate consumer configuration."""
    return ConsumerConfig()
