"""
Topic Provisioning

Idempotently ensures the orders topic exists before producers or consumers
start using it.

PROVISIONING STEPS:
1. List topic names through the admin client
2. Topic present -> nothing to do
3. Topic absent  -> request creation with the fixed partition count and
   replication factor, then wait for the result
4. TOPIC_ALREADY_EXISTS (another client won the race) -> treated as success
5. Any other failure -> TopicProvisioningError

There is no retry and no backoff: calling it twice is safe, and the second
call is a no-op.

USAGE:
    orders-create-topic --properties ccloud.properties
    orders-create-topic --partitions 1 --replication-factor 1
"""

import argparse
import logging
import sys
from typing import Any, Dict, Optional

from confluent_kafka import KafkaError, KafkaException
from confluent_kafka.admin import AdminClient, NewTopic

from ccloud_orders.shared.config import DEFAULT_TOPIC, ServiceConfig
from ccloud_orders.shared.errors import CcloudOrdersError, TopicProvisioningError
from ccloud_orders.shared.logger import ROOT_LOGGER_NAME, setup_logger
from ccloud_orders.shared.properties import CloudProperties

logger = logging.getLogger(__name__)

DEFAULT_PARTITIONS = 4
DEFAULT_REPLICATION_FACTOR = 3
ADMIN_TIMEOUT_SECONDS = 60.0


def create_topic(
    client_config: Dict[str, Any],
    topic: str = DEFAULT_TOPIC,
    num_partitions: int = DEFAULT_PARTITIONS,
    replication_factor: int = DEFAULT_REPLICATION_FACTOR,
    timeout: float = ADMIN_TIMEOUT_SECONDS,
    admin_client: Optional[AdminClient] = None,
) -> bool:
    """
    Create `topic` unless it already exists.

    Args:
        client_config: librdkafka connection settings (bootstrap, SASL, ...)
        topic: Topic name
        num_partitions: Partition count for a newly created topic
        replication_factor: Replication factor for a newly created topic
        timeout: Admin request/operation timeout in seconds
        admin_client: Existing AdminClient to use instead of creating one

    Returns:
        True if this call created the topic, False if it already existed

    Raises:
        TopicProvisioningError: If listing or creating the topic failed for a
            reason other than the topic already existing

    Example:
        >>> create_topic({"bootstrap.servers": "localhost:9092"}, "orders", 1, 1)
        True
        >>> create_topic({"bootstrap.servers": "localhost:9092"}, "orders", 1, 1)
        False
    """
    admin = admin_client or AdminClient(client_config)

    try:
        metadata = admin.list_topics(timeout=timeout)
    except KafkaException as e:
        logger.error("Failed to list topics", exc_info=True, extra={"topic": topic})
        raise TopicProvisioningError(topic, str(e)) from e

    if topic in metadata.topics:
        logger.debug("Topic already exists", extra={"topic": topic})
        return False

    new_topic = NewTopic(
        topic,
        num_partitions=num_partitions,
        replication_factor=replication_factor,
    )
    futures = admin.create_topics(
        [new_topic],
        operation_timeout=timeout,
        request_timeout=timeout,
    )

    try:
        futures[topic].result()
    except KafkaException as e:
        error = e.args[0] if e.args else None
        if isinstance(error, KafkaError) and error.code() == KafkaError.TOPIC_ALREADY_EXISTS:
            # Created concurrently by another client between list and create
            logger.debug("Topic created concurrently", extra={"topic": topic})
            return False

        logger.error(
            "Topic creation failed",
            extra={
                "topic": topic,
                "error": str(error),
                "partitions": num_partitions,
                "replication_factor": replication_factor,
            },
        )
        raise TopicProvisioningError(topic, str(error)) from e

    logger.info(
        "Topic created",
        extra={
            "topic": topic,
            "partitions": num_partitions,
            "replication_factor": replication_factor,
        },
    )
    return True


def ensure_topic(config: ServiceConfig, properties: CloudProperties) -> bool:
    """Create the configured orders topic if it is missing."""
    return create_topic(
        config.client_config(properties),
        topic=config.kafka_topic_orders,
        num_partitions=config.topic_partitions,
        replication_factor=config.topic_replication_factor,
        timeout=config.topic_create_timeout,
    )


# ==============================================================================
# CLI
# ==============================================================================


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments (override environment variables)."""
    parser = argparse.ArgumentParser(
        description="Create the orders topic if it does not exist",
    )
    parser.add_argument("--properties", type=str, help="Client properties bundle")
    parser.add_argument("--bootstrap-servers", type=str, help="Override bootstrap.servers")
    parser.add_argument("--topic", type=str, help="Topic name (default: from config)")
    parser.add_argument("--partitions", type=int, help="Partition count (default: 4)")
    parser.add_argument(
        "--replication-factor", type=int, help="Replication factor (default: 3)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from config)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        help="Log output format (default: from config)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Entry point for orders-create-topic."""
    args = parse_args(argv)

    try:
        config = ServiceConfig()
    except Exception as e:
        print(f"ERROR: Failed to load configuration: {e}", file=sys.stderr)
        return 1

    if args.properties:
        config.ccloud_properties_file = args.properties
    if args.bootstrap_servers:
        config.kafka_bootstrap_servers = args.bootstrap_servers
    if args.topic:
        config.kafka_topic_orders = args.topic
    if args.partitions:
        config.topic_partitions = args.partitions
    if args.replication_factor:
        config.topic_replication_factor = args.replication_factor
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format

    setup_logger(
        name=ROOT_LOGGER_NAME,
        service_name="orders-admin",
        log_level=config.log_level,
        log_format=config.log_format,
    )

    try:
        created = ensure_topic(config, config.load_properties())
    except CcloudOrdersError as e:
        logger.error("Topic provisioning failed", extra={"error": str(e)})
        return 1

    state = "created" if created else "already present"
    print(f"Topic '{config.kafka_topic_orders}' {state}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
