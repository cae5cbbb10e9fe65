"""
Order Consumer Service - Main Entry Point

Command-line interface for both consumer variants.

USAGE:
    orders-consumer [--mode poll|listener] [options]
    python -m ccloud_orders.consumer.main --mode listener --log-format text

MODES:
    poll       OrderConsumer: explicit consume loop, group CONSUMER_GROUP_ID
    listener   ListenerContainer running the handlers in consumer/listeners.py,
               group LISTENER_GROUP_ID

Both modes ensure the orders topic exists before subscribing and print every
order they receive.

GRACEFUL SHUTDOWN:
- SIGINT (Ctrl+C) and SIGTERM stop the loop (or every dispatch thread)
- The current batch is finished, offsets are auto-committed on close
"""

import argparse
import logging
import signal
import sys
from typing import Optional, Union

from ccloud_orders.consumer.config import ConsumerConfig, load_config
from ccloud_orders.consumer.consumer import OrderConsumer
from ccloud_orders.consumer.container import ConsumerFactory, ListenerContainer
from ccloud_orders.shared.errors import CcloudOrdersError
from ccloud_orders.shared.logger import ROOT_LOGGER_NAME, setup_logger
from ccloud_orders.shared.topics import ensure_topic

MODES = ("poll", "listener")

# ==============================================================================
# GLOBAL STATE
# ==============================================================================
# Running service, reachable from the signal handler

service_instance: Optional[Union[OrderConsumer, ListenerContainer]] = None


def signal_handler(signum: int, frame) -> None:
    """Stop the running consumer on SIGINT or SIGTERM."""
    signal_name = signal.Signals(signum).name

    logger = logging.getLogger(__name__)
    logger.info(f"Received {signal_name}, initiating graceful shutdown...")

    if service_instance:
        service_instance.stop()


# ==============================================================================
# SERVICE CONSTRUCTION
# ==============================================================================


def build_service(config: ConsumerConfig, mode: str) -> Union[OrderConsumer, ListenerContainer]:
    """
    Load the properties bundle, ensure the topic and build the consumer for `mode`.

    Raises:
        CcloudOrdersError: Configuration or topic provisioning failed
        KafkaException: A client could not be created
    """
    properties = config.load_properties()
    ensure_topic(config, properties)

    if mode == "poll":
        return OrderConsumer(config, properties)

    # Importing the module registers its handlers with the default registry
    from ccloud_orders.consumer import listeners  # noqa: F401

    return ListenerContainer(ConsumerFactory(config, properties), config=config)


def run_consumer(config: ConsumerConfig, mode: str = "poll") -> int:
    """
    Run a consumer until it is stopped.

    Args:
        config: Consumer configuration
        mode: "poll" or "listener"

    Returns:
        Exit code (0 = clean shutdown, 1 = error)
    """
    global service_instance

    logger = setup_logger(
        name=ROOT_LOGGER_NAME,
        service_name=f"orders-consumer-{mode}",
        log_level=config.log_level,
        log_format=config.log_format,
    )

    logger.info(
        "Starting Order Consumer Service",
        extra={
            "mode": mode,
            "kafka_topic": config.kafka_topic_orders,
            "consumer_group": config.consumer_group_id if mode == "poll" else config.listener_group_id,
            "log_level": config.log_level,
            "log_format": config.log_format,
        },
    )

    try:
        service_instance = build_service(config, mode)
    except CcloudOrdersError as e:
        logger.error("Consumer startup failed", extra={"error": str(e)})
        return 1
    except Exception:
        logger.error("Failed to create Kafka consumer", exc_info=True)
        return 1

    try:
        logger.info("Consumer starting, press Ctrl+C to stop...")
        if isinstance(service_instance, ListenerContainer):
            service_instance.run_forever()
        else:
            service_instance.start()
        logger.info("Consumer stopped")
        return 0

    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        return 0

    except Exception:
        logger.error("Fatal error in consumer", exc_info=True)
        return 1


# ==============================================================================
# CLI ARGUMENT PARSING
# ==============================================================================


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments (override environment variables)."""
    parser = argparse.ArgumentParser(
        description="Order Consumer - print Avro order events from Kafka",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Poll-based consumer with settings from .env
  orders-consumer

  # Listener container, two dispatch threads
  orders-consumer --mode listener --concurrency 2

  # Replay the topic from the beginning in a fresh group
  orders-consumer --group-id replay-1 --offset-reset earliest

Signals:
  SIGINT (Ctrl+C)            Graceful shutdown
  SIGTERM                    Graceful shutdown
        """,
    )

    parser.add_argument("--mode", choices=MODES, default="poll", help="Consumer variant (default: poll)")
    parser.add_argument("--properties", type=str, help="Client properties bundle (default: from config)")
    parser.add_argument("--bootstrap-servers", type=str, help="Override bootstrap.servers")
    parser.add_argument("--topic", type=str, help="Kafka topic name (default: from config)")
    parser.add_argument("--group-id", type=str, help="Consumer group for the selected mode")
    parser.add_argument(
        "--offset-reset",
        choices=["earliest", "latest"],
        help="auto.offset.reset when the group has no offsets (default: latest)",
    )
    parser.add_argument("--concurrency", type=int, help="Listener dispatch threads (listener mode)")
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (overrides LOG_LEVEL env var)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        help="Log output format (overrides LOG_FORMAT env var)",
    )

    return parser.parse_args(argv)


def apply_args(config: ConsumerConfig, args: argparse.Namespace) -> ConsumerConfig:
    """Copy command-line overrides onto the configuration."""
    if args.properties:
        config.ccloud_properties_file = args.properties
    if args.bootstrap_servers:
        config.kafka_bootstrap_servers = args.bootstrap_servers
    if args.topic:
        config.kafka_topic_orders = args.topic
    if args.group_id:
        if args.mode == "listener":
            config.listener_group_id = args.group_id
        else:
            config.consumer_group_id = args.group_id
    if args.offset_reset:
        config.consumer_auto_offset_reset = args.offset_reset
    if args.concurrency:
        config.listener_concurrency = args.concurrency
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format
    return config


# ==============================================================================
# MAIN ENTRY POINT
# ==============================================================================


def main(argv=None) -> int:
    """
    Main entry point for orders-consumer.

    Returns:
        Exit code (0 = success, 1 = error)
    """
    args = parse_args(argv)

    try:
        config = apply_args(load_config(), args)
    except Exception as e:
        print(f"ERROR: Failed to load configuration: {e}", file=sys.stderr)
        return 1

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    return run_consumer(config, args.mode)


if __name__ == "__main__":
    sys.exit(main())
