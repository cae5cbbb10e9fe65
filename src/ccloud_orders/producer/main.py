"""
Order Producer Service - Main Entry Point

Generates an order with a fresh UUID key on a fixed cadence and publishes it.

WHAT THIS SERVICE DOES:
1. Loads the client properties bundle and environment settings
2. Ensures the orders topic exists
3. Every PRODUCER_INTERVAL_MS: creates an order and publishes it asynchronously
4. Prints a line for each order the brokers acknowledge
5. On SIGINT/SIGTERM (or when PRODUCER_DURATION elapses): flushes and exits

USAGE:
    orders-producer --properties ~/.ccloud/ccloud.properties
    orders-producer --interval-ms 1000 --duration 60
    python -m ccloud_orders.producer.main --log-format text
"""

import argparse
import signal
import sys
import threading
import time
from typing import Optional

from ccloud_orders.producer.config import ProducerConfig, load_config
from ccloud_orders.producer.producer import OrderProducer
from ccloud_orders.shared.errors import CcloudOrdersError
from ccloud_orders.shared.logger import ROOT_LOGGER_NAME, setup_logger
from ccloud_orders.shared.topics import ensure_topic

# ==============================================================================
# SHUTDOWN SIGNALLING
# ==============================================================================
# Set by the signal handler; the production loop waits on it between orders,
# so a signal also cuts the current pause short.

shutdown_event = threading.Event()


def signal_handler(signum, frame):
    """Request shutdown on SIGINT (Ctrl+C) or SIGTERM."""
    shutdown_event.set()


# ==============================================================================
# PRODUCTION LOOP
# ==============================================================================


def publish_order(producer: OrderProducer) -> None:
    """
    Send one new order.

    A full local queue is drained by serving delivery reports, then the send is
    retried once; a second BufferError propagates to the caller.
    """
    try:
        producer.send_new_order()
    except BufferError:
        producer.producer.poll(1.0)
        producer.send_new_order()


def run_producer(config: ProducerConfig, producer: Optional[OrderProducer] = None) -> int:
    """
    Publish orders until shutdown is requested or the duration elapses.

    Args:
        config: Producer configuration
        producer: Already constructed producer (built from config when None)

    Returns:
        Exit code (0 = every order was handed to the client, 1 = an order
        could not be published even after draining the local queue)
    """
    logger = setup_logger(
        name=ROOT_LOGGER_NAME,
        service_name="orders-producer",
        log_level=config.log_level,
        log_format=config.log_format,
    )

    if producer is None:
        try:
            properties = config.load_properties()
            ensure_topic(config, properties)
            producer = OrderProducer(config, properties)
        except CcloudOrdersError as e:
            logger.error("Producer startup failed", extra={"error": str(e)})
            return 1
        except Exception:
            logger.error("Failed to initialize Kafka producer", exc_info=True)
            return 1

    pause = config.producer_interval_ms / 1000.0
    started = time.monotonic()
    deadline = started + config.producer_duration if config.producer_duration else None

    logger.info(
        "Producing orders",
        extra={
            "topic": config.kafka_topic_orders,
            "interval_ms": config.producer_interval_ms,
            "duration": config.producer_duration or "until stopped",
        },
    )

    produced = 0
    errors = 0

    try:
        while not shutdown_event.is_set():
            if deadline is not None and time.monotonic() >= deadline:
                logger.info("Run duration reached", extra={"orders_produced": produced})
                break

            try:
                publish_order(producer)
                produced += 1
            except Exception:
                errors += 1
                logger.error("Failed to publish order", exc_info=True)

            shutdown_event.wait(pause)

    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")

    finally:
        logger.info(
            "Stopping producer",
            extra={
                "orders_produced": produced,
                "errors": errors,
                "elapsed_seconds": round(time.monotonic() - started, 2),
            },
        )
        try:
            producer.close(timeout=config.producer_flush_timeout)
        except Exception:
            logger.error("Error closing producer", exc_info=True)

    return 1 if errors else 0


# ==============================================================================
# CLI
# ==============================================================================


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments (override environment variables)."""
    parser = argparse.ArgumentParser(
        description="Order Producer - publish Avro order events to Kafka",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Settings from the environment / .env
  orders-producer

  # One order per second for a minute
  orders-producer --interval-ms 1000 --duration 60

  # Explicit properties bundle, text logs
  orders-producer --properties ./ccloud.properties --log-format text
        """,
    )

    parser.add_argument("--properties", type=str, help="Client properties bundle (CCLOUD_PROPERTIES_FILE)")
    parser.add_argument("--bootstrap-servers", type=str, help="Override bootstrap.servers")
    parser.add_argument("--topic", type=str, help="Topic to publish to (KAFKA_TOPIC_ORDERS)")
    parser.add_argument("--interval-ms", type=int, help="Pause between orders (PRODUCER_INTERVAL_MS)")
    parser.add_argument("--duration", type=int, help="Seconds to run, 0 = until stopped (PRODUCER_DURATION)")
    parser.add_argument("--client-id", type=str, help="client.id (PRODUCER_CLIENT_ID)")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (LOG_LEVEL)",
    )
    parser.add_argument("--log-format", choices=["json", "text"], help="Log output format (LOG_FORMAT)")

    return parser.parse_args(argv)


def apply_args(config: ProducerConfig, args: argparse.Namespace) -> ProducerConfig:
    """Copy command-line overrides onto the configuration."""
    overrides = {
        "ccloud_properties_file": args.properties,
        "kafka_bootstrap_servers": args.bootstrap_servers,
        "kafka_topic_orders": args.topic,
        "producer_interval_ms": args.interval_ms,
        "producer_duration": args.duration,
        "producer_client_id": args.client_id,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for field, value in overrides.items():
        if value is not None:
            setattr(config, field, value)
    return config


def main(argv=None) -> int:
    """Entry point for orders-producer."""
    args = parse_args(argv)

    try:
        config = apply_args(load_config(), args)
    except Exception as e:
        print(f"ERROR: Failed to load configuration: {e}", file=sys.stderr)
        return 1

    print(config.display_config())

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    return run_producer(config)


if __name__ == "__main__":
    sys.exit(main())
