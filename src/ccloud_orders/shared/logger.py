"""
Structured Logging Configuration

Logging for the order producer, the poll-based consumer and the listener
container. Entry points call setup_logger(ROOT_LOGGER_NAME, ...) once; module
loggers (logging.getLogger(__name__)) inherit the handler.

OUTPUT FORMATS:
- json: one JSON object per line, for log aggregation tools
- text: human-readable lines for local development

EXAMPLE OUTPUT (json):
{
  "timestamp": "2025-01-10T14:30:00.123Z",
  "level": "INFO",
  "service": "orders-consumer-listener",
  "logger": "ccloud_orders.consumer.container",
  "thread": "consume-0",
  "correlation_id": "0b7c3c2e-9f43-4c8e-a0f4-3c1b6f0d3f55",
  "message": "Listener raised, continuing",
  "kafka": {"topic": "orders", "partition": 2, "offset": 118},
  "extra": {"listener": "consume"}
}

CORRELATION:
- The order id (which is also the Kafka message key) is the correlation id
- Pass it via extra={"correlation_id": ...} or wrap a logger in CorrelationAdapter

SECRETS:
Values of extra keys naming a password, secret or user info are masked, also
inside nested dicts such as a logged client configuration.
"""

import json
import logging
import sys
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

ROOT_LOGGER_NAME = "ccloud_orders"

# LogRecord attributes that never count as user-supplied extra fields
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "correlation_id", "taskName"}

# Record coordinates grouped under "kafka" in JSON output
KAFKA_FIELDS = ("topic", "partition", "offset")

_SECRET_MARKERS = ("password", "secret", "user.info", "user_info")
MASK = "******"


def redact(value: Any, key: str = "") -> Any:
    """Mask secrets in `value`, descending into dicts."""
    if any(marker in key.lower() for marker in _SECRET_MARKERS):
        return MASK
    if isinstance(value, dict):
        return {k: redact(v, str(k)) for k, v in value.items()}
    return value


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields passed through extra={...}, secrets masked."""
    return {
        key: redact(value, key)
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


# ==============================================================================
# JSON FORMATTER
# ==============================================================================

class JSONFormatter(logging.Formatter):
    """
    Formats each record as a single JSON line.

    Top-level keys: timestamp (UTC, ISO 8601), level, service, logger,
    thread (only off the main thread), correlation_id (when set), message,
    exception (when exc_info was set), kafka (topic/partition/offset when
    present) and extra (remaining extra fields).
    """

    def __init__(self, service_name: str = "ccloud-orders"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.utc_timestamp(record.created),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
        }

        if record.threadName and record.threadName != threading.main_thread().name:
            payload["thread"] = record.threadName

        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id is not None:
            payload["correlation_id"] = correlation_id

        payload["message"] = record.getMessage()

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extras = record_extras(record)
        kafka = {name: extras.pop(name) for name in KAFKA_FIELDS if name in extras}
        if kafka:
            payload["kafka"] = kafka
        if extras:
            payload["extra"] = extras

        return json.dumps(payload, default=str)

    @staticmethod
    def utc_timestamp(created: float) -> str:
        """Millisecond-precision UTC timestamp, e.g. 2025-01-10T14:30:00.123Z."""
        moment = datetime.fromtimestamp(created, tz=timezone.utc)
        return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ==============================================================================
# PLAIN TEXT FORMATTER (for development)
# ==============================================================================

class PlainTextFormatter(logging.Formatter):
    """
    One readable line per record, extra fields appended as key=value.

    Format: [2025-01-10 14:30:00] INFO [orders-producer] Order delivered topic=orders offset=3
    """

    def __init__(self, service_name: str = "ccloud-orders"):
        super().__init__(
            fmt=f"[%(asctime)s] %(levelname)s [{service_name}] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)

        fields = record_extras(record)
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id is not None:
            fields = {"correlation_id": correlation_id, **fields}

        if not fields:
            return line

        suffix = " ".join(f"{key}={value}" for key, value in fields.items())
        head, newline, rest = line.partition("\n")
        return f"{head} {suffix}{newline}{rest}"


# ==============================================================================
# LOGGER SETUP
# ==============================================================================

def setup_logger(
    name: str,
    service_name: str,
    log_level: str = "INFO",
    log_format: str = "json",
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Attach a stdout handler with the chosen formatter to logger `name`.

    Calling it again for a configured logger only updates the level, so
    library code and tests can call it freely.

    Args:
        name: Logger name (ROOT_LOGGER_NAME to configure the whole package)
        service_name: Service identifier (e.g., "orders-producer")
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown -> INFO)
        log_format: "json", anything else selects plain text
        stream: Output stream (default sys.stdout)

    Example:
        >>> logger = setup_logger(ROOT_LOGGER_NAME, "orders-producer", "INFO", "text")
        >>> logger.info("Producer started", extra={"interval_ms": 100})
    """
    logger = logging.getLogger(name)
    level = logging.getLevelName(log_level.upper())
    logger.setLevel(level if isinstance(level, int) else logging.INFO)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(logger.level)
        return logger

    if log_format.lower() == "json":
        formatter: logging.Formatter = JSONFormatter(service_name)
    else:
        formatter = PlainTextFormatter(service_name)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(logger.level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


# ==============================================================================
# CORRELATION ID ADAPTER
# ==============================================================================

class CorrelationAdapter(logging.LoggerAdapter):
    """
    Stamps the adapter's correlation_id on every record it logs.

    Example:
        >>> order_logger = CorrelationAdapter(logger, {"correlation_id": record.key})
        >>> order_logger.debug("Record received", extra={"offset": record.offset})
    """

    def process(self, msg: str, kwargs: dict) -> tuple:
        kwargs["extra"] = {**(kwargs.get("extra") or {}), **self.extra}
        return msg, kwargs
