"""Avro order events on managed Kafka: producer, consumers and topic provisioning."""

__version__ = "1.0.0"
