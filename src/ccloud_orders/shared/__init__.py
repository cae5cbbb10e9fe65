"""
Shared building blocks for the order services.

- properties.py: client properties bundle loading and translation
- config.py: environment-driven settings common to every service
- models.py: the Order event
- serde.py: UTF-8 key / Avro value (de)serialization via Schema Registry
- topics.py: idempotent topic provisioning
- logger.py: structured logging
- errors.py: exception hierarchy
"""
