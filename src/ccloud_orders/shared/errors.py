"""Exceptions raised by the ccloud_orders services."""


class CcloudOrdersError(Exception):
    """Base class for all project errors."""


class ConfigurationError(CcloudOrdersError):
    """The client properties bundle is missing, unreadable or incomplete."""


class TopicProvisioningError(CcloudOrdersError):
    """
    Topic creation failed for a reason other than the topic already existing.

    Attributes:
        topic: Name of the topic that could not be created
    """

    def __init__(self, topic: str, message: str):
        super().__init__(f"Failed to create topic '{topic}': {message}")
        self.topic = topic
