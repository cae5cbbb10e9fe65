"""
Client Properties Bundle

Loads the cluster connection bundle (the `ccloud.properties` file downloaded
from the managed Kafka console) and translates it for the Python clients.

The file uses Java `.properties` syntax and Java client key names, while
confluent-kafka speaks librdkafka configuration. This module bridges the two:

    Java properties                              confluent-kafka
    -------------------------------------------  ------------------------------
    sasl.jaas.config=...PlainLoginModule         sasl.username / sasl.password
        required username="K" password="S";
    sasl.mechanism=PLAIN                         sasl.mechanisms=PLAIN
    schema.registry.url=https://...              SchemaRegistryClient "url"
    schema.registry.basic.auth.user.info=K:S     SchemaRegistryClient
                                                     "basic.auth.user.info"
    basic.auth.credentials.source=USER_INFO      (dropped, Java-only)

Everything else (bootstrap.servers, security.protocol, session.timeout.ms, ...)
is passed through unchanged.
"""

import logging
import re
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union

from ccloud_orders.shared.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Template shipped inside the package (resources/ccloud.properties)
BUNDLED_PROPERTIES = "ccloud.properties"

SCHEMA_REGISTRY_PREFIX = "schema.registry."

# Java client key -> librdkafka key
RENAMED_KEYS = {
    "sasl.mechanism": "sasl.mechanisms",
}

# Keys that only mean something to the Java clients
JAVA_ONLY_KEYS = frozenset({
    "basic.auth.credentials.source",
    "basic.auth.user.info",
    "client.dns.lookup",
    "key.serializer",
    "value.serializer",
    "key.deserializer",
    "value.deserializer",
})

JAAS_CREDENTIAL = re.compile(r'\b(username|password)\s*=\s*"([^"]*)"')

# Values left as they appear in the downloadable template, e.g. <API_KEY>
PLACEHOLDER = re.compile(r"<[A-Z0-9_]+>")


# ==============================================================================
# .properties PARSER
# ==============================================================================

def _is_continued(line: str) -> bool:
    """A line continues when it ends with an odd number of backslashes."""
    trailing = len(line) - len(line.rstrip("\\"))
    return trailing % 2 == 1


def _split_entry(line: str) -> Tuple[str, str]:
    """Split a logical line into key and value on the first '=', ':' or blank."""
    match = re.match(r"^([^=:\s]+)\s*[=:]\s*(.*)$", line)
    if match:
        return match.group(1), match.group(2).strip()

    parts = line.split(None, 1)
    return parts[0], parts[1].strip() if len(parts) > 1 else ""


def parse_properties(text: str) -> Dict[str, str]:
    """
    Parse Java `.properties` text into a dict.

    Supports `key=value`, `key: value` and `key value` entries, `#` and `!`
    comment lines, and backslash line continuation. Later duplicates win.

    Args:
        text: Contents of a properties file

    Returns:
        Mapping of property keys to string values

    Example:
        >>> parse_properties("# cluster\\nbootstrap.servers=broker:9092\\n")
        {'bootstrap.servers': 'broker:9092'}
    """
    entries: Dict[str, str] = {}
    pending = ""

    for raw_line in text.splitlines():
        line = raw_line.strip()

        if not pending and (not line or line[0] in "#!"):
            continue

        if _is_continued(line):
            pending += line[:-1]
            continue

        key, value = _split_entry(pending + line)
        entries[key] = value
        pending = ""

    if pending:
        key, value = _split_entry(pending)
        entries[key] = value

    return entries


# ==============================================================================
# PROPERTIES BUNDLE
# ==============================================================================

class CloudProperties(Mapping[str, str]):
    """
    Parsed connection bundle with translations for the Python clients.

    Attributes:
        entries: Raw key/value pairs as written in the file
        source: Where the entries came from (path or "<bundled>")
    """

    def __init__(self, entries: Dict[str, str], source: str = "<memory>"):
        self.entries = dict(entries)
        self.source = source

    def __getitem__(self, key: str) -> str:
        return self.entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"CloudProperties(source={self.source!r}, keys={sorted(self.entries)!r})"

    # --------------------------------------------------------------------------
    # Loading
    # --------------------------------------------------------------------------

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "CloudProperties":
        """
        Load a properties bundle from disk.

        Raises:
            ConfigurationError: If the file cannot be read
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read properties file {path}: {e}") from e

        return cls(parse_properties(text), source=str(path))

    @classmethod
    def bundled(cls) -> "CloudProperties":
        """Load the template shipped in ccloud_orders/resources."""
        resource = resources.files("ccloud_orders") / "resources" / BUNDLED_PROPERTIES
        text = resource.read_text(encoding="utf-8")
        return cls(parse_properties(text), source="<bundled>")

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "CloudProperties":
        """
        Load the bundle from `path`, or the bundled template when no path is given.

        Raises:
            ConfigurationError: If the file is unreadable or still holds
                template placeholders such as <API_KEY>
        """
        properties = cls.from_file(path) if path else cls.bundled()
        properties.check_placeholders()

        logger.debug(
            "Loaded client properties",
            extra={"source": properties.source, "keys": sorted(properties.entries)},
        )
        return properties

    def check_placeholders(self) -> None:
        """Raise ConfigurationError if any value still holds a template placeholder."""
        unresolved = sorted(k for k, v in self.entries.items() if PLACEHOLDER.search(v))
        if unresolved:
            raise ConfigurationError(
                f"Properties from {self.source} still contain placeholders for "
                f"{unresolved}; point CCLOUD_PROPERTIES_FILE at your cluster's bundle"
            )

    # --------------------------------------------------------------------------
    # Translation
    # --------------------------------------------------------------------------

    def kafka_config(self) -> Dict[str, Any]:
        """
        Client configuration for confluent_kafka Producer/Consumer/AdminClient.

        Schema registry keys and Java-only keys are dropped; the JAAS login line
        is expanded into sasl.username / sasl.password.

        Raises:
            ConfigurationError: If sasl.jaas.config has no username/password
        """
        config: Dict[str, Any] = {}

        for key, value in self.entries.items():
            if key.startswith(SCHEMA_REGISTRY_PREFIX) or key in JAVA_ONLY_KEYS:
                continue

            if key == "sasl.jaas.config":
                config.update(self._jaas_credentials(value))
                continue

            config[RENAMED_KEYS.get(key, key)] = value

        return config

    def schema_registry_config(self) -> Dict[str, str]:
        """
        Configuration dict for confluent_kafka.schema_registry.SchemaRegistryClient.

        Raises:
            ConfigurationError: If schema.registry.url is missing
        """
        url = self.entries.get("schema.registry.url")
        if not url:
            raise ConfigurationError(f"schema.registry.url is not set in {self.source}")

        config = {"url": url}

        user_info = (
            self.entries.get("schema.registry.basic.auth.user.info")
            or self.entries.get("basic.auth.user.info")
        )
        if user_info:
            config["basic.auth.user.info"] = user_info

        return config

    def _jaas_credentials(self, jaas_config: str) -> Dict[str, str]:
        credentials = dict(JAAS_CREDENTIAL.findall(jaas_config))

        missing = {"username", "password"} - credentials.keys()
        if missing:
            raise ConfigurationError(
                f"sasl.jaas.config in {self.source} is missing {sorted(missing)}"
            )

        return {
            "sasl.username": credentials["username"],
            "sasl.password": credentials["password"],
        }
