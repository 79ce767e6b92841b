"""Exception hierarchy and error categorization for the file producer."""

from kafka.errors import (
    ClusterAuthorizationFailedError,
    InvalidTopicError,
    KafkaConnectionError,
    KafkaError,
    KafkaTimeoutError,
    MessageSizeTooLargeError,
    NoBrokersAvailable,
    RecordListTooLargeError,
    TopicAuthorizationFailedError,
    UnknownTopicOrPartitionError,
)

from .models import ErrorCategory

# Kafka errors that will not succeed on a later attempt, even where
# kafka-python flags them as retriable (unknown topic with auto-create off).
PERMANENT_KAFKA_ERRORS: tuple[type[KafkaError], ...] = (
    ClusterAuthorizationFailedError,
    InvalidTopicError,
    MessageSizeTooLargeError,
    RecordListTooLargeError,
    TopicAuthorizationFailedError,
    UnknownTopicOrPartitionError,
)


class ProducerError(Exception):
    """Base exception for all producer errors."""


class ConfigError(ProducerError):
    """Invalid or missing configuration."""


class DirectoryUnreadableError(ProducerError):
    """The watched directory is missing, not a directory, or unreadable."""

    def __init__(self, directory, reason: str) -> None:
        super().__init__(f"Cannot read directory {directory}: {reason}")
        self.directory = directory
        self.reason = reason


class FileReadError(ProducerError):
    """A single candidate file could not be read."""

    def __init__(self, path, reason: str) -> None:
        super().__init__(f"Cannot read file {path}: {reason}")
        self.path = path
        self.reason = reason


class BrokerConnectionError(ProducerError):
    """The initial connection to the broker could not be established."""

    def __init__(self, bootstrap_servers: list[str], reason: str) -> None:
        servers = ",".join(bootstrap_servers)
        super().__init__(f"Cannot connect to brokers {servers}: {reason}")
        self.bootstrap_servers = bootstrap_servers
        self.reason = reason


def categorize_kafka_error(exc: BaseException) -> ErrorCategory:
    """Map a publish exception to an error category.

    Explicitly permanent Kafka errors and anything that is not a KafkaError
    (serialization bugs, bad arguments) are PERMANENT. Remaining Kafka errors
    are TRANSIENT when kafka-python marks them retriable or they are
    timeouts/connection errors; everything else is PERMANENT.
    """
    if isinstance(exc, PERMANENT_KAFKA_ERRORS):
        return ErrorCategory.PERMANENT
    if not isinstance(exc, KafkaError):
        return ErrorCategory.PERMANENT
    if isinstance(exc, KafkaTimeoutError) or is_connection_error(exc):
        return ErrorCategory.TRANSIENT
    if getattr(exc, "retriable", False):
        return ErrorCategory.TRANSIENT
    return ErrorCategory.PERMANENT


def is_connection_error(exc: BaseException) -> bool:
    """True when the exception means the broker connection is gone."""
    return isinstance(exc, (KafkaConnectionError, NoBrokersAvailable))
