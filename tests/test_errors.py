"""Tests for errors.py -- exception hierarchy and Kafka error categorization."""

import pytest
from kafka.errors import (
    KafkaConnectionError,
    KafkaError,
    KafkaTimeoutError,
    LeaderNotAvailableError,
    MessageSizeTooLargeError,
    NoBrokersAvailable,
    NotEnoughReplicasError,
    TopicAuthorizationFailedError,
    UnknownTopicOrPartitionError,
)

from kafka_file_producer.errors import (
    BrokerConnectionError,
    ConfigError,
    DirectoryUnreadableError,
    FileReadError,
    ProducerError,
    categorize_kafka_error,
    is_connection_error,
)
from kafka_file_producer.models import ErrorCategory


class TestExceptionHierarchy:
    def test_all_inherit_from_producer_error(self):
        assert issubclass(ConfigError, ProducerError)
        assert issubclass(DirectoryUnreadableError, ProducerError)
        assert issubclass(FileReadError, ProducerError)
        assert issubclass(BrokerConnectionError, ProducerError)

    def test_producer_error_is_exception(self):
        assert issubclass(ProducerError, Exception)


class TestAttributes:
    def test_directory_unreadable(self):
        err = DirectoryUnreadableError("/data/in", "does not exist")
        assert err.directory == "/data/in"
        assert err.reason == "does not exist"
        assert "/data/in" in str(err)

    def test_broker_connection(self):
        err = BrokerConnectionError(["a:1", "b:2"], "NoBrokersAvailable")
        assert err.bootstrap_servers == ["a:1", "b:2"]
        assert "a:1,b:2" in str(err)


class TestCategorizeKafkaError:
    @pytest.mark.parametrize(
        "exc",
        [
            KafkaTimeoutError("timed out"),
            KafkaConnectionError("reset"),
            NoBrokersAvailable(),
            NotEnoughReplicasError(),
            LeaderNotAvailableError(),
        ],
    )
    def test_transient(self, exc):
        assert categorize_kafka_error(exc) == ErrorCategory.TRANSIENT

    @pytest.mark.parametrize(
        "exc",
        [
            UnknownTopicOrPartitionError(),
            MessageSizeTooLargeError("too big"),
            TopicAuthorizationFailedError(),
            KafkaError("generic"),
            ValueError("bad key type"),
        ],
    )
    def test_permanent(self, exc):
        assert categorize_kafka_error(exc) == ErrorCategory.PERMANENT


class TestIsConnectionError:
    def test_connection_errors(self):
        assert is_connection_error(KafkaConnectionError())
        assert is_connection_error(NoBrokersAvailable())

    def test_timeout_is_not_connection_loss(self):
        assert not is_connection_error(KafkaTimeoutError())
