"""Publisher -- sends records to Kafka and classifies the broker response.

The broker client is a capability (``BrokerClient``) created by a factory,
so the Publisher can run against kafka-python in production and against an
in-memory fake in tests.
"""

from __future__ import annotations

from typing import Callable, Protocol

from kafka import KafkaProducer
from kafka.errors import KafkaError
from loguru import logger

from .config import ProducerConfig
from .errors import BrokerConnectionError, categorize_kafka_error, is_connection_error
from .models import (
    ErrorCategory,
    FatalFailure,
    OutboundRecord,
    PublishOutcome,
    PublishSuccess,
    RetryableFailure,
)

log = logger.bind(stage="publisher")


class BrokerClient(Protocol):
    """Connected producer capability."""

    def send(self, record: OutboundRecord, timeout: float) -> tuple[int, int]:
        """Send one record and block until acknowledged.

        Returns (partition, offset). Raises on failure.
        """
        ...

    def flush(self, timeout: float | None = None) -> None: ...

    def close(self, timeout: float | None = None) -> None: ...


class KafkaBrokerClient:
    """BrokerClient backed by a kafka-python KafkaProducer."""

    def __init__(self, producer: KafkaProducer) -> None:
        self.producer = producer

    @classmethod
    def connect(cls, config: ProducerConfig) -> KafkaBrokerClient:
        """Create a KafkaProducer from config.

        KafkaProducer probes the cluster on construction, so an unreachable
        broker raises NoBrokersAvailable here.
        """
        kwargs = {
            "bootstrap_servers": config.bootstrap_servers,
            "client_id": config.kafka_client_id,
            "acks": config.kafka_acks.client_value,
            "retries": config.kafka_retries,
            "retry_backoff_ms": config.kafka_retry_backoff_ms,
            "max_in_flight_requests_per_connection": config.kafka_max_in_flight,
            "batch_size": config.kafka_batch_size_bytes,
            "linger_ms": config.kafka_linger_ms,
            "security_protocol": config.kafka_security_protocol,
        }
        if config.kafka_sasl_mechanism:
            kwargs["sasl_mechanism"] = config.kafka_sasl_mechanism
            kwargs["sasl_plain_username"] = config.kafka_sasl_username
            kwargs["sasl_plain_password"] = config.kafka_sasl_password
        if config.kafka_ssl_cafile:
            kwargs["ssl_cafile"] = config.kafka_ssl_cafile
        return cls(KafkaProducer(**kwargs))

    def send(self, record: OutboundRecord, timeout: float) -> tuple[int, int]:
        future = self.producer.send(
            record.topic,
            value=record.value,
            key=record.key_bytes,
            headers=record.headers or None,
        )
        metadata = future.get(timeout=timeout)
        return metadata.partition, metadata.offset

    def flush(self, timeout: float | None = None) -> None:
        self.producer.flush(timeout=timeout)

    def close(self, timeout: float | None = None) -> None:
        self.producer.close(timeout=timeout)


class Publisher:
    """Publishes records over a single lazily-opened broker connection.

    Use as a context manager so buffered sends are flushed and the
    connection closed on every exit path. The Publisher never retries;
    the caller decides what to do with a RetryableFailure.
    """

    def __init__(
        self,
        config: ProducerConfig,
        client_factory: Callable[[ProducerConfig], BrokerClient] = KafkaBrokerClient.connect,
    ) -> None:
        self.config = config
        self.client_factory = client_factory
        self._client: BrokerClient | None = None
        self._ever_connected = False

    @property
    def connected(self) -> bool:
        return self._client is not None

    def _ensure_client(self) -> BrokerClient:
        if self._client is not None:
            return self._client

        servers = self.config.bootstrap_servers
        log.debug(f"Connecting to {','.join(servers)}")
        try:
            self._client = self.client_factory(self.config)
        except (KafkaError, OSError) as e:
            if not self._ever_connected:
                raise BrokerConnectionError(servers, str(e) or type(e).__name__) from e
            raise
        if self._ever_connected:
            log.info(f"Reconnected to {','.join(servers)}")
        else:
            log.info(
                f"Connected to {','.join(servers)} "
                f"(acks={self.config.kafka_acks.value})"
            )
        self._ever_connected = True
        return self._client

    def publish(self, record: OutboundRecord) -> PublishOutcome:
        """Send record and wait for the configured acknowledgment.

        Raises BrokerConnectionError only when no connection has ever been
        established. A lost connection drops the client and returns
        RetryableFailure; the next call reconnects.
        """
        try:
            client = self._ensure_client()
        except (KafkaError, OSError) as e:
            return RetryableFailure(f"reconnect failed: {_describe(e)}")

        try:
            partition, offset = client.send(record, self.config.send_timeout_seconds)
        except Exception as e:
            reason = _describe(e)
            if is_connection_error(e):
                log.warning(f"Connection lost while sending to {record.topic}: {reason}")
                self._drop_client()
                return RetryableFailure(reason)
            if categorize_kafka_error(e) == ErrorCategory.TRANSIENT:
                return RetryableFailure(reason)
            return FatalFailure(reason)

        return PublishSuccess(partition=partition, offset=offset)

    def _drop_client(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            client.close(timeout=0)
        except Exception as e:
            log.debug(f"Ignoring error closing dropped connection: {e}")

    def close(self) -> None:
        """Flush in-flight sends and release the connection.

        A broker error during flush is logged, not raised. Every send was
        already acknowledged or reported by publish().
        """
        client, self._client = self._client, None
        if client is None:
            return
        timeout = self.config.send_timeout_seconds
        try:
            client.flush(timeout=timeout)
        except KafkaError as e:
            log.error(f"Flush failed while closing broker connection: {_describe(e)}")
        finally:
            client.close(timeout=timeout)
        log.info("Broker connection closed")

    def __enter__(self) -> Publisher:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _describe(exc: BaseException) -> str:
    text = str(exc)
    name = type(exc).__name__
    return f"{name}: {text}" if text else name
