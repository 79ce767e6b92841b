"""Shared fixtures: isolated config environment and a fake broker client."""

from pathlib import Path

import pytest

from kafka_file_producer.config import ProducerConfig
from kafka_file_producer.models import OutboundRecord

# Env vars that pydantic-settings reads -- cleaned so tests see defaults
_CONFIG_ENV_VARS = [
    "KAFKA_TOPIC", "KAFKA_BOOTSTRAP_SERVERS", "KAFKA_ACKS", "KAFKA_CLIENT_ID",
    "KAFKA_RETRIES", "KAFKA_RETRY_BACKOFF_MS", "KAFKA_MAX_IN_FLIGHT",
    "KAFKA_BATCH_SIZE_BYTES", "KAFKA_LINGER_MS", "KAFKA_SECURITY_PROTOCOL",
    "KAFKA_SASL_MECHANISM", "KAFKA_SASL_USERNAME", "KAFKA_SASL_PASSWORD",
    "KAFKA_SSL_CAFILE", "SEND_TIMEOUT_SECONDS", "MESSAGE_LOCATION",
    "DELAY_MILLIS", "SETTLE_MILLIS", "RUN_ONCE", "DELETE_FILES",
    "STRUCTURED_MODE", "MAX_POLL_CYCLES", "LOG_LEVEL", "LOG_DIR",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    """Remove producer env vars and run from an empty cwd (no stray .env)."""
    for var in _CONFIG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    monkeypatch.chdir(cwd)


@pytest.fixture
def message_dir(tmp_path) -> Path:
    d = tmp_path / "messages"
    d.mkdir()
    return d


@pytest.fixture
def make_config(message_dir):
    """Build a ProducerConfig for fast tests: run-once, no settle delay."""

    def _make(**overrides) -> ProducerConfig:
        kwargs = {
            "kafka_topic": "test-topic",
            "kafka_bootstrap_servers": "localhost:9092",
            "message_location": message_dir,
            "settle_millis": 0,
            "delay_millis": 0,
            "run_once": True,
        }
        kwargs.update(overrides)
        return ProducerConfig(_env_file=None, **kwargs)

    return _make


class FakeBrokerClient:
    """In-memory BrokerClient that records sends.

    ``errors`` is consumed one entry per send: an exception instance is
    raised, None means success.
    """

    def __init__(self, errors=None, on_send=None, flush_error=None) -> None:
        self.errors = list(errors or [])
        self.on_send = on_send
        self.flush_error = flush_error
        self.sent: list[OutboundRecord] = []
        self.attempts = 0
        self.flushed = 0
        self.closed = 0
        self.events: list[str] = []

    def send(self, record: OutboundRecord, timeout: float) -> tuple[int, int]:
        self.attempts += 1
        if self.on_send is not None:
            self.on_send(record)
        error = self.errors.pop(0) if self.errors else None
        if error is not None:
            raise error
        self.sent.append(record)
        return 0, len(self.sent) - 1

    def flush(self, timeout=None) -> None:
        self.flushed += 1
        self.events.append("flush")
        if self.flush_error is not None:
            raise self.flush_error

    def close(self, timeout=None) -> None:
        self.closed += 1
        self.events.append("close")


class FakeClientFactory:
    """Client factory that hands out FakeBrokerClients and counts connects.

    ``connect_errors`` is consumed one entry per connect, like
    FakeBrokerClient.errors.
    """

    def __init__(self, client: FakeBrokerClient | None = None, connect_errors=None) -> None:
        self.client = client or FakeBrokerClient()
        self.connect_errors = list(connect_errors or [])
        self.connects = 0

    def __call__(self, config) -> FakeBrokerClient:
        self.connects += 1
        error = self.connect_errors.pop(0) if self.connect_errors else None
        if error is not None:
            raise error
        return self.client


@pytest.fixture
def fake_factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def make_factory():
    """Build a FakeClientFactory whose client fails with the given errors."""

    def _make(
        errors=None, connect_errors=None, on_send=None, flush_error=None
    ) -> FakeClientFactory:
        client = FakeBrokerClient(errors=errors, on_send=on_send, flush_error=flush_error)
        return FakeClientFactory(client, connect_errors=connect_errors)

    return _make
