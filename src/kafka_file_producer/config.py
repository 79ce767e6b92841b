"""Producer configuration via pydantic-settings (.env + env vars)."""

import sys
from pathlib import Path

from loguru import logger
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import AckLevel


class ProducerConfig(BaseSettings):
    """All producer configuration with layered resolution:
    .env file < environment variables < constructor kwargs.

    Frozen: resolved once at startup and shared read-only afterwards.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    # -- Broker --
    kafka_topic: str
    kafka_bootstrap_servers: str
    kafka_acks: AckLevel = AckLevel.ALL
    kafka_client_id: str = "kafkautil.python.producer"
    kafka_retries: int = 0
    kafka_retry_backoff_ms: int = 100
    kafka_max_in_flight: int = 1
    kafka_batch_size_bytes: int = 16_384
    kafka_linger_ms: int = 0
    send_timeout_seconds: float = 30.0

    # -- Security --
    kafka_security_protocol: str = "PLAINTEXT"
    kafka_sasl_mechanism: str | None = None
    kafka_sasl_username: str | None = None
    kafka_sasl_password: str | None = None
    kafka_ssl_cafile: str | None = None

    # -- Directory polling --
    message_location: Path
    delay_millis: int = 1000
    settle_millis: int = 500
    run_once: bool = False
    delete_files: bool = True
    structured_mode: bool = False
    max_poll_cycles: int = 0  # 0 = unlimited

    # -- Logging --
    log_level: str = "INFO"
    log_dir: Path | None = None

    @field_validator("kafka_acks", mode="before")
    @classmethod
    def _normalize_acks(cls, value):
        text = str(value).strip().lower()
        if text == "-1":
            return AckLevel.ALL
        return text

    @field_validator("kafka_bootstrap_servers")
    @classmethod
    def _require_servers(cls, value: str) -> str:
        if not any(s.strip() for s in value.split(",")):
            raise ValueError("at least one bootstrap server is required")
        return value

    @field_validator("delay_millis", "settle_millis", "max_poll_cycles", "kafka_retries")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @property
    def bootstrap_servers(self) -> list[str]:
        """Bootstrap servers as a list of host:port strings."""
        return [s.strip() for s in self.kafka_bootstrap_servers.split(",") if s.strip()]

    @property
    def poll_interval(self) -> float:
        """Seconds to wait between poll cycles."""
        return self.delay_millis / 1000

    @property
    def settle_interval(self) -> float:
        """Seconds between the priming scan and the first real cycle."""
        return self.settle_millis / 1000

    def setup_logging(self) -> None:
        """Configure loguru for the producer."""
        logger.remove()  # Remove default stderr handler

        log_format = (
            "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | "
            "{extra[stage]:<10} | {message}"
        )

        def _default_extra(record):
            record["extra"].setdefault("stage", "")
            return True

        logger.add(
            sys.stderr,
            format=log_format,
            level=self.log_level.upper(),
            filter=_default_extra,
        )

        if self.log_dir is None:
            return

        self.log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(self.log_dir / "producer.log"),
            format=log_format,
            level="DEBUG",
            rotation="10 MB",
            retention="30 days",
            filter=_default_extra,
        )
