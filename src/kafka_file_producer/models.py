"""Core enums, constants, and record types for the file producer.

Enums:
    AckLevel       -- Broker acknowledgment level (none, leader, all replicas).
    PollerState    -- Orchestrator state (idle, scanning, processing, sleeping,
                      terminated).
    ErrorCategory  -- Error classification for retry logic (transient, permanent).

Records:
    FileSnapshot    -- Last-seen size/mtime for a path plus a "published" tag.
    FileCandidate   -- A stable file handed to the translator.
    OutboundRecord  -- Translated unit sent to the broker.
    PublishSuccess / RetryableFailure / FatalFailure -- publish outcomes.
    CycleResult     -- Counters for one scan/process pass.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path


class AckLevel(StrEnum):
    NONE = "0"
    LEADER = "1"
    ALL = "all"

    @property
    def client_value(self) -> int | str:
        """Value in the form kafka-python expects for ``acks``."""
        if self is AckLevel.ALL:
            return "all"
        return int(self.value)


class PollerState(StrEnum):
    IDLE = "idle"
    SCANNING = "scanning"
    PROCESSING = "processing"
    SLEEPING = "sleeping"
    TERMINATED = "terminated"


class ErrorCategory(StrEnum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"


# Process exit codes
EXIT_OK = 0
EXIT_PUBLISH_FAILED = 1
EXIT_DIRECTORY_UNREADABLE = 2
EXIT_BROKER_UNAVAILABLE = 3


@dataclass
class FileSnapshot:
    size: int
    mtime_ns: int
    published: bool = False

    def matches(self, size: int, mtime_ns: int) -> bool:
        return self.size == size and self.mtime_ns == mtime_ns


@dataclass(frozen=True)
class FileCandidate:
    """A file that was unchanged across two consecutive scans."""

    path: Path
    size: int
    mtime_ns: int

    @property
    def name(self) -> str:
        return self.path.name


@dataclass
class OutboundRecord:
    topic: str
    value: bytes
    key: str | bytes | None = None
    headers: list[tuple[str, bytes]] = field(default_factory=list)

    @property
    def key_bytes(self) -> bytes | None:
        if self.key is None or isinstance(self.key, bytes):
            return self.key
        return self.key.encode("utf-8")


@dataclass(frozen=True)
class PublishSuccess:
    partition: int
    offset: int


@dataclass(frozen=True)
class RetryableFailure:
    reason: str


@dataclass(frozen=True)
class FatalFailure:
    reason: str


PublishOutcome = PublishSuccess | RetryableFailure | FatalFailure


@dataclass
class CycleResult:
    """Result summary for one scan/process pass."""

    scanned: int = 0
    published: int = 0
    retryable: int = 0
    fatal: int = 0
    skipped: int = 0
    pending: int = 0

    @property
    def unpublished(self) -> int:
        """Candidates that ended the pass without a successful publish."""
        return self.retryable + self.fatal + self.skipped
