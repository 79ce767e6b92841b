"""Tests for models.py -- enums, records, result counters."""

from pathlib import Path

from kafka_file_producer.models import (
    AckLevel,
    CycleResult,
    FileCandidate,
    FileSnapshot,
    OutboundRecord,
    PollerState,
)


class TestAckLevel:
    def test_values(self):
        assert AckLevel.NONE == "0"
        assert AckLevel.LEADER == "1"
        assert AckLevel.ALL == "all"

    def test_client_value(self):
        assert AckLevel.NONE.client_value == 0
        assert AckLevel.LEADER.client_value == 1
        assert AckLevel.ALL.client_value == "all"


class TestPollerState:
    def test_all_states(self):
        assert [s.value for s in PollerState] == [
            "idle", "scanning", "processing", "sleeping", "terminated",
        ]


class TestFileSnapshot:
    def test_matches(self):
        snap = FileSnapshot(size=5, mtime_ns=100)
        assert snap.matches(5, 100)
        assert not snap.matches(6, 100)
        assert not snap.matches(5, 101)

    def test_not_published_by_default(self):
        assert FileSnapshot(size=0, mtime_ns=0).published is False


class TestFileCandidate:
    def test_name(self):
        assert FileCandidate(Path("/in/a.txt"), 5, 1).name == "a.txt"


class TestOutboundRecord:
    def test_key_bytes_from_str(self):
        record = OutboundRecord(topic="t", value=b"v", key="k1")
        assert record.key_bytes == b"k1"

    def test_key_bytes_passthrough(self):
        assert OutboundRecord(topic="t", value=b"v", key=b"\x00").key_bytes == b"\x00"
        assert OutboundRecord(topic="t", value=b"v").key_bytes is None

    def test_headers_not_shared(self):
        a = OutboundRecord(topic="t", value=b"")
        b = OutboundRecord(topic="t", value=b"")
        a.headers.append(("h", b"1"))
        assert b.headers == []


class TestCycleResult:
    def test_unpublished(self):
        result = CycleResult(scanned=5, published=2, retryable=1, fatal=1, skipped=1)
        assert result.unpublished == 3
