"""Directory poller -- drives the scan -> translate -> publish -> dispose loop."""

from __future__ import annotations

import signal
import threading
from pathlib import Path
from typing import Callable

from loguru import logger

from .config import ProducerConfig
from .errors import BrokerConnectionError, DirectoryUnreadableError, FileReadError
from .models import (
    EXIT_BROKER_UNAVAILABLE,
    EXIT_DIRECTORY_UNREADABLE,
    EXIT_OK,
    EXIT_PUBLISH_FAILED,
    CycleResult,
    FatalFailure,
    FileCandidate,
    FileSnapshot,
    PollerState,
    PublishSuccess,
    RetryableFailure,
)
from .publisher import BrokerClient, KafkaBrokerClient, Publisher
from .scanner import scan, verify_directory
from .translator import translate

log = logger.bind(stage="poller")


class DirectoryPoller:
    """Polls the message directory and publishes each stable file.

    Files are processed one at a time in scan order. A file is deleted (or,
    with deleting disabled, tagged as published) only after the broker
    confirms it; on any failure the file is left in place for the next cycle.

    Attributes:
        config: Resolved producer configuration
        snapshots: path -> last-seen size/mtime, shared with the scanner
        state: Current PollerState
        cycles: Results of every completed scan/process pass
    """

    def __init__(
        self,
        config: ProducerConfig,
        client_factory: Callable[[ProducerConfig], BrokerClient] = KafkaBrokerClient.connect,
    ) -> None:
        self.config = config
        self.client_factory = client_factory
        self.directory = config.message_location.resolve()
        self.snapshots: dict[Path, FileSnapshot] = {}
        self.state = PollerState.IDLE
        self.cycles: list[CycleResult] = []
        self._stop = threading.Event()

    # -- Cancellation --

    def request_stop(self) -> None:
        """Stop after the in-flight publish; wakes the poller if sleeping."""
        if not self._stop.is_set():
            log.info("Stop requested")
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def install_signal_handlers(self) -> None:
        """Route SIGINT/SIGTERM to request_stop (main thread only)."""

        def _handle(signum, frame):
            log.info(f"Received {signal.Signals(signum).name}")
            self.request_stop()

        signal.signal(signal.SIGINT, _handle)
        signal.signal(signal.SIGTERM, _handle)

    # -- Main loop --

    def run(self) -> int:
        """Poll until run-once completes, the cycle limit is hit, or stop.

        Returns the process exit code.
        """
        self.state = PollerState.IDLE
        log.info(f"Polling directory: {self.directory}")
        try:
            self._prime()
            with Publisher(self.config, client_factory=self.client_factory) as publisher:
                return self._loop(publisher)
        except DirectoryUnreadableError as e:
            log.error(str(e))
            return EXIT_DIRECTORY_UNREADABLE
        except BrokerConnectionError as e:
            log.error(str(e))
            return EXIT_BROKER_UNAVAILABLE
        finally:
            self.state = PollerState.TERMINATED
            log.info(f"Poller terminated after {len(self.cycles)} cycle(s)")

    def _prime(self) -> None:
        """Record snapshots for files already present, then let them settle.

        Files found here become eligible on the first real cycle if they
        are unchanged after the settle interval.
        """
        verify_directory(self.directory)
        self.state = PollerState.SCANNING
        scan(self.directory, self.snapshots)
        if self.snapshots:
            log.debug(
                f"Tracking {len(self.snapshots)} existing file(s), "
                f"settling {self.config.settle_millis}ms"
            )
            self._stop.wait(self.config.settle_interval)

    def _loop(self, publisher: Publisher) -> int:
        while not self.stop_requested:
            result = self.run_cycle(publisher)

            if self.config.run_once:
                if result.unpublished:
                    log.warning(
                        f"Run-once finished with {result.unpublished} "
                        f"unpublished file(s)"
                    )
                    return EXIT_PUBLISH_FAILED
                return EXIT_OK

            max_cycles = self.config.max_poll_cycles
            if max_cycles and len(self.cycles) >= max_cycles:
                log.info(f"Reached max poll cycles ({max_cycles})")
                break

            self.state = PollerState.SLEEPING
            self._stop.wait(self.config.poll_interval)
        return EXIT_OK

    def run_cycle(self, publisher: Publisher) -> CycleResult:
        """Run one scan and process every stable candidate in order."""
        self.state = PollerState.SCANNING
        candidates = scan(self.directory, self.snapshots)
        unpublished = sum(1 for s in self.snapshots.values() if not s.published)
        result = CycleResult(
            scanned=len(candidates),
            pending=unpublished - len(candidates),
        )
        self.cycles.append(result)

        if not candidates:
            log.info(
                f"Cycle {len(self.cycles)}: no files ready "
                f"({result.pending} pending)"
            )
            return result

        self.state = PollerState.PROCESSING
        log.info(f"Cycle {len(self.cycles)}: {len(candidates)} file(s) ready")
        for index, candidate in enumerate(candidates):
            if self.stop_requested:
                log.info(
                    f"Leaving {len(candidates) - index} file(s) for the next run"
                )
                break
            self._process(candidate, publisher, result)

        log.info(
            f"Cycle {len(self.cycles)} complete: {result.published} published, "
            f"{result.retryable} retryable, {result.fatal} failed, "
            f"{result.skipped} skipped"
        )
        return result

    # -- Per-file processing --

    def _read(self, candidate: FileCandidate) -> bytes:
        try:
            return candidate.path.read_bytes()
        except OSError as e:
            raise FileReadError(candidate.path, e.strerror or str(e)) from e

    def _process(
        self,
        candidate: FileCandidate,
        publisher: Publisher,
        result: CycleResult,
    ) -> None:
        try:
            content = self._read(candidate)
        except FileReadError as e:
            log.warning(f"{e} -- will retry next cycle")
            result.skipped += 1
            return

        if len(content) != candidate.size:
            # Grew or shrank after the scan: restart the stability check
            log.info(f"{candidate.name} changed since scan, deferring")
            self.snapshots.pop(candidate.path, None)
            result.pending += 1
            return

        record = translate(
            content,
            candidate.name,
            self.config.kafka_topic,
            structured=self.config.structured_mode,
        )
        log.debug(f"Publishing {candidate.name} ({len(record.value)} bytes) to {record.topic}")
        outcome = publisher.publish(record)

        if isinstance(outcome, PublishSuccess):
            result.published += 1
            log.info(
                f"Published {candidate.name} to {record.topic} "
                f"[partition={outcome.partition} offset={outcome.offset}]"
            )
            self._dispose(candidate)
        elif isinstance(outcome, RetryableFailure):
            result.retryable += 1
            log.warning(
                f"Retryable failure for {candidate.name}: {outcome.reason} "
                f"-- file kept for next cycle"
            )
        elif isinstance(outcome, FatalFailure):
            result.fatal += 1
            log.error(f"Publish failed for {candidate.name}: {outcome.reason} -- file kept")

    def _dispose(self, candidate: FileCandidate) -> None:
        if self.config.delete_files:
            try:
                candidate.path.unlink()
            except FileNotFoundError:
                log.debug(f"{candidate.name} already removed")
            except OSError as e:
                log.error(f"Failed to delete {candidate.name}: {e}")
                self._mark_published(candidate)
                return
            self.snapshots.pop(candidate.path, None)
            log.info(f"Deleted {candidate.name}")
            return

        self._mark_published(candidate)
        log.info(f"Kept {candidate.name} (deleting disabled)")

    def _mark_published(self, candidate: FileCandidate) -> None:
        snapshot = self.snapshots.get(candidate.path)
        if snapshot is None:
            snapshot = FileSnapshot(size=candidate.size, mtime_ns=candidate.mtime_ns)
            self.snapshots[candidate.path] = snapshot
        snapshot.published = True
