"""Directory scanner -- lists files and debounces ones still being written."""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger

from .errors import DirectoryUnreadableError
from .models import FileCandidate, FileSnapshot

log = logger.bind(stage="scanner")


def verify_directory(directory: Path) -> None:
    """Raise DirectoryUnreadableError unless directory is an existing directory."""
    if not directory.exists():
        raise DirectoryUnreadableError(directory, "does not exist")
    if not directory.is_dir():
        raise DirectoryUnreadableError(directory, "not a directory")


def _list_files(directory: Path) -> list[tuple[Path, os.stat_result]]:
    """Return (path, stat) for regular files directly inside directory.

    Subdirectories and symlinks are skipped. Paths are the entries inside
    directory, never a link target. Entries whose stat fails are skipped
    with a warning.
    """
    verify_directory(directory)
    directory = directory.resolve()
    try:
        entries = list(os.scandir(directory))
    except OSError as e:
        raise DirectoryUnreadableError(directory, e.strerror or str(e)) from e

    files: list[tuple[Path, os.stat_result]] = []
    for entry in entries:
        try:
            if not entry.is_file(follow_symlinks=False):
                continue
            files.append((directory / entry.name, entry.stat(follow_symlinks=False)))
        except OSError as e:
            log.warning(f"Skipping unreadable entry {entry.name}: {e}")
    return files


def scan(directory: Path, snapshots: dict[Path, FileSnapshot]) -> list[FileCandidate]:
    """Return files in directory that are stable and not yet published.

    A file is stable when its size and mtime match the snapshot recorded
    for the same path on the previous call. New or changed files are
    recorded in snapshots and reported on a later call. A changed file
    loses its published tag. Snapshots for paths that disappeared are
    pruned. Candidates are sorted by file name.
    """
    files = _list_files(directory)
    seen: set[Path] = set()
    candidates: list[FileCandidate] = []
    pending = 0

    for path, st in files:
        seen.add(path)
        previous = snapshots.get(path)
        if previous is not None and previous.matches(st.st_size, st.st_mtime_ns):
            if previous.published:
                continue
            candidates.append(FileCandidate(path, st.st_size, st.st_mtime_ns))
            continue

        if previous is not None:
            log.debug(
                f"{path.name} changed: size {previous.size} -> {st.st_size}"
            )
        snapshots[path] = FileSnapshot(size=st.st_size, mtime_ns=st.st_mtime_ns)
        pending += 1

    for gone in set(snapshots) - seen:
        del snapshots[gone]
        log.debug(f"Stopped tracking {gone.name} (no longer present)")

    candidates.sort(key=lambda c: c.name)
    log.debug(
        f"Scanned {directory}: {len(files)} files, "
        f"{len(candidates)} stable, {pending} pending"
    )
    return candidates
