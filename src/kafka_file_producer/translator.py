"""Content translator -- turns file bytes into an OutboundRecord.

Default mode sends the whole file as the record value. Structured mode
accepts an optional header section in front of the body:

    key: order-42
    topic: orders.test
    trace-id: abc123

    {"id": 42}

``key`` and ``topic`` are reserved (case-insensitive); any other header
becomes a Kafka record header. The first blank line ends the headers.
"""

from __future__ import annotations

import re

from loguru import logger

from .models import OutboundRecord

log = logger.bind(stage="translate")

_HEADER_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
_SEPARATOR = re.compile(rb"\r?\n\r?\n")


def _parse_header_line(line: str) -> tuple[str, str] | None:
    """Split a 'Name: value' line, or return None if it is malformed."""
    name, sep, value = line.partition(":")
    name = name.strip()
    if not sep or not _HEADER_NAME.match(name):
        return None
    return name, value.strip()


def _split_sections(content: bytes) -> tuple[bytes, bytes] | None:
    """Split content at the first blank line into (header, body)."""
    match = _SEPARATOR.search(content)
    if match is None:
        return None
    return content[: match.start()], content[match.end() :]


def translate(
    content: bytes,
    filename: str,
    default_topic: str,
    structured: bool = False,
) -> OutboundRecord:
    """Convert raw file content into an outbound record.

    Never raises for content problems: anything that cannot be read as a
    header section is sent as-is in default mode.
    """
    record = OutboundRecord(topic=default_topic, value=content)
    if not structured or not content:
        return record

    sections = _split_sections(content)
    if sections is None:
        log.debug(f"{filename}: no header section, sending raw content")
        return record
    header_block, body = sections

    try:
        header_text = header_block.decode("utf-8")
    except UnicodeDecodeError:
        log.debug(f"{filename}: header section is not UTF-8, sending raw content")
        return record

    parsed: list[tuple[str, str]] = []
    malformed: list[str] = []
    for line in header_text.splitlines():
        if not line.strip():
            continue
        header = _parse_header_line(line)
        if header is None:
            malformed.append(line)
        else:
            parsed.append(header)

    if not parsed:
        log.debug(f"{filename}: no valid header lines, sending raw content")
        return record

    if not body:
        log.warning(
            f"{filename}: header section has an empty body, sending raw content"
        )
        return record

    for line in malformed:
        log.warning(f"{filename}: ignoring malformed header line {line!r}")

    record.value = body
    for name, value in parsed:
        lowered = name.lower()
        if lowered == "key":
            record.key = value
        elif lowered == "topic":
            if value:
                record.topic = value
            else:
                log.warning(f"{filename}: empty topic header, using {default_topic}")
        else:
            record.headers.append((name, value.encode("utf-8")))

    log.debug(
        f"{filename}: structured record topic={record.topic} "
        f"key={record.key!r} headers={len(record.headers)}"
    )
    return record
