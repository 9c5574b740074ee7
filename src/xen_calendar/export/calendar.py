"""iCalendar (RFC 5545) export of maturity events."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..config.settings import CalendarConfig, get_app_config
from ..models.schemas import MaturityEvent
from ..monitoring.logger import get_logger
from ..utils.constants import utc_now

logger = get_logger(__name__)

_LINE_LIMIT = 75
_WHITESPACE_RE = re.compile(r"\s+")


def format_ics_timestamp(moment: datetime) -> str:
    """Render ``moment`` as ``YYYYMMDDTHHMMSSZ`` in UTC."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def fold_line(line: str) -> str:
    """Split a content line into 75-octet chunks joined by CRLF + space."""

    encoded = line.encode("utf-8")
    if len(encoded) <= _LINE_LIMIT:
        return line
    chunks: List[str] = []
    current = ""
    limit = _LINE_LIMIT
    for char in line:
        if len((current + char).encode("utf-8")) > limit:
            chunks.append(current)
            current = char
            limit = _LINE_LIMIT - 1
        else:
            current += char
    chunks.append(current)
    return "\r\n ".join(chunks)


def event_uid(event: MaturityEvent, domain: str) -> str:
    network = _WHITESPACE_RE.sub("-", event.network.strip())
    start_ms = int(event.start.timestamp() * 1000)
    return f"{event.position_class.value}-{network}-{start_ms}@{domain}"


def to_calendar_document(
    events: Iterable[MaturityEvent],
    *,
    now: Optional[datetime] = None,
    config: Optional[CalendarConfig] = None,
) -> str:
    """Serialize events into a ``VCALENDAR`` document with one ``VEVENT`` each."""

    cfg = config or get_app_config().calendar
    stamp = format_ics_timestamp(now or utc_now())
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{cfg.product_id}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]
    for event in events:
        lines.extend(
            [
                "BEGIN:VEVENT",
                f"UID:{event_uid(event, cfg.uid_domain)}",
                f"DTSTAMP:{stamp}",
                f"DTSTART:{format_ics_timestamp(event.start)}",
                f"DTEND:{format_ics_timestamp(event.end)}",
                f"SUMMARY:{escape_text(event.title)}",
                f"DESCRIPTION:{escape_text(event.description)}",
                "END:VEVENT",
            ]
        )
    lines.append("END:VCALENDAR")
    return "\r\n".join(fold_line(line) for line in lines) + "\r\n"


def write_calendar_file(
    events: Iterable[MaturityEvent],
    path: Union[str, Path, None] = None,
    *,
    config: Optional[CalendarConfig] = None,
) -> Path:
    """Write the calendar document to ``path`` (default file name from config)."""

    cfg = config or get_app_config().calendar
    target = Path(path) if path is not None else Path.cwd() / cfg.default_filename
    events = list(events)
    target.parent.mkdir(parents=True, exist_ok=True)
    # newline="" keeps the CRLF line endings intact on every platform.
    with target.open("w", encoding="utf-8", newline="") as handle:
        handle.write(to_calendar_document(events, config=cfg))
    logger.info("Wrote %d events to %s", len(events), target)
    return target


__all__ = [
    "escape_text",
    "event_uid",
    "fold_line",
    "format_ics_timestamp",
    "to_calendar_document",
    "write_calendar_file",
]
