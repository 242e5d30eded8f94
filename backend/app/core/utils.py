from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Millisecond precision, UTC, `Z` suffix (e.g. 2024-05-01T09:30:00.000Z)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def iso_now() -> str:
    return to_iso(utc_now())


def parse_iso(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def filename_timestamp(value: datetime) -> str:
    """ISO timestamp made safe for filenames: ':' and '.' become '-'."""
    return to_iso(value).replace(":", "-").replace(".", "-")


def generate_id() -> str:
    return str(uuid.uuid4())
