"""Utilities to normalize raw transition events and app identifiers."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Mapping, Optional

from .errors import MalformedEvent
from .models import EventKind, TransitionEvent

# Legacy foreground/background kinds carry the same meaning as resumed/paused.
_KIND_ALIASES: dict[str, EventKind] = {
    "resumed": EventKind.RESUMED,
    "activity_resumed": EventKind.RESUMED,
    "move_to_foreground": EventKind.RESUMED,
    "paused": EventKind.PAUSED,
    "activity_paused": EventKind.PAUSED,
    "move_to_background": EventKind.PAUSED,
}

_KIND_CODES: dict[int, EventKind] = {
    1: EventKind.RESUMED,
    2: EventKind.PAUSED,
}

_EXECUTABLE_SUFFIX = re.compile(r"\.(exe|app|bin)$", re.IGNORECASE)


def normalize_kind(raw: Any) -> EventKind:
    """Map an event kind given as enum, name or platform code to ``EventKind``."""
    if isinstance(raw, EventKind):
        return raw
    if isinstance(raw, bool):
        raise MalformedEvent(f"Unrecognized event kind {raw!r}", raw)
    if isinstance(raw, int):
        kind = _KIND_CODES.get(raw)
    elif isinstance(raw, str):
        key = raw.strip().lower()
        kind = _KIND_CODES.get(int(key)) if key.isdigit() else _KIND_ALIASES.get(key)
    else:
        kind = None
    if kind is None:
        raise MalformedEvent(f"Unrecognized event kind {raw!r}", raw)
    return kind


def normalize_app_id(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def to_local_naive(value: datetime) -> datetime:
    """Convert an offset-aware datetime to naive local time.

    Stored timestamps and ``datetime.now()`` are naive local values, so
    aware inputs are shifted into that frame before any comparison.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def normalize_event(
    app_id: Optional[str], kind: Any, timestamp: Optional[datetime]
) -> TransitionEvent:
    """Build a ``TransitionEvent`` or raise ``MalformedEvent``."""
    normalized_id = normalize_app_id(app_id)
    if normalized_id is None:
        raise MalformedEvent("Event is missing its app identifier", (app_id, kind, timestamp))
    if not isinstance(timestamp, datetime):
        raise MalformedEvent(
            f"Event for {normalized_id!r} has no usable timestamp", (app_id, kind, timestamp)
        )
    return TransitionEvent(
        app_id=normalized_id, kind=normalize_kind(kind), timestamp=to_local_naive(timestamp)
    )


def event_from_mapping(row: Mapping[str, Any]) -> TransitionEvent:
    """Parse an exported event row with ``app_id``, ``kind`` and ``timestamp`` keys.

    Timestamps may be ISO-8601 strings or epoch milliseconds.
    """
    raw_ts = row.get("timestamp")
    timestamp: Optional[datetime]
    if isinstance(raw_ts, datetime):
        timestamp = raw_ts
    elif isinstance(raw_ts, (int, float)) and not isinstance(raw_ts, bool):
        timestamp = datetime.fromtimestamp(raw_ts / 1000.0)
    elif isinstance(raw_ts, str):
        try:
            timestamp = datetime.fromisoformat(raw_ts)
        except ValueError as exc:
            raise MalformedEvent(f"Invalid timestamp {raw_ts!r}", row) from exc
    else:
        timestamp = None
    return normalize_event(row.get("app_id"), row.get("kind"), timestamp)


def display_name_from_process(process_name: str) -> str:
    """Strip executable suffixes so ``chrome.exe`` reads as ``chrome``."""
    stripped = _EXECUTABLE_SUFFIX.sub("", process_name.strip())
    return stripped or process_name
