from __future__ import annotations
from datetime import date, datetime, timezone as dt_tz
from enum import Enum

from app.services.errors import InvalidWindowError


class WindowPhase(str, Enum):
    NO_WINDOW = "no_window"
    BEFORE = "before"
    DURING = "during"
    AFTER = "after"


def utc_now() -> datetime:
    # Production clock; only the HTTP layer reads it, everything below takes `now`.
    return datetime.now(dt_tz.utc)


def to_utc(value: datetime | date | str, field: str = "value") -> datetime:
    """
    Normalize an instant to an aware UTC datetime.

    Accepts aware or naive datetimes (naive = already UTC, which is how SQLite hands
    them back), plain dates (midnight UTC) and ISO-8601 strings ("Z" suffix allowed).

    Raises:
        InvalidWindowError: for unparsable strings or unsupported types.

    Examples:
        >>> to_utc("2025-03-01T10:00:00Z").isoformat()
        '2025-03-01T10:00:00+00:00'
        >>> to_utc(date(2025, 3, 1)).hour
        0
    """
    if isinstance(value, str):
        raw = value.strip()
        try:
            value = datetime.fromisoformat(raw[:-1] + "+00:00" if raw.endswith(("Z", "z")) else raw)
        except ValueError:
            raise InvalidWindowError(f"{field}: unparsable date {raw!r}") from None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=dt_tz.utc)
        return value.astimezone(dt_tz.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=dt_tz.utc)
    raise InvalidWindowError(f"{field}: expected a date, got {type(value).__name__}")


def classify(
    now: datetime | str,
    start: datetime | date | str | None = None,
    end: datetime | date | str | None = None,
) -> WindowPhase:
    """
    Place `now` relative to an optional [start, end] window.

    Both bounds are inclusive. A missing bound leaves that side open; with no bounds at
    all the window is NO_WINDOW, which callers treat as always open.

    Args:
        now: The instant to classify (injected, never read from the wall clock here)
        start: Window opening, optional
        end: Window closing, optional

    Returns:
        WindowPhase.NO_WINDOW | BEFORE | DURING | AFTER

    Raises:
        InvalidWindowError: if any value is malformed or start > end.

    Examples:
        >>> t0, t1 = datetime(2025, 1, 1, tzinfo=dt_tz.utc), datetime(2025, 1, 31, tzinfo=dt_tz.utc)
        >>> classify(t0, t0, t1)
        <WindowPhase.DURING: 'during'>
        >>> classify(t1, None, t0)
        <WindowPhase.AFTER: 'after'>
    """
    now_utc = to_utc(now, "now")
    start_utc = to_utc(start, "start") if start is not None else None
    end_utc = to_utc(end, "end") if end is not None else None

    if start_utc is None and end_utc is None:
        return WindowPhase.NO_WINDOW
    if start_utc is not None and end_utc is not None and start_utc > end_utc:
        raise InvalidWindowError(f"window starts after it ends ({start_utc.isoformat()} > {end_utc.isoformat()})")
    if start_utc is not None and now_utc < start_utc:
        return WindowPhase.BEFORE
    if end_utc is not None and now_utc > end_utc:
        return WindowPhase.AFTER
    return WindowPhase.DURING


def is_open(phase: WindowPhase) -> bool:
    return phase in (WindowPhase.DURING, WindowPhase.NO_WINDOW)
