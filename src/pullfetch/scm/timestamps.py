"""Conversion between provider ISO-8601 timestamps and epoch milliseconds."""

from __future__ import annotations

from datetime import UTC, datetime


def iso_to_epoch_ms(value: str | None) -> int | None:
    """Convert an ISO-8601 timestamp to epoch milliseconds (UTC).

    Provider timestamps have second resolution (``YYYY-MM-DDTHH:MM:SSZ``),
    so the result is always a whole number of seconds times 1000.

    Args:
        value: Timestamp string, or None.

    Returns:
        Epoch milliseconds, or None when the value is absent or empty.

    Raises:
        ValueError: If the string is not a valid ISO-8601 timestamp.
    """
    if not value:
        return None

    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return int(parsed.timestamp()) * 1000


def epoch_ms_to_iso(value: int) -> str:
    """Convert epoch milliseconds to an ISO-8601 UTC timestamp.

    Args:
        value: Epoch milliseconds.

    Returns:
        Timestamp with a ``Z`` suffix; sub-second digits only when present.
    """
    moment = datetime.fromtimestamp(value / 1000, tz=UTC)
    if value % 1000:
        text = moment.isoformat(timespec="milliseconds")
    else:
        text = moment.isoformat(timespec="seconds")
    return text.replace("+00:00", "Z")
