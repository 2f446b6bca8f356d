"""
Resolve dashboard range selections into concrete (from, to, label) windows.

Supported keys are ``24h`` (default), ``today``, ``7d``, ``30d`` and
``custom``. An explicit ``from`` always wins and produces a date label.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo

RANGE_LABELS: dict[str, str] = {
    "24h": "Last 24 hours",
    "7d": "Last 7 days",
    "30d": "Last 30 days",
    "today": "Today",
    "custom": "Custom range",
}

_RANGE_DAYS: dict[str, int] = {"7d": 7, "30d": 30}


class InvalidRangeError(ValueError):
    """Raised when a requested range cannot be resolved or is empty."""


@dataclass(frozen=True)
class ResolvedRange:
    """A concrete time window with its display label."""

    range_from: datetime
    range_to: datetime
    label: str


def _as_aware(value: datetime, tz: tzinfo) -> datetime:
    """Attach ``tz`` to naive datetimes."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value


def resolve_range(
    range_key: str | None,
    range_from: datetime | None,
    range_to: datetime | None,
    *,
    now: datetime | None = None,
    tz: tzinfo = UTC,
) -> ResolvedRange:
    """Resolve query parameters into a ResolvedRange.

    Args:
        range_key: One of RANGE_LABELS, or None for the default 24 hours.
        range_from: Explicit start; overrides ``range_key``.
        range_to: Explicit end; defaults to ``now``.
        now: Current instant (injected for tests).
        tz: Site timezone for naive inputs and the ``today`` boundary.

    Returns:
        ResolvedRange: The window to summarize.

    Raises:
        InvalidRangeError: If ``custom`` is requested without ``from`` or the
            resolved start is not strictly before the end.
    """
    now = now or datetime.now(tz=UTC)
    to = _as_aware(range_to, tz) if range_to is not None else now

    if range_from is not None:
        start = _as_aware(range_from, tz)
        label = f"{start.astimezone(tz):%Y-%m-%d} - {to.astimezone(tz):%Y-%m-%d}"
    elif range_key == "custom":
        raise InvalidRangeError(
            "Custom range requires both 'from' and 'to' parameters"
        )
    elif range_key in _RANGE_DAYS:
        start = to - timedelta(days=_RANGE_DAYS[range_key])
        label = RANGE_LABELS[range_key]
    elif range_key == "today":
        local_to = to.astimezone(tz)
        start = local_to.replace(hour=0, minute=0, second=0, microsecond=0)
        label = RANGE_LABELS["today"]
    else:
        start = to - timedelta(hours=24)
        label = RANGE_LABELS["24h"]

    if start >= to:
        raise InvalidRangeError("'from' must be earlier than 'to'")

    return ResolvedRange(range_from=start, range_to=to, label=label)
