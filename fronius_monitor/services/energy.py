"""
Trapezoidal energy integration between consecutive readings of one device.

Sensor clocks are not monotonic and a stored timestamp may be unparseable,
so a pair that cannot be integrated contributes zero energy instead of
raising.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fronius_monitor.models import Reading

MS_PER_HOUR = 3_600_000

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)


@dataclass(frozen=True)
class EnergyDelta:
    """Energy accumulated between two readings, in kWh."""

    generated_kwh: float = 0.0
    consumed_kwh: float = 0.0
    grid_kwh: float = 0.0


ZERO_ENERGY = EnergyDelta()


def to_epoch_ms(value: datetime | str | None) -> int | None:
    """Convert a reading timestamp to integer milliseconds since the epoch.

    Naive datetimes are treated as UTC. Strings are parsed as ISO-8601
    (a trailing ``Z`` is accepted).

    Args:
        value: Datetime, ISO-8601 string, or None.

    Returns:
        Milliseconds since 1970-01-01T00:00:00Z, or None if the value
        cannot be parsed.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return (value - _EPOCH) // _ONE_MS


def from_epoch_ms(ms: int) -> datetime:
    """Return the UTC datetime for a millisecond epoch value."""
    return _EPOCH + timedelta(milliseconds=ms)


def integrate_energy(
    previous: Reading,
    current: Reading,
    *,
    power_scale: float = 1.0,
) -> EnergyDelta:
    """Integrate generation, consumption and grid power between two readings.

    Uses the trapezoidal rule: the mean of the two instantaneous power values
    multiplied by the elapsed hours, divided by ``power_scale`` to land in
    kWh (1 for kW input, 1000 for W input).

    Args:
        previous: Earlier reading of the device.
        current: Later reading of the same device.
        power_scale: Divisor converting stored power to kW.

    Returns:
        EnergyDelta: Incremental energy, all zero when either timestamp is
        malformed or the elapsed time is not strictly positive.
    """
    previous_ms = to_epoch_ms(previous.timestamp)
    current_ms = to_epoch_ms(current.timestamp)
    if previous_ms is None or current_ms is None:
        return ZERO_ENERGY

    delta_ms = current_ms - previous_ms
    if delta_ms <= 0:
        return ZERO_ENERGY

    delta_hours = delta_ms / MS_PER_HOUR

    def _trapezoid(a: float, b: float) -> float:
        return ((a + b) / 2) * delta_hours / power_scale

    return EnergyDelta(
        generated_kwh=_trapezoid(previous.generation, current.generation),
        consumed_kwh=_trapezoid(previous.consumption, current.consumption),
        grid_kwh=_trapezoid(previous.grid, current.grid),
    )
