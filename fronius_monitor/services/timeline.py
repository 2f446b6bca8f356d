"""
One-minute timeline buckets across all devices.

Readings from every device are folded into buckets keyed by the start of
their minute. A finalized bucket holds the mean of its readings, so two
inverters reporting in the same minute do not double the charted power.
Minutes without readings produce no point.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fronius_monitor.models import Reading, TimelinePoint
from fronius_monitor.services.energy import from_epoch_ms, to_epoch_ms

logger = logging.getLogger(__name__)

BUCKET_MS = 60_000


@dataclass
class TimelineBucket:
    """Sums of the readings that landed in one bucket."""

    start_ms: int
    generation: float = 0.0
    consumption: float = 0.0
    grid: float = 0.0
    count: int = 0

    def to_point(self) -> TimelinePoint:
        """Average the sums over the contributing readings."""
        return TimelinePoint(
            timestamp=from_epoch_ms(self.start_ms),
            generation=self.generation / self.count if self.count else 0.0,
            consumption=self.consumption / self.count if self.count else 0.0,
            grid=self.grid / self.count if self.count else 0.0,
        )


def bucket_start_ms(timestamp_ms: int) -> int:
    """Floor a millisecond timestamp to its bucket boundary."""
    return (timestamp_ms // BUCKET_MS) * BUCKET_MS


class TimelineBucketizer:
    """Accumulates readings into a sparse map of minute buckets."""

    def __init__(self) -> None:
        self._buckets: dict[int, TimelineBucket] = {}

    def __len__(self) -> int:
        return len(self._buckets)

    def add(self, reading: Reading) -> None:
        """Add a reading to its bucket; unparseable timestamps are skipped."""
        timestamp_ms = to_epoch_ms(reading.timestamp)
        if timestamp_ms is None:
            logger.debug(
                "Skipping timeline point with malformed timestamp %r (device=%s)",
                reading.timestamp,
                reading.device_id,
            )
            return

        key = bucket_start_ms(timestamp_ms)
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = TimelineBucket(start_ms=key)
            self._buckets[key] = bucket

        bucket.generation += reading.generation
        bucket.consumption += reading.consumption
        bucket.grid += reading.grid
        bucket.count += 1

    def finalize(self) -> list[TimelinePoint]:
        """Return the averaged points in ascending time order."""
        return [self._buckets[key].to_point() for key in sorted(self._buckets)]
