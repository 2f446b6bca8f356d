"""
Historical summary aggregation over a range of stored readings.

A single pass over the range-queried rows feeds two call-scoped maps: one
DeviceAccumulator per device and one TimelineBucket per minute. The
finalized devices and timeline are then reduced into combined totals.

Combined peak generation is taken from the averaged timeline rather than any
single device, so it describes the property's output, not one inverter's
ceiling. Grid export and import are split per device before summation, so
``exported + imported`` only equals ``|net|`` when all devices share a sign.

CHANGELOG:
- 2026-10-18: Type grid_export_sign as a Literal and reject unknown conventions
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from fronius_monitor.config import AppSettings, GridExportSign
from fronius_monitor.models import (
    DeviceHistoricalMetrics,
    HistoricalRange,
    HistoricalSummary,
    HistoricalTotals,
    Reading,
    TimelinePoint,
)
from fronius_monitor.services.accumulator import DeviceAccumulator
from fronius_monitor.services.store import fetch_readings
from fronius_monitor.services.timeline import TimelineBucketizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregationOptions:
    """Unit and sign conventions of the stored readings.

    Attributes:
        power_scale: Divisor converting stored power to kW (1 or 1000).
        grid_export_sign: ``"negative"`` when export is reported as negative
            grid power (Fronius), ``"positive"`` for the inverse convention.
    """

    power_scale: float = 1.0
    grid_export_sign: GridExportSign = "negative"

    @classmethod
    def from_settings(cls, settings: AppSettings) -> AggregationOptions:
        """Build options from application settings."""
        return cls(
            power_scale=settings.power_scale,
            grid_export_sign=settings.grid_export_sign,
        )


def split_grid_energy(
    energy_grid: float, grid_export_sign: GridExportSign
) -> tuple[float, float]:
    """Split signed grid energy into (exported, imported), both >= 0.

    Raises:
        ValueError: If ``grid_export_sign`` is not a known convention.
    """
    positive = max(0.0, energy_grid)
    negative = max(0.0, -energy_grid)
    if grid_export_sign == "negative":
        return negative, positive
    if grid_export_sign == "positive":
        return positive, negative
    raise ValueError(f"Unknown grid export sign {grid_export_sign!r}")


def compose_totals(
    devices: list[DeviceHistoricalMetrics],
    timeline: list[TimelinePoint],
    *,
    grid_export_sign: GridExportSign = "negative",
) -> HistoricalTotals:
    """Reduce finalized devices and timeline into combined totals.

    Args:
        devices: Finalized per-device metrics.
        timeline: Finalized, averaged timeline points.
        grid_export_sign: Sign of grid power while exporting.

    Returns:
        HistoricalTotals: Combined totals; all zero for no devices.
    """
    total_samples = sum(d.total_samples for d in devices)
    online_samples = sum(d.online_samples for d in devices)

    exported = 0.0
    imported = 0.0
    for device in devices:
        device_exported, device_imported = split_grid_energy(
            device.energy_grid, grid_export_sign
        )
        exported += device_exported
        imported += device_imported

    weighted_generation = sum(d.average_generation * d.total_samples for d in devices)

    return HistoricalTotals(
        energy_generated=sum(d.energy_generated for d in devices),
        energy_consumed=sum(d.energy_consumed for d in devices),
        energy_exported=exported,
        energy_imported=imported,
        energy_net=sum(d.energy_grid for d in devices),
        average_generation=(
            weighted_generation / total_samples if total_samples else 0.0
        ),
        peak_generation=max((p.generation for p in timeline), default=0.0),
        uptime_percent=(online_samples / total_samples * 100 if total_samples else 0.0),
    )


def summarize_readings(
    readings: Iterable[Reading],
    *,
    range_from: datetime,
    range_to: datetime,
    label: str,
    options: AggregationOptions | None = None,
) -> HistoricalSummary:
    """Aggregate readings into a HistoricalSummary.

    Pure function of its input: no I/O, no clock, no shared state.

    Args:
        readings: Readings ordered by timestamp within each device.
        range_from: Start of the summarized range (echoed back).
        range_to: End of the summarized range (echoed back).
        label: Display label of the range (echoed back unmodified).
        options: Unit and sign conventions; defaults to kW and Fronius sign.

    Returns:
        HistoricalSummary: Totals, timeline and device metrics. Empty input
        yields zero totals, an empty timeline and no devices.
    """
    options = options or AggregationOptions()

    accumulators: dict[str, DeviceAccumulator] = {}
    timeline = TimelineBucketizer()

    for reading in readings:
        accumulator = accumulators.get(reading.device_id)
        if accumulator is None:
            accumulator = DeviceAccumulator.for_reading(reading)
            accumulators[reading.device_id] = accumulator
        accumulator.add(reading, power_scale=options.power_scale)
        timeline.add(reading)

    logger.debug(
        "Aggregated %d device(s) into %d minute bucket(s)",
        len(accumulators),
        len(timeline),
    )
    devices = [acc.finalize() for acc in accumulators.values()]
    points = timeline.finalize()

    return HistoricalSummary(
        range=HistoricalRange(from_=range_from, to=range_to, label=label),
        totals=compose_totals(
            devices, points, grid_export_sign=options.grid_export_sign
        ),
        timeline=points,
        devices=devices,
    )


async def get_historical_summary(
    db: AsyncSession,
    range_from: datetime,
    range_to: datetime,
    label: str,
    options: AggregationOptions | None = None,
) -> HistoricalSummary:
    """Query the snapshot store for a range and summarize it.

    Store errors propagate unmodified; no partial summary is produced.

    Args:
        db: Async database session.
        range_from: Inclusive start of the range.
        range_to: Inclusive end of the range.
        label: Display label of the range.
        options: Unit and sign conventions.

    Returns:
        HistoricalSummary: Summary of all readings in the range.
    """
    readings = await fetch_readings(db, range_from, range_to)

    summary = summarize_readings(
        readings,
        range_from=range_from,
        range_to=range_to,
        label=label,
        options=options,
    )
    logger.debug(
        "Historical summary: from=%s to=%s rows=%d",
        range_from.isoformat(),
        range_to.isoformat(),
        len(readings),
    )
    return summary
