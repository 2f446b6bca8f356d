"""
Per-device running aggregate for one historical summary call.

A DeviceAccumulator is created on the first reading of a device, mutated once
per subsequent reading, and finalized into DeviceHistoricalMetrics. It lives
only for the duration of a single aggregation call.

Readings of a device must be added in timestamp order; the relative order of
different devices does not matter.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from fronius_monitor.models import STATUS_OK, DeviceHistoricalMetrics, Reading
from fronius_monitor.services.energy import integrate_energy


@dataclass
class DeviceAccumulator:
    """Running totals for a single device.

    Offline readings are included in the power sums, so the average
    generation reflects delivered output over the whole range rather than
    output while online.
    """

    device_id: str
    label: str
    total_samples: int = 0
    online_samples: int = 0
    sum_generation: float = 0.0
    sum_consumption: float = 0.0
    sum_grid: float = 0.0
    peak_generation: float = 0.0
    energy_generated: float = 0.0
    energy_consumed: float = 0.0
    energy_grid: float = 0.0
    previous: Reading | None = None
    last_seen: datetime | str | None = None

    @classmethod
    def for_reading(cls, reading: Reading) -> DeviceAccumulator:
        """Create an empty accumulator keyed by the reading's device."""
        return cls(device_id=reading.device_id, label=reading.label)

    def add(self, reading: Reading, *, power_scale: float = 1.0) -> None:
        """Fold one reading into the running state.

        Args:
            reading: Next reading of this device in timestamp order.
            power_scale: Divisor converting stored power to kW.
        """
        self.total_samples += 1
        if reading.status == STATUS_OK:
            self.online_samples += 1

        self.sum_generation += reading.generation
        self.sum_consumption += reading.consumption
        self.sum_grid += reading.grid
        self.peak_generation = max(self.peak_generation, reading.generation)
        self.last_seen = reading.timestamp

        if self.previous is not None:
            energy = integrate_energy(self.previous, reading, power_scale=power_scale)
            self.energy_generated += energy.generated_kwh
            self.energy_consumed += energy.consumed_kwh
            self.energy_grid += energy.grid_kwh
        self.previous = reading

    @property
    def uptime_percent(self) -> float:
        """Share of samples with status ok, 0 when there are none."""
        if self.total_samples == 0:
            return 0.0
        return self.online_samples / self.total_samples * 100

    @property
    def average_generation(self) -> float:
        """Mean generation over all samples, 0 when there are none."""
        if self.total_samples == 0:
            return 0.0
        return self.sum_generation / self.total_samples

    def finalize(self) -> DeviceHistoricalMetrics:
        """Return the device metrics for the summary."""
        return DeviceHistoricalMetrics(
            device_id=self.device_id,
            label=self.label,
            uptime_percent=self.uptime_percent,
            online_samples=self.online_samples,
            downtime_samples=self.total_samples - self.online_samples,
            total_samples=self.total_samples,
            average_generation=self.average_generation,
            peak_generation=self.peak_generation,
            energy_generated=self.energy_generated,
            energy_consumed=self.energy_consumed,
            energy_grid=self.energy_grid,
            last_seen=self.last_seen,
        )
