"""
Domain models for readings, live snapshots and historical summaries.

``Reading`` is the row shape handed from the snapshot store to the
aggregation engine. The pydantic models describe the JSON documents served
by the API: the live ``PowerDashboard`` and the ``HistoricalSummary``.

Power values are kW unless the deployment stores watts (see POWER_UNIT).
Grid power is signed; with the Fronius convention a negative value means
power flowing to the grid (export).

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

STATUS_OK = "ok"
STATUS_ERROR = "error"


@dataclass(frozen=True)
class Reading:
    """One stored snapshot of a device, as returned by a range query.

    Attributes:
        device_id: Identifier of the inverter.
        label: Display label of the inverter.
        timestamp: Instant of the reading. Normally a datetime; an ISO-8601
            string is accepted and may be malformed.
        generation: PV generation power.
        consumption: Household load power.
        grid: Signed grid power.
        status: ``"ok"`` or ``"error"``.
        error: Error text recorded for failed polls.
    """

    device_id: str
    label: str
    timestamp: datetime | str
    generation: float
    consumption: float
    grid: float
    status: str = STATUS_OK
    error: str | None = None


# ---------------------------------------------------------------------------
# Live snapshots
# ---------------------------------------------------------------------------


class DeviceSnapshot(BaseModel):
    """Live power flow for one device (or the combined site).

    Attributes:
        id: Device identifier, ``"combined"`` for the site total.
        label: Display label.
        timestamp: Instant the request was issued.
        generation: PV generation in kW.
        consumption: Household load in kW.
        grid: Signed grid power in kW.
        status: ``"ok"`` if the inverter answered with site data.
        error: Failure reason when status is ``"error"``.
    """

    id: str
    label: str
    timestamp: datetime
    generation: float
    consumption: float
    grid: float
    status: Literal["ok", "error"]
    error: str | None = None


class PowerDashboard(BaseModel):
    """Live payload for all configured devices plus their combined total."""

    property: str
    updated_at: datetime
    devices: list[DeviceSnapshot]
    combined: DeviceSnapshot


# ---------------------------------------------------------------------------
# Historical summary
# ---------------------------------------------------------------------------


class TimelinePoint(BaseModel):
    """Mean power of all readings that fell into one minute bucket."""

    timestamp: datetime
    generation: float
    consumption: float
    grid: float


class DeviceHistoricalMetrics(BaseModel):
    """Finalized per-device statistics for a summary range."""

    device_id: str
    label: str
    uptime_percent: float
    online_samples: int
    downtime_samples: int
    total_samples: int
    average_generation: float
    peak_generation: float
    energy_generated: float
    energy_consumed: float
    energy_grid: float
    last_seen: datetime | str | None = None


class HistoricalTotals(BaseModel):
    """Combined totals across every device in the range."""

    energy_generated: float = 0.0
    energy_consumed: float = 0.0
    energy_exported: float = 0.0
    energy_imported: float = 0.0
    energy_net: float = 0.0
    average_generation: float = 0.0
    peak_generation: float = 0.0
    uptime_percent: float = 0.0


class HistoricalRange(BaseModel):
    """Requested range, echoed back with its display label."""

    model_config = ConfigDict(populate_by_name=True)

    from_: datetime = Field(alias="from")
    to: datetime
    label: str


class HistoricalSummary(BaseModel):
    """Energy totals, uptime, timeline and per-device metrics for a range."""

    range: HistoricalRange
    totals: HistoricalTotals
    timeline: list[TimelinePoint]
    devices: list[DeviceHistoricalMetrics]
