"""
Snapshot store: device upsert, idempotent snapshot append and range query.

Appends use PostgreSQL INSERT ... ON CONFLICT (device_id, ts) DO NOTHING so
re-recording the same poll is harmless. The range query returns readings in
ascending timestamp order, which the aggregation engine relies on.

Database errors are not caught here; they propagate to the caller as a
single failure for the whole operation.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from fronius_monitor.config import DeviceConfig
from fronius_monitor.db.models import Device, Snapshot
from fronius_monitor.models import DeviceSnapshot, Reading

logger = logging.getLogger(__name__)


async def ensure_devices(db: AsyncSession, devices: Sequence[DeviceConfig]) -> None:
    """Insert configured devices, refreshing label and URL of existing rows.

    Args:
        db: Async SQLAlchemy session.
        devices: Devices from configuration.
    """
    if not devices:
        return

    stmt = pg_insert(Device).values(
        [{"device_id": d.id, "label": d.label, "url": d.url} for d in devices]
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["device_id"],
        set_={"label": stmt.excluded.label, "url": stmt.excluded.url},
    )
    await db.execute(stmt)
    await db.commit()
    logger.info("Registered %d device(s)", len(devices))


async def record_snapshots(
    db: AsyncSession,
    snapshots: Sequence[DeviceSnapshot],
) -> int:
    """Append live snapshots to the store.

    Args:
        db: Async SQLAlchemy session.
        snapshots: Per-device snapshots (never the combined entry).

    Returns:
        int: Number of rows actually inserted (duplicates skipped).
    """
    if not snapshots:
        return 0

    rows = [
        {
            "device_id": s.id,
            "ts": s.timestamp,
            "generation": s.generation,
            "consumption": s.consumption,
            "grid": s.grid,
            "status": s.status,
            "error": s.error,
        }
        for s in snapshots
    ]
    stmt = (
        pg_insert(Snapshot)
        .values(rows)
        .on_conflict_do_nothing(index_elements=["device_id", "ts"])
    )
    result = await db.execute(stmt)
    await db.commit()

    inserted = result.rowcount
    logger.info("Recorded %d/%d snapshot(s)", inserted, len(rows))
    return inserted


async def fetch_readings(
    db: AsyncSession,
    range_from: datetime,
    range_to: datetime,
) -> list[Reading]:
    """Return all readings with ``range_from <= ts <= range_to``.

    Rows are ordered by timestamp (ties broken by device id) and carry the
    device label from the devices table.

    Args:
        db: Async SQLAlchemy session.
        range_from: Inclusive lower bound.
        range_to: Inclusive upper bound.

    Returns:
        list[Reading]: Readings in ascending timestamp order.
    """
    stmt = (
        select(
            Snapshot.device_id,
            Device.label,
            Snapshot.ts,
            Snapshot.generation,
            Snapshot.consumption,
            Snapshot.grid,
            Snapshot.status,
            Snapshot.error,
        )
        .join(Device, Device.device_id == Snapshot.device_id)
        .where(Snapshot.ts >= range_from, Snapshot.ts <= range_to)
        .order_by(Snapshot.ts.asc(), Snapshot.device_id.asc())
    )
    result = await db.execute(stmt)
    return [
        Reading(
            device_id=row["device_id"],
            label=row["label"],
            timestamp=row["ts"],
            generation=row["generation"],
            consumption=row["consumption"],
            grid=row["grid"],
            status=row["status"],
            error=row["error"],
        )
        for row in result.mappings().all()
    ]
