"""
SQLAlchemy ORM models for the snapshot store.

Defines the Device table (configured inverters) and the Snapshot table of
periodic power readings. Snapshot has a composite primary key
(device_id, ts) so repeated inserts of the same poll are idempotent.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

import datetime

from sqlalchemy import DateTime, Double, ForeignKey, Index, Text, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all ORM models."""

    pass


class Device(Base):
    """A configured Fronius inverter.

    Attributes:
        device_id: Stable identifier from configuration.
        label: Display label, refreshed from configuration on startup.
        url: Base URL of the inverter's Solar API.
    """

    __tablename__ = "devices"

    device_id: Mapped[str] = mapped_column(Text, primary_key=True)
    label: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        """Return string representation of the Device."""
        return f"Device(device_id={self.device_id!r}, label={self.label!r})"


class Snapshot(Base):
    """A single polled power reading for one device.

    Attributes:
        device_id: Identifier of the polled device.
        ts: Instant the poll was issued (UTC).
        generation: PV generation power.
        consumption: Household load power.
        grid: Signed grid power (negative = export for Fronius).
        status: ``ok`` or ``error``.
        error: Failure reason for ``error`` snapshots (nullable).
    """

    __tablename__ = "snapshots"
    __table_args__ = (Index("ix_snapshots_ts", "ts"),)

    device_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("devices.device_id", ondelete="CASCADE"),
        primary_key=True,
    )
    ts: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        primary_key=True,
    )
    generation: Mapped[float] = mapped_column(Double, nullable=False)
    consumption: Mapped[float] = mapped_column(Double, nullable=False)
    grid: Mapped[float] = mapped_column(Double, nullable=False)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=text("'ok'")
    )
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        """Return string representation of the Snapshot."""
        return (
            f"Snapshot(device_id={self.device_id!r}, "
            f"ts={self.ts!r}, status={self.status!r})"
        )
