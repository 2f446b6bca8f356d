"""
Initial schema: devices and snapshots tables.

Creates the devices table keyed by the configured device id and the
snapshots table with composite primary key (device_id, ts) plus a ts index
for range queries across all devices.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# Revision identifiers used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the devices and snapshots tables."""
    op.create_table(
        "devices",
        sa.Column("device_id", sa.Text(), nullable=False),
        sa.Column("label", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("device_id"),
    )

    op.create_table(
        "snapshots",
        sa.Column("device_id", sa.Text(), nullable=False),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("generation", sa.Double(), nullable=False),
        sa.Column("consumption", sa.Double(), nullable=False),
        sa.Column("grid", sa.Double(), nullable=False),
        sa.Column(
            "status",
            sa.Text(),
            nullable=False,
            server_default=sa.text("'ok'"),
        ),
        sa.Column("error", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["device_id"], ["devices.device_id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("device_id", "ts"),
    )
    op.create_index("ix_snapshots_ts", "snapshots", ["ts"])


def downgrade() -> None:
    """Drop the snapshots and devices tables."""
    op.drop_index("ix_snapshots_ts", table_name="snapshots")
    op.drop_table("snapshots")
    op.drop_table("devices")
