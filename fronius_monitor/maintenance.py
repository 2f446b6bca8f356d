"""
Offline maintenance commands for the snapshot store.

Commands:
  check-units     Report snapshots whose power values are implausibly large
                  for kW (typically rows recorded in watts). ``--fix`` deletes
                  them.
  clear-history   Delete every stored snapshot (requires ``--yes``).

Usage:
    fronius-maintenance check-units
    fronius-maintenance check-units --threshold 100 --fix
    fronius-maintenance clear-history --yes

CHANGELOG:
- 2026-10-18: Initial creation
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from fronius_monitor.db.models import Snapshot

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD_KW = 100.0
SAMPLE_LIMIT = 5


def _unit_anomaly_filter(threshold: float):
    """Return the WHERE clause matching rows outside +/- threshold."""
    return or_(
        Snapshot.generation > threshold,
        Snapshot.consumption > threshold,
        Snapshot.grid > threshold,
        Snapshot.grid < -threshold,
    )


async def check_units(
    db: AsyncSession,
    *,
    threshold: float = DEFAULT_THRESHOLD_KW,
    fix: bool = False,
) -> int:
    """Find (and optionally delete) snapshots with out-of-range power values.

    Args:
        db: Async database session.
        threshold: Largest plausible absolute power in kW.
        fix: Delete the offending rows when True.

    Returns:
        int: Number of offending rows found (or deleted when ``fix``).
    """
    condition = _unit_anomaly_filter(threshold)

    count = (
        await db.execute(select(func.count()).select_from(Snapshot).where(condition))
    ).scalar_one()
    logger.info("Found %d snapshot(s) above %.1f kW", count, threshold)
    if count == 0:
        return 0

    samples = (
        await db.execute(
            select(Snapshot).where(condition).order_by(Snapshot.ts).limit(SAMPLE_LIMIT)
        )
    ).scalars().all()
    for snap in samples:
        logger.info(
            "  %s %s: generation=%s consumption=%s grid=%s",
            snap.ts.isoformat(),
            snap.device_id,
            snap.generation,
            snap.consumption,
            snap.grid,
        )

    if not fix:
        logger.warning("Re-run with --fix to delete these snapshots")
        return count

    result = await db.execute(delete(Snapshot).where(condition))
    await db.commit()
    logger.info("Deleted %d snapshot(s)", result.rowcount)
    return result.rowcount


async def clear_history(db: AsyncSession) -> int:
    """Delete all stored snapshots.

    Returns:
        int: Number of deleted rows.
    """
    result = await db.execute(delete(Snapshot))
    await db.commit()
    logger.info("Deleted %d snapshot(s)", result.rowcount)
    return result.rowcount


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="fronius-maintenance",
        description="Maintenance commands for the Fronius snapshot store.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check-units", help="Find snapshots stored in watts.")
    check.add_argument(
        "--threshold",
        type=float,
        default=DEFAULT_THRESHOLD_KW,
        help="Largest plausible absolute power in kW (default: %(default)s).",
    )
    check.add_argument(
        "--fix", action="store_true", help="Delete the offending snapshots."
    )

    clear = sub.add_parser("clear-history", help="Delete all snapshots.")
    clear.add_argument(
        "--yes", action="store_true", help="Confirm deletion of all snapshots."
    )
    return parser


async def run(args: argparse.Namespace) -> int:
    """Execute the parsed command and return the process exit code."""
    from fronius_monitor.config import AppSettings
    from fronius_monitor.db.session import create_engine, create_session_factory

    if args.command == "clear-history" and not args.yes:
        logger.error("Refusing to clear history without --yes")
        return 2

    settings = AppSettings()
    engine = create_engine(settings.database_url)
    try:
        async with create_session_factory(engine)() as db:
            if args.command == "check-units":
                await check_units(db, threshold=args.threshold, fix=args.fix)
            else:
                await clear_history(db)
    finally:
        await engine.dispose()
    return 0


def main(argv: list[str] | None = None) -> None:
    """Synchronous entrypoint for the maintenance CLI."""
    from fronius_monitor.logging_config import configure_logging

    configure_logging()
    args = build_parser().parse_args(argv)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
