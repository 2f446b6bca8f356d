"""
Collector daemon: poll Fronius inverters and record snapshots.

Runs a single asyncio loop that, every POLL_INTERVAL_S seconds, fetches live
power flow from all configured devices and appends the per-device snapshots
to the snapshot store. Configured devices are upserted once at startup so
labels stay in sync with configuration.

The loop is resilient: an exception in one cycle is logged and does not stop
the loop. Graceful shutdown on SIGTERM/SIGINT sets a shared asyncio.Event;
the loop finishes its current cycle and exits.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import TYPE_CHECKING

from fronius_monitor.collector.fronius import build_client, collect_snapshots
from fronius_monitor.logging_config import configure_logging
from fronius_monitor.services.store import ensure_devices, record_snapshots

if TYPE_CHECKING:
    import httpx
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from fronius_monitor.config import AppSettings

logger = logging.getLogger(__name__)


def log_config_summary(settings: AppSettings) -> None:
    """Log a config summary at startup, excluding secrets.

    Device URLs are logged, Cloudflare Access secrets and API tokens are not.

    Args:
        settings: Application settings.
    """
    logger.info(
        "Collector starting with config: property=%s, devices=%s, "
        "poll_interval_s=%s, fronius_timeout_ms=%s, proxy_enabled=%s",
        settings.property_label,
        [f"{d.id}@{d.url}" for d in settings.fronius_devices],
        settings.poll_interval_s,
        settings.fronius_timeout_ms,
        settings.fronius_proxy_url is not None,
    )


# ---------------------------------------------------------------------------
# Single-iteration function (easily testable)
# ---------------------------------------------------------------------------


async def _collect_once(
    *,
    settings: AppSettings,
    client: httpx.AsyncClient,
    session_factory: async_sessionmaker[AsyncSession],
) -> int:
    """Execute a single collect-and-record cycle.

    Catches all exceptions so that the caller's loop is never broken.

    Args:
        settings: Application settings.
        client: Shared HTTP client for inverter requests.
        session_factory: Factory for database sessions.

    Returns:
        int: Number of snapshots inserted, 0 on failure.
    """
    try:
        dashboard = await collect_snapshots(settings, client)
        async with session_factory() as db:
            inserted = await record_snapshots(db, dashboard.devices)
        online = sum(1 for d in dashboard.devices if d.status == "ok")
        logger.info(
            "Collect cycle: %d/%d device(s) online, %d snapshot(s) recorded",
            online,
            len(dashboard.devices),
            inserted,
        )
        return inserted
    except Exception:
        logger.error("Collect cycle error", exc_info=True)
        return 0


# ---------------------------------------------------------------------------
# Loop runner
# ---------------------------------------------------------------------------


async def run_collector(
    *,
    settings: AppSettings,
    client: httpx.AsyncClient,
    session_factory: async_sessionmaker[AsyncSession],
    shutdown_event: asyncio.Event,
) -> None:
    """Register devices, then collect until shutdown_event is set.

    Args:
        settings: Application settings.
        client: Shared HTTP client for inverter requests.
        session_factory: Factory for database sessions.
        shutdown_event: Event to signal graceful shutdown.
    """
    async with session_factory() as db:
        await ensure_devices(db, settings.fronius_devices)

    logger.info("Collect loop started (interval=%ss)", settings.poll_interval_s)
    while not shutdown_event.is_set():
        await _collect_once(
            settings=settings,
            client=client,
            session_factory=session_factory,
        )
        # Use wait with timeout so we can check shutdown between sleeps
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(
                shutdown_event.wait(),
                timeout=settings.poll_interval_s,
            )
    logger.info("Collect loop stopped")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


async def async_main() -> None:
    """Async entrypoint: load config, build components, run the loop.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    configure_logging()

    from fronius_monitor.config import AppSettings
    from fronius_monitor.db.session import create_engine, create_session_factory

    settings = AppSettings()
    log_config_summary(settings)

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    engine = create_engine(settings.database_url)
    try:
        async with build_client(settings) as client:
            await run_collector(
                settings=settings,
                client=client,
                session_factory=create_session_factory(engine),
                shutdown_event=shutdown_event,
            )
    finally:
        await engine.dispose()
    logger.info("Shutdown complete")


def main() -> None:
    """Synchronous entrypoint for the collector daemon."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
