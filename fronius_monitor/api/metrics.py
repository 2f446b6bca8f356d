"""
GET /v1/metrics endpoint for historical energy summaries.

Resolves the requested range (``range`` key or explicit ``from``/``to``),
queries the snapshot store, and returns energy totals, uptime, the
one-minute timeline and per-device metrics. Read-only, no side effects.

Range validation happens before any database access. Store failures and
timeouts fail the whole request; partial summaries are never returned.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

import asyncio
import logging
from datetime import datetime
from typing import Annotated
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fronius_monitor.api.deps import get_db, get_settings, require_client
from fronius_monitor.config import AppSettings
from fronius_monitor.models import HistoricalSummary
from fronius_monitor.services.aggregation import (
    AggregationOptions,
    get_historical_summary,
)
from fronius_monitor.services.ranges import (
    RANGE_LABELS,
    InvalidRangeError,
    resolve_range,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["metrics"])


@router.get(
    "/metrics",
    response_model=HistoricalSummary,
    dependencies=[Depends(require_client)],
)
async def get_metrics(
    response: Response,
    settings: Annotated[AppSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)],
    range_key: Annotated[
        str | None,
        Query(
            alias="range",
            description=f"Range key: {', '.join(RANGE_LABELS)}.",
        ),
    ] = None,
    range_from: Annotated[
        datetime | None,
        Query(alias="from", description="ISO-8601 start (inclusive)."),
    ] = None,
    range_to: Annotated[
        datetime | None,
        Query(alias="to", description="ISO-8601 end (inclusive), default now."),
    ] = None,
) -> HistoricalSummary:
    """Return the historical summary for the requested range.

    Args:
        response: Outgoing response, used to disable caching.
        settings: Application settings.
        db: Async database session.
        range_key: Preset range (24h, today, 7d, 30d, custom).
        range_from: Explicit range start.
        range_to: Explicit range end.

    Returns:
        HistoricalSummary: Totals, timeline and device metrics.

    Raises:
        HTTPException: 400 if the range is invalid or empty.
        HTTPException: 503 if the snapshot store query fails.
        HTTPException: 504 if the summary exceeds METRICS_TIMEOUT_S.
    """
    try:
        resolved = resolve_range(
            range_key,
            range_from,
            range_to,
            tz=ZoneInfo(settings.site_timezone),
        )
    except InvalidRangeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None

    try:
        summary = await asyncio.wait_for(
            get_historical_summary(
                db,
                resolved.range_from,
                resolved.range_to,
                resolved.label,
                AggregationOptions.from_settings(settings),
            ),
            timeout=settings.metrics_timeout_s,
        )
    except TimeoutError:
        logger.warning(
            "Historical summary timed out after %.1fs (from=%s to=%s)",
            settings.metrics_timeout_s,
            resolved.range_from.isoformat(),
            resolved.range_to.isoformat(),
        )
        raise HTTPException(
            status_code=504,
            detail="Historical summary timed out.",
        ) from None
    except SQLAlchemyError:
        logger.error("Snapshot store query failed", exc_info=True)
        raise HTTPException(
            status_code=503,
            detail="Snapshot store unavailable.",
        ) from None

    response.headers["Cache-Control"] = "no-store"
    return summary
