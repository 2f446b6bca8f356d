"""
GET /v1/power endpoint for live power flow.

Polls every configured inverter, records the per-device snapshots in the
snapshot store, and returns the devices together with a combined site total.
Recording is best-effort: a store failure is logged and the live payload is
still returned. Responds 503 when no device answered.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

import logging
from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fronius_monitor.api.deps import get_db, get_http_client, get_settings, require_client
from fronius_monitor.collector.fronius import collect_snapshots
from fronius_monitor.config import AppSettings
from fronius_monitor.models import STATUS_OK, PowerDashboard
from fronius_monitor.services.store import ensure_devices, record_snapshots

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["power"])

_NO_STORE = {"Cache-Control": "no-store"}


@router.get(
    "/power",
    response_model=PowerDashboard,
    dependencies=[Depends(require_client)],
    responses={503: {"model": PowerDashboard}},
)
async def get_power(
    request: Request,
    settings: Annotated[AppSettings, Depends(get_settings)],
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> JSONResponse:
    """Return live power flow for all devices and the combined site.

    Args:
        request: The incoming FastAPI request.
        settings: Application settings with the device list.
        client: Shared HTTP client for inverter requests.
        db: Async database session.

    Returns:
        JSONResponse: PowerDashboard body, 200 if at least one device is
        online, otherwise 503.
    """
    dashboard = await collect_snapshots(settings, client)

    try:
        if not request.app.state.devices_registered:
            await ensure_devices(db, settings.fronius_devices)
            request.app.state.devices_registered = True
        await record_snapshots(db, dashboard.devices)
    except SQLAlchemyError:
        logger.warning("Failed to record live snapshots", exc_info=True)

    has_success = any(d.status == STATUS_OK for d in dashboard.devices)
    return JSONResponse(
        status_code=200 if has_success else 503,
        content=dashboard.model_dump(mode="json"),
        headers=_NO_STORE,
    )
