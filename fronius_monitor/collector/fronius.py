"""
Fronius Solar API client for live power flow snapshots.

Fetches ``GetPowerFlowRealtimeData.fcgi`` from every configured inverter
concurrently, converts the site power values from watts to kW, and builds a
combined snapshot from the devices that answered. Designed to be robust:

- Each request is bounded by FRONIUS_TIMEOUT_MS.
- Any failure (HTTP status, timeout, bad JSON, missing site data) yields a
  zeroed snapshot with status "error" instead of raising.
- An optional proxy (e.g. a tailscale SOCKS5 endpoint) is applied to all
  inverter requests.

CHANGELOG:
- 2026-10-18: Reject non-numeric site power values as response errors
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

import httpx

from fronius_monitor.config import AppSettings, DeviceConfig
from fronius_monitor.models import (
    STATUS_ERROR,
    STATUS_OK,
    DeviceSnapshot,
    PowerDashboard,
)

logger = logging.getLogger(__name__)

REALTIME_PATH = "/solar_api/v1/GetPowerFlowRealtimeData.fcgi"

WATTS_PER_KW = 1000.0


class FroniusResponseError(Exception):
    """Raised when an inverter answers without usable site data."""


def build_client(settings: AppSettings) -> httpx.AsyncClient:
    """Create the shared HTTP client for inverter requests.

    Args:
        settings: Application settings (timeout and optional proxy).

    Returns:
        httpx.AsyncClient: Client with the configured timeout and proxy.
    """
    return httpx.AsyncClient(
        timeout=settings.fronius_timeout_ms / 1000.0,
        proxy=settings.fronius_proxy_url,
    )


def parse_site(payload: object) -> dict[str, float]:
    """Extract P_PV, P_Load and P_Grid (watts) from a realtime response.

    Missing or null values default to 0.

    Args:
        payload: Decoded JSON body.

    Returns:
        dict: ``{"generation", "consumption", "grid"}`` in kW.

    Raises:
        FroniusResponseError: If ``Body.Data.Site`` is absent or a power
            value is not numeric.
    """
    site = None
    if isinstance(payload, dict):
        body = payload.get("Body") or {}
        data = body.get("Data") if isinstance(body, dict) else None
        site = data.get("Site") if isinstance(data, dict) else None
    if not isinstance(site, dict):
        raise FroniusResponseError("Missing site data in response")

    def _kw(key: str) -> float:
        value = site.get(key)
        if value is None:
            return 0.0
        try:
            return float(value) / WATTS_PER_KW
        except (TypeError, ValueError):
            raise FroniusResponseError(f"Invalid {key} value in response") from None

    return {
        "generation": _kw("P_PV"),
        "consumption": _kw("P_Load"),
        "grid": _kw("P_Grid"),
    }


async def fetch_device_snapshot(
    client: httpx.AsyncClient,
    device: DeviceConfig,
    *,
    timeout_s: float | None = None,
    now: datetime | None = None,
) -> DeviceSnapshot:
    """Fetch one inverter's live power flow.

    Args:
        client: Shared HTTP client.
        device: Device to query.
        timeout_s: Per-request timeout overriding the client default.
        now: Request instant (injected for tests).

    Returns:
        DeviceSnapshot: ``ok`` with kW values, or a zeroed ``error``
        snapshot carrying the failure reason.
    """
    requested_at = now or datetime.now(tz=UTC)
    url = f"{device.url}{REALTIME_PATH}"
    request_kwargs: dict = {"headers": device.request_headers()}
    if timeout_s is not None:
        request_kwargs["timeout"] = timeout_s

    try:
        response = await client.get(url, **request_kwargs)
        if response.status_code != 200:
            raise FroniusResponseError(f"Request failed ({response.status_code})")
        site = parse_site(response.json())
    except httpx.TimeoutException:
        message = "Request timed out"
    except (httpx.HTTPError, FroniusResponseError, ValueError) as exc:
        message = str(exc) or exc.__class__.__name__
    else:
        return DeviceSnapshot(
            id=device.id,
            label=device.label,
            timestamp=requested_at,
            status=STATUS_OK,
            **site,
        )

    logger.warning("Device %s unavailable: %s", device.id, message)
    return DeviceSnapshot(
        id=device.id,
        label=device.label,
        timestamp=requested_at,
        generation=0.0,
        consumption=0.0,
        grid=0.0,
        status=STATUS_ERROR,
        error=message,
    )


def combine_snapshots(
    snapshots: list[DeviceSnapshot],
    *,
    observed_at: datetime,
) -> DeviceSnapshot:
    """Sum the ``ok`` snapshots into a single site-level snapshot.

    Args:
        snapshots: Per-device snapshots.
        observed_at: Timestamp for the combined entry.

    Returns:
        DeviceSnapshot: ``ok`` only when every device is ``ok``.
    """
    successful = [s for s in snapshots if s.status == STATUS_OK]
    all_ok = len(successful) == len(snapshots)

    error: str | None = None
    if not successful:
        error = "All devices offline"
    elif not all_ok:
        error = "One or more devices unavailable"

    return DeviceSnapshot(
        id="combined",
        label="Combined",
        timestamp=observed_at,
        generation=sum(s.generation for s in successful),
        consumption=sum(s.consumption for s in successful),
        grid=sum(s.grid for s in successful),
        status=STATUS_OK if all_ok and successful else STATUS_ERROR,
        error=error,
    )


async def collect_snapshots(
    settings: AppSettings,
    client: httpx.AsyncClient,
    *,
    now: datetime | None = None,
) -> PowerDashboard:
    """Poll every configured device concurrently.

    Args:
        settings: Application settings with the device list.
        client: Shared HTTP client.
        now: Poll instant shared by all devices (injected for tests).

    Returns:
        PowerDashboard: Device snapshots plus the combined snapshot.
    """
    observed_at = now or datetime.now(tz=UTC)
    timeout_s = settings.fronius_timeout_ms / 1000.0
    snapshots = await asyncio.gather(
        *(
            fetch_device_snapshot(client, device, timeout_s=timeout_s, now=observed_at)
            for device in settings.fronius_devices
        )
    )
    snapshots = list(snapshots)

    return PowerDashboard(
        property=settings.property_label,
        updated_at=observed_at,
        devices=snapshots,
        combined=combine_snapshots(snapshots, observed_at=observed_at),
    )
