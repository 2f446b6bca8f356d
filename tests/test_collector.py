"""
Tests for the Fronius client and the collector loop.

Tests verify:
- Site power values are converted from W to kW; missing values are 0.
- HTTP errors, timeouts, bad JSON and missing site data yield error snapshots.
- Cloudflare Access headers are sent when configured.
- The combined snapshot sums only online devices.
- _collect_once records snapshots and never raises.
- run_collector registers devices and stops on the shutdown event.

CHANGELOG:
- 2026-10-18: Add non-numeric power value tests
- 2026-10-18: Initial creation

TODO:
- None
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from helpers import T0, mock_db_with_rows
from sqlalchemy.exc import OperationalError

from fronius_monitor.collector.fronius import (
    REALTIME_PATH,
    FroniusResponseError,
    build_client,
    collect_snapshots,
    combine_snapshots,
    fetch_device_snapshot,
    parse_site,
)
from fronius_monitor.collector.main import _collect_once, log_config_summary, run_collector
from fronius_monitor.config import DeviceConfig
from fronius_monitor.models import DeviceSnapshot

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

DEVICE = DeviceConfig(id="main-house", label="Main House", url="http://inverter-a.local")
CF_DEVICE = DeviceConfig(
    id="granny-flat",
    label="Granny Flat",
    url="http://inverter-b.local",
    cf_access_client_id="cf-id",
    cf_access_client_secret="cf-secret",
)


def _payload(**site) -> dict:
    return {"Body": {"Data": {"Site": site}}, "Head": {"Status": {"Code": 0}}}


def _client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _session_factory(db):
    """Stand-in for async_sessionmaker yielding the given session."""

    @asynccontextmanager
    async def _factory():
        yield db

    return _factory


def _snapshot(device_id: str, generation: float, status: str = "ok") -> DeviceSnapshot:
    return DeviceSnapshot(
        id=device_id,
        label=device_id,
        timestamp=T0,
        generation=generation,
        consumption=1.0,
        grid=-0.5,
        status=status,
        error=None if status == "ok" else "Request timed out",
    )


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


class TestParseSite:
    """Extraction of site power values."""

    def test_watts_are_converted_to_kw(self) -> None:
        site = parse_site(_payload(P_PV=4200.0, P_Load=-1800.0, P_Grid=-2400.0))

        assert site == {"generation": 4.2, "consumption": -1.8, "grid": -2.4}

    def test_null_and_missing_values_are_zero(self) -> None:
        """At night the inverter reports P_PV as null."""
        site = parse_site(_payload(P_PV=None, P_Grid=350.0))

        assert site == {"generation": 0.0, "consumption": 0.0, "grid": 0.35}

    @pytest.mark.parametrize(
        "payload",
        [{}, {"Body": {}}, {"Body": {"Data": {}}}, [], "not-json"],
    )
    def test_missing_site_raises(self, payload) -> None:
        with pytest.raises(FroniusResponseError):
            parse_site(payload)

    @pytest.mark.parametrize("value", [{"x": 1}, [1200], "lots"])
    def test_non_numeric_power_raises(self, value) -> None:
        """Objects, lists and text are rejected as response errors."""
        with pytest.raises(FroniusResponseError, match="P_PV"):
            parse_site(_payload(P_PV=value, P_Load=100, P_Grid=0))

    def test_numeric_strings_are_accepted(self) -> None:
        assert parse_site(_payload(P_PV="1500"))["generation"] == 1.5


# ---------------------------------------------------------------------------
# Single device fetch
# ---------------------------------------------------------------------------


class TestFetchDeviceSnapshot:
    """One inverter request; never raises."""

    @pytest.mark.asyncio
    async def test_ok_response(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_payload(P_PV=3000, P_Load=1000, P_Grid=-2000))

        async with _client_for(handler) as client:
            snap = await fetch_device_snapshot(client, DEVICE, now=T0)

        assert str(seen[0].url) == f"http://inverter-a.local{REALTIME_PATH}"
        assert "CF-Access-Client-Id" not in seen[0].headers
        assert snap.status == "ok"
        assert snap.error is None
        assert snap.timestamp == T0
        assert (snap.generation, snap.consumption, snap.grid) == (3.0, 1.0, -2.0)

    @pytest.mark.asyncio
    async def test_cloudflare_headers_are_sent(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_payload(P_PV=0))

        async with _client_for(handler) as client:
            await fetch_device_snapshot(client, CF_DEVICE, now=T0)

        assert seen[0].headers["CF-Access-Client-Id"] == "cf-id"
        assert seen[0].headers["CF-Access-Client-Secret"] == "cf-secret"

    @pytest.mark.asyncio
    async def test_non_200_is_error_snapshot(self) -> None:
        async with _client_for(lambda request: httpx.Response(502)) as client:
            snap = await fetch_device_snapshot(client, DEVICE, now=T0)

        assert snap.status == "error"
        assert snap.error == "Request failed (502)"
        assert (snap.generation, snap.consumption, snap.grid) == (0.0, 0.0, 0.0)

    @pytest.mark.asyncio
    async def test_timeout_is_error_snapshot(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with _client_for(handler) as client:
            snap = await fetch_device_snapshot(client, DEVICE, timeout_s=0.5, now=T0)

        assert snap.status == "error"
        assert snap.error == "Request timed out"

    @pytest.mark.asyncio
    async def test_connection_error_is_error_snapshot(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client_for(handler) as client:
            snap = await fetch_device_snapshot(client, DEVICE, now=T0)

        assert snap.status == "error"
        assert snap.error == "connection refused"

    @pytest.mark.asyncio
    async def test_invalid_json_is_error_snapshot(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>login</html>")

        async with _client_for(handler) as client:
            snap = await fetch_device_snapshot(client, DEVICE, now=T0)

        assert snap.status == "error"
        assert snap.error

    @pytest.mark.asyncio
    async def test_missing_site_is_error_snapshot(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"Body": {"Data": {}}})

        async with _client_for(handler) as client:
            snap = await fetch_device_snapshot(client, DEVICE, now=T0)

        assert snap.status == "error"
        assert snap.error == "Missing site data in response"


# ---------------------------------------------------------------------------
# Combined snapshot
# ---------------------------------------------------------------------------


class TestCombineSnapshots:
    """Site total across devices."""

    def test_all_ok_is_ok(self) -> None:
        combined = combine_snapshots(
            [_snapshot("a", 2.0), _snapshot("b", 1.5)], observed_at=T0
        )

        assert combined.id == "combined"
        assert combined.status == "ok"
        assert combined.error is None
        assert combined.generation == 3.5
        assert combined.grid == -1.0

    def test_offline_device_is_excluded_from_sums(self) -> None:
        combined = combine_snapshots(
            [_snapshot("a", 2.0), _snapshot("b", 9.0, status="error")], observed_at=T0
        )

        assert combined.status == "error"
        assert combined.error == "One or more devices unavailable"
        assert combined.generation == 2.0

    def test_all_offline(self) -> None:
        combined = combine_snapshots(
            [_snapshot("a", 0.0, status="error")], observed_at=T0
        )

        assert combined.status == "error"
        assert combined.error == "All devices offline"
        assert combined.generation == 0.0


class TestCollectSnapshots:
    """Concurrent poll of all configured devices."""

    @pytest.mark.asyncio
    async def test_polls_every_configured_device(self, settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "inverter-a.local":
                return httpx.Response(200, json=_payload(P_PV=1000, P_Load=500, P_Grid=-500))
            return httpx.Response(404)

        async with _client_for(handler) as client:
            dashboard = await collect_snapshots(settings, client, now=T0)

        assert dashboard.property == "Home"
        assert dashboard.updated_at == T0
        assert [d.id for d in dashboard.devices] == ["main-house", "granny-flat"]
        assert dashboard.devices[1].error == "Request failed (404)"
        assert dashboard.combined.generation == 1.0

    @pytest.mark.asyncio
    async def test_malformed_device_does_not_fail_healthy_ones(self, settings) -> None:
        """A non-numeric power value marks only that device as error."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "inverter-a.local":
                return httpx.Response(200, json=_payload(P_PV={"x": 1}, P_Load=500))
            return httpx.Response(200, json=_payload(P_PV=2000, P_Load=500, P_Grid=-1500))

        async with _client_for(handler) as client:
            dashboard = await collect_snapshots(settings, client, now=T0)

        assert [d.status for d in dashboard.devices] == ["error", "ok"]
        assert dashboard.devices[0].error == "Invalid P_PV value in response"
        assert dashboard.combined.generation == 2.0

    def test_build_client_uses_configured_timeout(self, settings) -> None:
        client = build_client(settings)

        assert client.timeout.read == 3.5


# ---------------------------------------------------------------------------
# Collector loop
# ---------------------------------------------------------------------------


def _ok_client() -> httpx.AsyncClient:
    return _client_for(
        lambda request: httpx.Response(200, json=_payload(P_PV=2000, P_Load=1000, P_Grid=-1000))
    )


class TestCollectOnce:
    """A single collect-and-record cycle."""

    @pytest.mark.asyncio
    async def test_records_device_snapshots(self, settings) -> None:
        db = mock_db_with_rows([{}, {}])

        async with _ok_client() as client:
            inserted = await _collect_once(
                settings=settings, client=client, session_factory=_session_factory(db)
            )

        assert inserted == 2
        db.execute.assert_awaited_once()
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_store_error_is_swallowed(self, settings) -> None:
        db = AsyncMock()
        db.execute = AsyncMock(side_effect=OperationalError("INSERT", None, Exception()))

        async with _ok_client() as client:
            inserted = await _collect_once(
                settings=settings, client=client, session_factory=_session_factory(db)
            )

        assert inserted == 0


class TestRunCollector:
    """Loop lifecycle."""

    @pytest.mark.asyncio
    async def test_registers_devices_and_stops_on_shutdown(self, settings) -> None:
        db = mock_db_with_rows([])
        shutdown_event = asyncio.Event()
        collect = AsyncMock(side_effect=lambda **kwargs: shutdown_event.set())

        with patch("fronius_monitor.collector.main._collect_once", collect):
            async with _ok_client() as client:
                await asyncio.wait_for(
                    run_collector(
                        settings=settings,
                        client=client,
                        session_factory=_session_factory(db),
                        shutdown_event=shutdown_event,
                    ),
                    timeout=5,
                )

        collect.assert_awaited_once()
        db.execute.assert_awaited_once()
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_preset_shutdown_skips_collection(self, settings) -> None:
        db = mock_db_with_rows([])
        shutdown_event = asyncio.Event()
        shutdown_event.set()
        collect = AsyncMock()

        with patch("fronius_monitor.collector.main._collect_once", collect):
            async with _ok_client() as client:
                await run_collector(
                    settings=settings,
                    client=client,
                    session_factory=_session_factory(db),
                    shutdown_event=shutdown_event,
                )

        collect.assert_not_awaited()


def test_config_summary_omits_secrets(settings, caplog) -> None:
    """Device URLs are logged; tokens and Cloudflare secrets are not."""
    with caplog.at_level(logging.INFO, logger="fronius_monitor.collector.main"):
        log_config_summary(settings)

    text = json.dumps([r.getMessage() for r in caplog.records])
    assert "main-house@http://inverter-a.local" in text
    assert "cf-secret" not in text
    assert "test-token-abc" not in text
