"""
Application configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
The device list is an explicit configuration object handed to the collector
and the API at startup; nothing else reads the environment ad hoc.

CHANGELOG:
- 2026-10-18: Add GridExportSign alias
- 2026-10-18: Add POWER_UNIT and GRID_EXPORT_SIGN aggregation settings
- 2026-10-18: Initial creation

TODO:
- None
"""

from typing import Literal

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings

GridExportSign = Literal["negative", "positive"]

POWER_SCALES: dict[str, float] = {"kW": 1.0, "W": 1000.0}
"""Divisor that turns a stored power value into kW."""


class DeviceConfig(BaseModel):
    """A single Fronius inverter to poll.

    Attributes:
        id: Stable device identifier used as the snapshot key.
        label: Human readable device name.
        url: Base URL of the inverter's Solar API (no trailing path).
        cf_access_client_id: Optional Cloudflare Access client id.
        cf_access_client_secret: Optional Cloudflare Access client secret.
    """

    id: str
    label: str
    url: str
    cf_access_client_id: str | None = None
    cf_access_client_secret: str | None = None

    @field_validator("id", "label", "url")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        """Reject empty identity fields."""
        v = v.strip()
        if not v:
            raise ValueError("device id, label and url must not be empty")
        return v

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalise the base URL so paths can be appended."""
        return v.rstrip("/")

    def request_headers(self) -> dict[str, str]:
        """Return the Cloudflare Access headers, or an empty dict."""
        if self.cf_access_client_id and self.cf_access_client_secret:
            return {
                "CF-Access-Client-Id": self.cf_access_client_id,
                "CF-Access-Client-Secret": self.cf_access_client_secret,
            }
        return {}


class AppSettings(BaseSettings):
    """Configuration shared by the API, the collector and maintenance commands.

    Attributes:
        database_url: SQLAlchemy async database URL.
        api_tokens: Comma-separated bearer tokens accepted by the API.
        fronius_devices: JSON list of devices to poll.
        property_label: Display name of the monitored property.
        fronius_timeout_ms: Per-device request timeout in milliseconds.
        fronius_proxy_url: Optional HTTP or SOCKS5 proxy for inverter requests.
        poll_interval_s: Seconds between collector cycles (min 5).
        power_unit: Unit of stored power values, ``kW`` or ``W``.
        grid_export_sign: Sign of grid power while exporting.
        site_timezone: IANA timezone used to resolve the ``today`` range.
        metrics_timeout_s: Timeout around the historical summary request.
        cors_origins: Comma-separated allowed CORS origins.
    """

    database_url: str
    api_tokens: str
    fronius_devices: list[DeviceConfig]
    property_label: str = "Home"
    fronius_timeout_ms: int = 3500
    fronius_proxy_url: str | None = None
    poll_interval_s: int = 30
    power_unit: Literal["kW", "W"] = "kW"
    grid_export_sign: GridExportSign = "negative"
    site_timezone: str = "UTC"
    metrics_timeout_s: float = 30.0
    cors_origins: str = ""

    @field_validator("fronius_devices")
    @classmethod
    def device_ids_must_be_unique(cls, v: list[DeviceConfig]) -> list[DeviceConfig]:
        """Require at least one device and unique device ids."""
        if not v:
            raise ValueError("FRONIUS_DEVICES must list at least one device")
        ids = [device.id for device in v]
        if len(ids) != len(set(ids)):
            raise ValueError("FRONIUS_DEVICES contains duplicate device ids")
        return v

    @field_validator("fronius_timeout_ms")
    @classmethod
    def timeout_must_be_positive(cls, v: int) -> int:
        """Validate the per-device timeout is positive."""
        if v <= 0:
            raise ValueError("FRONIUS_TIMEOUT_MS must be > 0")
        return v

    @field_validator("poll_interval_s")
    @classmethod
    def poll_interval_must_be_reasonable(cls, v: int) -> int:
        """Keep the collector from hammering the inverters."""
        if v < 5:
            raise ValueError("POLL_INTERVAL_S must be >= 5")
        return v

    @field_validator("site_timezone")
    @classmethod
    def timezone_must_exist(cls, v: str) -> str:
        """Validate the timezone name against the tz database."""
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown SITE_TIMEZONE '{v}'") from None
        return v

    @property
    def power_scale(self) -> float:
        """Divisor converting stored power values to kW."""
        return POWER_SCALES[self.power_unit]

    @property
    def cors_origin_list(self) -> list[str]:
        """CORS origins as a list, empty entries dropped."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
