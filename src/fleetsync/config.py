"""Client configuration for fleetsync."""

from __future__ import annotations

import dataclasses
import os
from decimal import Decimal, InvalidOperation
from typing import Any

from fleetsync.exceptions import FleetConfigError

#: GST applied to trip subtotals unless a deployment overrides it.
DEFAULT_TAX_RATE = Decimal("0.18")


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(env_key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise FleetConfigError(f"{env_key} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class FleetConfig:
    """Client configuration.

    Parameters
    ----------
    database_url : str
        Base URL of the realtime database
        (e.g. ``"https://my-fleet-default-rtdb.firebaseio.com"``).
    auth_token : str or None
        Database secret or ID token, sent as the ``auth`` query parameter.
    vehicles_path : str
        Collection path holding vehicle records.
    trips_path : str
        Collection path holding trip records.
    tax_rate : Decimal
        Tax rate applied to trip subtotals.
    request_timeout : float
        Total timeout in seconds for write requests.
    stream_reconnect_delay : float
        Seconds to wait before re-opening a failed snapshot stream.
    api_trace_enabled : bool
        Log redacted request/response payloads at DEBUG.
    """

    database_url: str
    auth_token: str | None = None
    vehicles_path: str = "vehicles"
    trips_path: str = "trips"
    tax_rate: Decimal = DEFAULT_TAX_RATE
    request_timeout: float = 30.0
    stream_reconnect_delay: float = 5.0
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if not self.database_url or not self.database_url.strip():
            raise FleetConfigError("database_url is required")
        if not isinstance(self.tax_rate, Decimal):
            object.__setattr__(self, "tax_rate", Decimal(str(self.tax_rate)))
        if self.tax_rate < 0:
            raise FleetConfigError("tax_rate must be non-negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> FleetConfig:
        """Create configuration from ``FLEET_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "FLEET_DATABASE_URL": "database_url",
            "FLEET_AUTH_TOKEN": "auth_token",
            "FLEET_VEHICLES_PATH": "vehicles_path",
            "FLEET_TRIPS_PATH": "trips_path",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        tax_env = env.get("FLEET_TAX_RATE")
        if tax_env is not None and "tax_rate" not in overrides:
            try:
                config_kwargs["tax_rate"] = Decimal(tax_env.strip())
            except InvalidOperation as exc:
                raise FleetConfigError(f"FLEET_TAX_RATE must be numeric, got {tax_env!r}") from exc

        timeout_env = env.get("FLEET_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = _env_float("FLEET_REQUEST_TIMEOUT", timeout_env)

        delay_env = env.get("FLEET_STREAM_RECONNECT_DELAY")
        if delay_env is not None and "stream_reconnect_delay" not in overrides:
            config_kwargs["stream_reconnect_delay"] = _env_float("FLEET_STREAM_RECONNECT_DELAY", delay_env)

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(env.get("FLEET_API_TRACE_ENABLED"), False)

        config_kwargs.update(overrides)
        if "database_url" not in config_kwargs:
            raise FleetConfigError("FLEET_DATABASE_URL is not set")

        return cls(**config_kwargs)
