from __future__ import annotations

from decimal import Decimal

import pytest

from fleetsync.config import FleetConfig
from fleetsync.exceptions import FleetConfigError

_ENV_KEYS = (
    "FLEET_DATABASE_URL",
    "FLEET_AUTH_TOKEN",
    "FLEET_VEHICLES_PATH",
    "FLEET_TRIPS_PATH",
    "FLEET_TAX_RATE",
    "FLEET_REQUEST_TIMEOUT",
    "FLEET_STREAM_RECONNECT_DELAY",
    "FLEET_API_TRACE_ENABLED",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    config = FleetConfig(database_url="https://fleet.example.test")

    assert config.vehicles_path == "vehicles"
    assert config.trips_path == "trips"
    assert config.tax_rate == Decimal("0.18")
    assert config.auth_token is None
    assert not config.api_trace_enabled


def test_from_env_reads_all_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLEET_DATABASE_URL", "https://fleet.example.test")
    monkeypatch.setenv("FLEET_AUTH_TOKEN", "secret")
    monkeypatch.setenv("FLEET_TRIPS_PATH", "transport/trips")
    monkeypatch.setenv("FLEET_TAX_RATE", "0.12")
    monkeypatch.setenv("FLEET_REQUEST_TIMEOUT", "5")
    monkeypatch.setenv("FLEET_STREAM_RECONNECT_DELAY", "0.5")
    monkeypatch.setenv("FLEET_API_TRACE_ENABLED", "yes")

    config = FleetConfig.from_env()

    assert config.auth_token == "secret"
    assert config.trips_path == "transport/trips"
    assert config.tax_rate == Decimal("0.12")
    assert config.request_timeout == 5.0
    assert config.stream_reconnect_delay == 0.5
    assert config.api_trace_enabled


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLEET_DATABASE_URL", "https://fleet.example.test")
    monkeypatch.setenv("FLEET_TAX_RATE", "0.12")

    config = FleetConfig.from_env(tax_rate=Decimal("0.05"), vehicles_path="fleet")

    assert config.tax_rate == Decimal("0.05")
    assert config.vehicles_path == "fleet"


def test_missing_database_url_is_an_error() -> None:
    with pytest.raises(FleetConfigError):
        FleetConfig.from_env()


@pytest.mark.parametrize(
    ("key", "value"),
    [("FLEET_TAX_RATE", "lots"), ("FLEET_REQUEST_TIMEOUT", "soon")],
)
def test_non_numeric_env_values_are_rejected(monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
    monkeypatch.setenv("FLEET_DATABASE_URL", "https://fleet.example.test")
    monkeypatch.setenv(key, value)

    with pytest.raises(FleetConfigError):
        FleetConfig.from_env()


def test_tax_rate_is_coerced_and_validated() -> None:
    assert FleetConfig(database_url="https://x.test", tax_rate=0.05).tax_rate == Decimal("0.05")  # type: ignore[arg-type]

    with pytest.raises(FleetConfigError):
        FleetConfig(database_url="https://x.test", tax_rate=Decimal("-0.1"))
