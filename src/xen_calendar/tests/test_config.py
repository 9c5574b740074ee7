from __future__ import annotations

from pathlib import Path

import pytest

from xen_calendar.config import settings
from xen_calendar.config.networks import DEFAULT_REGISTRY, NetworkRegistry


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    for name in (
        "APP_CONFIG_FILE",
        "XEN_CALENDAR_PROFILE",
        "FETCH__XENFT_BATCH_SIZE",
        "FETCH__COINTOOL_SALTS",
        "RPC__REQUEST_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    settings.get_app_config.cache_clear()
    yield
    settings.get_app_config.cache_clear()


def test_defaults_match_public_deployment() -> None:
    cfg = settings.get_app_config()

    assert cfg.fetch.xenft_batch_size == 5
    assert cfg.fetch.cointool_batch_size == 50
    assert cfg.fetch.cointool_salts == ["0x01", "0x00"]
    assert cfg.fetch.max_attempts == 3
    assert cfg.calendar.product_id == "-//XEN Calendar//EN"
    assert cfg.config_file is None
    assert all(cfg.rpc.endpoint_for(profile.chain_id) for profile in DEFAULT_REGISTRY.all())


def test_app_config_loads_profiles_and_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = tmp_path / "app.toml"
    config_path.write_text(
        """
[default.fetch]
xenft_batch_size = 4
cointool_batch_delay_seconds = 0.5

[default.rpc]
request_timeout = 9.5

[default.rpc.endpoints]
1 = "https://eth.example.org"

[slow.fetch]
cointool_batch_size = 10
"""
    )
    monkeypatch.setenv("APP_CONFIG_FILE", str(config_path))
    monkeypatch.setenv("XEN_CALENDAR_PROFILE", "slow")
    monkeypatch.setenv("RPC__REQUEST_TIMEOUT", "18")

    cfg = settings.get_app_config()

    assert cfg.config_file == config_path
    assert cfg.fetch.xenft_batch_size == 4
    assert cfg.fetch.cointool_batch_size == 10
    assert cfg.fetch.cointool_batch_delay_seconds == 0.5
    assert cfg.rpc.request_timeout == 18.0
    assert cfg.rpc.endpoint_for(1).startswith("https://eth.example.org")
    assert cfg.rpc.endpoint_for(8453) is not None


def test_environment_overrides_nested_fields(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FETCH__XENFT_BATCH_SIZE", "9")
    monkeypatch.setenv("FETCH__COINTOOL_SALTS", '["0x02", "0x03"]')

    cfg = settings.get_app_config()

    assert cfg.fetch.xenft_batch_size == 9
    assert cfg.fetch.cointool_salts == ["0x02", "0x03"]


def test_salts_accept_comma_separated_text() -> None:
    assert settings.FetchConfig(cointool_salts="0x02, 0x03,").cointool_salts == ["0x02", "0x03"]


def test_network_registry_lookups() -> None:
    assert len(DEFAULT_REGISTRY) == 13
    assert DEFAULT_REGISTRY.resolve("137").name == "Polygon"
    assert DEFAULT_REGISTRY.resolve("ethereum pow").chain_id == 10001
    assert DEFAULT_REGISTRY.by_name("Nowhere") is None
    assert 8453 in DEFAULT_REGISTRY
    assert 999 not in DEFAULT_REGISTRY
    assert len(NetworkRegistry([DEFAULT_REGISTRY.lookup(1), DEFAULT_REGISTRY.lookup(1)])) == 1
