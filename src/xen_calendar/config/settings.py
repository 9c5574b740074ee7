"""Configuration management for the mint calendar pipeline."""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, cast

from pydantic import AnyHttpUrl, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_FILE = Path("config/app.toml")
CONFIG_FILE_ENV_VAR = "APP_CONFIG_FILE"
PROFILE_ENV_VAR = "XEN_CALENDAR_PROFILE"

MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"

DEFAULT_RPC_ENDPOINTS: Dict[int, str] = {
    1: "https://ethereum-rpc.publicnode.com",
    56: "https://bsc-rpc.publicnode.com",
    137: "https://polygon-rpc.com",
    43114: "https://avalanche-c-chain-rpc.publicnode.com",
    10001: "https://mainnet.ethereumpow.org",
    1284: "https://moonbeam-rpc.publicnode.com",
    9001: "https://evmos-evm.publicnode.com",
    250: "https://fantom-rpc.publicnode.com",
    2000: "https://rpc.dogechain.dog",
    66: "https://exchainrpc.okex.org",
    369: "https://rpc.pulsechain.com",
    10: "https://optimism-rpc.publicnode.com",
    8453: "https://base-rpc.publicnode.com",
}


def _resolve_config_path() -> Path:
    env_value = os.getenv(CONFIG_FILE_ENV_VAR)
    if env_value:
        candidate = Path(env_value)
        if not candidate.is_absolute():
            candidate = Path.cwd() / candidate
        return candidate
    return Path.cwd() / DEFAULT_CONFIG_FILE


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {**base}
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(cast(Dict[str, Any], result[key]), value)
        else:
            result[key] = value
    return result


def _select_profile(data: Dict[str, Any]) -> Dict[str, Any]:
    if not data:
        return {}
    base_section = cast(Dict[str, Any], data.get("default", {}))
    requested = (os.getenv(PROFILE_ENV_VAR) or "").strip().lower()
    if requested and requested != "default" and requested in data:
        return _deep_merge(base_section, cast(Dict[str, Any], data[requested]))
    if base_section:
        return base_section
    return data


def _load_toml_config() -> Tuple[Dict[str, Any], Optional[Path]]:
    path = _resolve_config_path()
    if not path.exists():
        return {}, None
    with path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        return {}, path
    merged = _select_profile(payload)
    if not isinstance(merged, dict):
        return {}, path
    return dict(merged), path


class RPCConfig(BaseModel):
    """JSON-RPC endpoints keyed by chain identifier."""

    endpoints: Dict[int, AnyHttpUrl] = Field(
        default_factory=lambda: dict(DEFAULT_RPC_ENDPOINTS)
    )
    request_timeout: float = Field(default=30.0, ge=1.0, le=120.0)
    multicall_address: str = Field(default=MULTICALL3_ADDRESS)

    @field_validator("endpoints", mode="before")
    @classmethod
    def _merge_defaults(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        merged: Dict[int, Any] = dict(DEFAULT_RPC_ENDPOINTS)
        for key, url in value.items():
            merged[int(key)] = url
        return merged

    def endpoint_for(self, chain_id: int) -> Optional[str]:
        url = self.endpoints.get(chain_id)
        return str(url) if url is not None else None


class FetchConfig(BaseModel):
    """Batching, pacing, and retry parameters for remote reads."""

    xenft_batch_size: int = Field(default=5, ge=1, le=100)
    xenft_batch_delay_seconds: float = Field(default=1.0, ge=0.0)
    cointool_batch_size: int = Field(default=50, ge=1, le=500)
    cointool_batch_delay_seconds: float = Field(default=0.1, ge=0.0)
    stats_batch_size: int = Field(default=50, ge=2, le=500)
    max_attempts: int = Field(default=3, ge=1, le=10)
    backoff_initial_seconds: float = Field(default=1.0, ge=0.0)
    backoff_max_seconds: float = Field(default=4.0, ge=0.0)
    cointool_salts: List[str] = Field(default_factory=lambda: ["0x01", "0x00"])

    @field_validator("cointool_salts", mode="before")
    @classmethod
    def _split_salts(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


class CalendarConfig(BaseModel):
    """Calendar export options."""

    product_id: str = Field(default="-//XEN Calendar//EN")
    uid_domain: str = Field(default="xencalendar.app")
    default_filename: str = Field(default="xen-mints.ics")


class MonitoringConfig(BaseModel):
    """Logging configuration."""

    log_level: str = Field(default="INFO")


class AppConfig(BaseSettings):
    """Aggregated application configuration."""

    rpc: RPCConfig = Field(default_factory=RPCConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    config_file: Optional[Path] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        def file_settings(_: Optional[BaseSettings] = None) -> Dict[str, Any]:
            payload, path = _load_toml_config()
            if path is not None:
                payload.setdefault("config_file", str(path))
            return payload

        # Environment variables win over the static config file.
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            file_settings,
            file_secret_settings,
        )


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """Create a cached application configuration object."""

    return AppConfig()


__all__ = [
    "AppConfig",
    "CalendarConfig",
    "FetchConfig",
    "MULTICALL3_ADDRESS",
    "MonitoringConfig",
    "RPCConfig",
    "get_app_config",
]
