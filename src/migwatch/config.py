"""Configuration system using pydantic-settings with environment variable loading.

Values come from (highest precedence first) init kwargs, environment variables,
a `.env` file, and an optional `config.json` in the working directory.

Each settings group reads its own prefixed variables (SOLANA_RPC_, PRICE_,
DETECTOR_, DASHBOARD_) from both the environment and `.env`. In `config.json`
a group is configured through its section::

    {"detector": {"concurrency_limit": 3}, "price": {"network": "solana"}}

The flat camelCase keys of earlier releases (``pollingIntervalMs``,
``ignoreMints``, ``windowSeconds``, ``maxSignaturesPerFetch``,
``concurrencyLimit``) are still accepted and map onto the detector group.
"""

import json
from collections.abc import Callable
from decimal import Decimal
from pathlib import Path
from typing import Any, ClassVar

from pydantic import Field, SecretStr
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from migwatch.chain.programs import USDC_MINT, USDT_MINT, WSOL_MINT
from migwatch.exceptions import ConfigurationError

CONFIG_FILE = "config.json"
ENV_FILE = ".env"

_PRESET_NAMES = {300: "5m", 1800: "30m", 3600: "1h", 10800: "3h", 21600: "6h"}


def _window_name(seconds: Any) -> str | None:
    """Preset name for a window given in seconds, None when no preset matches."""
    return _PRESET_NAMES.get(seconds) if isinstance(seconds, int) else None


class JsonSectionSource(PydanticBaseSettingsSource):
    """Settings source reading one group's section of ``config.json``.

    With an empty ``json_section`` the scalar top-level keys are read
    instead. Top-level keys listed in ``legacy_json_keys`` are converted
    first, so a nested section value wins over a flat legacy key.
    """

    def __init__(self, settings_cls: type[BaseSettings], json_file: Path | None = None) -> None:
        super().__init__(settings_cls)
        self._values = self._read(Path(json_file or CONFIG_FILE))

    def _read(self, path: Path) -> dict[str, Any]:
        if not path.is_file():
            return {}
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot read {path}: {e}") from e
        if not isinstance(document, dict):
            raise ConfigurationError(f"{path} must contain a JSON object")

        values: dict[str, Any] = {}
        legacy: dict[str, tuple[str, Callable[[Any], Any]]] = getattr(
            self.settings_cls, "legacy_json_keys", {}
        )
        for key, (field_name, convert) in legacy.items():
            if key in document:
                converted = convert(document[key])
                if converted is not None:
                    values[field_name] = converted

        name = getattr(self.settings_cls, "json_section", "")
        if name:
            section = document.get(name)
        else:
            # root settings: scalar top-level keys only, groups read their own sections
            section = {k: v for k, v in document.items() if not isinstance(v, dict)}
        if isinstance(section, dict):
            values.update(section)
        return values

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return self._values.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in self._values.items()
            if name in self.settings_cls.model_fields
        }


class _JsonBackedSettings(BaseSettings):
    """Settings read from init kwargs, the environment, `.env`, then `config.json`."""

    json_section: ClassVar[str] = ""
    legacy_json_keys: ClassVar[dict[str, tuple[str, Callable[[Any], Any]]]] = {}

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonSectionSource(settings_cls),
            file_secret_settings,
        )


class RpcSettings(_JsonBackedSettings):
    """Solana JSON-RPC node connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="SOLANA_RPC_", env_file=ENV_FILE, extra="ignore"
    )
    json_section: ClassVar[str] = "rpc"

    url: str = ""  # required at startup, see main._build_components
    commitment: str = "confirmed"
    request_timeout_seconds: float = 30.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0


class PriceSettings(_JsonBackedSettings):
    """GeckoTerminal price API settings.

    The minimum interval between requests is tightened when an API key is
    configured and widened on the public tier. With ``enabled`` false no
    price requests are made and market caps are derived from supply only.
    """

    model_config = SettingsConfigDict(env_prefix="PRICE_", env_file=ENV_FILE, extra="ignore")
    json_section: ClassVar[str] = "price"

    enabled: bool = True
    api_key: SecretStr = SecretStr("")
    base_url: str = "https://api.geckoterminal.com/api/v2"
    pro_base_url: str = "https://pro-api.coingecko.com/api/v3/onchain"
    network: str = "solana"
    min_interval_seconds: float = 2.0  # public tier: 30 req/min
    min_interval_with_key_seconds: float = 0.2
    max_retries: int = 2
    request_timeout_seconds: float = 10.0


class DetectorSettings(_JsonBackedSettings):
    """Migration detection and enrichment parameters.

    All fields configurable via DETECTOR_ environment variable prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="DETECTOR_", env_file=ENV_FILE, extra="ignore"
    )
    json_section: ClassVar[str] = "detector"
    legacy_json_keys: ClassVar[dict[str, tuple[str, Callable[[Any], Any]]]] = {
        "pollingIntervalMs": ("polling_interval_seconds", lambda ms: ms / 1000),
        "ignoreMints": ("ignore_mints", list),
        "windowSeconds": ("default_window", _window_name),
        "maxSignaturesPerFetch": ("max_signatures_per_fetch", int),
        "concurrencyLimit": ("concurrency_limit", int),
    }

    polling_interval_seconds: float = 60.0
    ignore_mints: list[str] = Field(
        default_factory=lambda: [WSOL_MINT, USDC_MINT, USDT_MINT]
    )
    window_presets: dict[str, int] = Field(
        default_factory=lambda: {
            "5m": 300,
            "30m": 1800,
            "1h": 3600,
            "60m": 3600,
            "3h": 10800,
            "6h": 21600,
        }
    )
    default_window: str = "5m"
    max_signatures_per_fetch: int = 1000  # node maximum for getSignaturesForAddress
    concurrency_limit: int = 5
    enrich_concurrency: int = 1  # sequential, the price API rate limit dominates
    market_cap_floor: Decimal = Decimal("20000")
    history_limit: int = 10_000
    retry_failed_items: bool = True
    data_dir: str = "data"
    metadata_cache_ttl_seconds: float = 0.0  # 0 disables caching
    snapshot_window_hours: int = 6


class DashboardSettings(_JsonBackedSettings):
    """Dashboard server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_", env_file=ENV_FILE, extra="ignore"
    )
    json_section: ClassVar[str] = "dashboard"

    host: str = "0.0.0.0"
    port: int = 3000
    enabled: bool = True


class AppSettings(_JsonBackedSettings):
    """Root application settings, composing all sub-settings.

    Groups are built when AppSettings is instantiated, so each reads the
    environment, `.env` and `config.json` of the current working directory.
    """

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"
    rpc: RpcSettings = Field(default_factory=RpcSettings)
    price: PriceSettings = Field(default_factory=PriceSettings)
    detector: DetectorSettings = Field(default_factory=DetectorSettings)
    dashboard: DashboardSettings = Field(default_factory=DashboardSettings)
