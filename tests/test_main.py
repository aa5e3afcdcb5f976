"""Tests for CLI parsing, window resolution and component wiring."""

from unittest.mock import patch

import pytest

from migwatch.config import AppSettings, DetectorSettings, PriceSettings, RpcSettings
from migwatch.exceptions import ConfigurationError
from migwatch.main import _build_components, main, parse_args, resolve_window
from migwatch.orchestrator import MigrationWatcher
from migwatch.price.geckoterminal import GeckoTerminalProvider
from migwatch.price.provider import NullPriceProvider


class TestParseArgs:
    def test_defaults(self) -> None:
        args = parse_args([])
        assert args.window is None
        assert not args.once
        assert not args.snapshot

    def test_equals_form(self) -> None:
        args = parse_args(["--window=6h", "--once"])
        assert args.window == "6h"
        assert args.once

    def test_once_and_snapshot_are_exclusive(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["--once", "--snapshot"])


class TestResolveWindow:
    @pytest.mark.parametrize(
        ("name", "seconds"),
        [("5m", 300), ("30m", 1800), ("1h", 3600), ("60m", 3600), ("3h", 10800), ("6h", 21600)],
    )
    def test_presets(self, mock_settings, name, seconds) -> None:
        assert resolve_window(name, mock_settings) == seconds

    def test_default_window(self, mock_settings) -> None:
        assert resolve_window(None, mock_settings) == 300

    def test_unknown_window(self, mock_settings) -> None:
        with pytest.raises(ConfigurationError, match="Invalid window"):
            resolve_window("2d", mock_settings)


class TestBuildComponents:
    def test_missing_rpc_url(self, tmp_path) -> None:
        settings = AppSettings(
            rpc=RpcSettings(url=""),
            detector=DetectorSettings(data_dir=str(tmp_path)),
        )
        with pytest.raises(ConfigurationError, match="SOLANA_RPC_URL"):
            _build_components(settings)

    def test_wires_watcher_with_data_dir_paths(self, mock_settings, tmp_path) -> None:
        components = _build_components(mock_settings)

        watcher = components["watcher"]
        assert isinstance(watcher, MigrationWatcher)
        assert watcher.output_path == tmp_path / "migrations_latest.json"
        assert components["history"].path == tmp_path / "history.json"
        assert components["cursor_store"].path == tmp_path / "cursor.json"
        assert components["client"].url == "https://rpc.test.invalid"

    def test_price_lookups_enabled_by_default(self, mock_settings) -> None:
        components = _build_components(mock_settings)
        assert isinstance(components["price_provider"], GeckoTerminalProvider)

    def test_price_lookups_disabled(self, mock_settings) -> None:
        settings = mock_settings.model_copy(update={"price": PriceSettings(enabled=False)})

        components = _build_components(settings)

        assert isinstance(components["price_provider"], NullPriceProvider)
        assert components["enricher"]._price is components["price_provider"]
        assert components["enricher"].market_cap_floor is None


class TestMain:
    def test_configuration_error_exits_nonzero(self, monkeypatch, tmp_path) -> None:
        monkeypatch.setattr("sys.argv", ["migwatch", "--once"])
        settings = AppSettings(
            rpc=RpcSettings(url=""),
            detector=DetectorSettings(data_dir=str(tmp_path)),
        )
        with patch("migwatch.main.AppSettings", return_value=settings):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1

    def test_invalid_setting_exits_nonzero(self, monkeypatch, tmp_path, capsys) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("sys.argv", ["migwatch", "--once"])
        monkeypatch.setenv("DETECTOR_CONCURRENCY_LIMIT", "many")

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
        assert "Configuration error" in capsys.readouterr().err
