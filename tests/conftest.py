"""Shared test fixtures for the migration watcher."""

import pytest

from migwatch.config import AppSettings, DetectorSettings, PriceSettings, RpcSettings


@pytest.fixture
def detector_settings(tmp_path) -> DetectorSettings:
    """DetectorSettings with state under a temp dir and fast polling."""
    return DetectorSettings(
        data_dir=str(tmp_path),
        polling_interval_seconds=0.01,
        concurrency_limit=5,
    )


@pytest.fixture
def mock_settings(tmp_path) -> AppSettings:
    """Return AppSettings with test defaults (dummy RPC URL, no price key)."""
    return AppSettings(
        log_level="DEBUG",
        rpc=RpcSettings(url="https://rpc.test.invalid", max_retries=0),
        price=PriceSettings(),
        detector=DetectorSettings(data_dir=str(tmp_path)),
    )
