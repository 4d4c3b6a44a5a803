from __future__ import annotations

import os
from pathlib import Path

import pytest

from pyzmon.config import MonitorConfig
from pyzmon.exceptions import MonitorConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("ZMON_"):
            monkeypatch.delenv(key)


def test_defaults() -> None:
    config = MonitorConfig.from_env()

    assert config.nearby_interval == 5
    assert config.stale_after == 15
    assert config.evict_after == 1800
    assert config.nearby_window == 8
    assert config.group_gap == 15
    assert config.cache_save_interval == 30
    assert config.cache_min_updates == 100
    assert config.mqtt_enabled is False


def test_environment_values(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ZMON_STORAGE_DIR", str(tmp_path))
    monkeypatch.setenv("ZMON_NEARBY_INTERVAL", "2.5")
    monkeypatch.setenv("ZMON_NEARBY_WINDOW", "4")
    monkeypatch.setenv("ZMON_MQTT_ENABLED", "yes")
    monkeypatch.setenv("ZMON_MQTT_PORT", "8883")

    config = MonitorConfig.from_env()

    assert config.storage_dir == tmp_path
    assert config.nearby_interval == 2.5
    assert config.nearby_window == 4
    assert config.mqtt_enabled is True
    assert config.mqtt_port == 8883


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ZMON_GROUP_GAP", "not-a-number")
    monkeypatch.setenv("ZMON_MQTT_ENABLED", "1")

    config = MonitorConfig.from_env(group_gap=20.0, mqtt_enabled=False)

    assert config.group_gap == 20.0
    assert config.mqtt_enabled is False


def test_invalid_number_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ZMON_STALE_AFTER", "soon")

    with pytest.raises(MonitorConfigError, match="ZMON_STALE_AFTER"):
        MonitorConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"nearby_interval": 0},
        {"stale_after": 2000, "evict_after": 1000},
        {"nearby_window": -1},
        {"mqtt_topic": "/"},
    ],
)
def test_inconsistent_values_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(MonitorConfigError):
        MonitorConfig(**kwargs)  # type: ignore[arg-type]
