"""Monitor configuration for pyzmon."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pyzmon._constants import (
    DEFAULT_CACHE_MIN_UPDATES,
    DEFAULT_CACHE_SAVE_INTERVAL_S,
    DEFAULT_EVICT_AFTER_S,
    DEFAULT_GROUP_GAP_M,
    DEFAULT_IDLE_POLL_INTERVAL_S,
    DEFAULT_NEARBY_INTERVAL_S,
    DEFAULT_NEARBY_WINDOW,
    DEFAULT_STALE_AFTER_S,
)
from pyzmon.exceptions import MonitorConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _default_storage_dir() -> Path:
    return Path.home() / ".pyzmon"


@dataclasses.dataclass(frozen=True)
class MonitorConfig:
    """Monitor configuration.

    Parameters
    ----------
    storage_dir : Path
        Directory holding persisted state files (the athlete profile cache).
    nearby_interval : float
        Seconds between nearby/group recomputations when nothing wakes
        the scheduler early.
    idle_poll_interval : float
        Seconds between checks while no athlete is being watched.
    stale_after : float
        Athlete states older than this (seconds) are left out of a tick.
    evict_after : float
        Athlete states older than this (seconds) are dropped from the store.
    nearby_window : int
        Number of neighbours reported on each side of the watched athlete.
    group_gap : float
        Gap in meters between consecutive riders that splits two groups.
    cache_save_interval : float
        Minimum seconds between two profile cache saves.
    cache_min_updates : int
        Minimum number of profile updates before a save is performed.
    mqtt_enabled : bool
        Consume decoded packets from an MQTT broker.
    mqtt_host : str
        MQTT broker host.
    mqtt_port : int
        MQTT broker port.
    mqtt_topic : str
        Topic prefix; decoded packets arrive on ``<topic>/incoming`` and
        ``<topic>/outgoing``.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_client_id : str
        MQTT client identifier (empty lets the broker assign one).
    """

    storage_dir: Path = dataclasses.field(default_factory=_default_storage_dir)
    nearby_interval: float = DEFAULT_NEARBY_INTERVAL_S
    idle_poll_interval: float = DEFAULT_IDLE_POLL_INTERVAL_S
    stale_after: float = DEFAULT_STALE_AFTER_S
    evict_after: float = DEFAULT_EVICT_AFTER_S
    nearby_window: int = DEFAULT_NEARBY_WINDOW
    group_gap: float = DEFAULT_GROUP_GAP_M
    cache_save_interval: float = DEFAULT_CACHE_SAVE_INTERVAL_S
    cache_min_updates: int = DEFAULT_CACHE_MIN_UPDATES
    mqtt_enabled: bool = False
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic: str = "zwift/packets"
    mqtt_keepalive: int = 60
    mqtt_client_id: str = ""

    def __post_init__(self) -> None:
        if self.nearby_interval <= 0:
            raise MonitorConfigError("nearby_interval must be positive")
        if self.idle_poll_interval <= 0:
            raise MonitorConfigError("idle_poll_interval must be positive")
        if self.stale_after > self.evict_after:
            raise MonitorConfigError("stale_after must not exceed evict_after")
        if self.nearby_window < 0:
            raise MonitorConfigError("nearby_window must not be negative")
        if self.cache_min_updates < 0:
            raise MonitorConfigError("cache_min_updates must not be negative")
        if not self.mqtt_topic.strip("/"):
            raise MonitorConfigError("mqtt_topic must be non-empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> MonitorConfig:
        """Create configuration from ``ZMON_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        MonitorConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_CONFIG_MAP: dict[str, tuple[str, Callable[[str], Any]]] = {
            "ZMON_STORAGE_DIR": ("storage_dir", lambda v: Path(v).expanduser()),
            "ZMON_NEARBY_INTERVAL": ("nearby_interval", float),
            "ZMON_IDLE_POLL_INTERVAL": ("idle_poll_interval", float),
            "ZMON_STALE_AFTER": ("stale_after", float),
            "ZMON_EVICT_AFTER": ("evict_after", float),
            "ZMON_NEARBY_WINDOW": ("nearby_window", int),
            "ZMON_GROUP_GAP": ("group_gap", float),
            "ZMON_CACHE_SAVE_INTERVAL": ("cache_save_interval", float),
            "ZMON_CACHE_MIN_UPDATES": ("cache_min_updates", int),
            "ZMON_MQTT_HOST": ("mqtt_host", str),
            "ZMON_MQTT_PORT": ("mqtt_port", int),
            "ZMON_MQTT_TOPIC": ("mqtt_topic", str),
            "ZMON_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "ZMON_MQTT_CLIENT_ID": ("mqtt_client_id", str),
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, (field_name, parse) in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = parse(val)
            except ValueError as exc:
                raise MonitorConfigError(f"Invalid value for {env_key}: {val!r}") from exc

        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("ZMON_MQTT_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
