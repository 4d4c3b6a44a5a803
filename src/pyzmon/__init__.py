"""pyzmon - Async live monitor for multiplayer cycling simulation athlete state."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyzmon")
except PackageNotFoundError:
    __version__ = "0+local"
from pyzmon.config import MonitorConfig
from pyzmon.exceptions import (
    MonitorConfigError,
    MonitorError,
    MonitorStateError,
    PacketDecodeError,
    StorageError,
)
from pyzmon.models import (
    AthleteGroup,
    AthleteProfile,
    AthleteState,
    AthleteStats,
    ChatEvent,
    NearbyAthlete,
    PacketEvent,
    PacketKind,
    PayloadType,
    Turning,
    WatchingEvent,
)
from pyzmon.monitor import PacketSource, ZwiftMonitor
from pyzmon.state.events import Topic
from pyzmon.storage import JsonFileStorage, MemoryStorage, StateStorage

__all__ = [
    "__version__",
    "AthleteGroup",
    "AthleteProfile",
    "AthleteState",
    "AthleteStats",
    "ChatEvent",
    "JsonFileStorage",
    "MemoryStorage",
    "MonitorConfig",
    "MonitorConfigError",
    "MonitorError",
    "MonitorStateError",
    "NearbyAthlete",
    "PacketDecodeError",
    "PacketEvent",
    "PacketKind",
    "PacketSource",
    "PayloadType",
    "StateStorage",
    "StorageError",
    "Topic",
    "Turning",
    "WatchingEvent",
    "ZwiftMonitor",
]
