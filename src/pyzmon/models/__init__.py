"""Data models for decoded packets, athlete state and published results."""

from pyzmon.ingestion.flags import Turning
from pyzmon.models._base import ZmonBaseModel
from pyzmon.models.packets import (
    ChatMessage,
    IncomingPacket,
    OutgoingPacket,
    PacketEvent,
    PacketKind,
    PayloadType,
    PlayerUpdate,
)
from pyzmon.models.profile import AthleteProfile
from pyzmon.models.results import AthleteGroup, ChatEvent, NearbyAthlete, WatchingEvent
from pyzmon.models.state import AthleteState, PlayerState
from pyzmon.models.stats import AthleteStats

__all__ = [
    "AthleteGroup",
    "AthleteProfile",
    "AthleteState",
    "AthleteStats",
    "ChatEvent",
    "ChatMessage",
    "IncomingPacket",
    "NearbyAthlete",
    "OutgoingPacket",
    "PacketEvent",
    "PacketKind",
    "PayloadType",
    "PlayerState",
    "PlayerUpdate",
    "Turning",
    "WatchingEvent",
    "ZmonBaseModel",
]
