"""Decoded packet models consumed from the protocol decoder.

The decoder produces two kinds of packets:

* ``incoming``: server to client; carries player updates (join, chat,
  ride-on, ...) and batches of other players' states.
* ``outgoing``: client to server; carries the local player's own state,
  including which athlete the client is currently watching.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, ClassVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pyzmon.ingestion.normalize import safe_int
from pyzmon.models._base import ZmonBaseModel


class PacketKind(StrEnum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class PayloadType(StrEnum):
    """Discriminator of a player update payload."""

    ENTERED_WORLD = "PlayerEnteredWorld"
    EVENT_JOIN = "EventJoin"
    EVENT_LEAVE = "EventLeave"
    CHAT_MESSAGE = "ChatMessage"
    RIDE_ON = "RideOn"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> PayloadType:
        return cls.UNKNOWN


class PlayerUpdate(ZmonBaseModel):
    """One entry of an incoming packet's ``playerUpdates`` list."""

    type: PayloadType = Field(
        default=PayloadType.UNKNOWN,
        validation_alias=AliasChoices("type", "payloadType", "$type"),
    )
    ts: int | None = None
    """World time of the update."""
    payload: dict[str, Any] = Field(default_factory=dict)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> Any:
        # Some decoders nest the discriminator as {"name": "ChatMessage"}.
        if isinstance(value, dict):
            return value.get("name")
        return value

    @field_validator("ts", mode="before")
    @classmethod
    def _coerce_ts(cls, value: Any) -> int | None:
        return safe_int(value)

    @property
    def type_name(self) -> str:
        """Discriminator as received (useful when ``type`` is UNKNOWN)."""
        value = self.raw.get("type", self.raw.get("payloadType", self.raw.get("$type")))
        if isinstance(value, dict):
            value = value.get("name")
        return str(value)


class ChatMessage(ZmonBaseModel):
    """``ChatMessage`` player update payload."""

    from_athlete_id: int = Field(validation_alias=AliasChoices("from", "fromAthleteId", "from_athlete_id"))
    to: int = 0
    """Recipient athlete id (0 for public messages)."""
    message: str = ""
    event_subgroup: int = 0
    first_name: str | None = None
    last_name: str | None = None
    avatar: str | None = None

    @field_validator("to", "event_subgroup", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> int:
        parsed = safe_int(value)
        return 0 if parsed is None else parsed


class IncomingPacket(ZmonBaseModel):
    athlete_id: int | None = None
    """Local athlete the packet was addressed to."""
    world_time: int | None = None
    player_updates: list[PlayerUpdate] = Field(default_factory=list)
    player_states: list[dict[str, Any]] = Field(default_factory=list)


class OutgoingPacket(ZmonBaseModel):
    _KEY_ALIASES: ClassVar[dict[str, str]] = {
        "playerState": "state",
    }

    athlete_id: int | None = None
    world_time: int | None = None
    state: dict[str, Any] | None = None
    """Local player's own state record (wire units)."""

    @property
    def watching_athlete_id(self) -> int | None:
        """Athlete the local client is currently watching."""
        if self.state is not None:
            watching = safe_int(self.state.get("watchingAthleteId"))
            if watching is not None:
                return watching
        return safe_int(self.raw.get("watchingAthleteId"))


class PacketEvent(BaseModel):
    """A decoded packet handed to the monitor by a packet source."""

    model_config = ConfigDict(frozen=True)

    kind: str
    packet: dict[str, Any] = Field(default_factory=dict)
    topic: str = ""
