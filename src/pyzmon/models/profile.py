"""Athlete profile model.

Built from "player entered world" payloads. The full payload is kept in
``raw`` and is what gets persisted.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import field_validator

from pyzmon.ingestion.normalize import safe_int, safe_str
from pyzmon.models._base import ZmonBaseModel


class AthleteProfile(ZmonBaseModel):
    """Slowly changing identity data for an athlete."""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {
        "id": "athleteId",
        "playerId": "athleteId",
    }

    athlete_id: int
    first_name: str | None = None
    last_name: str | None = None
    avatar: str | None = None
    """Avatar image URL."""

    @field_validator("athlete_id", mode="before")
    @classmethod
    def _coerce_athlete_id(cls, value: Any) -> Any:
        parsed = safe_int(value)
        return value if parsed is None else parsed

    @field_validator("first_name", "last_name", "avatar", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        text = safe_str(value)
        if text is None:
            return None
        return text.strip() or None

    @property
    def full_name(self) -> str:
        return " ".join(x for x in (self.first_name, self.last_name) if x)

    @property
    def display_name(self) -> str:
        """Short name, e.g. ``"J.Doe"``."""
        if self.first_name and self.last_name:
            return f"{self.first_name[0]}.{self.last_name}"
        return self.full_name
