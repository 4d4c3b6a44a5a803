"""Base model for decoded protocol records.

Every wire-facing model inherits from :class:`ZmonBaseModel` which
provides:

* ``alias_generator=to_camel`` so camelCase decoder keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` and NaN values
  (so the field default is used) and applies per-model key aliases.
* A ``raw`` dict that captures the original record.
"""

from __future__ import annotations

import math
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class ZmonBaseModel(BaseModel):
    """Base for decoded record models."""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {}
    """Alternate decoder key → canonical camelCase key."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original decoded record."""

    @staticmethod
    def _clean_dict(values: dict[str, Any], aliases: dict[str, str] | None = None) -> dict[str, Any]:
        working = dict(values)
        if aliases:
            for old_key, new_key in aliases.items():
                if old_key in working and new_key not in working:
                    working[new_key] = working.pop(old_key)

        cleaned: dict[str, Any] = {}
        for key, value in working.items():
            if value is None:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Drop empty values, apply key aliases, and stash the raw record."""
        if not isinstance(values, dict):
            return values
        original = dict(values)

        aliases: dict[str, str] = getattr(cls, "_KEY_ALIASES", {})
        cleaned = ZmonBaseModel._clean_dict(original, aliases)

        # Keep an explicitly supplied raw (e.g. when re-validating a dump).
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned
