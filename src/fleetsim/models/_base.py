"""Base model and enum for fleetsim value types.

Every value type inherits from :class:`FleetBaseModel` which provides:

* immutability (``frozen=True``) so samples, alerts and updates can be
  shared between consumers without copying,
* ``alias_generator=to_camel`` so the wire format uses camelCase keys
  while Python code uses snake_case fields.

String enums inherit from :class:`FleetEnum`, which resolves values
case-insensitively so ``"Fuel"`` and ``"FUEL"`` both map to ``fuel``.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_timestamp(value: Any) -> datetime:
    """Coerce epoch seconds/milliseconds, ISO-8601 text or datetimes to aware UTC.

    Naive datetimes are assumed to be UTC.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            ts = float(value)
            if ts >= _MS_THRESHOLD:
                ts /= 1000.0
            return datetime.fromtimestamp(ts, tz=UTC)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError(f"timestamp out of range: {value!r}") from exc
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        parsed = datetime.fromisoformat(text)
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    raise ValueError(f"unsupported timestamp value: {value!r}")


UtcDatetime = Annotated[datetime, BeforeValidator(parse_timestamp)]
"""Annotated type that coerces epoch numbers and ISO strings to UTC datetimes."""


def utcnow() -> datetime:
    return datetime.now(UTC)


class FleetEnum(enum.StrEnum):
    """Base for string enums carried on the wire."""

    @classmethod
    def _missing_(cls, value: object) -> FleetEnum | None:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class FleetBaseModel(BaseModel):
    """Base for immutable fleetsim value types."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
