"""Base model for YoLink API payloads.

Every YoLink payload model inherits from :class:`YoLinkBaseModel` which
provides:

* ``alias_generator=to_camel`` so camelCase API keys map
  automatically to snake_case fields.
* A ``raw`` dict that captures the original payload.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_yolink_timestamp(value: Any) -> datetime | None:
    """Convert a YoLink timestamp to a UTC datetime.

    YoLink mixes epoch milliseconds (``time``, ``msgid``,
    ``stateChangedAt``) with ISO-8601 strings (``reportAt``). Both are
    accepted; anything unparsable becomes ``None``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            value = int(text)
        else:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
            return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    try:
        ts = int(value)
    except (TypeError, ValueError):
        return None
    if ts >= _MS_THRESHOLD:
        return datetime.fromtimestamp(ts / 1000, tz=UTC)
    return datetime.fromtimestamp(ts, tz=UTC)


YoLinkTimestamp = Annotated[datetime | None, BeforeValidator(parse_yolink_timestamp)]
"""Annotated type that coerces YoLink epoch ms or ISO strings to UTC datetimes."""


class YoLinkBaseModel(BaseModel):
    """Base for YoLink payload models.

    Handles:
    * camelCase → snake_case via ``alias_generator=to_camel``
    * Stashes the original API dict in ``raw``
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original API payload."""

    @model_validator(mode="before")
    @classmethod
    def _stash_raw(cls, values: Any) -> Any:
        """Drop ``None`` values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned = {key: value for key, value in values.items() if value is not None}
        # Keep the caller's raw= when constructing with keyword arguments.
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
