"""Change notifications.

Every path that changes a cached device record (pull, push, set response,
pending-transition fallback) emits a :class:`StateChange`. Listeners (the
accessory adapters) use them to push values to the host without waiting
for the next get.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UpdateSource(StrEnum):
    PULL = "pull"
    PUSH = "push"
    SET = "set"
    TIMEOUT = "timeout"


class StateChange(BaseModel):
    """A record changed; ``data`` is a copy of the patch that was applied."""

    model_config = ConfigDict(frozen=True)

    device_id: str = Field(..., description="YoLink device id")
    source: UpdateSource
    event: str | None = Field(default=None, description="Push event name, e.g. 'Lock.Alert'")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("device_id")
    @classmethod
    def _normalize_device_id(cls, value: str) -> str:
        device_id = value.strip()
        if not device_id:
            raise ValueError("device_id must be non-empty")
        return device_id
