"""Device record: identity, configuration and cached state of one device."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from pyyolink.config import ResolvedDeviceConfig
from pyyolink.models.device import DeviceInfo
from pyyolink.models.states import parse_device_state
from pyyolink.state.gate import DeviceGate


@dataclass(eq=False)
class DeviceRecord:
    """Mutable per-device record.

    ``data``, ``update_time`` and ``target_state`` are only written while
    ``gate`` is held. ``data`` is either ``None`` (never fetched) or the
    last complete snapshot.
    """

    info: DeviceInfo
    config: ResolvedDeviceConfig
    data: dict[str, Any] | None = None
    update_time: float = 0.0
    target_state: str = ""
    error: bool = False
    report_at: datetime | None = None
    last_logged_report_at: datetime | None = None
    gate: DeviceGate = field(init=False)
    reset_handle: asyncio.TimerHandle | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.gate = DeviceGate(self.info.device_id)

    @property
    def device_id(self) -> str:
        return self.info.device_id

    @property
    def type(self) -> str:
        return self.info.type

    @property
    def name(self) -> str:
        return self.config.name or self.info.name

    @property
    def label(self) -> str:
        return f"{self.name} ({self.device_id})"

    @property
    def refresh_after(self) -> int:
        return self.config.refresh_after

    @property
    def online(self) -> bool:
        """Devices without an ``online`` flag count as online once data exists."""
        if self.data is None or self.error:
            return False
        return bool(self.data.get("online", True))

    def typed_state(self) -> Any:
        """Typed view of ``data`` (``None`` when absent or unparsable)."""
        if self.data is None:
            return None
        try:
            return parse_device_state(self.type, self.data)
        except ValidationError:
            return None

    def battery_percent(self) -> int:
        """Battery as 0-100 %. Missing battery information counts as full."""
        level: Any = None
        if self.data is not None:
            level = self.data.get("battery")
            nested = self.data.get("state")
            if level is None and isinstance(nested, dict):
                level = nested.get("battery")
        if not isinstance(level, int):
            level = 4
        return max(0, min(4, level)) * 25
