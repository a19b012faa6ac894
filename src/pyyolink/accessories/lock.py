"""Lock adapter (``Lock``, ``LockV2``)."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any

from pyyolink.accessories.base import Characteristic, DeviceAdapter, SwitchEvent
from pyyolink.state.events import StateChange, UpdateSource

_logger = logging.getLogger(__name__)


class LockCurrentState(IntEnum):
    UNSECURED = 0
    SECURED = 1
    JAMMED = 2
    UNKNOWN = 3


class LockAdapter(DeviceAdapter):
    """Lock mechanism plus a doorbell event for the lock's bell button."""

    service = "LockMechanism"
    characteristics = (
        Characteristic.LOCK_CURRENT_STATE,
        Characteristic.LOCK_TARGET_STATE,
    )
    locked_state = "locked"

    def value_from_data(self, characteristic: Characteristic) -> Any:
        if characteristic in self.characteristics:
            data = self.record.data or {}
            return LockCurrentState.SECURED if data.get("state") == self.locked_state else LockCurrentState.UNSECURED
        return super().value_from_data(characteristic)

    async def get(self, characteristic: Characteristic) -> Any:
        value = await super().get(characteristic)
        if value is None and characteristic == Characteristic.LOCK_CURRENT_STATE:
            return LockCurrentState.UNKNOWN
        return value

    async def set(self, characteristic: Characteristic, value: Any) -> bool:
        if characteristic != Characteristic.LOCK_TARGET_STATE:
            return await super().set(characteristic, value)
        new_state = "lock" if int(value) == LockCurrentState.SECURED else "unlock"
        return await self._client.set_value(self.device_id, "state", new_state)

    def _on_change(self, change: StateChange) -> None:
        super()._on_change(change)
        if change.source == UpdateSource.PUSH and change.device_id == self.device_id and change.data.get("alertType") == "bell":
            _logger.info("Doorbell pressed at %s", self.record.label)
            self._host.update_characteristic(
                self.device_id, Characteristic.PROGRAMMABLE_SWITCH_EVENT, SwitchEvent.SINGLE_PRESS
            )
