"""Water valve adapter (``Manipulator``, ``WaterMeterController``)."""

from __future__ import annotations

from typing import Any

from pyyolink.accessories.base import Characteristic, DeviceAdapter
from pyyolink.models.states import ValveState

ACTIVE = 1
INACTIVE = 0


class ValveAdapter(DeviceAdapter):
    """``Manipulator`` keeps a scalar ``state``; ``WaterMeterController``
    nests it as ``state.valve`` and may report leaks and temperature."""

    service = "Valve"
    characteristics = (
        Characteristic.ACTIVE,
        Characteristic.IN_USE,
        Characteristic.LEAK_DETECTED,
        Characteristic.CURRENT_TEMPERATURE,
    )

    def _state(self) -> ValveState:
        return ValveState.model_validate(self.record.data or {})

    def value_from_data(self, characteristic: Characteristic) -> Any:
        state = self._state()
        if characteristic == Characteristic.ACTIVE:
            return ACTIVE if state.is_open else INACTIVE
        if characteristic == Characteristic.IN_USE:
            flowing = state.water_flowing
            return ACTIVE if (state.is_open if flowing is None else flowing) else INACTIVE
        if characteristic == Characteristic.LEAK_DETECTED:
            return 1 if state.leak_detected else 0
        if characteristic == Characteristic.CURRENT_TEMPERATURE:
            return state.temperature
        return super().value_from_data(characteristic)

    async def set(self, characteristic: Characteristic, value: Any) -> bool:
        if characteristic != Characteristic.ACTIVE:
            return await super().set(characteristic, value)
        data = self.record.data or {}
        key = "valve" if isinstance(data.get("state"), dict) else "state"
        new_state = "open" if int(value) == ACTIVE else "close"
        return await self._client.set_value(self.device_id, key, new_state)
