"""On/off adapters: ``Switch``, ``Outlet``, ``MultiOutlet`` and ``Siren``."""

from __future__ import annotations

from typing import Any, ClassVar

from pyyolink.accessories.base import Characteristic, DeviceAdapter


class SwitchAdapter(DeviceAdapter):
    service = "Switch"
    characteristics = (Characteristic.ON,)

    on_state: ClassVar[str] = "open"
    set_on: ClassVar[Any] = "open"
    set_off: ClassVar[Any] = "close"

    def value_from_data(self, characteristic: Characteristic) -> Any:
        if characteristic == Characteristic.ON:
            state = (self.record.data or {}).get("state")
            if isinstance(state, list):
                # MultiOutlet: one entry per outlet.
                return any(item == self.on_state for item in state)
            return state == self.on_state
        return super().value_from_data(characteristic)

    async def set(self, characteristic: Characteristic, value: Any) -> bool:
        if characteristic != Characteristic.ON:
            return await super().set(characteristic, value)
        return await self._client.set_value(self.device_id, "state", self.set_on if value else self.set_off)


class OutletAdapter(SwitchAdapter):
    service = "Outlet"


class SirenAdapter(SwitchAdapter):
    on_state = "alert"
    set_on = {"alarm": True}
    set_off = {"alarm": False}
