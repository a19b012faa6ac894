"""Smart remote adapter (``SmartRemoter``)."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, ClassVar

from pyyolink.accessories.base import AccessoryHost, Characteristic, DeviceAdapter, SwitchEvent
from pyyolink.state.events import StateChange, UpdateSource
from pyyolink.state.record import DeviceRecord

if TYPE_CHECKING:
    from pyyolink.client import YoLinkClient

_logger = logging.getLogger(__name__)


def button_characteristic(index: int) -> str:
    """Host characteristic of button *index* (1-based)."""
    return f"Button {index}.{Characteristic.PROGRAMMABLE_SWITCH_EVENT}"


class StatelessSwitchAdapter(DeviceAdapter):
    """One stateless programmable switch per remote button.

    A remote has nothing worth reading back; button actions only arrive as
    pushes carrying ``event.keyMask`` (one bit per button, several bits when
    buttons are pressed together) and ``event.type`` (``Press`` or
    ``LongPress``). A second ``Press`` of the same button within
    :attr:`double_press_window` seconds is a double press. A lone press is
    reported once the window has passed.
    """

    service = "StatelessProgrammableSwitch"
    buttons: ClassVar[int] = 4
    double_press_window: float = 0.8

    def __init__(self, client: YoLinkClient, record: DeviceRecord, host: AccessoryHost) -> None:
        super().__init__(client, record, host)
        self._last_press: dict[int, float] = {}
        self._pending: dict[int, asyncio.TimerHandle] = {}

    def close(self) -> None:
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()
        super().close()

    def value_from_data(self, characteristic: Characteristic) -> Any:
        if characteristic == Characteristic.PROGRAMMABLE_SWITCH_EVENT:
            return SwitchEvent.SINGLE_PRESS
        return super().value_from_data(characteristic)

    def _on_change(self, change: StateChange) -> None:
        super()._on_change(change)
        if change.source != UpdateSource.PUSH or change.device_id != self.device_id:
            return
        event = change.data.get("event")
        if not isinstance(event, dict) or not isinstance(event.get("keyMask"), int):
            return
        mask: int = event["keyMask"]
        for index in range(1, self.buttons + 1):
            if mask & (1 << (index - 1)):
                self._button_action(index, event.get("type"))

    def _button_action(self, index: int, press_type: Any) -> None:
        if press_type != "Press":
            self._emit(index, SwitchEvent.LONG_PRESS)
            return
        now = self._client.now()
        last = self._last_press.get(index)
        self._last_press[index] = now
        pending = self._pending.pop(index, None)
        if pending is not None:
            pending.cancel()
        if last is not None and now - last < self.double_press_window:
            self._emit(index, SwitchEvent.DOUBLE_PRESS)
            return
        self._pending[index] = self._client.loop.call_later(self.double_press_window, self._single_press, index)

    def _single_press(self, index: int) -> None:
        self._pending.pop(index, None)
        self._emit(index, SwitchEvent.SINGLE_PRESS)

    def _emit(self, index: int, event: SwitchEvent) -> None:
        _logger.info("%s button %d: %s", self.record.label, index, event.name.lower().replace("_", " "))
        self._host.update_characteristic(self.device_id, button_characteristic(index), event)
