"""Garage door: a controller (``GarageDoor`` or ``Finger``) bound to a door sensor.

The controller can only toggle and knows nothing about the door position;
the sensor reports open/closed. After a toggle the door takes a while to
move, so the sensor record carries a pending-transition marker
(``target_state``) that makes the door read as opening/closing until the
sensor reports, or until the transit timeout fires and forces a re-pull.
"""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import TYPE_CHECKING, Any

from pyyolink.accessories.base import AccessoryHost, Characteristic, DeviceAdapter
from pyyolink.models.states import DoorSensorState
from pyyolink.state.events import StateChange, UpdateSource
from pyyolink.state.record import DeviceRecord

if TYPE_CHECKING:
    from pyyolink.client import YoLinkClient

_logger = logging.getLogger(__name__)


class CurrentDoorState(IntEnum):
    OPEN = 0
    CLOSED = 1
    OPENING = 2
    CLOSING = 3
    STOPPED = 4


class TargetDoorState(IntEnum):
    OPEN = 0
    CLOSED = 1


class GarageDoorAdapter(DeviceAdapter):
    service = "GarageDoorOpener"
    characteristics = (
        Characteristic.CURRENT_DOOR_STATE,
        Characteristic.TARGET_DOOR_STATE,
    )

    def __init__(
        self,
        client: YoLinkClient,
        controller: DeviceRecord,
        sensor: DeviceRecord,
        host: AccessoryHost,
    ) -> None:
        self.sensor = sensor
        super().__init__(client, controller, host)

    @property
    def controller(self) -> DeviceRecord:
        return self.record

    @property
    def battery_record(self) -> DeviceRecord:
        return self.sensor

    def records(self) -> tuple[DeviceRecord, ...]:
        return (self.controller, self.sensor)

    def record_for(self, characteristic: Characteristic) -> DeviceRecord:
        # Door position and battery both come from the sensor.
        return self.sensor

    def door_state(self) -> CurrentDoorState:
        marker = self.sensor.target_state
        if marker:
            return CurrentDoorState.OPENING if marker == "open" else CurrentDoorState.CLOSING
        state = DoorSensorState.model_validate(self.sensor.data or {})
        return CurrentDoorState.OPEN if state.is_open else CurrentDoorState.CLOSED

    def value_from_data(self, characteristic: Characteristic) -> Any:
        if characteristic == Characteristic.CURRENT_DOOR_STATE:
            return self.door_state()
        if characteristic == Characteristic.TARGET_DOOR_STATE:
            current = self.door_state()
            if current in (CurrentDoorState.OPEN, CurrentDoorState.OPENING):
                return TargetDoorState.OPEN
            return TargetDoorState.CLOSED
        return super().value_from_data(characteristic)

    async def set(self, characteristic: Characteristic, value: Any) -> bool:
        if characteristic != Characteristic.TARGET_DOOR_STATE:
            return await super().set(characteristic, value)

        want_open = int(value) == TargetDoorState.OPEN
        target = "open" if want_open else "closed"
        controller = self.controller
        sensor = self.sensor
        cache = self._client.cache

        async with controller.gate.hold():
            async with sensor.gate.hold():
                if await cache.ensure_fresh(sensor) is None:
                    _logger.error("Garage door sensor %s offline, %s request ignored", sensor.label, target)
                    return False
                current = self.door_state()
                if want_open and current in (CurrentDoorState.OPEN, CurrentDoorState.OPENING):
                    _logger.warning("Request to open garage door (%s) ignored, door already open or opening", controller.label)
                    return True
                if not want_open and current in (CurrentDoorState.CLOSED, CurrentDoorState.CLOSING):
                    _logger.warning("Request to close garage door (%s) ignored, door already closed or closing", controller.label)
                    return True

                if sensor.reset_handle is not None:
                    sensor.reset_handle.cancel()
                sensor.target_state = target
                timeout = sensor.config.timeout
                _logger.debug("Set garage door timer for %s seconds with target state %r", timeout, target)
                sensor.reset_handle = self._client.loop.call_later(timeout, self._on_transit_timeout, target)

            self._host.update_characteristic(
                self.device_id,
                Characteristic.CURRENT_DOOR_STATE,
                CurrentDoorState.OPENING if want_open else CurrentDoorState.CLOSING,
            )
            # The controller gate is already held.
            toggled = await self._client.set_value(controller.device_id, None, None, method="toggle", acquire=False)

        if not toggled:
            await self.expire_transit(target)
        return toggled

    def _on_transit_timeout(self, target: str) -> None:
        self.sensor.reset_handle = None
        self._client.spawn(self.expire_transit(target))

    async def expire_transit(self, target: str) -> bool:
        """Drop the pending marker for *target* and re-read the sensor.

        No-op (returns ``False``) when the marker was already cleared by a
        sensor report or replaced by a newer request.
        """
        sensor = self.sensor
        cache = self._client.cache
        async with sensor.gate.hold():
            if sensor.target_state != target:
                _logger.debug(
                    "Garage door timer for %s fired with %r, marker is %r",
                    sensor.label,
                    target,
                    sensor.target_state,
                )
                return False
            _logger.warning("Garage door %s (%s) did not complete in time, re-reading sensor", target, sensor.label)
            sensor.target_state = ""
            if sensor.reset_handle is not None:
                sensor.reset_handle.cancel()
                sensor.reset_handle = None
            cache.expire(sensor)
            await cache.ensure_fresh(sensor)
        cache.notify(StateChange(device_id=sensor.device_id, source=UpdateSource.TIMEOUT))
        return True
