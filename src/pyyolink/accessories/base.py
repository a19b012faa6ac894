"""Base class and host protocol for accessory adapters.

An adapter translates between one accessory on the host (a lock, a valve,
a sensor) and one or more device records in the client. Adapters never
touch a record directly: reads go through :meth:`YoLinkClient.pull_state`
and writes through :meth:`YoLinkClient.set_value`, both of which take the
record's gate.
"""

from __future__ import annotations

import asyncio
import logging
from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

from pyyolink._constants import MIN_REFRESH_TIMER_SECONDS
from pyyolink.accessories._features import features_for
from pyyolink.state.events import StateChange
from pyyolink.state.policy import is_new_report
from pyyolink.state.record import DeviceRecord

if TYPE_CHECKING:
    from pyyolink.client import YoLinkClient

_logger = logging.getLogger(__name__)

LOW_BATTERY_PERCENT = 25


class Characteristic(StrEnum):
    """Host characteristic names (HomeKit vocabulary)."""

    ACTIVE = "Active"
    IN_USE = "InUse"
    BATTERY_LEVEL = "BatteryLevel"
    STATUS_LOW_BATTERY = "StatusLowBattery"
    STATUS_FAULT = "StatusFault"
    LOCK_CURRENT_STATE = "LockCurrentState"
    LOCK_TARGET_STATE = "LockTargetState"
    PROGRAMMABLE_SWITCH_EVENT = "ProgrammableSwitchEvent"
    CONTACT_SENSOR_STATE = "ContactSensorState"
    LEAK_DETECTED = "LeakDetected"
    MOTION_DETECTED = "MotionDetected"
    CURRENT_TEMPERATURE = "CurrentTemperature"
    CURRENT_RELATIVE_HUMIDITY = "CurrentRelativeHumidity"
    ON = "On"
    CURRENT_DOOR_STATE = "CurrentDoorState"
    TARGET_DOOR_STATE = "TargetDoorState"


class LowBattery(IntEnum):
    NORMAL = 0
    LOW = 1


class SwitchEvent(IntEnum):
    """``ProgrammableSwitchEvent`` values."""

    SINGLE_PRESS = 0
    DOUBLE_PRESS = 1
    LONG_PRESS = 2


class AccessoryHost(Protocol):
    """What the core needs from the smart-home host."""

    def restore_or_create(self, device_id: str, name: str, service: str) -> Any:
        """Reuse the cached accessory for *device_id* or register a new one."""

    def unregister(self, device_id: str) -> None:
        """Remove the accessory for *device_id* from the host."""

    def update_characteristic(self, device_id: str, characteristic: str, value: Any) -> None:
        """Push a new characteristic value without waiting for a host get."""


class DeviceAdapter:
    """Accessory backed by a single device record.

    Subclasses set :attr:`service` and :attr:`characteristics` and implement
    :meth:`value_from_data`, a pure mapping from the cached snapshot to a
    characteristic value. Writable adapters also override :meth:`set`.
    """

    service: ClassVar[str] = "Unknown"
    characteristics: ClassVar[tuple[Characteristic, ...]] = ()

    def __init__(self, client: YoLinkClient, record: DeviceRecord, host: AccessoryHost) -> None:
        self._client = client
        self.record = record
        self._host = host
        self._refresh_handle: asyncio.TimerHandle | None = None
        self._closed = False
        self._unsubscribe = client.add_listener(self._on_change)

    @property
    def device_id(self) -> str:
        return self.record.device_id

    @property
    def has_battery(self) -> bool:
        return features_for(self.battery_record.type).has_battery

    @property
    def battery_record(self) -> DeviceRecord:
        return self.record

    def records(self) -> tuple[DeviceRecord, ...]:
        """Every record this accessory is built from."""
        return (self.record,)

    def close(self) -> None:
        self._closed = True
        if self._refresh_handle is not None:
            self._refresh_handle.cancel()
            self._refresh_handle = None
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Host-facing reads and writes
    # ------------------------------------------------------------------

    async def get(self, characteristic: Characteristic) -> Any:
        """Fresh value of *characteristic*; ``None`` reports a fault."""
        record = self.record_for(characteristic)
        data = await self._client.pull_state(record.device_id)
        offline = data is None or not record.online
        self._host.update_characteristic(self.device_id, Characteristic.STATUS_FAULT, offline)
        if offline:
            _logger.error("Device offline or other error for %s", record.label)
            return None
        if characteristic == Characteristic.STATUS_FAULT:
            return False
        value = self.value_from_data(characteristic)
        log = _logger.info if is_new_report(record) else _logger.debug
        log("Device state for %s is: %s %s", record.label, characteristic, value)
        return value

    def request(self, characteristic: Characteristic) -> Any:
        """Two-phase read: cached value now, fresh value pushed to the host later."""

        def _push(value: Any) -> None:
            if value is not None:
                self._host.update_characteristic(self.device_id, characteristic, value)

        return self._client.read_two_phase(
            lambda: self.cached_value(characteristic),
            lambda: self.get(characteristic),
            _push,
        )

    def cached_value(self, characteristic: Characteristic) -> Any:
        if self.record_for(characteristic).data is None:
            return None
        return self.value_from_data(characteristic)

    async def set(self, characteristic: Characteristic, value: Any) -> bool:
        _logger.warning("%s of %s is read-only", characteristic, self.record.label)
        return False

    def record_for(self, characteristic: Characteristic) -> DeviceRecord:
        if characteristic in (Characteristic.BATTERY_LEVEL, Characteristic.STATUS_LOW_BATTERY):
            return self.battery_record
        return self.record

    def value_from_data(self, characteristic: Characteristic) -> Any:
        if characteristic == Characteristic.BATTERY_LEVEL:
            return self.battery_record.battery_percent()
        if characteristic == Characteristic.STATUS_LOW_BATTERY:
            percent = self.battery_record.battery_percent()
            return LowBattery.LOW if percent <= LOW_BATTERY_PERCENT else LowBattery.NORMAL
        raise ValueError(f"{type(self).__name__} has no characteristic {characteristic}")

    # ------------------------------------------------------------------
    # Change notifications
    # ------------------------------------------------------------------

    def _on_change(self, change: StateChange) -> None:
        if change.device_id not in {record.device_id for record in self.records()}:
            return
        for characteristic in self.characteristics:
            if self.record_for(characteristic).device_id != change.device_id:
                continue
            value = self.cached_value(characteristic)
            if value is not None:
                self._host.update_characteristic(self.device_id, characteristic, value)
        if self.has_battery and change.device_id == self.battery_record.device_id:
            self._update_battery()

    def _update_battery(self) -> None:
        record = self.battery_record
        percent = record.battery_percent()
        if percent <= LOW_BATTERY_PERCENT:
            _logger.warning("Battery level for %s is: %d%%", record.label, percent)
            low = LowBattery.LOW
        else:
            _logger.debug("Battery level for %s is: %d%%", record.label, percent)
            low = LowBattery.NORMAL
        self._host.update_characteristic(self.device_id, Characteristic.BATTERY_LEVEL, percent)
        self._host.update_characteristic(self.device_id, Characteristic.STATUS_LOW_BATTERY, low)

    # ------------------------------------------------------------------
    # Refresh timer
    # ------------------------------------------------------------------

    def start_refresh_timer(self) -> None:
        """Pull every record now, then again whenever its data goes stale."""
        self._client.spawn(self._refresh())

    async def _refresh(self) -> None:
        self._refresh_handle = None
        try:
            for record in self.records():
                if self._closed:
                    return
                await self._client.pull_state(record.device_id)
        finally:
            self._schedule_refresh()

    def _schedule_refresh(self) -> None:
        if self._closed or self.record.refresh_after < MIN_REFRESH_TIMER_SECONDS:
            return
        delay = max(MIN_REFRESH_TIMER_SECONDS, self.record.update_time - self._client.now())
        _logger.debug("Data refresh timer for %s runs in %d seconds", self.record.label, delay)
        self._refresh_handle = self._client.loop.call_later(delay, self._refresh_due)

    def _refresh_due(self) -> None:
        self._refresh_handle = None
        self._client.spawn(self._refresh())
