"""Read-only sensor adapters.

Sensors nest their readings under ``data["state"]``; the typed state
models in :mod:`pyyolink.models.states` know where to look.
"""

from __future__ import annotations

from typing import Any

from pyyolink.accessories.base import Characteristic, DeviceAdapter
from pyyolink.models.states import DoorSensorState, LeakSensorState, MotionSensorState, THSensorState

CONTACT_DETECTED = 0
CONTACT_NOT_DETECTED = 1


class ContactSensorAdapter(DeviceAdapter):
    service = "ContactSensor"
    characteristics = (Characteristic.CONTACT_SENSOR_STATE,)

    def value_from_data(self, characteristic: Characteristic) -> Any:
        if characteristic == Characteristic.CONTACT_SENSOR_STATE:
            state = DoorSensorState.model_validate(self.record.data or {})
            return CONTACT_NOT_DETECTED if state.is_open else CONTACT_DETECTED
        return super().value_from_data(characteristic)


class LeakSensorAdapter(DeviceAdapter):
    service = "LeakSensor"
    characteristics = (Characteristic.LEAK_DETECTED,)

    def value_from_data(self, characteristic: Characteristic) -> Any:
        if characteristic == Characteristic.LEAK_DETECTED:
            return 1 if LeakSensorState.model_validate(self.record.data or {}).leak_detected else 0
        return super().value_from_data(characteristic)


class MotionSensorAdapter(DeviceAdapter):
    """Also used for ``VibrationSensor``: vibration counts as motion."""

    service = "MotionSensor"
    characteristics = (Characteristic.MOTION_DETECTED,)

    def value_from_data(self, characteristic: Characteristic) -> Any:
        if characteristic == Characteristic.MOTION_DETECTED:
            return MotionSensorState.model_validate(self.record.data or {}).motion_detected
        return super().value_from_data(characteristic)


class THSensorAdapter(DeviceAdapter):
    service = "TemperatureSensor"
    characteristics = (
        Characteristic.CURRENT_TEMPERATURE,
        Characteristic.CURRENT_RELATIVE_HUMIDITY,
    )

    def value_from_data(self, characteristic: Characteristic) -> Any:
        state = THSensorState.model_validate(self.record.data or {})
        if characteristic == Characteristic.CURRENT_TEMPERATURE:
            return state.temperature
        if characteristic == Characteristic.CURRENT_RELATIVE_HUMIDITY:
            return state.humidity
        return super().value_from_data(characteristic)
