"""Per-type feature flags."""

from __future__ import annotations

from typing import NamedTuple


class DeviceFeatures(NamedTuple):
    has_battery: bool = False
    experimental: bool = False


DEVICE_FEATURES: dict[str, DeviceFeatures] = {
    "Hub": DeviceFeatures(),
    "SpeakerHub": DeviceFeatures(),
    "VibrationSensor": DeviceFeatures(has_battery=True),
    "MotionSensor": DeviceFeatures(has_battery=True),
    "LeakSensor": DeviceFeatures(has_battery=True),
    "Manipulator": DeviceFeatures(has_battery=True),
    "WaterMeterController": DeviceFeatures(has_battery=True),
    "THSensor": DeviceFeatures(has_battery=True),
    "SmartRemoter": DeviceFeatures(has_battery=True),
    "DoorSensor": DeviceFeatures(has_battery=True),
    "Lock": DeviceFeatures(has_battery=True),
    "LockV2": DeviceFeatures(has_battery=True),
    "GarageDoor": DeviceFeatures(),
    "Finger": DeviceFeatures(has_battery=True),
    "Siren": DeviceFeatures(has_battery=True),
    "Switch": DeviceFeatures(),
    "Outlet": DeviceFeatures(),
    "MultiOutlet": DeviceFeatures(experimental=True),
}


def features_for(device_type: str) -> DeviceFeatures:
    return DEVICE_FEATURES.get(device_type, DeviceFeatures())
