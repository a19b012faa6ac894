"""Accessory adapters: host-facing views over device records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pyyolink.accessories._features import DEVICE_FEATURES, DeviceFeatures, features_for
from pyyolink.accessories.base import AccessoryHost, Characteristic, DeviceAdapter, LowBattery, SwitchEvent
from pyyolink.accessories.garage_door import CurrentDoorState, GarageDoorAdapter, TargetDoorState
from pyyolink.accessories.lock import LockAdapter, LockCurrentState
from pyyolink.accessories.remote import StatelessSwitchAdapter, button_characteristic
from pyyolink.accessories.sensors import ContactSensorAdapter, LeakSensorAdapter, MotionSensorAdapter, THSensorAdapter
from pyyolink.accessories.switch import OutletAdapter, SirenAdapter, SwitchAdapter
from pyyolink.accessories.unknown import HubAdapter, UnknownAdapter
from pyyolink.accessories.valve import ValveAdapter
from pyyolink.state.record import DeviceRecord

if TYPE_CHECKING:
    from pyyolink.client import YoLinkClient

_logger = logging.getLogger(__name__)

#: YoLink device type → adapter class.
ADAPTERS: dict[str, type[DeviceAdapter]] = {
    "Hub": HubAdapter,
    "SpeakerHub": HubAdapter,
    "VibrationSensor": MotionSensorAdapter,
    "MotionSensor": MotionSensorAdapter,
    "LeakSensor": LeakSensorAdapter,
    "Manipulator": ValveAdapter,
    "WaterMeterController": ValveAdapter,
    "THSensor": THSensorAdapter,
    "SmartRemoter": StatelessSwitchAdapter,
    "DoorSensor": ContactSensorAdapter,
    "Lock": LockAdapter,
    "LockV2": LockAdapter,
    "Siren": SirenAdapter,
    "Switch": SwitchAdapter,
    "Outlet": OutletAdapter,
    "MultiOutlet": OutletAdapter,
}


def create_adapter(client: YoLinkClient, record: DeviceRecord, host: AccessoryHost) -> DeviceAdapter:
    """Adapter for *record*'s device type.

    Unsupported types, and experimental types without ``enable_experimental``,
    get an :class:`UnknownAdapter`.
    """
    adapter_cls = ADAPTERS.get(record.type)
    if adapter_cls is None:
        _logger.info("Device %s has unsupported type %s", record.label, record.type)
        return UnknownAdapter(client, record, host)
    if features_for(record.type).experimental and not record.config.enable_experimental:
        _logger.warning(
            "Experimental device %s skipped. Enable experimental devices in config. Initializing as Unknown device",
            record.label,
        )
        return UnknownAdapter(client, record, host)
    return adapter_cls(client, record, host)


__all__ = [
    "ADAPTERS",
    "DEVICE_FEATURES",
    "AccessoryHost",
    "Characteristic",
    "ContactSensorAdapter",
    "CurrentDoorState",
    "DeviceAdapter",
    "DeviceFeatures",
    "GarageDoorAdapter",
    "HubAdapter",
    "LeakSensorAdapter",
    "LockAdapter",
    "LockCurrentState",
    "LowBattery",
    "MotionSensorAdapter",
    "OutletAdapter",
    "SirenAdapter",
    "StatelessSwitchAdapter",
    "SwitchAdapter",
    "SwitchEvent",
    "THSensorAdapter",
    "TargetDoorState",
    "UnknownAdapter",
    "ValveAdapter",
    "button_characteristic",
    "create_adapter",
    "features_for",
]
