"""Pydantic models for YoLink API payloads."""

from pyyolink.models.device import DeviceInfo
from pyyolink.models.packets import ApiRequest, ApiResponse
from pyyolink.models.push import PushMessage
from pyyolink.models.states import (
    DeviceState,
    DoorSensorState,
    GarageDoorState,
    GenericDeviceState,
    HubState,
    LeakSensorState,
    LockState,
    MotionSensorState,
    RemoteState,
    SwitchState,
    THSensorState,
    ValveState,
    parse_device_state,
)
from pyyolink.models.token import AuthToken

__all__ = [
    "ApiRequest",
    "ApiResponse",
    "AuthToken",
    "DeviceInfo",
    "DeviceState",
    "DoorSensorState",
    "GarageDoorState",
    "GenericDeviceState",
    "HubState",
    "LeakSensorState",
    "LockState",
    "MotionSensorState",
    "PushMessage",
    "RemoteState",
    "SwitchState",
    "THSensorState",
    "ValveState",
    "parse_device_state",
]
