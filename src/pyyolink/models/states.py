"""Typed device state snapshots.

The cache keeps the permissive dict exactly as YoLink sends it (see
:mod:`pyyolink.state.policy`). These models are the typed *view* over that
dict: :func:`parse_device_state` picks the variant for a device type, and
unknown types fall back to :class:`GenericDeviceState`, which only keeps
the raw payload for logging.

Two payload shapes exist. Sensors nest their readings under ``state``::

    {"online": true, "state": {"state": "open", "battery": 4}, "reportAt": "..."}

while actuators put a scalar ``state`` at the top level::

    {"state": "locked", "battery": 4, "loraInfo": {...}}
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import Field, TypeAdapter

from pyyolink.models._base import YoLinkBaseModel, YoLinkTimestamp


def _battery_percent(level: int | None) -> int | None:
    """YoLink reports battery as 0-4; convert to percent."""
    if level is None:
        return None
    return max(0, min(4, level)) * 25


class _StateBase(YoLinkBaseModel):
    online: bool | None = None
    report_at: YoLinkTimestamp = None

    @property
    def battery_percent(self) -> int | None:
        return _battery_percent(getattr(self, "battery", None))


class _NestedSensorState(_StateBase):
    """Sensor variant: readings live in the nested ``state`` object."""

    state: dict[str, Any] = Field(default_factory=dict)

    @property
    def battery(self) -> int | None:
        value = self.state.get("battery")
        return value if isinstance(value, int) else None

    @property
    def value(self) -> Any:
        return self.state.get("state")


class DoorSensorState(_NestedSensorState):
    kind: Literal["DoorSensor"] = "DoorSensor"

    @property
    def is_open(self) -> bool:
        return self.value == "open"


class LeakSensorState(_NestedSensorState):
    kind: Literal["LeakSensor"] = "LeakSensor"

    @property
    def leak_detected(self) -> bool:
        return self.value in ("alert", "full")


class MotionSensorState(_NestedSensorState):
    kind: Literal["MotionSensor"] = "MotionSensor"

    @property
    def motion_detected(self) -> bool:
        return self.value == "alert"


class THSensorState(_NestedSensorState):
    kind: Literal["THSensor"] = "THSensor"

    @property
    def temperature(self) -> float | None:
        value = self.state.get("temperature")
        return float(value) if isinstance(value, (int, float)) else None

    @property
    def humidity(self) -> float | None:
        value = self.state.get("humidity")
        return float(value) if isinstance(value, (int, float)) else None


class RemoteState(_NestedSensorState):
    """Smart remote; the last button action sits in ``state["event"]``.

    ``keyMask`` is a bitfield with one bit per button (1, 2, 4, 8); pressing
    several buttons at once sets several bits.
    """

    kind: Literal["Remote"] = "Remote"

    @property
    def key_mask(self) -> int:
        event = self.state.get("event")
        mask = event.get("keyMask") if isinstance(event, dict) else None
        return mask if isinstance(mask, int) else 0

    @property
    def press_type(self) -> str | None:
        event = self.state.get("event")
        return event.get("type") if isinstance(event, dict) else None


class LockState(_StateBase):
    kind: Literal["Lock"] = "Lock"
    state: str | None = None
    battery: int | None = None

    @property
    def is_locked(self) -> bool:
        return self.state == "locked"


class ValveState(_StateBase):
    """``Manipulator`` reports ``state: "open"``; ``WaterMeterController``
    reports ``state: {"valve": "open", "waterFlowing": false}``."""

    kind: Literal["Valve"] = "Valve"
    state: str | dict[str, Any] | None = None
    battery: int | None = None
    temperature: float | None = None
    alarm: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_open(self) -> bool:
        if isinstance(self.state, dict):
            return self.state.get("valve") == "open"
        return self.state == "open"

    @property
    def water_flowing(self) -> bool | None:
        if isinstance(self.state, dict) and "waterFlowing" in self.state:
            return bool(self.state["waterFlowing"])
        return None

    @property
    def leak_detected(self) -> bool:
        return bool(self.alarm.get("leak"))


class SwitchState(_StateBase):
    kind: Literal["Switch"] = "Switch"
    state: str | list[str] | dict[str, Any] | None = None

    @property
    def is_on(self) -> bool:
        if isinstance(self.state, str):
            return self.state == "open"
        if isinstance(self.state, dict):
            # Siren reports {"alarm": true}
            return bool(self.state.get("alarm"))
        return False


class GarageDoorState(_StateBase):
    """Controllers (``GarageDoor``, ``Finger``) carry no door position."""

    kind: Literal["GarageDoor"] = "GarageDoor"
    battery: int | None = None


class HubState(_StateBase):
    kind: Literal["Hub"] = "Hub"
    version: str | None = None


class GenericDeviceState(_StateBase):
    """Escape hatch for unrecognized device types; ``raw`` is all there is."""

    kind: Literal["Generic"] = "Generic"


DeviceState = Annotated[
    DoorSensorState
    | LeakSensorState
    | MotionSensorState
    | THSensorState
    | RemoteState
    | LockState
    | ValveState
    | SwitchState
    | GarageDoorState
    | HubState
    | GenericDeviceState,
    Field(discriminator="kind"),
]

_STATE_ADAPTER: TypeAdapter[Any] = TypeAdapter(DeviceState)

#: YoLink device type → state variant tag.
STATE_KINDS: dict[str, str] = {
    "DoorSensor": "DoorSensor",
    "LeakSensor": "LeakSensor",
    "MotionSensor": "MotionSensor",
    "VibrationSensor": "MotionSensor",
    "THSensor": "THSensor",
    "SmartRemoter": "Remote",
    "Lock": "Lock",
    "LockV2": "Lock",
    "Manipulator": "Valve",
    "WaterMeterController": "Valve",
    "Switch": "Switch",
    "Outlet": "Switch",
    "MultiOutlet": "Switch",
    "Siren": "Switch",
    "GarageDoor": "GarageDoor",
    "Finger": "GarageDoor",
    "Hub": "Hub",
    "SpeakerHub": "Hub",
}

#: Kinds whose readings live in the nested ``state`` object. Pushes for these
#: are partial ``state`` objects; every other kind pushes top-level fields.
NESTED_STATE_KINDS: frozenset[str] = frozenset({"DoorSensor", "LeakSensor", "MotionSensor", "THSensor", "Remote"})


def parse_device_state(device_type: str, data: dict[str, Any]) -> Any:
    """Parse a cached ``data`` dict into the variant for *device_type*."""
    kind = STATE_KINDS.get(device_type, "Generic")
    payload = dict(data)
    payload["kind"] = kind
    payload["raw"] = data
    return _STATE_ADAPTER.validate_python(payload)
