from __future__ import annotations

import pytest

from conftest import FakeHost, FakeTransport, error_response, make_device, ok_response
from pyyolink.accessories import Characteristic, CurrentDoorState, GarageDoorAdapter, TargetDoorState
from pyyolink.client import YoLinkClient
from pyyolink.models.push import PushMessage


def _door(client: YoLinkClient, transport: FakeTransport, host: FakeHost, sensor_state: str = "closed") -> GarageDoorAdapter:
    transport.reply(
        "DoorSensor.getState",
        ok_response("DoorSensor.getState", {"online": True, "state": {"state": sensor_state, "battery": 4}}),
    )
    transport.reply("GarageDoor.toggle", ok_response("GarageDoor.toggle", {"stateChangedAt": 1661360844970}))
    controller = client.register(make_device("g1", "GarageDoor"))
    sensor = client.register(make_device("s1", "DoorSensor"))
    return GarageDoorAdapter(client, controller, sensor, host)


@pytest.mark.asyncio
async def test_open_request_toggles_and_marks_opening(
    client: YoLinkClient, transport: FakeTransport, host: FakeHost
) -> None:
    door = _door(client, transport, host)

    assert await door.set(Characteristic.TARGET_DOOR_STATE, TargetDoorState.OPEN)

    (toggle,) = transport.calls_for("GarageDoor.toggle")
    assert "params" not in toggle
    assert toggle["targetDevice"] == "g1"
    assert door.sensor.target_state == "open"
    assert door.sensor.reset_handle is not None
    assert door.door_state() == CurrentDoorState.OPENING
    assert door.cached_value(Characteristic.TARGET_DOOR_STATE) == TargetDoorState.OPEN
    assert CurrentDoorState.OPENING in host.values("g1", Characteristic.CURRENT_DOOR_STATE)


@pytest.mark.asyncio
async def test_transit_timeout_clears_marker_and_rereads_sensor(
    client: YoLinkClient, transport: FakeTransport, host: FakeHost
) -> None:
    door = _door(client, transport, host)
    await door.set(Characteristic.TARGET_DOOR_STATE, TargetDoorState.OPEN)

    assert await door.expire_transit("open")

    assert door.sensor.target_state == ""
    assert door.sensor.reset_handle is None
    assert len(transport.calls_for("DoorSensor.getState")) == 2
    assert door.door_state() == CurrentDoorState.CLOSED


@pytest.mark.asyncio
async def test_sensor_report_beats_the_timeout(client: YoLinkClient, transport: FakeTransport, host: FakeHost) -> None:
    door = _door(client, transport, host)
    await door.set(Characteristic.TARGET_DOOR_STATE, TargetDoorState.OPEN)

    await client.handle_push(
        PushMessage.model_validate(
            {"event": "DoorSensor.Alert", "deviceId": "s1", "data": {"state": "open", "alertType": "normal"}}
        )
    )

    assert door.sensor.target_state == ""
    assert door.sensor.reset_handle is None
    assert door.door_state() == CurrentDoorState.OPEN
    assert not await door.expire_transit("open")
    assert len(transport.calls_for("DoorSensor.getState")) == 1


@pytest.mark.asyncio
async def test_stale_timer_does_not_clear_newer_request(
    client: YoLinkClient, transport: FakeTransport, host: FakeHost
) -> None:
    door = _door(client, transport, host)
    await door.set(Characteristic.TARGET_DOOR_STATE, TargetDoorState.OPEN)
    door.sensor.target_state = "closed"

    assert not await door.expire_transit("open")
    assert door.sensor.target_state == "closed"


@pytest.mark.asyncio
async def test_request_for_current_position_is_ignored(
    client: YoLinkClient, transport: FakeTransport, host: FakeHost
) -> None:
    door = _door(client, transport, host, sensor_state="open")

    assert await door.set(Characteristic.TARGET_DOOR_STATE, TargetDoorState.OPEN)

    assert transport.calls_for("GarageDoor.toggle") == []
    assert door.sensor.target_state == ""


@pytest.mark.asyncio
async def test_failed_toggle_drops_marker(client: YoLinkClient, transport: FakeTransport, host: FakeHost) -> None:
    door = _door(client, transport, host)
    transport.set_reply("GarageDoor.toggle", error_response("GarageDoor.toggle", "000201", "device offline"))

    assert not await door.set(Characteristic.TARGET_DOOR_STATE, TargetDoorState.OPEN)

    assert door.sensor.target_state == ""
    assert door.sensor.reset_handle is None


@pytest.mark.asyncio
async def test_offline_sensor_rejects_request(client: YoLinkClient, transport: FakeTransport, host: FakeHost) -> None:
    door = _door(client, transport, host)
    transport.set_reply("DoorSensor.getState", ok_response("DoorSensor.getState", {}))

    assert not await door.set(Characteristic.TARGET_DOOR_STATE, TargetDoorState.CLOSED)
    assert transport.calls_for("GarageDoor.toggle") == []
