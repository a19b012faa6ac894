from __future__ import annotations

import asyncio
from typing import Any

import pytest

from conftest import FakeHost, FakeTransport, drain, make_device, ok_response
from pyyolink.accessories import (
    Characteristic,
    ContactSensorAdapter,
    LockAdapter,
    LockCurrentState,
    LowBattery,
    OutletAdapter,
    SirenAdapter,
    THSensorAdapter,
    ValveAdapter,
)
from pyyolink.client import YoLinkClient
from pyyolink.models.push import PushMessage


def _adapter(client: YoLinkClient, host: FakeHost, cls: type, device_id: str, device_type: str) -> Any:
    record = client.register(make_device(device_id, device_type))
    return cls(client, record, host)


@pytest.mark.asyncio
async def test_lock_state_maps_to_lock_mechanism(client: YoLinkClient, transport: FakeTransport, host: FakeHost) -> None:
    transport.reply("Lock.getState", ok_response("Lock.getState", {"state": "locked", "battery": 4}))
    lock = _adapter(client, host, LockAdapter, "d1", "Lock")

    assert await lock.get(Characteristic.LOCK_CURRENT_STATE) == LockCurrentState.SECURED
    assert host.values("d1", Characteristic.STATUS_FAULT) == [False]


@pytest.mark.asyncio
async def test_offline_lock_reads_unknown(client: YoLinkClient, transport: FakeTransport, host: FakeHost) -> None:
    transport.reply("Lock.getState", ok_response("Lock.getState", {"state": "locked", "online": False}))
    lock = _adapter(client, host, LockAdapter, "d1", "Lock")

    assert await lock.get(Characteristic.LOCK_CURRENT_STATE) == LockCurrentState.UNKNOWN
    assert await lock.get(Characteristic.LOCK_TARGET_STATE) is None
    assert host.values("d1", Characteristic.STATUS_FAULT) == [True, True]


@pytest.mark.asyncio
async def test_lock_target_state_sends_lock_and_unlock(
    client: YoLinkClient, transport: FakeTransport, host: FakeHost
) -> None:
    transport.reply("Lock.getState", ok_response("Lock.getState", {"state": "unlocked"}))
    transport.reply("Lock.setState", ok_response("Lock.setState", {"state": "locked"}))
    lock = _adapter(client, host, LockAdapter, "d1", "Lock")
    await lock.get(Characteristic.LOCK_CURRENT_STATE)

    assert await lock.set(Characteristic.LOCK_TARGET_STATE, LockCurrentState.SECURED)
    assert await lock.set(Characteristic.LOCK_TARGET_STATE, LockCurrentState.UNSECURED)

    params = [call["params"] for call in transport.calls_for("Lock.setState")]
    assert params == [{"state": "lock"}, {"state": "unlock"}]


@pytest.mark.asyncio
async def test_lock_bell_push_fires_switch_event(client: YoLinkClient, transport: FakeTransport, host: FakeHost) -> None:
    transport.reply("Lock.getState", ok_response("Lock.getState", {"state": "locked", "battery": 4}))
    _adapter(client, host, LockAdapter, "d1", "Lock")
    await client.pull_state("d1")

    await client.handle_push(
        PushMessage.model_validate(
            {"event": "Lock.Alert", "deviceId": "d1", "data": {"state": "locked", "alertType": "bell"}}
        )
    )
    await asyncio.sleep(0)

    assert host.values("d1", Characteristic.PROGRAMMABLE_SWITCH_EVENT) == [0]
    assert host.values("d1", Characteristic.LOCK_CURRENT_STATE)[-1] == LockCurrentState.SECURED


@pytest.mark.asyncio
async def test_low_battery_is_pushed_and_logged(
    client: YoLinkClient, transport: FakeTransport, host: FakeHost, caplog: pytest.LogCaptureFixture
) -> None:
    transport.reply(
        "DoorSensor.getState",
        ok_response("DoorSensor.getState", {"online": True, "state": {"state": "open", "battery": 1}}),
    )
    sensor = _adapter(client, host, ContactSensorAdapter, "s1", "DoorSensor")

    assert await sensor.get(Characteristic.CONTACT_SENSOR_STATE) == 1
    await asyncio.sleep(0)

    assert host.values("s1", Characteristic.BATTERY_LEVEL) == [25]
    assert host.values("s1", Characteristic.STATUS_LOW_BATTERY) == [LowBattery.LOW]
    assert host.values("s1", Characteristic.CONTACT_SENSOR_STATE) == [1]
    assert "Battery level for" in caplog.text


@pytest.mark.asyncio
async def test_request_returns_cached_value_and_pushes_fresh_one(
    client: YoLinkClient, transport: FakeTransport, host: FakeHost
) -> None:
    transport.reply(
        "THSensor.getState",
        ok_response("THSensor.getState", {"online": True, "state": {"temperature": 21.5, "humidity": 40, "battery": 4}}),
    )
    sensor = _adapter(client, host, THSensorAdapter, "t1", "THSensor")

    assert sensor.request(Characteristic.CURRENT_TEMPERATURE) is None
    await drain(client._tasks)

    assert 21.5 in host.values("t1", Characteristic.CURRENT_TEMPERATURE)
    assert sensor.request(Characteristic.CURRENT_RELATIVE_HUMIDITY) == 40.0
    await drain(client._tasks)


@pytest.mark.asyncio
async def test_read_only_characteristic_rejects_set(client: YoLinkClient, host: FakeHost) -> None:
    sensor = _adapter(client, host, ContactSensorAdapter, "s1", "DoorSensor")
    assert not await sensor.set(Characteristic.CONTACT_SENSOR_STATE, 1)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("device_type", "data", "expected_params"),
    [
        ("Manipulator", {"state": "closed", "battery": 4}, {"state": "open"}),
        ("WaterMeterController", {"state": {"valve": "close", "waterFlowing": False}}, {"valve": "open"}),
    ],
)
async def test_valve_set_uses_shape_specific_key(
    client: YoLinkClient,
    transport: FakeTransport,
    host: FakeHost,
    device_type: str,
    data: dict[str, Any],
    expected_params: dict[str, Any],
) -> None:
    transport.reply(f"{device_type}.getState", ok_response(f"{device_type}.getState", data))
    transport.reply(f"{device_type}.setState", ok_response(f"{device_type}.setState", {}))
    valve = _adapter(client, host, ValveAdapter, "v1", device_type)
    assert await valve.get(Characteristic.ACTIVE) == 0

    assert await valve.set(Characteristic.ACTIVE, 1)

    (call,) = transport.calls_for(f"{device_type}.setState")
    assert call["params"] == expected_params


@pytest.mark.asyncio
async def test_valve_in_use_follows_water_flow(client: YoLinkClient, transport: FakeTransport, host: FakeHost) -> None:
    transport.reply(
        "WaterMeterController.getState",
        ok_response(
            "WaterMeterController.getState",
            {"state": {"valve": "open", "waterFlowing": False}, "alarm": {"leak": True}, "temperature": 12.5},
        ),
    )
    valve = _adapter(client, host, ValveAdapter, "v1", "WaterMeterController")

    assert await valve.get(Characteristic.ACTIVE) == 1
    assert await valve.get(Characteristic.IN_USE) == 0
    assert await valve.get(Characteristic.LEAK_DETECTED) == 1
    assert await valve.get(Characteristic.CURRENT_TEMPERATURE) == 12.5


@pytest.mark.asyncio
async def test_valve_leak_alarm_push_updates_leak_detected(
    client: YoLinkClient, transport: FakeTransport, host: FakeHost
) -> None:
    transport.reply(
        "WaterMeterController.getState",
        ok_response(
            "WaterMeterController.getState",
            {"state": {"valve": "open", "waterFlowing": False}, "alarm": {"leak": False}, "battery": 4},
        ),
    )
    valve = _adapter(client, host, ValveAdapter, "v1", "WaterMeterController")
    await client.pull_state("v1")

    await client.handle_push(
        PushMessage.model_validate(
            {"event": "WaterMeterController.Alert", "deviceId": "v1", "data": {"alarm": {"leak": True}}}
        )
    )
    await asyncio.sleep(0)

    assert valve.cached_value(Characteristic.LEAK_DETECTED) == 1
    assert valve.cached_value(Characteristic.ACTIVE) == 1
    assert host.values("v1", Characteristic.LEAK_DETECTED)[-1] == 1


@pytest.mark.asyncio
async def test_siren_and_multi_outlet_on_state(client: YoLinkClient, transport: FakeTransport, host: FakeHost) -> None:
    transport.reply("Siren.getState", ok_response("Siren.getState", {"state": "alert", "battery": 4}))
    transport.reply("Siren.setState", ok_response("Siren.setState", {"state": "normal"}))
    transport.reply("MultiOutlet.getState", ok_response("MultiOutlet.getState", {"state": ["closed", "open", "closed"]}))
    siren = _adapter(client, host, SirenAdapter, "a1", "Siren")
    outlet = _adapter(client, host, OutletAdapter, "o1", "MultiOutlet")

    assert await siren.get(Characteristic.ON) is True
    assert await outlet.get(Characteristic.ON) is True

    assert await siren.set(Characteristic.ON, False)
    (call,) = transport.calls_for("Siren.setState")
    assert call["params"] == {"state": {"alarm": False}}
    assert siren.cached_value(Characteristic.ON) is False


@pytest.mark.asyncio
async def test_closed_adapter_stops_listening(client: YoLinkClient, transport: FakeTransport, host: FakeHost) -> None:
    transport.reply("Lock.getState", ok_response("Lock.getState", {"state": "locked"}))
    lock = _adapter(client, host, LockAdapter, "d1", "Lock")
    lock.close()

    await client.pull_state("d1")
    await asyncio.sleep(0)

    assert host.updates == []
