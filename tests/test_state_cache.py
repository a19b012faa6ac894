from __future__ import annotations

import asyncio
import copy
from typing import Any

import pytest

from conftest import FakeClock, make_device, ok_response
from pyyolink.config import DeviceConfig, YoLinkConfig
from pyyolink.exceptions import YoLinkTransportError
from pyyolink.models.packets import ApiResponse
from pyyolink.state.cache import DeviceStateCache
from pyyolink.state.events import StateChange, UpdateSource
from pyyolink.state.gate import DeviceGate
from pyyolink.state.policy import is_new_report
from pyyolink.state.record import DeviceRecord


class FakePuller:
    def __init__(self, *replies: Any) -> None:
        self.replies = list(replies)
        self.calls = 0

    async def __call__(self, record: DeviceRecord) -> ApiResponse:
        self.calls += 1
        await asyncio.sleep(0)
        item = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(item, BaseException):
            raise item
        return ApiResponse.from_payload(ok_response(f"{record.type}.getState", item))


def _cache(
    puller: FakePuller, clock: FakeClock, *, refresh_after: int = 3600, device_type: str = "DoorSensor"
) -> tuple[DeviceStateCache, DeviceRecord]:
    config = YoLinkConfig(uaid="u", secret_key="s", devices={"d1": DeviceConfig(refresh_after=refresh_after)})
    cache = DeviceStateCache(puller, clock=clock)
    record = cache.upsert(make_device("d1", device_type), config.device_config("d1"))
    return cache, record


SENSOR_DATA = {"online": True, "state": {"state": "closed", "battery": 4, "alertInterval": 30}}


@pytest.mark.asyncio
async def test_gate_serializes_holders() -> None:
    gate = DeviceGate("d1")
    order: list[str] = []

    async def worker(name: str) -> None:
        async with gate.hold():
            order.append(f"{name}-in")
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))
    assert order == ["a-in", "a-out", "b-in", "b-out"]


@pytest.mark.asyncio
async def test_gate_nesting_flag_skips_acquire() -> None:
    gate = DeviceGate("d1")
    async with gate.hold():
        async with gate.hold(acquire=False):
            assert gate.locked


@pytest.mark.asyncio
async def test_concurrent_gated_reads_pull_once(clock: FakeClock) -> None:
    puller = FakePuller(SENSOR_DATA)
    cache, record = _cache(puller, clock)

    async def read() -> dict[str, Any] | None:
        async with record.gate.hold():
            return await cache.ensure_fresh(record)

    results = await asyncio.gather(read(), read(), read())
    assert puller.calls == 1
    assert all(result == SENSOR_DATA for result in results)


@pytest.mark.asyncio
async def test_freshness_window(clock: FakeClock) -> None:
    puller = FakePuller(SENSOR_DATA)
    cache, record = _cache(puller, clock, refresh_after=300)

    await cache.ensure_fresh(record)
    clock.advance(299)
    await cache.ensure_fresh(record)
    assert puller.calls == 1

    clock.advance(2)
    await cache.ensure_fresh(record)
    assert puller.calls == 2


@pytest.mark.asyncio
async def test_zero_refresh_pulls_every_read(clock: FakeClock) -> None:
    puller = FakePuller(SENSOR_DATA)
    cache, record = _cache(puller, clock, refresh_after=0)

    await cache.ensure_fresh(record)
    await cache.ensure_fresh(record)
    assert puller.calls == 2


@pytest.mark.asyncio
async def test_failed_pull_keeps_snapshot_and_marks_offline(clock: FakeClock) -> None:
    puller = FakePuller(SENSOR_DATA, YoLinkTransportError("timeout"))
    cache, record = _cache(puller, clock, refresh_after=60)

    await cache.ensure_fresh(record)
    clock.advance(61)

    assert await cache.ensure_fresh(record) is None
    assert record.error
    assert not record.online
    assert record.data == SENSOR_DATA


@pytest.mark.asyncio
async def test_push_merges_into_nested_state(clock: FakeClock) -> None:
    puller = FakePuller(SENSOR_DATA)
    cache, record = _cache(puller, clock)
    await cache.ensure_fresh(record)

    payload = {"state": "open", "alertType": "normal", "battery": 3}
    assert cache.merge_push(record, payload, event="DoorSensor.Alert", msgid="1661360844970")

    assert record.data is not None
    assert record.data["state"] == {"state": "open", "battery": 3, "alertInterval": 30, "alertType": "normal"}
    assert record.data["online"] is True

    snapshot = copy.deepcopy(record.data)
    cache.merge_push(record, payload, event="DoorSensor.Alert", msgid="1661360844970")
    assert record.data == snapshot


@pytest.mark.asyncio
async def test_push_merges_scalar_state_at_top_level(clock: FakeClock) -> None:
    puller = FakePuller({"state": "unlocked", "battery": 4})
    cache, record = _cache(puller, clock)
    await cache.ensure_fresh(record)

    cache.merge_push(record, {"state": "locked", "alertType": "lock"}, event="Lock.Alert")

    assert record.data is not None
    assert record.data["state"] == "locked"
    assert record.data["battery"] == 4
    assert record.data["alertType"] == "lock"


@pytest.mark.asyncio
async def test_actuator_push_lands_at_top_level_even_with_object_state(clock: FakeClock) -> None:
    cached = {"state": {"valve": "open", "waterFlowing": False}, "alarm": {"leak": False}, "battery": 4}
    cache, record = _cache(FakePuller(cached), clock, device_type="WaterMeterController")
    await cache.ensure_fresh(record)

    cache.merge_push(record, {"alarm": {"leak": True}}, event="WaterMeterController.Alert")
    cache.merge_push(record, {"state": {"waterFlowing": True}}, event="WaterMeterController.Report")

    assert record.data is not None
    assert record.data["alarm"] == {"leak": True}
    assert record.data["state"] == {"valve": "open", "waterFlowing": True}
    assert record.typed_state().leak_detected


def test_push_before_first_pull_is_dropped(clock: FakeClock, caplog: pytest.LogCaptureFixture) -> None:
    cache, record = _cache(FakePuller(SENSOR_DATA), clock)
    caplog.set_level("WARNING", logger="pyyolink")

    assert not cache.merge_push(record, {"state": "open"}, event="DoorSensor.Alert")
    assert record.data is None
    assert "uninitialized" in caplog.text


@pytest.mark.asyncio
async def test_push_advances_freshness_and_clears_marker(clock: FakeClock) -> None:
    puller = FakePuller(SENSOR_DATA)
    cache, record = _cache(puller, clock, refresh_after=100)
    await cache.ensure_fresh(record)
    record.target_state = "open"

    clock.advance(90)
    cache.merge_push(record, {"state": "open"})
    clock.advance(50)
    await cache.ensure_fresh(record)

    assert puller.calls == 1
    assert record.target_state == ""


@pytest.mark.asyncio
async def test_set_response_ignores_radio_info_and_keeps_deadline(clock: FakeClock) -> None:
    puller = FakePuller({"state": "unlocked", "battery": 4})
    cache, record = _cache(puller, clock)
    await cache.ensure_fresh(record)
    deadline = record.update_time

    cache.apply_set_response(record, {"state": "locked", "loraInfo": {"signal": -30}})

    assert record.data == {"state": "locked", "battery": 4}
    assert record.update_time == deadline


@pytest.mark.asyncio
async def test_listeners_run_after_the_merge(clock: FakeClock) -> None:
    puller = FakePuller(SENSOR_DATA)
    cache, record = _cache(puller, clock)
    seen: list[StateChange] = []
    cache.add_listener(seen.append)

    async with record.gate.hold():
        await cache.ensure_fresh(record)
        assert seen == []
    await asyncio.sleep(0)

    assert [change.source for change in seen] == [UpdateSource.PULL]


@pytest.mark.asyncio
async def test_failing_listener_does_not_block_others(clock: FakeClock) -> None:
    cache, record = _cache(FakePuller(SENSOR_DATA), clock)
    seen: list[StateChange] = []

    def broken(change: StateChange) -> None:
        raise RuntimeError("boom")

    cache.add_listener(broken)
    remove = cache.add_listener(seen.append)
    await cache.ensure_fresh(record)
    await asyncio.sleep(0)
    assert len(seen) == 1

    remove()
    cache.expire(record)
    await cache.ensure_fresh(record)
    await asyncio.sleep(0)
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_report_time_is_logged_once(clock: FakeClock) -> None:
    cache, record = _cache(FakePuller(SENSOR_DATA), clock)
    await cache.ensure_fresh(record)
    cache.merge_push(record, {"state": "open"}, msgid="1661360844970")

    assert is_new_report(record)
    assert not is_new_report(record)
