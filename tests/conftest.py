from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Mapping
from typing import Any

import pytest
import pytest_asyncio

from pyyolink.client import YoLinkClient
from pyyolink.config import YoLinkConfig
from pyyolink.models.device import DeviceInfo

HOME_ID = "home-0001"
MSGID = 1661360844970


def ok_response(method: str, data: Any = None, *, msgid: int = MSGID) -> dict[str, Any]:
    return {
        "code": "000000",
        "desc": "Success",
        "method": method,
        "time": msgid,
        "msgid": msgid,
        "data": {} if data is None else data,
    }


def error_response(method: str, code: str, desc: str = "Error") -> dict[str, Any]:
    return {"code": code, "desc": desc, "method": method, "time": MSGID, "msgid": MSGID, "data": {}}


class FakeTransport:
    """In-memory stand-in for :class:`pyyolink._transport.HttpTransport`.

    Replies are queued per API method; the last queued reply repeats.
    Token grants hand out ``access-1``, ``access-2``, ... unless replies
    are queued in ``token_replies``.
    """

    def __init__(self, *, expires_in: int = 7200) -> None:
        self.expires_in = expires_in
        self.replies: dict[str, list[Any]] = {}
        self.calls: list[dict[str, Any]] = []
        self.form_calls: list[dict[str, str]] = []
        self.token_replies: list[Any] = []
        self._tokens = 0
        self.reply("Home.getGeneralInfo", ok_response("Home.getGeneralInfo", {"id": HOME_ID}))

    def reply(self, method: str, *replies: Any) -> None:
        self.replies.setdefault(method, []).extend(replies)

    def set_reply(self, method: str, *replies: Any) -> None:
        self.replies[method] = list(replies)

    def calls_for(self, method: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["method"] == method]

    def grants(self, grant_type: str) -> list[dict[str, str]]:
        return [form for form in self.form_calls if form.get("grant_type") == grant_type]

    async def post_json(
        self,
        url: str,
        payload: Mapping[str, Any],
        *,
        access_token: str | None = None,
    ) -> dict[str, Any]:
        self.calls.append({**payload, "_access_token": access_token})
        await asyncio.sleep(0)
        queue = self.replies.get(str(payload["method"]))
        if not queue:
            raise AssertionError(f"unexpected API call {payload['method']}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(item):
            item = item(payload)
        if isinstance(item, BaseException):
            raise item
        return item

    async def post_form(self, url: str, form: Mapping[str, str]) -> dict[str, Any]:
        self.form_calls.append(dict(form))
        await asyncio.sleep(0)
        if self.token_replies:
            item = self.token_replies.pop(0) if len(self.token_replies) > 1 else self.token_replies[0]
            if isinstance(item, BaseException):
                raise item
            return item
        self._tokens += 1
        return {
            "access_token": f"access-{self._tokens}",
            "refresh_token": f"refresh-{self._tokens}",
            "expires_in": self.expires_in,
            "token_type": "bearer",
        }


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records requested delays and only yields to the loop."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class FakeHost:
    def __init__(self) -> None:
        self.accessories: dict[str, tuple[str, str]] = {}
        self.unregistered: list[str] = []
        self.updates: list[tuple[str, str, Any]] = []

    def restore_or_create(self, device_id: str, name: str, service: str) -> Any:
        self.accessories[device_id] = (name, service)
        return device_id

    def unregister(self, device_id: str) -> None:
        self.unregistered.append(device_id)
        self.accessories.pop(device_id, None)

    def update_characteristic(self, device_id: str, characteristic: str, value: Any) -> None:
        self.updates.append((device_id, str(characteristic), value))

    def values(self, device_id: str, characteristic: str) -> list[Any]:
        return [value for dev, char, value in self.updates if dev == device_id and char == characteristic]


def make_device(device_id: str, device_type: str, name: str | None = None) -> DeviceInfo:
    return DeviceInfo.model_validate(
        {
            "deviceId": device_id,
            "name": name or f"{device_type} {device_id}",
            "type": device_type,
            "token": f"token-{device_id}",
        }
    )


async def drain(tasks: set[asyncio.Task[Any]]) -> None:
    """Wait until a background task set is empty."""
    for _ in range(50):
        pending = [task for task in tasks if not task.done()]
        if not pending:
            await asyncio.sleep(0)
            return
        await asyncio.gather(*pending, return_exceptions=True)


@pytest.fixture
def config() -> YoLinkConfig:
    return YoLinkConfig(uaid="ua-0123", secret_key="sec-4567")


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest_asyncio.fixture
async def client(
    config: YoLinkConfig, transport: FakeTransport, clock: FakeClock, fake_sleep: FakeSleep
) -> AsyncIterator[YoLinkClient]:
    async with YoLinkClient(config, transport=transport, clock=clock, sleep=fake_sleep) as c:
        await c.login()
        yield c
