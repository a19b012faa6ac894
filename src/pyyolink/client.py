"""High-level async client for the YoLink cloud API."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import aiohttp

from pyyolink._api.device import fetch_device_state, send_device_command
from pyyolink._api.home import fetch_device_list
from pyyolink._client.push import ChannelState, PushCoordinator, RuntimeFactory
from pyyolink._constants import NON_STATE_EVENTS, SET_COOLDOWN_SECONDS, UNKNOWN_DEVICE_REPOLL_SECONDS, WARNING_CODES
from pyyolink._mqtt import MqttRuntime
from pyyolink._retry import DEVICE_LIST_RETRY, GET_STATE_RETRY, SET_STATE_RETRY, RetryPolicy, retry
from pyyolink._transport import HttpTransport, Transport
from pyyolink.config import YoLinkConfig
from pyyolink.exceptions import YoLinkApiError, YoLinkAuthenticationError, YoLinkError
from pyyolink.models.device import DeviceInfo
from pyyolink.models.packets import ApiResponse
from pyyolink.models.push import PushMessage
from pyyolink.session import SessionManager
from pyyolink.state.cache import DeviceStateCache, Listener
from pyyolink.state.policy import is_new_report
from pyyolink.state.record import DeviceRecord

_logger = logging.getLogger(__name__)

T = TypeVar("T")

UnknownDeviceHook = Callable[[str], Awaitable[None]]


def lookup_field(data: dict[str, Any], field: str) -> Any:
    """Resolve a dotted path (``"state.temperature"``) inside *data*."""
    current: Any = data
    for part in field.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


class YoLinkClient:
    """Async client for the YoLink cloud API.

    Usage::

        async with YoLinkClient(config) as client:
            await client.login()
            for info in await client.discover_devices():
                client.register(info)
            state = await client.get_current_value(device_id, "state")
    """

    def __init__(
        self,
        config: YoLinkConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        runtime_factory: RuntimeFactory = MqttRuntime,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._external_transport = transport is not None
        self._clock = clock
        self._sleep = sleep
        self._runtime_factory = runtime_factory
        self._loop: asyncio.AbstractEventLoop | None = None
        self._sessions: SessionManager | None = None
        self._cache = DeviceStateCache(self._pull_record, clock=clock)
        self._push: PushCoordinator | None = None
        self._known_device_ids: set[str] = set()
        self._unknown_polled_at: dict[str, float] = {}
        self._rediscover_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[Any]] = set()
        self.on_unknown_device: UnknownDeviceHook | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> YoLinkClient:
        self._loop = asyncio.get_running_loop()
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._http_session)
        self._sessions = SessionManager(self._config, self._transport, clock=self._clock, sleep=self._sleep)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._push is not None:
            await self._push.stop()
            self._push = None
        await self._cancel_tasks()
        for record in self._cache:
            if record.reset_handle is not None:
                record.reset_handle.cancel()
                record.reset_handle = None
        if self._sessions is not None:
            await self._sessions.close()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None
        self._loop = None

    async def _cancel_tasks(self) -> None:
        current = asyncio.current_task()
        tasks = [task for task in self._tasks if task is not current]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> YoLinkConfig:
        return self._config

    @property
    def cache(self) -> DeviceStateCache:
        return self._cache

    @property
    def sessions(self) -> SessionManager:
        return self._require_sessions()

    @property
    def push_state(self) -> ChannelState:
        return self._push.state if self._push is not None else ChannelState.DISCONNECTED

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            raise YoLinkError("Client not initialized. Use 'async with YoLinkClient(...) as client:'")
        return self._loop

    def record(self, device_id: str) -> DeviceRecord:
        record = self._cache.get(device_id)
        if record is None:
            raise KeyError(device_id)
        return record

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Subscribe to :class:`~pyyolink.state.events.StateChange` notifications."""
        return self._cache.add_listener(listener)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise YoLinkError("Client not initialized. Use 'async with YoLinkClient(...) as client:'")
        return self._transport

    def _require_sessions(self) -> SessionManager:
        if self._sessions is None:
            raise YoLinkError("Client not initialized. Use 'async with YoLinkClient(...) as client:'")
        return self._sessions

    async def _call_with_token(self, fn: Callable[[str], Awaitable[T]]) -> T:
        """Run an API call with a current access token.

        Auth error codes log the session out so the next attempt logs in
        again instead of reusing the rejected token.
        """
        sessions = self._require_sessions()
        token = await sessions.get_access_token()
        try:
            return await fn(token)
        except YoLinkAuthenticationError:
            sessions.invalidate()
            raise

    async def _retried(self, fn: Callable[[str], Awaitable[T]], policy: RetryPolicy, name: str) -> T:
        return await retry(lambda: self._call_with_token(fn), policy, name=name, sleep=self._sleep)

    def now(self) -> float:
        return self._clock()

    def spawn(self, coro: Awaitable[Any]) -> asyncio.Task[Any]:
        """Run *coro* in the background; cancelled on :meth:`close`."""
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Session and discovery
    # ------------------------------------------------------------------

    async def login(self) -> None:
        """Authenticate and resolve the home id."""
        await self._require_sessions().login()

    async def discover_devices(self) -> list[DeviceInfo]:
        """Fetch the device list of the home (retried until it succeeds)."""
        transport = self._require_transport()
        devices = await self._retried(
            lambda token: fetch_device_list(self._config, transport, token),
            DEVICE_LIST_RETRY,
            "getDeviceList",
        )
        self._known_device_ids = {device.device_id for device in devices}
        return devices

    def register(self, info: DeviceInfo) -> DeviceRecord:
        """Create (or refresh identity of) the record for *info*."""
        return self._cache.upsert(info, self._config.device_config(info.device_id))

    def unregister(self, device_id: str) -> DeviceRecord | None:
        return self._cache.remove(device_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _pull_record(self, record: DeviceRecord) -> ApiResponse:
        transport = self._require_transport()
        return await self._retried(
            lambda token: fetch_device_state(self._config, transport, token, record.info),
            GET_STATE_RETRY,
            f"getDeviceState {record.label}",
        )

    async def pull_state(self, device_id: str, *, acquire: bool = True) -> dict[str, Any] | None:
        """Fresh snapshot of *device_id*, or ``None`` when offline or failing."""
        record = self.record(device_id)
        async with record.gate.hold(acquire=acquire):
            return await self._cache.ensure_fresh(record)

    async def get_current_value(self, device_id: str, field: str, *, acquire: bool = True) -> Any:
        """Value of *field* (dotted path) from a fresh snapshot.

        Returns ``None`` when the device is offline or the pull failed; the
        caller reports that to the host as a fault.
        """
        record = self.record(device_id)
        async with record.gate.hold(acquire=acquire):
            data = await self._cache.ensure_fresh(record)
            if data is None:
                return None
            if not record.online:
                _logger.warning("Device %s is offline", record.label)
                return None
            value = lookup_field(data, field)
            if is_new_report(record):
                _logger.info("Device %s %s: %s", record.label, field, value)
            else:
                _logger.debug("Device %s %s: %s", record.label, field, value)
            return value

    def cached_value(self, device_id: str, field: str) -> Any:
        """Value of *field* from the cache without pulling (``None`` when absent)."""
        record = self.record(device_id)
        if record.data is None:
            return None
        return lookup_field(record.data, field)

    def request_value(
        self,
        device_id: str,
        field: str,
        on_update: Callable[[Any], None] | None = None,
    ) -> Any:
        """Two-phase read.

        Returns the cached value immediately (possibly stale, ``None`` before
        the first pull) and schedules a refresh. When the refresh completes,
        *on_update* is called with the fresh value (``None`` on failure).
        """
        return self.read_two_phase(
            lambda: self.cached_value(device_id, field),
            lambda: self.get_current_value(device_id, field),
            on_update,
        )

    def read_two_phase(
        self,
        cached: Callable[[], T],
        fresh: Callable[[], Awaitable[T]],
        on_update: Callable[[T], None] | None = None,
    ) -> T:
        """Return ``cached()`` now; run ``fresh()`` in the background and hand its result to *on_update*."""
        value = cached()

        async def _refresh() -> None:
            result = await fresh()
            if on_update is not None:
                on_update(result)

        self.spawn(_refresh())
        return value

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def send_command(
        self,
        record: DeviceRecord,
        params: dict[str, Any] | None,
        method: str = "setState",
    ) -> ApiResponse | None:
        """Send one command; the caller must hold *record*'s gate.

        Failures are logged and reported as ``None``. A short cooldown is
        always awaited before returning so the next holder of the gate does
        not hit the device while it is still busy.
        """
        transport = self._require_transport()
        try:
            return await self._retried(
                lambda token: send_device_command(self._config, transport, token, record.info, params, method),
                SET_STATE_RETRY,
                f"setDeviceState {record.label}",
            )
        except YoLinkApiError as exc:
            if exc.code not in WARNING_CODES:
                _logger.error("Command %s failed for %s: %s", method, record.label, exc)
            return None
        except YoLinkError as exc:
            _logger.error("Command %s failed for %s: %s", method, record.label, exc)
            return None
        finally:
            await self._sleep(SET_COOLDOWN_SECONDS)

    async def set_value(
        self,
        device_id: str,
        field: str | None,
        value: Any,
        *,
        method: str = "setState",
        acquire: bool = True,
    ) -> bool:
        """Send ``{field: value}`` with *method*; fold the reply into the cache.

        ``field=None`` sends the command without parameters (``toggle``).
        Returns ``False`` when the command failed.
        """
        record = self.record(device_id)
        params = {field: value} if field else None
        async with record.gate.hold(acquire=acquire):
            response = await self.send_command(record, params, method)
            if response is None:
                return False
            self._cache.apply_set_response(record, response.data_dict)
            return True

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    async def start_push(self) -> None:
        """Open the MQTT report subscription (idempotent)."""
        if self._push is None:
            self._push = PushCoordinator(
                config=self._config,
                session=self._require_sessions(),
                loop=self.loop,
                on_message=self.handle_push,
                logger=_logger,
                runtime_factory=self._runtime_factory,
                clock=self._clock,
            )
        await self._push.start()

    async def handle_push(self, message: PushMessage) -> None:
        """Route one report to its record and merge it under the gate."""
        if message.data is None:
            _logger.warning("MQTT message %s for %s has no data, skipped", message.event, message.device_id)
            return
        if message.event_name in NON_STATE_EVENTS:
            _logger.debug("MQTT message %s for %s carries no state: %s", message.event, message.device_id, message.data)
            return

        record = self._cache.get(message.device_id)
        if record is None:
            record = await self._resolve_unknown_device(message.device_id)
            if record is None:
                _logger.debug("MQTT message %s for unhandled device %s dropped", message.event, message.device_id)
                return

        async with record.gate.hold():
            merged = self._cache.merge_push(record, message.data, event=message.event, msgid=message.msgid)
        if merged:
            _logger.debug("Device %s updated by %s", record.label, message.event)

    async def _resolve_unknown_device(self, device_id: str) -> DeviceRecord | None:
        """Re-poll the device list for a device that may have just appeared.

        Devices known from the last listing but not registered (hidden) are
        dropped without a re-poll. An id that is still missing after a
        listing is looked up again once ``UNKNOWN_DEVICE_REPOLL_SECONDS``
        have passed, so a chatty stray device cannot flood the API.
        """
        if device_id in self._known_device_ids or self._recently_polled(device_id):
            return None
        async with self._rediscover_lock:
            if device_id in self._known_device_ids or device_id in self._cache or self._recently_polled(device_id):
                return self._cache.get(device_id)
            _logger.info("MQTT message for unknown device %s, refreshing device list", device_id)
            self._unknown_polled_at[device_id] = self._clock()
            if self.on_unknown_device is not None:
                await self.on_unknown_device(device_id)
            else:
                for info in await self.discover_devices():
                    if not self._config.is_hidden(info.device_id):
                        self.register(info)
            if device_id in self._known_device_ids or device_id in self._cache:
                self._unknown_polled_at.pop(device_id, None)
        return self._cache.get(device_id)

    def _recently_polled(self, device_id: str) -> bool:
        polled_at = self._unknown_polled_at.get(device_id)
        return polled_at is not None and self._clock() - polled_at < UNKNOWN_DEVICE_REPOLL_SECONDS
