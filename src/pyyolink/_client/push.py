"""Internal push-channel coordination for YoLinkClient.

Owns:
- starting/stopping the threaded MQTT runtime
- the channel lifecycle (connecting, subscribed, reconnecting, erroring)
- restarting the channel with a fresh token when the old one expired
- handing parsed report messages to the client
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

from pydantic import ValidationError

from pyyolink._constants import PUSH_RESTART_DELAY_SECONDS
from pyyolink._mqtt import (
    ChannelEvent,
    ChannelEventKind,
    MqttBootstrap,
    MqttRuntime,
    broker_host_from_url,
    report_topic,
)
from pyyolink.config import YoLinkConfig
from pyyolink.exceptions import YoLinkError
from pyyolink.models.push import PushMessage
from pyyolink.session import SessionManager

MessageHandler = Callable[[PushMessage], Awaitable[None]]
RuntimeFactory = Callable[..., Any]


class ChannelState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    RECONNECTING = "reconnecting"
    ERRORING = "erroring"


class PushCoordinator:
    """Keeps one subscription to the home's report topic alive.

    The access token doubles as the MQTT username. The token that opened the
    channel is remembered; once it expired, a broker reconnect cannot
    succeed, so the whole channel is torn down and reopened with a fresh
    token instead.
    """

    def __init__(
        self,
        *,
        config: YoLinkConfig,
        session: SessionManager,
        loop: asyncio.AbstractEventLoop,
        on_message: MessageHandler,
        logger: logging.Logger,
        runtime_factory: RuntimeFactory = MqttRuntime,
        clock: Callable[[], float] = time.time,
        restart_delay: float = PUSH_RESTART_DELAY_SECONDS,
    ) -> None:
        self._config = config
        self._session = session
        self._loop = loop
        self._on_message = on_message
        self._logger = logger
        self._runtime_factory = runtime_factory
        self._clock = clock
        self._restart_delay = restart_delay
        self._runtime: Any = None
        self._state = ChannelState.DISCONNECTED
        self._token_expires_at = 0.0
        self._restart_handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def runtime(self) -> Any:
        return self._runtime

    @property
    def restart_pending(self) -> bool:
        return self._restart_handle is not None

    async def start(self) -> None:
        """Open (or reopen) the channel with a current access token."""
        self._closed = False
        self._cancel_restart()
        await self._stop_runtime()

        self._state = ChannelState.CONNECTING
        try:
            token = await self._session.get_access_token()
        except YoLinkError as exc:
            self._logger.error("Cannot start MQTT channel, no access token: %s", exc)
            self._state = ChannelState.DISCONNECTED
            self._schedule_restart()
            return

        home_id = self._session.home_id
        if not home_id:
            self._logger.error("Cannot start MQTT channel, home id unknown")
            self._state = ChannelState.DISCONNECTED
            self._schedule_restart()
            return

        self._token_expires_at = self._session.token_expires_at
        bootstrap = MqttBootstrap(
            broker_host=broker_host_from_url(self._config.api_url),
            broker_port=self._config.mqtt_port,
            topic=report_topic(home_id),
            username=token,
            keepalive=self._config.mqtt_keepalive,
        )
        runtime = self._runtime_factory(loop=self._loop, on_event=self._on_event, logger=self._logger)
        self._runtime = runtime
        self._logger.info("Create MQTT client to connect to YoLink message queue")
        try:
            runtime.start(bootstrap)
        except Exception as exc:  # paho raises plain OSError/ValueError
            self._logger.error("MQTT runtime start failed: %s", exc)
            self._on_error("start failed", runtime)

    async def stop(self) -> None:
        self._closed = True
        self._cancel_restart()
        await self._stop_runtime()
        current = asyncio.current_task()
        tasks = [task for task in self._tasks if task is not current]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._state = ChannelState.DISCONNECTED

    async def _stop_runtime(self) -> None:
        runtime = self._runtime
        self._runtime = None
        if runtime is None:
            return
        try:
            await self._loop.run_in_executor(None, runtime.stop)
        except Exception:
            self._logger.debug("MQTT runtime stop failed", exc_info=True)

    # ------------------------------------------------------------------
    # Runtime events (event-loop thread)
    # ------------------------------------------------------------------

    def _on_event(self, runtime: Any, event: ChannelEvent) -> None:
        if runtime is not self._runtime:
            # Late callback from a runtime that was already replaced.
            return
        if event.kind == ChannelEventKind.CONNECTED:
            self._logger.info("MQTT connected")
        elif event.kind == ChannelEventKind.SUBSCRIBED:
            self._state = ChannelState.SUBSCRIBED
            self._logger.info("MQTT subscribed: %s", event.topic)
        elif event.kind == ChannelEventKind.MESSAGE:
            self._handle_message(event)
        elif event.kind == ChannelEventKind.RECONNECT:
            self._on_reconnect(event.reason)
        elif event.kind == ChannelEventKind.ERROR:
            self._on_error(event.reason, runtime)

    def _on_reconnect(self, reason: str) -> None:
        self._state = ChannelState.RECONNECTING
        if self._clock() >= self._token_expires_at:
            self._logger.info("MQTT reconnect with expired access token, restarting channel")
            self._spawn(self.start())
            return
        self._logger.info("MQTT reconnecting (%s)", reason)

    def _on_error(self, reason: str, runtime: Any) -> None:
        self._state = ChannelState.ERRORING
        self._logger.error("MQTT error: %s", reason)
        if runtime.is_connected:
            return
        self._logger.info("MQTT not connected, restarting in %s seconds", self._restart_delay)
        self._spawn(self._stop_runtime())
        self._schedule_restart()

    def _schedule_restart(self) -> None:
        if self._closed or self._restart_handle is not None:
            return
        self._restart_handle = self._loop.call_later(self._restart_delay, self._restart)

    def _cancel_restart(self) -> None:
        if self._restart_handle is not None:
            self._restart_handle.cancel()
            self._restart_handle = None

    def _restart(self) -> None:
        self._restart_handle = None
        if self._closed:
            return
        self._spawn(self.start())

    def _handle_message(self, event: ChannelEvent) -> None:
        try:
            message = PushMessage.model_validate(event.payload)
        except ValidationError as exc:
            self._logger.warning("Ignoring malformed MQTT message on %s: %s", event.topic, exc)
            return
        self._spawn(self._on_message(message))

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro, loop=self._loop)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error("MQTT handler failed", exc_info=exc)
