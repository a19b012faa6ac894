"""Internal MQTT runtime for YoLink report messages.

paho-mqtt runs its network loop in its own thread. Nothing in here touches
library state: every callback is turned into a :class:`ChannelEvent` and
handed to the asyncio loop with ``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, cast
from urllib.parse import urlparse

import paho.mqtt.client as mqtt

from pyyolink.exceptions import YoLinkError

_logger = logging.getLogger(__name__)


class ChannelEventKind(StrEnum):
    CONNECTED = "connected"
    SUBSCRIBED = "subscribed"
    MESSAGE = "message"
    RECONNECT = "reconnect"
    ERROR = "error"


@dataclass(frozen=True)
class MqttBootstrap:
    """Broker/session data required to connect to YoLink MQTT."""

    broker_host: str
    broker_port: int
    topic: str
    username: str
    keepalive: int = 60


@dataclass(frozen=True)
class ChannelEvent:
    """One runtime callback, marshalled onto the event loop."""

    kind: ChannelEventKind
    topic: str = ""
    payload: dict[str, Any] = field(default_factory=dict)
    reason: str = ""


def report_topic(home_id: str) -> str:
    """Wildcard topic carrying every device report of a home."""
    return f"yl-home/{home_id}/+/report"


def broker_host_from_url(api_url: str) -> str:
    """The broker shares its host with the API endpoint."""
    host = urlparse(api_url).hostname
    if not host:
        raise YoLinkError(f"Cannot derive MQTT host from {api_url!r}")
    return host


def decode_report(payload: bytes) -> dict[str, Any]:
    """Parse MQTT payload bytes into a JSON object."""
    parsed = json.loads(payload.decode("utf-8"))
    if not isinstance(parsed, dict):
        raise YoLinkError("MQTT payload is not a JSON object")
    return parsed


class MqttRuntime:
    """Threaded paho-mqtt runtime that emits :class:`ChannelEvent` onto an asyncio loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        on_event: Callable[[MqttRuntime, ChannelEvent], None],
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_event = on_event
        self._logger = logger or _logger
        self._client: mqtt.Client | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_connected(self) -> bool:
        client = self._client
        return client is not None and client.is_connected()

    def _emit(self, event: ChannelEvent) -> None:
        if not self._running:
            return
        self._loop.call_soon_threadsafe(self._on_event, self, event)

    def start(self, bootstrap: MqttBootstrap) -> None:
        """Connect in the background and subscribe once connected."""
        self.stop()
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s topic=%s",
            bootstrap.broker_host,
            bootstrap.broker_port,
            bootstrap.topic,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            clean_session=True,
            protocol=mqtt.MQTTv311,
        )
        client.enable_logger(self._logger)
        client.username_pw_set(bootstrap.username)
        client.reconnect_delay_set(min_delay=2, max_delay=2)
        topic = bootstrap.topic

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.is_failure:
                self._emit(ChannelEvent(ChannelEventKind.ERROR, reason=f"connect refused: {reason_code}"))
                return
            self._emit(ChannelEvent(ChannelEventKind.CONNECTED, topic=topic))
            c.subscribe(topic, qos=0)

        def on_subscribe(
            _c: mqtt.Client,
            _userdata: Any,
            _mid: int,
            reason_codes: Any,
            _properties: Any,
        ) -> None:
            failures = [rc for rc in reason_codes if rc.is_failure]
            if failures:
                self._emit(ChannelEvent(ChannelEventKind.ERROR, topic=topic, reason=f"subscribe error: {failures[0]}"))
            else:
                self._emit(ChannelEvent(ChannelEventKind.SUBSCRIBED, topic=topic))

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                parsed = decode_report(msg.payload)
            except (ValueError, YoLinkError):
                self._logger.warning("MQTT payload on %s is not valid JSON: %r", msg.topic, msg.payload[:200])
                return
            self._emit(ChannelEvent(ChannelEventKind.MESSAGE, topic=msg.topic, payload=parsed))

        def on_disconnect(
            _c: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            # paho reconnects on its own after an unexpected disconnect.
            self._emit(ChannelEvent(ChannelEventKind.RECONNECT, reason=str(reason_code)))

        def on_connect_fail(_c: mqtt.Client, _userdata: Any) -> None:
            self._emit(ChannelEvent(ChannelEventKind.ERROR, reason="connection failed"))

        client.on_connect = on_connect
        client.on_subscribe = on_subscribe
        client.on_message = on_message
        client.on_disconnect = on_disconnect
        client.on_connect_fail = on_connect_fail

        self._client = client
        self._running = True
        client.connect_async(bootstrap.broker_host, bootstrap.broker_port, keepalive=bootstrap.keepalive)
        client.loop_start()
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Disconnect and stop the network loop if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
