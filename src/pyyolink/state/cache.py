"""In-memory device state cache.

Holds one :class:`DeviceRecord` per known device and is the only component
that runs the reconciliation policy against upstream pulls and pushes.
Every method that touches a record expects the caller to hold that
record's gate.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterator
from typing import Any

from pyyolink.config import ResolvedDeviceConfig
from pyyolink.exceptions import YoLinkError
from pyyolink.models.device import DeviceInfo
from pyyolink.models.packets import ApiResponse
from pyyolink.state.events import StateChange, UpdateSource
from pyyolink.state.policy import apply_pull, apply_set_response, merge_push, needs_refresh
from pyyolink.state.record import DeviceRecord

_logger = logging.getLogger(__name__)

Puller = Callable[[DeviceRecord], Awaitable[ApiResponse]]
Listener = Callable[[StateChange], None]


class DeviceStateCache:
    """Registry of device records plus freshness and merge entry points.

    Parameters
    ----------
    puller
        Performs one (retried) upstream pull for a record.
    clock
        Epoch seconds; injectable for tests.
    """

    def __init__(self, puller: Puller, *, clock: Callable[[], float] = time.time) -> None:
        self._puller = puller
        self._clock = clock
        self._records: dict[str, DeviceRecord] = {}
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def upsert(self, info: DeviceInfo, config: ResolvedDeviceConfig) -> DeviceRecord:
        """Create the record for *info*, or refresh identity of an existing one.

        Cached data, gate and pending marker of an existing record survive.
        """
        record = self._records.get(info.device_id)
        if record is None:
            record = DeviceRecord(info=info, config=config)
            self._records[info.device_id] = record
            return record
        record.info = info
        record.config = config
        return record

    def remove(self, device_id: str) -> DeviceRecord | None:
        record = self._records.pop(device_id, None)
        if record is not None and record.reset_handle is not None:
            record.reset_handle.cancel()
            record.reset_handle = None
        return record

    def get(self, device_id: str) -> DeviceRecord | None:
        return self._records.get(device_id)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._records

    def __iter__(self) -> Iterator[DeviceRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def notify(self, change: StateChange) -> None:
        """Deliver *change* to listeners on the next loop iteration.

        Notification happens after the caller has released the gate; a slow
        or failing listener never holds up the merge that produced it.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._deliver(change)
            return
        loop.call_soon(self._deliver, change)

    def _deliver(self, change: StateChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                _logger.exception("State change listener failed for %s", change.device_id)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    async def ensure_fresh(self, record: DeviceRecord) -> dict[str, Any] | None:
        """Return trustworthy data for *record*, pulling when stale.

        Returns ``None`` when the pull failed; the previous snapshot is kept
        for observability but the error flag is set, so callers must treat
        the device as offline.
        """
        now = self._clock()
        if not needs_refresh(record, now):
            return record.data if not record.error else None

        _logger.debug("checkDeviceState for %s (refresh after %s seconds)", record.label, record.refresh_after)
        try:
            response = await self._puller(record)
        except YoLinkError as exc:
            record.error = True
            _logger.error("Device offline or other error for %s: %s", record.label, exc)
            return None

        data = response.data_dict
        if not data:
            record.error = True
            _logger.error("checkDeviceState received no data for %s", record.label)
            return None

        apply_pull(record, data, self._clock(), msgid=response.msgid)
        self.notify(StateChange(device_id=record.device_id, source=UpdateSource.PULL, data=data))
        return record.data

    def merge_push(self, record: DeviceRecord, payload: dict[str, Any], *, event: str | None = None, msgid: Any = None) -> bool:
        """Merge a push payload; returns ``False`` when it had to be dropped."""
        if not merge_push(record, payload, self._clock(), msgid=msgid):
            _logger.warning("Push %s for uninitialized device %s ignored: %s", event, record.label, payload)
            return False
        if record.reset_handle is not None:
            record.reset_handle.cancel()
            record.reset_handle = None
        self.notify(StateChange(device_id=record.device_id, source=UpdateSource.PUSH, event=event, data=payload))
        return True

    def apply_set_response(self, record: DeviceRecord, response_data: dict[str, Any]) -> bool:
        if not apply_set_response(record, response_data):
            return False
        self.notify(StateChange(device_id=record.device_id, source=UpdateSource.SET, data=response_data))
        return True

    def expire(self, record: DeviceRecord) -> None:
        """Make the next :meth:`ensure_fresh` pull."""
        record.update_time = self._clock()
