"""Fallback adapter for hubs, unsupported and experimental-but-disabled types."""

from __future__ import annotations

import logging

from pyyolink.accessories.base import DeviceAdapter
from pyyolink.state.events import StateChange

_logger = logging.getLogger(__name__)


class UnknownAdapter(DeviceAdapter):
    """Exposes only the fault status; logs the raw payload so support can be added."""

    service = "Unknown"

    def _on_change(self, change: StateChange) -> None:
        if change.device_id == self.device_id:
            _logger.debug("Device %s (%s) reported: %r", self.record.label, self.record.type, self.record.typed_state())
        super()._on_change(change)


class HubAdapter(UnknownAdapter):
    service = "Hub"
