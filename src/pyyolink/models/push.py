"""Push (MQTT report) message model."""

from __future__ import annotations

from typing import Any

from pyyolink.models._base import YoLinkBaseModel, YoLinkTimestamp


class PushMessage(YoLinkBaseModel):
    """A report delivered on ``yl-home/<home id>/<device id>/report``.

    Example::

        {
          "event": "DoorSensor.Alert",
          "time": 1661360844971,
          "msgid": "1661360844970",
          "data": {"state": "open", "alertType": "normal", "battery": 4},
          "deviceId": "abcdef1234567890"
        }
    """

    event: str = ""
    device_id: str = ""
    time: YoLinkTimestamp = None
    msgid: YoLinkTimestamp = None
    data: dict[str, Any] | None = None

    @property
    def device_type(self) -> str:
        """``"DoorSensor"`` for ``"DoorSensor.Alert"``."""
        return self.event.split(".", 1)[0]

    @property
    def event_name(self) -> str:
        """``"Alert"`` for ``"DoorSensor.Alert"``."""
        _, _, name = self.event.partition(".")
        return name
