"""Device list entry model."""

from __future__ import annotations

from pydantic import Field

from pyyolink.models._base import YoLinkBaseModel


class DeviceInfo(YoLinkBaseModel):
    """A device returned by ``Home.getDeviceList``.

    Example entry::

        {
          "deviceId": "abcdef1234567890",
          "deviceUDID": "0123456789abcdef0123456789abcdef",
          "name": "Front Door",
          "token": "0123ABCD...",
          "type": "Lock",
          "parentDeviceId": null,
          "modelName": "YS7606-UC"
        }
    """

    device_id: str
    """Stable device identifier, also carried by push messages."""
    name: str = ""
    """Display name set in the YoLink app."""
    type: str = "Unknown"
    """Device type tag, e.g. ``"Lock"`` or ``"DoorSensor"``."""
    token: str = ""
    """Device-scoped token, required on every per-device request."""
    device_udid: str | None = Field(default=None, alias="deviceUDID")
    """Globally unique id."""
    parent_device_id: str | None = None
    """Hub the device is attached to, if any."""
    model_name: str | None = None
    """Hardware model, e.g. ``"YS7606-UC"``."""

    @property
    def label(self) -> str:
        """``"<name> (<device id>)"`` for log messages."""
        return f"{self.name} ({self.device_id})"
