"""pyyolink - Async Python client for the YoLink cloud API."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyyolink")
except PackageNotFoundError:
    __version__ = "0+local"
from pyyolink.client import YoLinkClient
from pyyolink.config import DeviceConfig, GarageDoorPair, YoLinkConfig
from pyyolink.exceptions import (
    YoLinkApiError,
    YoLinkAuthenticationError,
    YoLinkConfigError,
    YoLinkDeviceBusyError,
    YoLinkDeviceUnreachableError,
    YoLinkError,
    YoLinkRateLimitError,
    YoLinkTransportError,
)
from pyyolink.models import (
    ApiResponse,
    AuthToken,
    DeviceInfo,
    PushMessage,
    parse_device_state,
)
from pyyolink.platform import AccessoryHost, YoLinkPlatform
from pyyolink.state.events import StateChange, UpdateSource

__all__ = [
    "__version__",
    "AccessoryHost",
    "ApiResponse",
    "AuthToken",
    "DeviceConfig",
    "DeviceInfo",
    "GarageDoorPair",
    "PushMessage",
    "StateChange",
    "UpdateSource",
    "YoLinkApiError",
    "YoLinkAuthenticationError",
    "YoLinkClient",
    "YoLinkConfig",
    "YoLinkConfigError",
    "YoLinkDeviceBusyError",
    "YoLinkDeviceUnreachableError",
    "YoLinkError",
    "YoLinkPlatform",
    "YoLinkRateLimitError",
    "YoLinkTransportError",
    "parse_device_state",
]
