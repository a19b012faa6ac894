"""Per-device endpoints: ``<Type>.getState`` and ``<Type>.<setMethod>``."""

from __future__ import annotations

import logging
from typing import Any

from pyyolink._api._common import post_api
from pyyolink._transport import Transport
from pyyolink.config import YoLinkConfig
from pyyolink.models.device import DeviceInfo
from pyyolink.models.packets import ApiRequest, ApiResponse

_logger = logging.getLogger(__name__)


async def fetch_device_state(
    config: YoLinkConfig,
    transport: Transport,
    access_token: str,
    device: DeviceInfo,
) -> ApiResponse:
    """Pull the current state of *device*."""
    _logger.debug("getDeviceState for %s", device.label)
    request = ApiRequest(
        method=f"{device.type}.getState",
        target_device=device.device_id,
        token=device.token,
    )
    return await post_api(
        transport=transport,
        api_url=config.api_url,
        access_token=access_token,
        request=request,
        device_label=device.label,
    )


async def send_device_command(
    config: YoLinkConfig,
    transport: Transport,
    access_token: str,
    device: DeviceInfo,
    params: dict[str, Any] | None,
    method: str = "setState",
) -> ApiResponse:
    """Send a state-changing command (``setState``, ``toggle``, ...) to *device*."""
    _logger.info("setDeviceState for %s: %s %s", device.label, method, params)
    request = ApiRequest(
        method=f"{device.type}.{method}",
        target_device=device.device_id,
        token=device.token,
        params=params or None,
    )
    return await post_api(
        transport=transport,
        api_url=config.api_url,
        access_token=access_token,
        request=request,
        device_label=device.label,
    )
