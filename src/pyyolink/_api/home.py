"""Home-level endpoints.

Methods:
  - Home.getGeneralInfo
  - Home.getDeviceList
"""

from __future__ import annotations

import logging

from pyyolink._api._common import post_api
from pyyolink._transport import Transport
from pyyolink.config import YoLinkConfig
from pyyolink.exceptions import YoLinkApiError
from pyyolink.models.device import DeviceInfo
from pyyolink.models.packets import ApiRequest

_logger = logging.getLogger(__name__)


async def fetch_home_id(config: YoLinkConfig, transport: Transport, access_token: str) -> str:
    """Return the home id that scopes the MQTT report topic."""
    response = await post_api(
        transport=transport,
        api_url=config.api_url,
        access_token=access_token,
        request=ApiRequest(method="Home.getGeneralInfo"),
    )
    home_id = response.data_dict.get("id")
    if not isinstance(home_id, str) or not home_id:
        raise YoLinkApiError("Home.getGeneralInfo returned no home id", method=response.method)
    return home_id


async def fetch_device_list(config: YoLinkConfig, transport: Transport, access_token: str) -> list[DeviceInfo]:
    """Fetch every device registered to the home."""
    response = await post_api(
        transport=transport,
        api_url=config.api_url,
        access_token=access_token,
        request=ApiRequest(method="Home.getDeviceList"),
    )
    items = response.data_dict.get("devices")
    devices = [DeviceInfo.model_validate(item) for item in items if isinstance(item, dict)] if isinstance(items, list) else []
    _logger.debug("Home.getDeviceList found %d devices", len(devices))
    return devices
