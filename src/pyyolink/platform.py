"""Bridge between :class:`YoLinkClient` and a smart-home accessory host.

Reconciles the YoLink device list with the accessories the host knows
about (restore, create, hide, remove), builds one adapter per accessory
and starts the push channel.
"""

from __future__ import annotations

import logging

from pyyolink.accessories import create_adapter
from pyyolink.accessories.base import AccessoryHost, DeviceAdapter
from pyyolink.accessories.garage_door import GarageDoorAdapter
from pyyolink.client import YoLinkClient
from pyyolink.models.device import DeviceInfo

_logger = logging.getLogger(__name__)

__all__ = ["AccessoryHost", "YoLinkPlatform"]


class YoLinkPlatform:
    """Usage::

        async with YoLinkClient(config) as client:
            platform = YoLinkPlatform(client, host)
            await platform.start()
    """

    def __init__(self, client: YoLinkClient, host: AccessoryHost) -> None:
        self._client = client
        self._host = host
        self._adapters: dict[str, DeviceAdapter] = {}
        client.on_unknown_device = self._on_unknown_device

    @property
    def adapters(self) -> dict[str, DeviceAdapter]:
        return dict(self._adapters)

    async def start(self) -> None:
        """Log in, reconcile devices and subscribe to reports."""
        await self._client.login()
        await self.discover()
        await self._client.start_push()

    async def close(self) -> None:
        for device_id in list(self._adapters):
            self._adapters.pop(device_id).close()

    async def discover(self) -> None:
        """Fetch the device list and bring the host in line with it."""
        devices = await self._client.discover_devices()
        by_id = {info.device_id: info for info in devices}
        config = self._client.config

        for device_id in list(self._adapters):
            if device_id not in by_id:
                _logger.warning(
                    "Removing accessory %s, device does not exist",
                    self._adapters[device_id].record.label,
                )
                self._remove(device_id)

        pairs = {pair.controller: pair.sensor for pair in config.garage_doors}
        bound_sensors = set(pairs.values())

        for info in devices:
            device_id = info.device_id
            _logger.debug("Discovered %s", info)
            if config.is_hidden(device_id):
                if device_id in self._adapters:
                    _logger.info("Remove accessory as config 'hide=true' for: %s", info.label)
                    self._remove(device_id)
                else:
                    _logger.info("Hide accessory as config 'hide=true' for: %s", info.label)
                    self._host.unregister(device_id)
                continue
            if device_id in bound_sensors:
                # Registered so pushes reach it; exposed through its controller.
                self._client.register(info)
                continue
            self._add_or_restore(info, by_id.get(pairs.get(device_id, "")))

    def _add_or_restore(self, info: DeviceInfo, sensor_info: DeviceInfo | None) -> None:
        record = self._client.register(info)
        existing = self._adapters.get(info.device_id)
        if existing is not None:
            _logger.debug("Restoring accessory %s", record.label)
            self._host.restore_or_create(record.device_id, record.name, existing.service)
            return

        adapter: DeviceAdapter
        if sensor_info is not None:
            sensor = self._client.register(sensor_info)
            adapter = GarageDoorAdapter(self._client, record, sensor, self._host)
        else:
            adapter = create_adapter(self._client, record, self._host)
        _logger.info("Adding accessory %s as %s", record.label, adapter.service)
        self._host.restore_or_create(record.device_id, record.name, adapter.service)
        self._adapters[record.device_id] = adapter
        adapter.start_refresh_timer()

    def _remove(self, device_id: str) -> None:
        adapter = self._adapters.pop(device_id, None)
        if adapter is not None:
            adapter.close()
            for record in adapter.records():
                self._client.unregister(record.device_id)
        else:
            self._client.unregister(device_id)
        self._host.unregister(device_id)

    async def _on_unknown_device(self, device_id: str) -> None:
        await self.discover()
