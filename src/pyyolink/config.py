"""Client configuration for pyyolink."""

from __future__ import annotations

import dataclasses
import json
import os
from collections.abc import Mapping
from typing import Any

from pyyolink._constants import API_URL, GARAGE_DOOR_TIMEOUT, MQTT_PORT, REFRESH_INTERVAL, TOKEN_URL


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class DeviceConfig:
    """Per-device overrides.

    ``None`` means "use the global value from :class:`YoLinkConfig`".

    Parameters
    ----------
    name : str or None
        Display name that replaces the name reported by YoLink.
    hide : bool
        Do not expose this device to the accessory host.
    refresh_after : int or None
        Seconds cached data is trusted. ``0`` forces a pull on every read.
    enable_experimental : bool or None
        Allow device types that are flagged experimental.
    timeout : int or None
        Garage door transit time in seconds, used for the pending-transition
        fallback.
    """

    name: str | None = None
    hide: bool = False
    refresh_after: int | None = None
    enable_experimental: bool | None = None
    timeout: int | None = None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> DeviceConfig:
        """Build from a camelCase or snake_case mapping."""
        refresh = values.get("refresh_after", values.get("refreshAfter"))
        experimental = values.get("enable_experimental", values.get("enableExperimental"))
        timeout = values.get("timeout")
        return cls(
            name=values.get("name"),
            hide=bool(values.get("hide", False)),
            refresh_after=int(refresh) if refresh is not None else None,
            enable_experimental=bool(experimental) if experimental is not None else None,
            timeout=int(timeout) if timeout is not None else None,
        )


@dataclasses.dataclass(frozen=True)
class GarageDoorPair:
    """A garage door controller (``GarageDoor``/``Finger``) bound to its door sensor."""

    controller: str
    sensor: str

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> GarageDoorPair:
        return cls(controller=str(values["controller"]), sensor=str(values["sensor"]))


@dataclasses.dataclass(frozen=True)
class ResolvedDeviceConfig:
    """Per-device configuration with every fallback applied."""

    name: str | None
    hide: bool
    refresh_after: int
    enable_experimental: bool
    timeout: int


@dataclasses.dataclass(frozen=True)
class YoLinkConfig:
    """Client configuration.

    Parameters
    ----------
    uaid : str
        User Access Id (UAID) created in the YoLink app.
    secret_key : str
        Secret key belonging to the UAID.
    api_url : str
        JSON API endpoint.
    token_url : str
        OAuth token endpoint.
    mqtt_port : int
        Port of the YoLink MQTT broker. The broker host is the API host.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    refresh_after : int
        Default number of seconds cached device data is trusted.
    all_devices : bool
        Expose every device, or only those listed in ``devices``.
    enable_experimental : bool
        Default for exposing experimental device types.
    garage_door_timeout : int
        Default garage door transit time in seconds.
    devices : dict
        Per-device overrides keyed by device id.
    garage_doors : tuple of GarageDoorPair
        Controller/sensor pairs exposed as one garage door.
    """

    uaid: str
    secret_key: str
    api_url: str = API_URL
    token_url: str = TOKEN_URL
    mqtt_port: int = MQTT_PORT
    mqtt_keepalive: int = 60
    refresh_after: int = REFRESH_INTERVAL
    all_devices: bool = True
    enable_experimental: bool = False
    garage_door_timeout: int = GARAGE_DOOR_TIMEOUT
    devices: Mapping[str, DeviceConfig] = dataclasses.field(default_factory=dict)
    garage_doors: tuple[GarageDoorPair, ...] = ()

    def device_config(self, device_id: str) -> ResolvedDeviceConfig:
        """Resolve the configuration for *device_id* against the global defaults."""
        override = self.devices.get(device_id, DeviceConfig())
        return ResolvedDeviceConfig(
            name=override.name,
            hide=override.hide,
            refresh_after=override.refresh_after if override.refresh_after is not None else self.refresh_after,
            enable_experimental=(
                override.enable_experimental if override.enable_experimental is not None else self.enable_experimental
            ),
            timeout=override.timeout if override.timeout is not None else self.garage_door_timeout,
        )

    def is_hidden(self, device_id: str) -> bool:
        """Whether *device_id* must not be exposed to the accessory host."""
        override = self.devices.get(device_id)
        if override is None:
            return not self.all_devices
        return override.hide

    @classmethod
    def from_env(cls, **overrides: Any) -> YoLinkConfig:
        """Create configuration from environment variables.

        Reads ``YOLINK_UAID``, ``YOLINK_SECRET_KEY`` and optional
        ``YOLINK_*`` variables. ``YOLINK_DEVICES`` may hold a JSON object
        of per-device overrides keyed by device id, and
        ``YOLINK_GARAGE_DOORS`` a JSON list of ``{"controller", "sensor"}``
        objects. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        YoLinkConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "YOLINK_UAID": "uaid",
            "YOLINK_SECRET_KEY": "secret_key",
            "YOLINK_API_URL": "api_url",
            "YOLINK_TOKEN_URL": "token_url",
        }
        config_kwargs: dict[str, Any] = {"uaid": "", "secret_key": ""}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_INT_MAP = {
            "YOLINK_MQTT_PORT": "mqtt_port",
            "YOLINK_MQTT_KEEPALIVE": "mqtt_keepalive",
            "YOLINK_REFRESH_AFTER": "refresh_after",
            "YOLINK_GARAGE_DOOR_TIMEOUT": "garage_door_timeout",
        }
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = int(val)

        if "all_devices" not in overrides:
            config_kwargs["all_devices"] = _env_bool(env.get("YOLINK_ALL_DEVICES"), True)
        if "enable_experimental" not in overrides:
            config_kwargs["enable_experimental"] = _env_bool(env.get("YOLINK_ENABLE_EXPERIMENTAL"), False)

        devices_env = env.get("YOLINK_DEVICES")
        if devices_env and "devices" not in overrides:
            raw_devices = json.loads(devices_env)
            config_kwargs["devices"] = {
                str(device_id): DeviceConfig.from_mapping(values) for device_id, values in raw_devices.items()
            }

        garage_env = env.get("YOLINK_GARAGE_DOORS")
        if garage_env and "garage_doors" not in overrides:
            config_kwargs["garage_doors"] = tuple(GarageDoorPair.from_mapping(item) for item in json.loads(garage_env))

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
