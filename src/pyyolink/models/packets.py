"""Request and response envelopes of the YoLink JSON API.

YoLink calls the request a Basic Downlink Data Packet (BDDP) and the reply
a Basic Uplink Data Packet (BUDP).
"""

from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pyyolink._constants import SUCCESS_CODE
from pyyolink.models._base import YoLinkBaseModel


class ApiRequest(BaseModel):
    """Request envelope ``{time, method, targetDevice?, token?, params?}``."""

    model_config = ConfigDict(frozen=True)

    method: str
    time: int = Field(default_factory=lambda: int(time.time() * 1000))
    target_device: str | None = None
    token: str | None = None
    params: dict[str, Any] | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize with the wire key names, omitting unset optionals."""
        payload: dict[str, Any] = {"time": self.time, "method": self.method}
        if self.target_device is not None:
            payload["targetDevice"] = self.target_device
        if self.token is not None:
            payload["token"] = self.token
        if self.params is not None:
            payload["params"] = self.params
        return payload


class ApiResponse(YoLinkBaseModel):
    """Response envelope ``{time, method, msgid, code, desc, data}``."""

    code: str = ""
    desc: str = ""
    method: str = ""
    time: int | None = None
    msgid: str | None = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.code == SUCCESS_CODE

    @property
    def data_dict(self) -> dict[str, Any]:
        """``data`` when it is an object, else an empty dict."""
        return self.data if isinstance(self.data, dict) else {}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ApiResponse:
        working = dict(payload)
        # msgid arrives as int in replies and as str in push messages.
        if working.get("msgid") is not None:
            working["msgid"] = str(working["msgid"])
        if working.get("code") is not None:
            working["code"] = str(working["code"])
        working["raw"] = payload
        return cls.model_validate(working)
