"""HTTP transport for the YoLink JSON and token endpoints."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyyolink._redact import redact_for_log
from pyyolink.exceptions import YoLinkTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def post_json(
        self,
        url: str,
        payload: Mapping[str, Any],
        *,
        access_token: str | None = None,
    ) -> dict[str, Any]:
        ...

    async def post_form(self, url: str, form: Mapping[str, str]) -> dict[str, Any]:
        ...


class HttpTransport:
    """aiohttp transport: JSON bodies with bearer auth, form-encoded token grants."""

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 30.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def post_json(
        self,
        url: str,
        payload: Mapping[str, Any],
        *,
        access_token: str | None = None,
    ) -> dict[str, Any]:
        headers: dict[str, str] = {"content-type": "application/json"}
        if access_token:
            headers["authorization"] = f"Bearer {access_token}"
        _logger.debug("POST %s %s", url, redact_for_log(payload))
        return await self._post(url, data=json.dumps(payload, separators=(",", ":")), headers=headers)

    async def post_form(self, url: str, form: Mapping[str, str]) -> dict[str, Any]:
        _logger.debug("POST %s %s", url, redact_for_log(dict(form)))
        return await self._post(url, data=dict(form), headers={})

    async def _post(self, url: str, *, data: Any, headers: dict[str, str]) -> dict[str, Any]:
        try:
            async with self._http.post(url, data=data, headers=headers, timeout=self._timeout) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise YoLinkTransportError(
                        f"HTTP {resp.status} from {url}: {resp.reason or text[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
        except YoLinkTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise YoLinkTransportError(f"Request to {url} failed: {exc!r}", url=url) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise YoLinkTransportError(f"Invalid JSON from {url}: {text[:200]}", url=url) from exc

        if not isinstance(body, dict):
            raise YoLinkTransportError(f"Unexpected JSON from {url}: {text[:200]}", url=url)

        _logger.debug("RECEIVED %s", redact_for_log(body))
        return body
