"""Shared helpers for YoLink API endpoint modules.

This module centralizes the most repeated patterns:
- building the request envelope
- posting it with bearer auth
- mapping non-success codes onto typed exceptions (and logging them)

It is internal to pyyolink and may change at any time.
"""

from __future__ import annotations

import logging
from typing import Any

from pyyolink._constants import (
    AUTH_ERROR_CODES,
    DEVICE_BUSY_CODE,
    DEVICE_UNREACHABLE_CODE,
    RATE_LIMIT_CODE,
    SUCCESS_CODE,
    WARNING_CODES,
)
from pyyolink._transport import Transport
from pyyolink.exceptions import (
    YoLinkApiError,
    YoLinkAuthenticationError,
    YoLinkDeviceBusyError,
    YoLinkDeviceUnreachableError,
    YoLinkRateLimitError,
)
from pyyolink.models.packets import ApiRequest, ApiResponse

_logger = logging.getLogger(__name__)

_CODE_ERRORS: dict[str, type[YoLinkApiError]] = {
    DEVICE_UNREACHABLE_CODE: YoLinkDeviceUnreachableError,
    RATE_LIMIT_CODE: YoLinkRateLimitError,
    DEVICE_BUSY_CODE: YoLinkDeviceBusyError,
}


def raise_for_code(response: ApiResponse, *, device_label: str | None = None, device_id: str | None = None) -> None:
    """Raise a typed :class:`YoLinkApiError` unless *response* is a success.

    Codes the user can act on (unreachable, rate limit, busy) are logged as
    warnings; everything else is unexpected and logged as an error.
    """
    if response.code == SUCCESS_CODE:
        return

    prefix = f"{device_label} " if device_label else ""
    message = f"{prefix}YoLink API error code: {response.code} {response.desc} ({response.method})"
    if response.code in WARNING_CODES:
        _logger.warning(message)
    else:
        _logger.error(message)

    if response.code in AUTH_ERROR_CODES:
        error_cls: type[YoLinkApiError] = YoLinkAuthenticationError
    else:
        error_cls = _CODE_ERRORS.get(response.code, YoLinkApiError)
    raise error_cls(message, code=response.code, method=response.method, device_id=device_id)


async def post_api(
    *,
    transport: Transport,
    api_url: str,
    access_token: str,
    request: ApiRequest,
    device_label: str | None = None,
) -> ApiResponse:
    """Post *request* to the API endpoint and return the checked response."""
    body: dict[str, Any] = await transport.post_json(api_url, request.to_payload(), access_token=access_token)
    response = ApiResponse.from_payload(body)
    raise_for_code(response, device_label=device_label, device_id=request.target_device)
    return response
