"""OAuth token endpoint.

Two grants are used against ``token_url``:

- ``client_credentials`` with the UAID and secret key (login)
- ``refresh_token`` with the refresh token from the previous grant
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from pyyolink._transport import Transport
from pyyolink.config import YoLinkConfig
from pyyolink.exceptions import YoLinkAuthenticationError, YoLinkConfigError
from pyyolink.models.token import AuthToken

_logger = logging.getLogger(__name__)


def build_login_form(config: YoLinkConfig) -> dict[str, str]:
    """Form fields for the ``client_credentials`` grant."""
    if not config.uaid or not config.secret_key:
        raise YoLinkConfigError("Missing uaid or secret_key credentials in config.")
    return {
        "grant_type": "client_credentials",
        "client_id": config.uaid,
        "client_secret": config.secret_key,
    }


def build_refresh_form(config: YoLinkConfig, refresh_token: str) -> dict[str, str]:
    """Form fields for the ``refresh_token`` grant."""
    return {
        "grant_type": "refresh_token",
        "client_id": config.uaid,
        "refresh_token": refresh_token,
    }


def parse_token_response(response: dict[str, Any]) -> AuthToken:
    """Validate a token endpoint reply.

    The endpoint reports failures in-band as ``{"state": "error", "msg": ...}``.
    """
    if response.get("state") == "error":
        raise YoLinkAuthenticationError(f"YoLink token error: {response.get('msg', 'unknown error')}")
    try:
        return AuthToken.model_validate({**response, "raw": response})
    except ValidationError as exc:
        raise YoLinkAuthenticationError(f"YoLink token response is incomplete: {exc}") from exc


async def request_token(config: YoLinkConfig, transport: Transport) -> AuthToken:
    """Exchange the long-lived credentials for a token pair."""
    form = build_login_form(config)
    _logger.info("Login to YoLink API with credentials from config")
    response = await transport.post_form(config.token_url, form)
    return parse_token_response(response)


async def refresh_token(config: YoLinkConfig, transport: Transport, token: AuthToken) -> AuthToken:
    """Exchange *token*'s refresh token for a new pair."""
    response = await transport.post_form(config.token_url, build_refresh_form(config, token.refresh_token))
    return parse_token_response(response)
