"""Authentication token model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuthToken(BaseModel):
    """Token pair returned by the OAuth token endpoint.

    Parameters
    ----------
    access_token : str
        Bearer token for API calls and MQTT username.
    refresh_token : str
        Token used for the ``refresh_token`` grant.
    expires_in : int
        Lifetime of ``access_token`` in seconds.
    token_type : str
        Usually ``"bearer"``.
    raw : dict
        Full decoded reply for access to additional fields.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"
    raw: dict[str, Any] = Field(default_factory=dict)
