"""Session state and access-token lifecycle.

:class:`Session` is the immutable snapshot of one token grant.
:class:`SessionManager` owns the current snapshot and is the only place
that replaces it: every replacement happens while holding its lock, so at
most one login or refresh is in flight and concurrent callers all receive
the token it produced.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import time
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, ConfigDict

from pyyolink._api.home import fetch_home_id
from pyyolink._api.login import refresh_token, request_token
from pyyolink._constants import TOKEN_HEARTBEAT_AT, TOKEN_REFRESH_AT
from pyyolink._retry import LOGIN_RETRY, TOKEN_RETRY, retry
from pyyolink._transport import Transport
from pyyolink.config import YoLinkConfig
from pyyolink.exceptions import YoLinkError
from pyyolink.models.token import AuthToken

_logger = logging.getLogger(__name__)


class Session(BaseModel):
    """Token state after a successful grant.

    Parameters
    ----------
    access_token : str
        Bearer token for API calls and MQTT.
    refresh_token : str
        Token for the ``refresh_token`` grant.
    expires_in : int
        Lifetime of ``access_token`` in seconds as stated by YoLink.
    home_id : str
        Home identifier scoping the MQTT report topic.
    obtained_at : float
        Epoch seconds when the grant was received.
    refresh_at_fraction : float
        Fraction of ``expires_in`` after which the token is due for refresh.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    access_token: str
    refresh_token: str
    expires_in: int
    home_id: str
    obtained_at: float
    refresh_at_fraction: float = TOKEN_REFRESH_AT

    @property
    def refresh_at(self) -> float:
        """Epoch seconds after which the token must not be trusted any more."""
        return math.floor(self.obtained_at) + math.floor(self.expires_in * self.refresh_at_fraction)

    def is_due(self, now: float) -> bool:
        """Whether the token is expired or close enough to expiry to refresh."""
        return now >= self.refresh_at


class SessionManager:
    """Owns login, token refresh and the refresh heartbeat.

    Usage::

        manager = SessionManager(config, transport)
        await manager.login()
        token = await manager.get_access_token()
    """

    def __init__(
        self,
        config: YoLinkConfig,
        transport: Transport,
        *,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        heartbeat_sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        heartbeat_at: float = TOKEN_HEARTBEAT_AT,
    ) -> None:
        self._config = config
        self._transport = transport
        self._clock = clock
        self._sleep = sleep
        self._heartbeat_sleep = heartbeat_sleep
        self._heartbeat_at = heartbeat_at
        self._lock = asyncio.Lock()
        self._session: Session | None = None
        self._logged_in = False
        self._heartbeat: asyncio.Task[None] | None = None

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def logged_in(self) -> bool:
        return self._logged_in and self._session is not None

    @property
    def home_id(self) -> str:
        return self._session.home_id if self._session is not None else ""

    @property
    def token_expires_at(self) -> float:
        """Refresh deadline of the current token (0 when logged out)."""
        return self._session.refresh_at if self._session is not None else 0.0

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def login(self) -> None:
        """Log in, retrying forever unless the failure is fatal."""
        async with self._lock:
            await self._login_locked()

    async def _login_locked(self) -> None:
        await retry(self._try_login, LOGIN_RETRY, name="login", sleep=self._sleep)

    async def _try_login(self) -> None:
        self._logged_in = False
        token = await request_token(self._config, self._transport)
        obtained_at = self._clock()
        home_id = await fetch_home_id(self._config, self._transport, token.access_token)
        self._session = self._build_session(token, home_id, obtained_at)
        self._logged_in = True
        _logger.info(
            "Logged in to YoLink API, access token refresh every %d seconds",
            math.floor(token.expires_in * TOKEN_REFRESH_AT),
        )
        self._ensure_heartbeat()

    def _build_session(self, token: AuthToken, home_id: str, obtained_at: float) -> Session:
        return Session(
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            expires_in=token.expires_in,
            home_id=home_id,
            obtained_at=obtained_at,
        )

    def invalidate(self) -> None:
        """Force a new login on the next token request."""
        if self._logged_in:
            _logger.info("YoLink session invalidated, will login again on next request")
        self._logged_in = False

    # ------------------------------------------------------------------
    # Access token
    # ------------------------------------------------------------------

    async def get_access_token(self) -> str:
        """Return a valid access token, refreshing or logging in when needed.

        On persistent failure the session is marked logged out and the
        error propagates.
        """
        return await retry(self._try_get_access_token, TOKEN_RETRY, name="get_access_token", sleep=self._sleep)

    async def refresh(self, *, force: bool = False) -> str:
        """Refresh the token now when *force* is set, else only if due."""
        return await self._try_get_access_token(force=force)

    async def _try_get_access_token(self, *, force: bool = False) -> str:
        async with self._lock:
            try:
                if not self.logged_in:
                    _logger.warning("Not logged in to YoLink API, try to login")
                    await self._login_locked()
                else:
                    assert self._session is not None  # noqa: S101
                    if force or self._session.is_due(self._clock()):
                        await self._refresh_locked(self._session)
            except Exception:
                self._logged_in = False
                raise
            assert self._session is not None  # noqa: S101
            return self._session.access_token

    async def _refresh_locked(self, current: Session) -> None:
        _logger.debug("Current access token expired, or close to expiry, requesting new one")
        previous = AuthToken(
            access_token=current.access_token,
            refresh_token=current.refresh_token,
            expires_in=current.expires_in,
        )
        token = await refresh_token(self._config, self._transport, previous)
        self._session = self._build_session(token, current.home_id, self._clock())

    # ------------------------------------------------------------------
    # Heartbeat
    # ------------------------------------------------------------------

    def _ensure_heartbeat(self) -> None:
        if self._heartbeat is not None and not self._heartbeat.done():
            return
        self._heartbeat = asyncio.get_running_loop().create_task(self._heartbeat_loop(), name="yolink-token-heartbeat")

    async def _heartbeat_loop(self) -> None:
        while True:
            session = self._session
            lifetime = session.expires_in if session is not None else 0
            await self._heartbeat_sleep(max(1.0, lifetime) * self._heartbeat_at)
            _logger.debug("Refresh access token timer fired")
            try:
                await self.refresh(force=True)
            except YoLinkError as exc:
                _logger.warning("Scheduled access token refresh failed: %s", exc)

    async def close(self) -> None:
        """Stop the heartbeat."""
        task = self._heartbeat
        self._heartbeat = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
