"""Exponential backoff retry for upstream calls.

Every upstream call (login, token refresh, device list, per-device get and
set) goes through :func:`retry` with its own :class:`RetryPolicy`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from pyyolink.exceptions import is_fatal

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule.

    Parameters
    ----------
    retries : int
        Maximum number of attempts. ``0`` retries forever.
    interval : float
        Seconds before the first retry.
    increment : float
        Seconds added to the interval after each retry.
    max_interval : float
        Upper bound for the interval.
    """

    retries: int = 5
    interval: float = 15.0
    increment: float = 15.0
    max_interval: float = 60.0


#: Login and device list: forever, 15 s growing by 15 s up to 60 s.
LOGIN_RETRY = RetryPolicy(retries=0, interval=15.0, increment=15.0, max_interval=60.0)
DEVICE_LIST_RETRY = RetryPolicy(retries=0, interval=15.0, increment=15.0, max_interval=60.0)
#: Token refresh: bounded so a broken session eventually surfaces to the caller.
TOKEN_RETRY = RetryPolicy(retries=3, interval=15.0, increment=15.0, max_interval=60.0)
#: Device state pull: many attempts, 5 s growing by 5 s up to 30 s.
GET_STATE_RETRY = RetryPolicy(retries=30, interval=5.0, increment=5.0, max_interval=30.0)
#: Device commands are never replayed against physical actuators.
SET_STATE_RETRY = RetryPolicy(retries=1, interval=0.0, increment=0.0, max_interval=0.0)


async def retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    name: str | None = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Await ``fn()`` until it succeeds, the attempts run out, or it fails fatally.

    The last error is re-raised when giving up.
    """
    label = name or getattr(fn, "__name__", "call")
    retries_left = policy.retries
    interval = policy.interval
    while True:
        try:
            return await fn()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if is_fatal(exc):
                _logger.warning("Retry for %s aborted, fatal error: %s", label, exc)
                raise
            if retries_left == 1:
                if policy.retries > 1:
                    _logger.warning("Retry for %s aborted, too many errors: %s", label, exc)
                raise
            _logger.info(
                "Retry %s due to error, try again in %d second(s): %s",
                label,
                int(interval),
                exc,
            )
            await sleep(interval)
            if retries_left:
                retries_left -= 1
            interval = min(interval + policy.increment, policy.max_interval)
