"""Custom exception hierarchy for pyyolink."""

from __future__ import annotations

#: Message prefix that tags an error as fatal (never retried).
FATAL_PREFIX = "FATAL:"


class YoLinkError(Exception):
    """Base exception for all pyyolink errors."""

    fatal: bool = False


class YoLinkConfigError(YoLinkError):
    """Invalid or missing configuration.

    Configuration errors can never be fixed by retrying, so they are
    always fatal.
    """

    fatal = True

    def __init__(self, message: str) -> None:
        if not message.startswith(FATAL_PREFIX):
            message = f"{FATAL_PREFIX} {message}"
        super().__init__(message)


class YoLinkTransportError(YoLinkError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class YoLinkApiError(YoLinkError):
    """API returned a non-success code (application-level error)."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        method: str = "",
        device_id: str | None = None,
    ) -> None:
        self.code = code
        self.method = method
        self.device_id = device_id
        super().__init__(message)


class YoLinkAuthenticationError(YoLinkApiError):
    """Token exchange failed or the access token was rejected.

    The session manager invalidates its state when it sees this so the
    next access logs in again.
    """


class YoLinkRateLimitError(YoLinkApiError):
    """Too many requests for this account (code ``010301``)."""


class YoLinkDeviceBusyError(YoLinkApiError):
    """Device is still processing a previous command (code ``020104``)."""


class YoLinkDeviceUnreachableError(YoLinkApiError):
    """Cloud could not reach the device (code ``000201``)."""


def is_fatal(exc: BaseException) -> bool:
    """Return ``True`` when *exc* must not be retried.

    An error is fatal when it carries ``fatal = True`` or when its message
    (or the message of its direct cause) starts with ``FATAL:``.
    """
    if getattr(exc, "fatal", False):
        return True
    if str(exc).startswith(FATAL_PREFIX):
        return True
    cause = exc.__cause__
    return cause is not None and str(cause).startswith(FATAL_PREFIX)
