"""Custom exception hierarchy for pydeepracer."""

from __future__ import annotations


class DeepRacerError(Exception):
    """Base exception for all pydeepracer errors."""


class DeepRacerConfigError(DeepRacerError):
    """Invalid or missing configuration."""


class DeepRacerNetworkError(DeepRacerError):
    """Request never completed (connection failure, timeout, bad URL).

    Also raised when the login page itself cannot be fetched with a 2xx
    status, since nothing can be scraped from it.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class DeepRacerInvalidResponseError(DeepRacerError):
    """Device answered with a body that could not be interpreted."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class DeepRacerAuthenticationError(DeepRacerError):
    """Login failed or the session is no longer usable."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class DeepRacerTokenExtractionError(DeepRacerAuthenticationError):
    """No supported CSRF token pattern was found on the login page."""


class DeepRacerAuthRejectedError(DeepRacerAuthenticationError):
    """The device answered the login POST with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        super().__init__(message, endpoint=endpoint)


class DeepRacerSessionExpiredError(DeepRacerAuthenticationError):
    """The device served its HTML login page where JSON was expected.

    The session has been invalidated server-side; the caller must
    authenticate again.  The library never does this on its own.
    """


class DeepRacerNotAuthenticatedError(DeepRacerAuthenticationError):
    """A request needing a session/CSRF token was attempted without one.

    This is a local precondition failure: nothing was sent to the device.
    """


class DeepRacerDeviceRejectedError(DeepRacerError):
    """An authenticated call returned a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: str = "",
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.endpoint = endpoint
        super().__init__(message)


class DeepRacerFrameDecodeError(DeepRacerError):
    """A byte range delimited by JPEG markers did not decode as an image.

    Non-fatal: the stream decoder drops the frame and keeps going.
    """
