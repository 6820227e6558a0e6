"""Session state for one connected device."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pydeepracer._constants import HOME_PATH
from pydeepracer.exceptions import DeepRacerNotAuthenticatedError


class Session(BaseModel):
    """Mutable login state for a single device.

    The session cookie itself lives in the transport's cookie jar; this
    model tracks the explicit CSRF token the device additionally demands
    on every mutating request.

    Parameters
    ----------
    host : str
        Device address the session belongs to.
    password : str
        Device password.  Excluded from ``repr``.
    scheme : str
        URL scheme used to reach the device.
    csrf_token : str or None
        Token scraped from the login page; set only after a successful
        login.
    authenticated : bool
        Whether the device accepted the login and has not since served
        its login page in place of an API response.
    last_error : str or None
        Message of the last authentication or expiry failure.
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    host: str = Field(min_length=1)
    password: str = Field(repr=False)
    scheme: str = "https"
    csrf_token: str | None = Field(default=None, repr=False)
    authenticated: bool = False
    last_error: str | None = None

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}"

    @property
    def home_url(self) -> str:
        """Value of the ``Referer`` header the device expects."""
        return f"{self.base_url}{HOME_PATH}"

    def mark_authenticated(self, csrf_token: str) -> None:
        self.csrf_token = csrf_token
        self.authenticated = True
        self.last_error = None

    def mark_failed(self, message: str) -> None:
        self.csrf_token = None
        self.authenticated = False
        self.last_error = message

    def mark_expired(self, message: str = "Session expired; log in again") -> None:
        """Record a server-side logout detected from a response body."""
        self.mark_failed(message)

    def reset(self) -> None:
        self.csrf_token = None
        self.authenticated = False
        self.last_error = None

    def require_csrf_token(self) -> str:
        """Return the CSRF token or fail before anything is sent."""
        if not self.authenticated or not self.csrf_token:
            raise DeepRacerNotAuthenticatedError(
                f"No authenticated session for {self.host}; call connect() first",
            )
        return self.csrf_token
