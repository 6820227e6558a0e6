"""Login endpoint.

Endpoint:
  - /login  (GET login page, POST credentials)

The device's web console is protected by a session cookie plus a CSRF
token.  The token is scraped from the login page once and reused for
every mutating call of the session.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import quote

from pydeepracer._constants import LOGIN_PATH
from pydeepracer._transport import Transport
from pydeepracer.exceptions import (
    DeepRacerAuthRejectedError,
    DeepRacerError,
    DeepRacerNetworkError,
    DeepRacerTokenExtractionError,
)
from pydeepracer.session import Session

_logger = logging.getLogger(__name__)

# Characters left unescaped: the URL-query-allowed set without '+', '=' and
# '&', which delimit the form body.  Letters, digits and '_.-~' are always
# safe for quote().
_FORM_SAFE_CHARS = "!$'()*,/:;?@"


@dataclass(frozen=True, slots=True)
class CsrfStrategy:
    """One way of finding the CSRF token in the login page HTML.

    ``tag`` locates the whole element, ``attribute`` pulls the token out of
    the matched element text.
    """

    name: str
    tag: re.Pattern[str]
    attribute: re.Pattern[str]

    def extract(self, html: str) -> str | None:
        match = self.tag.search(html)
        if match is None:
            return None
        value = self.attribute.search(match.group(0))
        return value.group(1) if value else None


CSRF_STRATEGIES: tuple[CsrfStrategy, ...] = (
    CsrfStrategy(
        name="meta",
        tag=re.compile(r'<meta name="csrf-token" content="[^"]+"'),
        attribute=re.compile(r'content="([^"]+)"'),
    ),
    CsrfStrategy(
        name="hidden-input",
        tag=re.compile(r'<input[^>]*name="csrf_token"[^>]*value="[^"]+"'),
        attribute=re.compile(r'value="([^"]+)"'),
    ),
)


def extract_csrf_token(
    html: str,
    strategies: tuple[CsrfStrategy, ...] = CSRF_STRATEGIES,
) -> str | None:
    """Return the first CSRF token found by *strategies*, tried in order."""
    for strategy in strategies:
        token = strategy.extract(html)
        if token:
            _logger.debug("CSRF token found via %s strategy", strategy.name)
            return token
    return None


def form_encode(value: str) -> str:
    """Percent-encode a form value so '+', '=' and '&' are always escaped."""
    return quote(value, safe=_FORM_SAFE_CHARS)


def build_login_form(password: str, csrf_token: str) -> str:
    """Build the ``application/x-www-form-urlencoded`` login body."""
    return f"password={form_encode(password)}&csrf_token={form_encode(csrf_token)}"


async def fetch_csrf_token(transport: Transport) -> str:
    """GET the login page and scrape its CSRF token.

    Raises
    ------
    DeepRacerNetworkError
        If the page could not be fetched or returned a non-2xx status.
    DeepRacerTokenExtractionError
        If no supported token pattern matched.
    """
    response = await transport.request("GET", LOGIN_PATH)
    if not response.ok:
        raise DeepRacerNetworkError(
            f"Login page returned HTTP {response.status}",
            status_code=response.status,
            endpoint=LOGIN_PATH,
        )
    token = extract_csrf_token(response.text)
    if token is None:
        raise DeepRacerTokenExtractionError("CSRF extraction failed", endpoint=LOGIN_PATH)
    return token


async def post_login(transport: Transport, password: str, csrf_token: str) -> None:
    """POST the credentials; any 2xx answer counts as accepted."""
    body = build_login_form(password, csrf_token)
    _logger.debug("Submitting login form for %s", LOGIN_PATH)
    response = await transport.request(
        "POST",
        LOGIN_PATH,
        data=body,
        headers={"Content-Type": "application/x-www-form-urlencoded; charset=UTF-8"},
    )
    if not response.ok:
        raise DeepRacerAuthRejectedError(
            f"Login rejected: HTTP {response.status}",
            status_code=response.status,
            endpoint=LOGIN_PATH,
        )


async def authenticate(transport: Transport, session: Session) -> Session:
    """Run the full login handshake and update *session* in place.

    On success the session carries the scraped token and is marked
    authenticated.  On failure it is marked failed with the error message
    and the error propagates; nothing is retried.
    """
    try:
        token = await fetch_csrf_token(transport)
        await post_login(transport, session.password, token)
    except DeepRacerError as exc:
        session.mark_failed(str(exc))
        _logger.debug("Login to %s failed: %s", session.host, exc)
        raise

    session.mark_authenticated(token)
    _logger.debug("Logged in to %s", session.host)
    return session
