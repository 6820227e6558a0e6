"""Shared helpers for DeepRacer API endpoint modules.

This module centralizes the most repeated patterns:
- building the CSRF/Referer headers of mutating calls
- sending a JSON PUT and mapping non-2xx statuses
- recognising the login page served in place of an API answer

It is internal to pydeepracer and may change at any time.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydeepracer._transport import Transport, TransportResponse
from pydeepracer.exceptions import DeepRacerDeviceRejectedError
from pydeepracer.session import Session

_HTML_SIGNATURES: tuple[str, ...] = ("<!doctype html", "<html")


def build_mutation_headers(session: Session) -> dict[str, str]:
    """Headers every mutating call must carry.

    Raises :class:`DeepRacerNotAuthenticatedError` before any I/O when the
    session has no CSRF token.
    """
    return {
        "Content-Type": "application/json",
        "X-CSRFToken": session.require_csrf_token(),
        "Referer": session.home_url,
    }


def looks_like_html(text: str) -> bool:
    """Return ``True`` when *text* carries an HTML doctype or root tag."""
    lowered = text.lower()
    return any(signature in lowered for signature in _HTML_SIGNATURES)


def raise_for_status(endpoint: str, response: TransportResponse) -> None:
    if response.ok:
        return
    raise DeepRacerDeviceRejectedError(
        f"{endpoint} failed: HTTP {response.status}: {response.text[:200]}",
        status_code=response.status,
        body=response.text,
        endpoint=endpoint,
    )


async def put_json(
    *,
    endpoint: str,
    session: Session,
    transport: Transport,
    payload: Mapping[str, Any],
    timeout: float | None = None,
) -> TransportResponse:
    """Send an authenticated JSON PUT and return the 2xx response."""
    headers = build_mutation_headers(session)
    response = await transport.request(
        "PUT",
        endpoint,
        json_body=payload,
        headers=headers,
        timeout=timeout,
    )
    raise_for_status(endpoint, response)
    return response
