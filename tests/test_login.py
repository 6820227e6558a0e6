from __future__ import annotations

from typing import Any
from urllib.parse import parse_qs

import pytest

from pydeepracer._api.login import (
    CSRF_STRATEGIES,
    authenticate,
    build_login_form,
    extract_csrf_token,
    form_encode,
)
from pydeepracer._transport import TransportResponse
from pydeepracer.exceptions import (
    DeepRacerAuthRejectedError,
    DeepRacerNetworkError,
    DeepRacerTokenExtractionError,
)
from pydeepracer.session import Session

META_PAGE = """<!DOCTYPE html>
<html><head>
<meta charset="utf-8">
<meta name="csrf-token" content="IjM2NzQ0ZWY.meta-token">
</head><body><form method="post"></form></body></html>
"""

INPUT_PAGE = """<!DOCTYPE html>
<html><body>
<form action="/login" method="post">
  <input type="hidden" name="csrf_token" value="IjM2NzQ0ZWY.input-token"/>
  <input type="password" name="password">
</form>
</body></html>
"""


class _ScriptedTransport:
    def __init__(self, *responses: TransportResponse | Exception) -> None:
        self._responses = list(responses)
        self.requests: list[dict[str, Any]] = []

    async def request(
        self,
        method: str,
        path: str,
        *,
        data: str | None = None,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> TransportResponse:
        self.requests.append({"method": method, "path": path, "data": data, "headers": headers or {}})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _session() -> Session:
    return Session(host="192.168.1.50", password="s3cr3t+pw=&x")


# ------------------------------------------------------------------
# CSRF extraction
# ------------------------------------------------------------------


class TestExtractCsrfToken:
    def test_meta_tag(self) -> None:
        assert extract_csrf_token(META_PAGE) == "IjM2NzQ0ZWY.meta-token"

    def test_hidden_input(self) -> None:
        assert extract_csrf_token(INPUT_PAGE) == "IjM2NzQ0ZWY.input-token"

    def test_meta_tag_wins_over_input(self) -> None:
        html = META_PAGE.replace("</body>", '<input type="hidden" name="csrf_token" value="other"></body>')
        assert extract_csrf_token(html) == "IjM2NzQ0ZWY.meta-token"

    def test_no_pattern(self) -> None:
        assert extract_csrf_token("<html><body>Welcome</body></html>") is None

    def test_empty_value_does_not_match(self) -> None:
        assert extract_csrf_token('<meta name="csrf-token" content="">') is None

    def test_strategies_are_ordered(self) -> None:
        assert [s.name for s in CSRF_STRATEGIES] == ["meta", "hidden-input"]

    def test_custom_strategy_list(self) -> None:
        assert extract_csrf_token(META_PAGE, CSRF_STRATEGIES[1:]) is None


# ------------------------------------------------------------------
# Form encoding
# ------------------------------------------------------------------


def test_form_encode_escapes_delimiters() -> None:
    assert form_encode("a+b=c&d") == "a%2Bb%3Dc%26d"


def test_form_encode_keeps_query_safe_characters() -> None:
    assert form_encode("abc-_.~/:?@") == "abc-_.~/:?@"
    assert form_encode("two words") == "two%20words"


def test_build_login_form_round_trips() -> None:
    body = build_login_form("p+w=&1", "tok/en==")
    assert body.startswith("password=")
    parsed = parse_qs(body)
    assert parsed == {"password": ["p+w=&1"], "csrf_token": ["tok/en=="]}


# ------------------------------------------------------------------
# Handshake
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_authenticate_success_stores_token() -> None:
    transport = _ScriptedTransport(
        TransportResponse(status=200, text=META_PAGE),
        TransportResponse(status=200, text="<html>home</html>"),
    )
    session = _session()

    result = await authenticate(transport, session)

    assert result is session
    assert session.authenticated is True
    assert session.csrf_token == "IjM2NzQ0ZWY.meta-token"
    assert session.last_error is None

    get, post = transport.requests
    assert (get["method"], get["path"]) == ("GET", "/login")
    assert (post["method"], post["path"]) == ("POST", "/login")
    assert post["headers"]["Content-Type"].startswith("application/x-www-form-urlencoded")
    assert post["data"] == "password=s3cr3t%2Bpw%3D%26x&csrf_token=IjM2NzQ0ZWY.meta-token"


@pytest.mark.asyncio
async def test_authenticate_login_page_error_is_network_error() -> None:
    transport = _ScriptedTransport(TransportResponse(status=502, text="bad gateway"))
    session = _session()

    with pytest.raises(DeepRacerNetworkError) as exc_info:
        await authenticate(transport, session)

    assert exc_info.value.status_code == 502
    assert session.authenticated is False
    assert session.last_error is not None
    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_authenticate_transport_failure_propagates() -> None:
    transport = _ScriptedTransport(DeepRacerNetworkError("GET /login failed", endpoint="/login"))
    session = _session()

    with pytest.raises(DeepRacerNetworkError):
        await authenticate(transport, session)

    assert session.authenticated is False
    assert session.last_error == "GET /login failed"


@pytest.mark.asyncio
async def test_authenticate_without_token_fails_before_post() -> None:
    transport = _ScriptedTransport(TransportResponse(status=200, text="<html>no token</html>"))
    session = _session()

    with pytest.raises(DeepRacerTokenExtractionError):
        await authenticate(transport, session)

    assert len(transport.requests) == 1
    assert session.csrf_token is None
    assert session.authenticated is False


@pytest.mark.asyncio
async def test_authenticate_rejected_post() -> None:
    transport = _ScriptedTransport(
        TransportResponse(status=200, text=INPUT_PAGE),
        TransportResponse(status=401, text="Invalid password"),
    )
    session = _session()

    with pytest.raises(DeepRacerAuthRejectedError) as exc_info:
        await authenticate(transport, session)

    assert exc_info.value.status_code == 401
    assert session.authenticated is False
    assert session.csrf_token is None
    assert "401" in (session.last_error or "")


@pytest.mark.asyncio
async def test_reauthenticate_after_failure_clears_error() -> None:
    session = _session()
    session.mark_failed("earlier failure")
    transport = _ScriptedTransport(
        TransportResponse(status=200, text=INPUT_PAGE),
        TransportResponse(status=204, text=""),
    )

    await authenticate(transport, session)

    assert session.authenticated is True
    assert session.last_error is None
    assert session.csrf_token == "IjM2NzQ0ZWY.input-token"
