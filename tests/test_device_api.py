from __future__ import annotations

from typing import Any

import pytest

from pydeepracer._api._common import build_mutation_headers, looks_like_html
from pydeepracer._api.battery import fetch_battery_level, parse_battery_body
from pydeepracer._api.drive import manual_drive, set_manual_mode, start_stop
from pydeepracer._transport import TransportResponse
from pydeepracer.exceptions import (
    DeepRacerDeviceRejectedError,
    DeepRacerInvalidResponseError,
    DeepRacerNotAuthenticatedError,
    DeepRacerSessionExpiredError,
)
from pydeepracer.models.drive import StartStopAction
from pydeepracer.session import Session

LOGIN_HTML = """<!DOCTYPE html>
<html lang="en"><head><title>AWS DeepRacer</title></head>
<body><form action="/login"></form></body></html>"""


class _RecordingTransport:
    def __init__(self, response: TransportResponse | None = None) -> None:
        self.response = response or TransportResponse(status=200, text='{"success": true}')
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
        self.requests.append(
            {
                "method": method,
                "path": path,
                "json": json_body,
                "headers": dict(headers or {}),
                "timeout": timeout,
            }
        )
        return self.response


def _session(*, authenticated: bool = True) -> Session:
    session = Session(host="10.0.0.7", password="pw")
    if authenticated:
        session.mark_authenticated("csrf-123")
    return session


# ------------------------------------------------------------------
# Mutating calls
# ------------------------------------------------------------------


def test_mutation_headers() -> None:
    headers = build_mutation_headers(_session())
    assert headers == {
        "Content-Type": "application/json",
        "X-CSRFToken": "csrf-123",
        "Referer": "https://10.0.0.7/home",
    }


@pytest.mark.asyncio
async def test_set_manual_mode() -> None:
    transport = _RecordingTransport()
    await set_manual_mode(_session(), transport, timeout=3.0)

    (request,) = transport.requests
    assert request["method"] == "PUT"
    assert request["path"] == "/api/drive_mode"
    assert request["json"] == {"drive_mode": "manual"}
    assert request["headers"]["X-CSRFToken"] == "csrf-123"
    assert request["headers"]["Referer"] == "https://10.0.0.7/home"
    assert request["timeout"] == 3.0


@pytest.mark.asyncio
@pytest.mark.parametrize("action", [StartStopAction.START, StartStopAction.STOP])
async def test_start_stop(action: StartStopAction) -> None:
    transport = _RecordingTransport()
    await start_stop(_session(), transport, action)

    (request,) = transport.requests
    assert request["path"] == "/api/start_stop"
    assert request["json"] == {"start_stop": action.value}


@pytest.mark.asyncio
async def test_manual_drive_payload() -> None:
    transport = _RecordingTransport()
    command = await manual_drive(_session(), transport, -0.25, 0.8)

    (request,) = transport.requests
    assert request["path"] == "/api/manual_drive"
    assert request["json"] == {"angle": -0.25, "throttle": 0.8, "max_speed": 0.5}
    assert command.max_speed == 0.5


@pytest.mark.asyncio
async def test_missing_token_fails_before_sending() -> None:
    transport = _RecordingTransport()

    with pytest.raises(DeepRacerNotAuthenticatedError):
        await manual_drive(_session(authenticated=False), transport, 0.0, 0.1)

    assert transport.requests == []


@pytest.mark.asyncio
async def test_expired_session_blocks_mutations() -> None:
    session = _session()
    session.mark_expired()
    transport = _RecordingTransport()

    with pytest.raises(DeepRacerNotAuthenticatedError):
        await set_manual_mode(session, transport)

    assert transport.requests == []


@pytest.mark.asyncio
async def test_non_2xx_raises_device_rejected() -> None:
    transport = _RecordingTransport(TransportResponse(status=403, text="CSRF token missing"))

    with pytest.raises(DeepRacerDeviceRejectedError) as exc_info:
        await start_stop(_session(), transport, StartStopAction.START)

    exc = exc_info.value
    assert exc.status_code == 403
    assert exc.body == "CSRF token missing"
    assert exc.endpoint == "/api/start_stop"


# ------------------------------------------------------------------
# Battery
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_fetch_battery_level() -> None:
    transport = _RecordingTransport(TransportResponse(status=200, text='{"battery_level": 9, "success": true}'))
    reading = await fetch_battery_level(_session(), transport)

    assert reading.battery_level == 9
    assert reading.success is True
    (request,) = transport.requests
    assert request["method"] == "GET"
    assert request["path"] == "/api/get_battery_level"


@pytest.mark.asyncio
async def test_fetch_battery_html_marks_session_expired() -> None:
    session = _session()
    transport = _RecordingTransport(TransportResponse(status=200, text=LOGIN_HTML))

    with pytest.raises(DeepRacerSessionExpiredError):
        await fetch_battery_level(session, transport)

    assert session.authenticated is False
    assert session.csrf_token is None
    assert session.last_error is not None


def test_html_detection_is_case_insensitive() -> None:
    assert looks_like_html("<!doctype HTML><p>x</p>")
    assert looks_like_html("\n  <HTML><body></body></HTML>")
    assert not looks_like_html('{"battery_level": 3, "success": true}')


def test_parse_battery_body_rejects_garbage() -> None:
    with pytest.raises(DeepRacerInvalidResponseError):
        parse_battery_body(_session(), "not json at all")


def test_parse_battery_body_rejects_wrong_shape() -> None:
    with pytest.raises(DeepRacerInvalidResponseError):
        parse_battery_body(_session(), '{"success": true}')


def test_parse_battery_body_keeps_session_on_json() -> None:
    session = _session()
    reading = parse_battery_body(session, '{"battery_level": 0, "success": true}')
    assert reading.battery_level == 0
    assert session.authenticated is True
