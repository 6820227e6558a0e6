from __future__ import annotations

from pydeepracer._redact import redact_for_log, redact_form


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "angle": 0.5,
        "password": "pw",
        "csrf_token": "tok",
        "headers": {"X-CSRFToken": "tok", "Referer": "https://10.0.0.2/home", "Cookie": "session=abc"},
    }

    redacted = redact_for_log(payload)
    assert redacted["angle"] == 0.5
    assert redacted["password"] == "<redacted>"
    assert redacted["csrf_token"] == "<redacted>"
    assert redacted["headers"]["X-CSRFToken"] == "<redacted>"
    assert redacted["headers"]["Cookie"] == "<redacted>"
    assert redacted["headers"]["Referer"] == "https://10.0.0.2/home"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_summarises_bytes() -> None:
    assert redact_for_log(b"\xff\xd8\xff") == "<bytes:3b>"


def test_redact_for_log_masks_secret_keys_whatever_the_value() -> None:
    redacted = redact_for_log({" Set-Cookie ": ["session=abc"], "password": {"nested": "pw"}})
    assert redacted == {" Set-Cookie ": "<redacted>", "password": "<redacted>"}


def test_redact_form_masks_login_fields() -> None:
    body = "password=s3cr3t%2Bpw%3D%26x&csrf_token=IjM2NzQ0ZWY.tok&remember=1"
    assert redact_form(body) == "password=<redacted>&csrf_token=<redacted>&remember=1"


def test_redact_form_passes_through_empty_and_bare_fields() -> None:
    assert redact_form(None) is None
    assert redact_form("") == ""
    assert redact_form("password&flag=1") == "password&flag=1"
