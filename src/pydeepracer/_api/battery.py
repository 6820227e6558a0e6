"""Battery endpoint.

Endpoint:
  - /api/get_battery_level

The endpoint is not protected by the transport layer: once the server
side session is gone it serves the HTML login page with a 200 status.
That is the only way a silently expired session shows up, so the body is
sniffed for HTML before it is decoded as JSON.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from pydeepracer._api._common import looks_like_html, raise_for_status
from pydeepracer._constants import BATTERY_PATH
from pydeepracer._transport import Transport
from pydeepracer.exceptions import DeepRacerInvalidResponseError, DeepRacerSessionExpiredError
from pydeepracer.models.battery import BatteryResponse
from pydeepracer.session import Session

_logger = logging.getLogger(__name__)


def parse_battery_body(session: Session, text: str) -> BatteryResponse:
    """Decode a battery body, detecting an expired session first.

    Raises
    ------
    DeepRacerSessionExpiredError
        If *text* is an HTML document.  *session* is marked expired.
    DeepRacerInvalidResponseError
        If *text* is neither HTML nor the expected JSON object.
    """
    if looks_like_html(text):
        _logger.debug("Battery endpoint served HTML; session on %s expired", session.host)
        session.mark_expired()
        raise DeepRacerSessionExpiredError(
            "Received HTML instead of JSON; the session has expired",
            endpoint=BATTERY_PATH,
        )

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DeepRacerInvalidResponseError(
            f"{BATTERY_PATH} is not JSON: {text[:128]}",
            endpoint=BATTERY_PATH,
        ) from exc

    try:
        return BatteryResponse.model_validate(data)
    except ValidationError as exc:
        raise DeepRacerInvalidResponseError(
            f"{BATTERY_PATH} has unexpected shape: {text[:128]}",
            endpoint=BATTERY_PATH,
        ) from exc


async def fetch_battery_level(
    session: Session,
    transport: Transport,
    *,
    timeout: float | None = None,
) -> BatteryResponse:
    """GET the battery level of the connected car."""
    response = await transport.request("GET", BATTERY_PATH, timeout=timeout)
    raise_for_status(BATTERY_PATH, response)
    return parse_battery_body(session, response.text)
