"""Drive control endpoints.

Endpoints:
  - /api/drive_mode    (switch to manual driving)
  - /api/start_stop    (arm / disarm the motors)
  - /api/manual_drive  (one steering + throttle tick)
"""

from __future__ import annotations

import logging

from pydeepracer._api._common import put_json
from pydeepracer._constants import DRIVE_MODE_PATH, MANUAL_DRIVE_PATH, MAX_SPEED, START_STOP_PATH
from pydeepracer._transport import Transport
from pydeepracer.models.drive import DriveCommand, StartStopAction
from pydeepracer.session import Session

_logger = logging.getLogger(__name__)

MANUAL_MODE = "manual"


async def set_manual_mode(
    session: Session,
    transport: Transport,
    *,
    timeout: float | None = None,
) -> None:
    await put_json(
        endpoint=DRIVE_MODE_PATH,
        session=session,
        transport=transport,
        payload={"drive_mode": MANUAL_MODE},
        timeout=timeout,
    )
    _logger.debug("Drive mode set to %s on %s", MANUAL_MODE, session.host)


async def start_stop(
    session: Session,
    transport: Transport,
    action: StartStopAction,
    *,
    timeout: float | None = None,
) -> None:
    """Arm (``start``) or disarm (``stop``) the car's motors."""
    await put_json(
        endpoint=START_STOP_PATH,
        session=session,
        transport=transport,
        payload={"start_stop": StartStopAction(action).value},
        timeout=timeout,
    )
    _logger.debug("start_stop=%s sent to %s", action, session.host)


async def manual_drive(
    session: Session,
    transport: Transport,
    angle: float,
    throttle: float,
    *,
    max_speed: float = MAX_SPEED,
    timeout: float | None = None,
) -> DriveCommand:
    """Send one drive tick.

    *angle* and *throttle* are expected in ``[-1, 1]`` already; they are
    not clamped again here, and out-of-range values fail validation.
    """
    command = DriveCommand(angle=angle, throttle=throttle, max_speed=max_speed)
    await put_json(
        endpoint=MANUAL_DRIVE_PATH,
        session=session,
        transport=transport,
        payload=command.to_payload(),
        timeout=timeout,
    )
    return command
