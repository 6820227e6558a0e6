"""Drive loop models."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from pydeepracer._constants import MAX_SPEED


class DriveSessionState(StrEnum):
    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"


class StartStopAction(StrEnum):
    START = "start"
    STOP = "stop"


class DriveCommand(BaseModel):
    """One drive tick as sent to ``/api/manual_drive``.

    Built fresh from the latest inputs on every tick and never queued.
    """

    model_config = ConfigDict(frozen=True)

    angle: float = Field(ge=-1.0, le=1.0)
    throttle: float = Field(ge=-1.0, le=1.0)
    max_speed: float = MAX_SPEED

    def to_payload(self) -> dict[str, float]:
        return {"angle": self.angle, "throttle": self.throttle, "max_speed": self.max_speed}
