"""Battery models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from pydeepracer._constants import BATTERY_LEVEL_UNKNOWN


class BatteryResponse(BaseModel):
    """Body of ``GET /api/get_battery_level``: ``{"battery_level": 9, "success": true}``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    battery_level: int
    success: bool = True


class BatteryState(BaseModel):
    """Last known battery level.

    ``level`` is ``-1`` until a successful reading arrives, so an unknown
    level is never confused with an empty battery.
    """

    model_config = ConfigDict(frozen=True)

    level: int = BATTERY_LEVEL_UNKNOWN

    @property
    def known(self) -> bool:
        return self.level != BATTERY_LEVEL_UNKNOWN

    @classmethod
    def unknown(cls) -> BatteryState:
        return cls()
