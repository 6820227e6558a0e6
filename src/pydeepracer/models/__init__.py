"""Typed models for the DeepRacer device API."""

from pydeepracer.models.battery import BatteryResponse, BatteryState
from pydeepracer.models.drive import DriveCommand, DriveSessionState, StartStopAction
from pydeepracer.models.video import VideoFrame

__all__ = [
    "BatteryResponse",
    "BatteryState",
    "DriveCommand",
    "DriveSessionState",
    "StartStopAction",
    "VideoFrame",
]
