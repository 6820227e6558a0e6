"""pydeepracer - Async Python client for driving a DeepRacer car over its web console."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pydeepracer")
except PackageNotFoundError:
    __version__ = "0+local"
from pydeepracer.client import DeepRacerClient
from pydeepracer.config import DeepRacerConfig
from pydeepracer.drive import DriveController
from pydeepracer.exceptions import (
    DeepRacerAuthenticationError,
    DeepRacerAuthRejectedError,
    DeepRacerConfigError,
    DeepRacerDeviceRejectedError,
    DeepRacerError,
    DeepRacerFrameDecodeError,
    DeepRacerInvalidResponseError,
    DeepRacerNetworkError,
    DeepRacerNotAuthenticatedError,
    DeepRacerSessionExpiredError,
    DeepRacerTokenExtractionError,
)
from pydeepracer.models import (
    BatteryResponse,
    BatteryState,
    DriveCommand,
    DriveSessionState,
    StartStopAction,
    VideoFrame,
)
from pydeepracer.session import Session
from pydeepracer.video import MjpegFrameDecoder, VideoStream

__all__ = [
    "__version__",
    "BatteryResponse",
    "BatteryState",
    "DeepRacerAuthRejectedError",
    "DeepRacerAuthenticationError",
    "DeepRacerClient",
    "DeepRacerConfig",
    "DeepRacerConfigError",
    "DeepRacerDeviceRejectedError",
    "DeepRacerError",
    "DeepRacerFrameDecodeError",
    "DeepRacerInvalidResponseError",
    "DeepRacerNetworkError",
    "DeepRacerNotAuthenticatedError",
    "DeepRacerSessionExpiredError",
    "DeepRacerTokenExtractionError",
    "DriveCommand",
    "DriveController",
    "DriveSessionState",
    "MjpegFrameDecoder",
    "Session",
    "StartStopAction",
    "VideoFrame",
    "VideoStream",
]
