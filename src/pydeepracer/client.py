"""High-level async client for a DeepRacer car."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

import aiohttp

from pydeepracer._api import battery as _battery_api
from pydeepracer._api import drive as _drive_api
from pydeepracer._api.login import authenticate
from pydeepracer._transport import DeviceTransport, create_http_session
from pydeepracer.config import DeepRacerConfig
from pydeepracer.drive import DriveController
from pydeepracer.exceptions import (
    DeepRacerError,
    DeepRacerNotAuthenticatedError,
    DeepRacerSessionExpiredError,
)
from pydeepracer.models.battery import BatteryState
from pydeepracer.models.drive import DriveSessionState, StartStopAction
from pydeepracer.models.video import VideoFrame
from pydeepracer.session import Session
from pydeepracer.video import VideoStream

_logger = logging.getLogger(__name__)


class DeepRacerClient:
    """Async client for one DeepRacer car.

    Usage::

        async with DeepRacerClient(config) as client:
            await client.connect()
            client.start_battery_polling()
            client.start_video(show_frame)
            client.update_throttle(0.4)

    The client owns exactly one :class:`Session` at a time.  All state it
    exposes is mutated from the event loop the client runs on, so the
    drive loop, battery poller and video reader never race each other.
    """

    def __init__(
        self,
        config: DeepRacerConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        on_frame: Callable[[VideoFrame], None] | None = None,
        on_error: Callable[[DeepRacerError], None] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: DeviceTransport | None = None
        self._session: Session | None = None
        self._battery = BatteryState.unknown()
        self._last_error: str | None = None
        self._logging_in = False
        self._on_frame = on_frame
        self._on_error = on_error
        self._battery_task: asyncio.Task[None] | None = None
        self._video_task: asyncio.Task[None] | None = None
        self._controller = DriveController(
            self,
            tick_interval=config.tick_interval,
            settle_delay=config.settle_delay,
            on_error=self._report_error,
        )

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> DeepRacerClient:
        if self._http_session is None:
            self._http_session = create_http_session()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.disconnect()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def authenticated(self) -> bool:
        return self._session is not None and self._session.authenticated

    @property
    def is_logging_in(self) -> bool:
        return self._logging_in

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def battery(self) -> BatteryState:
        return self._battery

    @property
    def controller(self) -> DriveController:
        return self._controller

    @property
    def is_driving(self) -> bool:
        return self._controller.is_driving

    @property
    def drive_state(self) -> DriveSessionState:
        return self._controller.state

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def connect(self, host: str | None = None, password: str | None = None) -> Session:
        """Log in to a car, replacing any previous session.

        *host* and *password* default to the configured values.  Failures
        are recorded in :attr:`last_error` and re-raised; nothing is
        retried.
        """
        http = self._require_http()
        await self.disconnect()

        session = Session(
            host=host or self._config.host,
            password=password if password is not None else self._config.password,
            scheme=self._config.scheme,
        )
        transport = DeviceTransport(
            session.base_url,
            http,
            verify_ssl=self._config.verify_ssl,
            request_timeout=self._config.request_timeout,
            stream_read_timeout=self._config.stream_read_timeout,
        )
        transport.clear_cookies()
        self._session = session
        self._transport = transport
        self._last_error = None

        self._logging_in = True
        try:
            await authenticate(transport, session)
        except DeepRacerError as exc:
            self._report_error(exc)
            raise
        finally:
            self._logging_in = False
        return session

    async def disconnect(self) -> None:
        """Stop every background task and forget the session.

        The car is disarmed first if it was driving.
        """
        await self.stop_video()
        await self.stop_battery_polling()
        await self._controller.close()
        if self._session is not None:
            self._session.reset()
        if self._transport is not None:
            self._transport.clear_cookies()
        self._session = None
        self._transport = None
        self._battery = BatteryState.unknown()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_http(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            raise DeepRacerError("Client not initialized. Use 'async with DeepRacerClient(...) as client:'")
        return self._http_session

    def _require_session(self) -> tuple[Session, DeviceTransport]:
        if self._session is None or self._transport is None:
            raise DeepRacerNotAuthenticatedError("Not connected; call connect() first")
        return self._session, self._transport

    def _report_error(self, exc: DeepRacerError) -> None:
        self._last_error = str(exc)
        if self._on_error is None:
            return
        try:
            self._on_error(exc)
        except Exception:
            _logger.debug("on_error callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Device calls
    # ------------------------------------------------------------------

    async def set_manual_mode(self) -> None:
        session, transport = self._require_session()
        await _drive_api.set_manual_mode(session, transport, timeout=self._config.request_timeout)

    async def start_drive(self) -> None:
        session, transport = self._require_session()
        await _drive_api.start_stop(
            session,
            transport,
            StartStopAction.START,
            timeout=self._config.request_timeout,
        )

    async def stop_drive(self) -> None:
        session, transport = self._require_session()
        await _drive_api.start_stop(
            session,
            transport,
            StartStopAction.STOP,
            timeout=self._config.request_timeout,
        )

    async def drive(self, angle: float, throttle: float) -> None:
        session, transport = self._require_session()
        await _drive_api.manual_drive(
            session,
            transport,
            angle,
            throttle,
            max_speed=self._config.max_speed,
            timeout=self._config.drive_timeout,
        )

    async def fetch_battery(self) -> BatteryState:
        """Refresh and return the battery state.

        Skipped while not authenticated.  An expired session is recorded
        (``authenticated`` turns false, :attr:`last_error` is set) and
        leaves the level unknown; call :meth:`connect` again to recover.
        """
        if not self.authenticated:
            return self._battery
        session, transport = self._require_session()
        try:
            reading = await _battery_api.fetch_battery_level(
                session,
                transport,
                timeout=self._config.request_timeout,
            )
        except DeepRacerSessionExpiredError as exc:
            self._battery = BatteryState.unknown()
            self._report_error(exc)
            return self._battery

        if reading.success:
            self._battery = BatteryState(level=reading.battery_level)
        else:
            _logger.debug("Battery endpoint reported success=false")
            self._battery = BatteryState.unknown()
        return self._battery

    # ------------------------------------------------------------------
    # Drive inputs
    # ------------------------------------------------------------------

    def update_steering(self, angle: float) -> None:
        self._controller.update_steering(angle)

    def update_throttle(self, throttle: float) -> None:
        self._controller.update_throttle(throttle)

    # ------------------------------------------------------------------
    # Battery polling
    # ------------------------------------------------------------------

    def start_battery_polling(self, interval: float | None = None) -> None:
        """Poll the battery in the background while the session is valid."""
        if self._battery_task is not None and not self._battery_task.done():
            return
        period = interval if interval is not None else self._config.battery_poll_interval
        self._battery_task = asyncio.create_task(
            self._battery_poll_loop(period),
            name="deepracer-battery-poll",
        )

    async def stop_battery_polling(self) -> None:
        task = self._battery_task
        self._battery_task = None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _battery_poll_loop(self, interval: float) -> None:
        while True:
            if self.authenticated:
                try:
                    await self.fetch_battery()
                except DeepRacerError as exc:
                    _logger.debug("Battery poll failed: %s", exc)
                    self._report_error(exc)
            await asyncio.sleep(interval)

    # ------------------------------------------------------------------
    # Video
    # ------------------------------------------------------------------

    async def stream_frames(self) -> AsyncIterator[VideoFrame]:
        """Yield decoded camera frames of the connected car."""
        session, transport = self._require_session()
        if not session.authenticated:
            raise DeepRacerNotAuthenticatedError("Session is not authenticated; call connect() first")
        stream = VideoStream(
            session,
            transport,
            width=self._config.stream_width,
            height=self._config.stream_height,
            max_buffer_size=self._config.stream_buffer_limit,
        )
        async for frame in stream.frames():
            yield frame

    def start_video(self, on_frame: Callable[[VideoFrame], None] | None = None) -> None:
        """Read the camera stream in the background, calling *on_frame* per frame."""
        callback = on_frame or self._on_frame
        if callback is None:
            raise ValueError("No frame callback given (pass on_frame here or to the client)")
        if self._video_task is not None and not self._video_task.done():
            return
        self._video_task = asyncio.create_task(self._video_loop(callback), name="deepracer-video")

    async def stop_video(self) -> None:
        task = self._video_task
        self._video_task = None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _video_loop(self, on_frame: Callable[[VideoFrame], None]) -> None:
        try:
            async for frame in self.stream_frames():
                try:
                    on_frame(frame)
                except Exception:
                    _logger.debug("on_frame callback failed", exc_info=True)
        except DeepRacerError as exc:
            _logger.warning("Video stream stopped: %s", exc)
            self._report_error(exc)
