"""Drive loop: turns steering/throttle inputs into a periodic command stream."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from pydeepracer._constants import clamp_unit
from pydeepracer.exceptions import DeepRacerError
from pydeepracer.models.drive import DriveSessionState

_logger = logging.getLogger(__name__)


class DriveApi(Protocol):
    """The device calls the controller needs."""

    async def set_manual_mode(self) -> None:
        ...

    async def start_drive(self) -> None:
        ...

    async def stop_drive(self) -> None:
        ...

    async def drive(self, angle: float, throttle: float) -> None:
        ...


class DriveController:
    """State machine over :class:`DriveSessionState`.

    ``update_steering`` and ``update_throttle`` may be called at any time
    from the event loop (typically on every gesture update).  Moving either
    input away from zero while idle arms the car and starts a tick task that
    sends the latest pair every *tick_interval* seconds.  Releasing both
    inputs cancels the tick task and then disarms the car.

    Transitions never overlap: while the car is starting or stopping, input
    changes only update the values, and the controller re-evaluates them as
    soon as the transition finishes.

    Parameters
    ----------
    api : DriveApi
        Device calls, usually a :class:`pydeepracer.client.DeepRacerClient`.
    tick_interval : float
        Seconds between drive ticks.
    settle_delay : float
        Pause between ``start`` and the first tick.
    on_error : callable, optional
        Called with every error from the startup sequence, a tick or the
        stop request.  Errors are also logged.
    """

    def __init__(
        self,
        api: DriveApi,
        *,
        tick_interval: float = 0.05,
        settle_delay: float = 0.1,
        on_error: Callable[[DeepRacerError], None] | None = None,
    ) -> None:
        self._api = api
        self._tick_interval = tick_interval
        self._settle_delay = settle_delay
        self._on_error = on_error
        self._state = DriveSessionState.IDLE
        self._angle = 0.0
        self._throttle = 0.0
        self._tick_task: asyncio.Task[None] | None = None
        self._transition_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> DriveSessionState:
        return self._state

    @property
    def is_driving(self) -> bool:
        return self._state in (DriveSessionState.STARTING, DriveSessionState.ACTIVE)

    @property
    def angle(self) -> float:
        return self._angle

    @property
    def throttle(self) -> float:
        return self._throttle

    @property
    def has_tick_task(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def update_steering(self, angle: float) -> None:
        self._angle = clamp_unit(angle)
        self._evaluate()

    def update_throttle(self, throttle: float) -> None:
        self._throttle = clamp_unit(throttle)
        self._evaluate()

    def _inputs_released(self) -> bool:
        return self._angle == 0.0 and self._throttle == 0.0

    def _evaluate(self) -> None:
        if self._transition_task is not None and not self._transition_task.done():
            return
        if self._state is DriveSessionState.IDLE and not self._inputs_released():
            self._state = DriveSessionState.STARTING
            self._transition_task = asyncio.create_task(self._startup(), name="deepracer-drive-start")
        elif self._state is DriveSessionState.ACTIVE and self._inputs_released():
            self._state = DriveSessionState.STOPPING
            self._transition_task = asyncio.create_task(self._shutdown(), name="deepracer-drive-stop")

    # ------------------------------------------------------------------
    # Explicit control
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """(Re)run the startup sequence and begin ticking.

        An existing tick task is cancelled, and its cancellation awaited,
        before the device is armed again.  Returns ``True`` once active.
        """
        await self.wait_until_settled()
        self._state = DriveSessionState.STARTING
        task = asyncio.create_task(self._startup(reevaluate=False), name="deepracer-drive-start")
        self._transition_task = task
        if not await self._await_transition(task):
            return False
        return self._state is DriveSessionState.ACTIVE

    async def stop(self) -> None:
        """Stop ticking and disarm the car, whatever the inputs say."""
        await self.wait_until_settled()
        if self._state is DriveSessionState.IDLE and not self.has_tick_task:
            return
        self._state = DriveSessionState.STOPPING
        task = asyncio.create_task(self._shutdown(reevaluate=False), name="deepracer-drive-stop")
        self._transition_task = task
        await self._await_transition(task)

    async def wait_until_settled(self) -> None:
        """Wait until no transition is in flight."""
        while self._transition_task is not None and not self._transition_task.done():
            await self._await_transition(asyncio.shield(self._transition_task))

    @staticmethod
    async def _await_transition(awaitable: Awaitable[None]) -> bool:
        """Await a transition; ``False`` if :meth:`close` cancelled it.

        Cancellation of the awaiting task itself still propagates.
        """
        try:
            await awaitable
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return False
        return True

    async def close(self) -> None:
        """Cancel everything; disarm the car if it was driving."""
        transition = self._transition_task
        self._transition_task = None
        if transition is not None and not transition.done():
            transition.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await transition

        self._angle = 0.0
        self._throttle = 0.0
        was_driving = self._state is not DriveSessionState.IDLE or self.has_tick_task
        await self._cancel_tick_task()
        if was_driving:
            await self._send_stop()
        self._state = DriveSessionState.IDLE

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _startup(self, *, reevaluate: bool = True) -> None:
        await self._cancel_tick_task()
        try:
            await self._api.set_manual_mode()
            await self._api.start_drive()
            await asyncio.sleep(self._settle_delay)
        except DeepRacerError as exc:
            _logger.warning("Drive startup failed: %s", exc)
            self._state = DriveSessionState.IDLE
            self._report(exc)
            return

        self._state = DriveSessionState.ACTIVE
        self._tick_task = asyncio.create_task(self._tick_loop(), name="deepracer-drive-tick")
        _logger.debug("Drive loop active")
        if reevaluate:
            self._transition_task = None
            self._evaluate()

    async def _shutdown(self, *, reevaluate: bool = True) -> None:
        # No tick may be in flight once the stop request departs.
        await self._cancel_tick_task()
        await self._send_stop()
        self._state = DriveSessionState.IDLE
        _logger.debug("Drive loop idle")
        if reevaluate:
            self._transition_task = None
            self._evaluate()

    async def _send_stop(self) -> None:
        try:
            await self._api.stop_drive()
        except DeepRacerError as exc:
            _logger.warning("Stop request failed: %s", exc)
            self._report(exc)

    async def _cancel_tick_task(self) -> None:
        task = self._tick_task
        self._tick_task = None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _tick_loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            try:
                await self._api.drive(self._angle, self._throttle)
            except DeepRacerError as exc:
                _logger.warning("Drive tick failed: %s", exc)
                self._report(exc)
            next_tick += self._tick_interval
            delay = next_tick - loop.time()
            if delay < 0:
                # Fell behind (slow device); restart the cadence from now.
                next_tick = loop.time()
                delay = 0
            await asyncio.sleep(delay)

    def _report(self, exc: DeepRacerError) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(exc)
        except Exception:
            _logger.debug("on_error callback failed", exc_info=True)
