"""Periodic announce loop with graceful shutdown."""

from __future__ import annotations

import asyncio
import signal
from typing import Any

from rich.console import Console

from ratiospoof.exceptions import TrackerUnreachableError
from ratiospoof.logging_config import get_logger
from ratiospoof.session.session import AnnounceSession
from ratiospoof.session.types import DisplayProtocol
from ratiospoof.utils.tasks import BackgroundTaskGroup

MIN_ANNOUNCE_WAIT = 1.0


class SessionRunner:
    """Runs an announce session until interrupted.

    Sends the ``started`` announce, then one announce per tracker interval
    from a timer task. SIGINT or SIGTERM (or :meth:`request_stop`) wakes
    the timer out of its wait, lets an announce in flight finish and then
    sends the final ``stopped`` announce. Tracker retries of that in-flight
    announce are cancelled so the exit cannot hang on an unreachable tracker.
    """

    def __init__(
        self,
        session: AnnounceSession,
        display: DisplayProtocol | None = None,
        *,
        console: Console | None = None,
        install_signal_handlers: bool = True,
    ) -> None:
        """Initialize the runner.

        Args:
            session: Announce session to drive
            display: Optional live status display
            console: Console for the exit messages
            install_signal_handlers: Stop on SIGINT and SIGTERM

        """
        self.session = session
        self.display = display
        self.console = console or Console()
        self.install_signal_handlers = install_signal_handlers

        self._stop_event = asyncio.Event()
        self._tasks = BackgroundTaskGroup()
        self._installed_signals: list[signal.Signals] = []
        self._previous_handlers: dict[signal.Signals, Any] = {}
        self.logger = get_logger(__name__)

    @property
    def stop_requested(self) -> bool:
        """Whether a stop was requested."""
        return self._stop_event.is_set()

    def request_stop(self) -> None:
        """Ask the runner to shut down; safe to call more than once."""
        self._stop_event.set()

    async def run(self) -> None:
        """Run the session until a stop is requested.

        Raises:
            TrackerUnreachableError: If an announce could not be delivered

        """
        self._install_handlers()
        try:
            await self.session.initialize_and_fire_first()
            if self.display is not None:
                self.display.start()

            timer = self._tasks.create(self._timer_loop(), name="announce-timer")
            stopper = asyncio.ensure_future(self._stop_event.wait())
            try:
                await asyncio.wait(
                    {timer, stopper}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                stopper.cancel()

            if timer.done() and not self.stop_requested and timer.exception():
                await self._stop_display()
                raise timer.exception()  # type: ignore[misc]

            self.console.print("Gracefully exiting...")
            self.session.cancel_retries()
            await self._finish_timer(timer)
            await self._stop_display()
            await self.session.shutdown()
            self.console.print("Gracefully exited successfully.")
        finally:
            await self._tasks.cancel_and_wait()
            self._remove_handlers()

    async def _timer_loop(self) -> None:
        while not self._stop_event.is_set():
            delay = max(float(self.session.announce_interval), MIN_ANNOUNCE_WAIT)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
            if self._stop_event.is_set():
                return
            await self.session.advance_and_fire_next()

    async def _finish_timer(self, timer: asyncio.Task[None]) -> None:
        """Let an announce in flight complete before the final one is sent."""
        try:
            await timer
        except TrackerUnreachableError as e:
            self.logger.info(
                "Announce #%d abandoned on shutdown: %s",
                self.session.announce_count,
                e.message,
            )

    async def _stop_display(self) -> None:
        if self.display is None:
            return
        try:
            await self.display.stop()
        except Exception as e:
            self.logger.debug("Error stopping display: %s", e)

    def _on_signal(self, signum: int) -> None:
        self.logger.info("Received signal %d, stopping", signum)
        self.request_stop()

    def _install_handlers(self) -> None:
        if not self.install_signal_handlers:
            return
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._on_signal, int(sig))
                self._installed_signals.append(sig)
            except (NotImplementedError, RuntimeError):
                # No loop signal support (Windows): fall back to signal.signal
                self._previous_handlers[sig] = signal.signal(
                    sig,
                    lambda signum, _frame: loop.call_soon_threadsafe(
                        self._on_signal, signum
                    ),
                )

    def _remove_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in self._installed_signals:
            loop.remove_signal_handler(sig)
        self._installed_signals.clear()
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()
