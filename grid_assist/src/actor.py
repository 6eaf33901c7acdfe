"""
Single-consumer actor that serializes all controller work.

Feed events and keepalive ticks are both queued here and processed strictly
in arrival order by one task, so a tick can never interleave with a sample
handler and no lock around the controller is needed. Each item is handled
to completion: the controller decides, the emitted command (if any) goes to
the sink, and the telemetry snapshot is rewritten.

A failing handler is logged and skipped; it never stops the actor.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-012)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from grid_assist.src.bridge import CommandSink
    from grid_assist.src.controller import GridAssistController
    from grid_assist.src.events import Event
    from grid_assist.src.models import ActuatorCommand
    from grid_assist.src.startup import InitialState
    from grid_assist.src.telemetry import TelemetryWriter

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class ControllerActor:
    """Owns the controller and the queue that feeds it.

    Args:
        controller: The aggregate holding all control state.
        sink: Destination for actuator commands.
        telemetry: Snapshot writer, or None to skip telemetry.
        clock: Returns the current aware datetime (injectable for tests).
    """

    def __init__(
        self,
        *,
        controller: GridAssistController,
        sink: CommandSink,
        telemetry: TelemetryWriter | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.controller = controller
        self.sink = sink
        self.telemetry = telemetry
        self.clock = clock
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self.processed: int = 0

    def submit(self, event: Event) -> None:
        """Queue an event for processing; never blocks."""
        self._queue.put_nowait(event)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def prime(self, initial: InitialState) -> None:
        """Prime the controller before the loop starts and emit its first write."""
        now = self.clock()
        try:
            command = self.controller.prime(initial, now)
            self._emit(command)
        except Exception:
            logger.error("Startup priming error", exc_info=True)
        self._write_telemetry(now)

    def process(self, event: Event) -> None:
        """Handle one event to completion. Exceptions are logged, not raised."""
        now = self.clock()
        try:
            command = self.controller.handle(event, now)
            self._emit(command)
        except Exception:
            logger.error("Handler error for event kind=%s", event.kind, exc_info=True)
        self.processed += 1
        self._write_telemetry(now)

    async def run(self, shutdown_event: asyncio.Event, *, idle_timeout_s: float = 0.5) -> None:
        """Drain the queue until *shutdown_event* is set.

        Events still queued at shutdown are dropped; the controller has no
        state that must survive the process.
        """
        logger.info("Controller actor started")
        while not shutdown_event.is_set():
            with contextlib.suppress(TimeoutError):
                event = await asyncio.wait_for(self._queue.get(), timeout=idle_timeout_s)
                self.process(event)
        logger.info("Controller actor stopped (dropped %d queued events)", self.pending)

    async def drain(self, shutdown_event: asyncio.Event, *, poll_s: float = 0.05) -> None:
        """Wait until every queued event has been taken, or shutdown."""
        while self.pending and not shutdown_event.is_set():
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(shutdown_event.wait(), timeout=poll_s)

    def _emit(self, command: ActuatorCommand | None) -> None:
        if command is None:
            return
        logger.debug(
            "Write setpoint=%sW mode=%s keepalive=%s",
            command.setpoint_w,
            command.mode.value,
            command.keepalive,
        )
        self.sink.send(command)

    def _write_telemetry(self, now: datetime) -> None:
        if self.telemetry is None:
            return
        try:
            self.telemetry.write(self.controller.snapshot(now))
        except Exception:
            logger.warning("Failed to write telemetry file", exc_info=True)
