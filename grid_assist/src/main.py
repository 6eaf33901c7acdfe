"""
Grid-assist daemon main loop.

Runs three concurrent asyncio loops around a single controller actor:
1. **Feed loop**: reads newline-delimited JSON events from stdin, validates
   them and submits accepted events to the actor queue.
2. **Tick loop**: submits a KeepaliveTick to the same queue every
   keepalive_tick_s, so keepalive resends are serialized with samples.
3. **Actor loop**: processes queued items one at a time, writes actuator
   commands to stdout and refreshes the telemetry file.

Graceful shutdown on SIGTERM/SIGINT (or when the feed reaches EOF) sets a
shared asyncio.Event; all loops finish their current iteration and exit.
Nothing needs flushing: the controller keeps no state across restarts.

Structured JSON logging goes to stderr so stdout carries only commands.

CHANGELOG:
- 2026-10-18: Prime controller from INITIAL_STATE_PATH at startup (STORY-011)
- 2026-10-18: Initial creation (STORY-014)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from grid_assist.src.bridge import read_feed
from grid_assist.src.errors import ConfigError
from grid_assist.src.events import KeepaliveTick
from grid_assist.src.startup import InitialState, load_initial_state

if TYPE_CHECKING:
    from grid_assist.src.actor import ControllerActor

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging() -> None:
    """Configure structured JSON logging for the daemon.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.INFO)


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: object) -> None:
    """Log the control tunables at startup.

    Args:
        settings: An AssistSettings instance (or any object with the same attrs).
    """
    logger.info(
        "Grid-assist daemon starting with config: "
        "target_import_w=%s, setpoint_range=[%s, %s], "
        "filter_alpha=%s, filter_zero_band_w=%s, "
        "deadband_w=%s, ki_per_s=%s, max_step_w=%s, "
        "write_every_s=%s, min_send_step_w=%s, "
        "keepalive_s=%s, keepalive_tick_s=%s, soc_on_margin_pct=%s, "
        "telemetry_path=%s, initial_state_path=%s",
        settings.target_import_w,  # type: ignore[attr-defined]
        settings.setpoint_min_w,  # type: ignore[attr-defined]
        settings.setpoint_max_w,  # type: ignore[attr-defined]
        settings.filter_alpha,  # type: ignore[attr-defined]
        settings.filter_zero_band_w,  # type: ignore[attr-defined]
        settings.deadband_w,  # type: ignore[attr-defined]
        settings.ki_per_s,  # type: ignore[attr-defined]
        settings.max_step_w,  # type: ignore[attr-defined]
        settings.write_every_s,  # type: ignore[attr-defined]
        settings.min_send_step_w,  # type: ignore[attr-defined]
        settings.keepalive_s,  # type: ignore[attr-defined]
        settings.keepalive_tick_s,  # type: ignore[attr-defined]
        settings.soc_on_margin_pct,  # type: ignore[attr-defined]
        settings.telemetry_path,  # type: ignore[attr-defined]
        settings.initial_state_path or "<none>",  # type: ignore[attr-defined]
    )


def resolve_initial_state(path: str) -> InitialState:
    """Load the priming file, falling back to defaults when unusable."""
    if not path:
        return InitialState()
    try:
        return load_initial_state(path)
    except ConfigError as exc:
        logger.warning("%s; starting from defaults", exc.message)
        return InitialState()


# ---------------------------------------------------------------------------
# Loop runners
# ---------------------------------------------------------------------------


async def _tick_loop(
    *,
    actor: ControllerActor,
    tick_interval_s: float,
    shutdown_event: asyncio.Event,
) -> None:
    """Submit a keepalive tick every tick_interval_s until shutdown.

    Args:
        actor: The actor whose queue receives the ticks.
        tick_interval_s: Seconds between ticks.
        shutdown_event: Event to signal graceful shutdown.
    """
    logger.info("Tick loop started (interval=%ss)", tick_interval_s)
    while not shutdown_event.is_set():
        # Use wait with timeout so we can check shutdown between sleeps
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(shutdown_event.wait(), timeout=tick_interval_s)
        if not shutdown_event.is_set():
            actor.submit(KeepaliveTick())
    logger.info("Tick loop stopped")


async def _feed_loop(
    *,
    actor: ControllerActor,
    reader: asyncio.StreamReader,
    shutdown_event: asyncio.Event,
) -> None:
    """Read the event feed; a closed feed shuts the daemon down.

    Events already queued when the feed closes are still processed.
    """
    await read_feed(reader, actor.submit, shutdown_event)
    if not shutdown_event.is_set():
        await actor.drain(shutdown_event)
        logger.info("Feed ended, initiating shutdown")
        shutdown_event.set()


async def run_loops(
    *,
    actor: ControllerActor,
    reader: asyncio.StreamReader,
    tick_interval_s: float,
    shutdown_event: asyncio.Event,
) -> None:
    """Run feed, tick and actor loops concurrently until shutdown.

    Args:
        actor: The controller actor.
        reader: Source of newline-delimited JSON events.
        tick_interval_s: Seconds between keepalive ticks.
        shutdown_event: Event to signal graceful shutdown.
    """
    logger.info("Starting feed, tick and actor loops")

    await asyncio.gather(
        _feed_loop(actor=actor, reader=reader, shutdown_event=shutdown_event),
        _tick_loop(
            actor=actor,
            tick_interval_s=tick_interval_s,
            shutdown_event=shutdown_event,
        ),
        actor.run(shutdown_event),
    )

    logger.info("Shutdown complete")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def _stdin_reader() -> asyncio.StreamReader:
    """Wrap the process stdin in an asyncio StreamReader."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    return reader


async def async_main() -> None:
    """Async entrypoint: load config, build components, run loops.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    configure_logging()

    from grid_assist.src.actor import ControllerActor
    from grid_assist.src.bridge import StreamCommandSink
    from grid_assist.src.config import AssistSettings
    from grid_assist.src.controller import GridAssistController
    from grid_assist.src.telemetry import TelemetryWriter

    settings = AssistSettings()
    log_config_summary(settings)

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    actor = ControllerActor(
        controller=GridAssistController(settings),
        sink=StreamCommandSink(sys.stdout),
        telemetry=TelemetryWriter(settings.telemetry_path),
    )
    actor.prime(resolve_initial_state(settings.initial_state_path))

    reader = await _stdin_reader()
    await run_loops(
        actor=actor,
        reader=reader,
        tick_interval_s=settings.keepalive_tick_s,
        shutdown_event=shutdown_event,
    )


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the grid-assist daemon."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
