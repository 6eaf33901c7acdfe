"""
Line-oriented bridge between adapters and the controller.

The daemon does not speak any device or broker protocol itself. Adapters
(meter readers, battery integrations) write one JSON object per line to the
daemon's stdin and read actuator commands, one JSON object per line, from
its stdout:

    in:  {"kind": "grid_power", "value": "231,5", "ts": "2026-10-18T07:00:01Z"}
    out: {"setpoint_w": 212, "mode": "CONTROL", "ts": "...", "keepalive": false}

Malformed lines are logged and dropped; they never reach the actor.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-013)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, TextIO

from grid_assist.src.errors import EventRejectedError
from grid_assist.src.events import parse_event

if TYPE_CHECKING:
    from grid_assist.src.events import Event
    from grid_assist.src.models import ActuatorCommand

logger = logging.getLogger(__name__)

MAX_LINE_PREVIEW = 120
"""Characters of a rejected line echoed into the log."""


class CommandSink(Protocol):
    """Anything that accepts actuator commands, fire-and-forget."""

    def send(self, command: ActuatorCommand) -> None: ...


class StreamCommandSink:
    """Writes each command as one JSON line to a text stream.

    Args:
        stream: Destination stream, typically ``sys.stdout``.
    """

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream

    def send(self, command: ActuatorCommand) -> None:
        self.stream.write(command.model_dump_json() + "\n")
        self.stream.flush()


def decode_line(line: bytes | str) -> Event | None:
    """Decode one feed line into an event.

    Returns None for blank lines and for lines that are not valid JSON or
    do not describe a known event; the reason is logged at WARNING.
    """
    text = line.decode("utf-8", errors="replace") if isinstance(line, bytes) else line
    text = text.strip()
    if not text:
        return None
    try:
        payload = json.loads(text)
    except (ValueError, RecursionError):
        # RecursionError: nesting deeper than the JSON decoder can follow
        logger.warning("Feed line is not JSON, dropped: %s", text[:MAX_LINE_PREVIEW])
        return None
    try:
        return parse_event(payload)
    except EventRejectedError as exc:
        logger.warning("%s (kind=%s)", exc.message, exc.kind)
        return None


async def read_feed(
    reader: asyncio.StreamReader,
    submit: Callable[[Event], None],
    shutdown_event: asyncio.Event,
    *,
    idle_timeout_s: float = 0.5,
) -> int:
    """Read feed lines and submit decoded events until EOF or shutdown.

    Args:
        reader: Source of newline-delimited JSON.
        submit: Called with each accepted event (usually ``actor.submit``).
        shutdown_event: Stops reading when set.
        idle_timeout_s: How often to re-check *shutdown_event* while idle.

    Returns:
        Number of events accepted.
    """
    accepted = 0
    logger.info("Feed reader started")
    while not shutdown_event.is_set():
        try:
            line = await asyncio.wait_for(reader.readline(), timeout=idle_timeout_s)
        except TimeoutError:
            continue
        except ValueError:
            # readline() raises ValueError when a line exceeds the stream limit
            logger.warning("Feed line too long, dropped")
            continue
        if not line:
            logger.warning("Feed closed (EOF)")
            break
        event = decode_line(line)
        if event is not None:
            submit(event)
            accepted += 1
    logger.info("Feed reader stopped (accepted %d events)", accepted)
    return accepted
