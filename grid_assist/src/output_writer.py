"""
Rate-limited actuator writer with keepalive.

The actuator's control input also drives its own display, and the path to
it is rate limited. A candidate value is therefore written only when:

- the minimum write interval has elapsed AND the rounded value moved by at
  least the minimum step (or nothing was written yet), or
- the keepalive interval has elapsed (or the caller forces keepalive),
  regardless of how small the change is.

Values are rounded to whole watts and then clamped to the whole-watt range
inside the bounds, at write time, so the controller keeps its fractional
setpoint.

CHANGELOG:
- 2026-10-18: Round before clamping so fractional bounds hold (STORY-015)
- 2026-10-18: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime


def round_watts(value: float) -> int:
    """Round half up to whole watts (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


@dataclass(slots=True)
class OutputState:
    """Emission bookkeeping; owned by :class:`OutputWriter` only."""

    last_written: int | None = None
    last_write_time: datetime | None = None
    last_keepalive_time: datetime | None = None


@dataclass(frozen=True, slots=True)
class WriteDecision:
    """A value the writer decided to emit."""

    value: int
    keepalive: bool


def _elapsed_s(since: datetime | None, now: datetime) -> float:
    if since is None:
        return math.inf
    return (now - since).total_seconds()


class OutputWriter:
    """Decides when a candidate setpoint becomes an actuator write.

    Args:
        setpoint_min: Lower bound applied to every emitted value.
        setpoint_max: Upper bound applied to every emitted value.
        write_every_s: Minimum interval between ordinary writes.
        min_send_step_w: Minimum change for an ordinary write.
        keepalive_s: Interval after which a write is due regardless.
    """

    def __init__(
        self,
        *,
        setpoint_min: float,
        setpoint_max: float,
        write_every_s: float,
        min_send_step_w: float,
        keepalive_s: float,
    ) -> None:
        self.setpoint_min = setpoint_min
        self.setpoint_max = setpoint_max
        # whole watts inside [setpoint_min, setpoint_max]
        self._lowest = math.ceil(setpoint_min)
        self._highest = math.floor(setpoint_max)
        self.write_every_s = write_every_s
        self.min_send_step_w = min_send_step_w
        self.keepalive_s = keepalive_s
        self.state = OutputState()

    @property
    def last_written(self) -> int | None:
        return self.state.last_written

    def keepalive_due(self, now: datetime) -> bool:
        return _elapsed_s(self.state.last_keepalive_time, now) >= self.keepalive_s

    def offer(
        self,
        candidate: float,
        now: datetime,
        *,
        force_keepalive: bool = False,
    ) -> WriteDecision | None:
        """Offer a candidate value; return the write to perform, if any."""
        st = self.state
        value = min(max(round_watts(candidate), self._lowest), self._highest)

        due_by_interval = _elapsed_s(st.last_write_time, now) >= self.write_every_s
        due_by_keepalive = force_keepalive or self.keepalive_due(now)

        if not due_by_interval and not due_by_keepalive:
            return None

        if (
            not due_by_keepalive
            and st.last_written is not None
            and abs(value - st.last_written) < self.min_send_step_w
        ):
            return None

        st.last_written = value
        st.last_write_time = now
        if due_by_keepalive:
            st.last_keepalive_time = now
        return WriteDecision(value=value, keepalive=due_by_keepalive)
