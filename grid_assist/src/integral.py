"""
Incremental (integral-only) setpoint controller.

The actuator regulates its own output internally, so the loop only has to
nudge the setpoint slowly toward the value that leaves a small target
import at the meter. Each cycle:

1. error = filtered_import - target; errors inside the deadband count as 0.
2. delta = ki * elapsed * error, limited to +/- max_step.
3. A positive delta is dropped unless the actuator has authority or a
   start kick is allowed (HOLD_NO_AUTHORITY).
4. Anti-windup: no further push against a bound the setpoint already sits on.
5. setpoint = clamp(setpoint + delta, min, max).

There is no proportional or derivative term.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from grid_assist.src.authority import AuthorityThresholds
from grid_assist.src.models import Mode

logger = logging.getLogger(__name__)


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp *value* into [lo, hi]."""
    return min(max(value, lo), hi)


@dataclass(slots=True)
class ControllerState:
    """Carried-forward control memory and its tuning.

    Attributes:
        setpoint: Current setpoint u in watts, always within [setpoint_min,
            setpoint_max]. Fractional; rounding happens at write time.
        integral_gain: Ki in W per (W * s).
        max_step: Largest |delta| per cycle in watts.
        deadband: Error magnitude treated as zero.
        setpoint_min: Lower actuation bound.
        setpoint_max: Upper actuation bound.
    """

    integral_gain: float
    max_step: float
    deadband: float
    setpoint_min: float = 0.0
    setpoint_max: float = 800.0
    setpoint: float = 0.0


@dataclass(frozen=True, slots=True)
class ControlStep:
    """Outcome of one controller cycle."""

    error: float
    delta: float
    setpoint: float
    mode: Mode
    has_authority: bool
    start_kick: bool


def control_step(
    state: ControllerState,
    *,
    filtered_import_w: float,
    target_import_w: float,
    elapsed_s: float,
    actuator_output_w: float,
    thresholds: AuthorityThresholds,
) -> ControlStep:
    """Advance the setpoint by one cycle and classify the resulting mode.

    Mutates ``state.setpoint`` in place and returns the step details.
    """
    error = filtered_import_w - target_import_w
    if abs(error) <= state.deadband:
        error = 0.0

    delta = clamp(state.integral_gain * elapsed_s * error, -state.max_step, state.max_step)

    authority = thresholds.has_authority(actuator_output_w)
    kick = thresholds.start_kick_allowed(state.setpoint, error)

    if delta > 0 and not (authority or kick):
        mode = Mode.HOLD_NO_AUTHORITY
        delta = 0.0
    elif authority or not kick:
        mode = Mode.CONTROL
    else:
        mode = Mode.CONTROL_START_KICK

    # anti-windup
    if state.setpoint <= state.setpoint_min and delta < 0:
        delta = 0.0
    if state.setpoint >= state.setpoint_max and delta > 0:
        delta = 0.0

    state.setpoint = clamp(state.setpoint + delta, state.setpoint_min, state.setpoint_max)

    logger.debug(
        "Control step: err=%.1fW delta=%.2fW u=%.1fW authority=%s kick=%s mode=%s",
        error,
        delta,
        state.setpoint,
        authority,
        kick,
        mode.value,
    )

    return ControlStep(
        error=error,
        delta=delta,
        setpoint=state.setpoint,
        mode=mode,
        has_authority=authority,
        start_kick=kick,
    )
