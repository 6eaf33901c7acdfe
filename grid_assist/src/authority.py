"""
Actuator authority detection.

The controller may only ask for more power when the actuator has shown it
can deliver: either it is already supplying the house, or the loop is still
near zero while import is clearly too high (the start kick that unsticks a
battery that has not begun discharging yet).

CHANGELOG:
- 2026-10-18: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass


def has_authority(reported_output_w: float, *, output_on_w: float) -> bool:
    """True when the actuator reports it is currently supplying power."""
    return reported_output_w > output_on_w


def start_kick_allowed(
    setpoint_w: float,
    error_w: float,
    *,
    setpoint_threshold_w: float,
    error_threshold_w: float,
) -> bool:
    """True when a small setpoint meets a clearly large import error."""
    return setpoint_w < setpoint_threshold_w and error_w > error_threshold_w


@dataclass(frozen=True, slots=True)
class AuthorityThresholds:
    """Thresholds for :func:`has_authority` and :func:`start_kick_allowed`.

    Attributes:
        output_on_w: Reported output above which the actuator is supplying.
        start_kick_setpoint_w: Setpoint below which a kick may be granted.
        start_kick_error_w: Error above which a kick may be granted.
    """

    output_on_w: float = 10.0
    start_kick_setpoint_w: float = 80.0
    start_kick_error_w: float = 60.0

    def has_authority(self, reported_output_w: float) -> bool:
        return has_authority(reported_output_w, output_on_w=self.output_on_w)

    def start_kick_allowed(self, setpoint_w: float, error_w: float) -> bool:
        return start_kick_allowed(
            setpoint_w,
            error_w,
            setpoint_threshold_w=self.start_kick_setpoint_w,
            error_threshold_w=self.start_kick_error_w,
        )
