"""
Pydantic models for the controller's outbound data.

Defines the operating ``Mode`` enum, the ``ActuatorCommand`` written to the
battery actuator, and the ``TelemetrySnapshot`` that exposes the controller's
internals to the outside world (read-only, refreshed every cycle).

CHANGELOG:
- 2026-10-18: Add last_written_w to TelemetrySnapshot (STORY-010)
- 2026-10-18: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class Mode(str, Enum):
    """Controller operating regime, derived on every accepted sample."""

    INIT = "INIT"
    CONTROL = "CONTROL"
    CONTROL_START_KICK = "CONTROL_START_KICK"
    HOLD_NO_AUTHORITY = "HOLD_NO_AUTHORITY"
    FALLBACK_RESERVE = "FALLBACK_RESERVE"


class ActuatorCommand(BaseModel):
    """A single setpoint write to the actuator's control input.

    Attributes:
        setpoint_w: Integer watts, already clamped to the actuator bounds.
        mode: Controller mode at the time of the write.
        ts: Time the write was issued.
        keepalive: True when the write was due to the keepalive interval.
    """

    setpoint_w: int
    mode: Mode
    ts: datetime
    keepalive: bool = False


class TelemetrySnapshot(BaseModel):
    """Read-only view of the controller state.

    Power values are integer watts, SoC values are rounded to two decimals.
    ``last_update_age_s`` is ``None`` until the first grid sample has been
    accepted.
    """

    ts: datetime
    grid_raw_w: int
    grid_filt_w: int
    grid_import_w: int
    grid_export_w: int
    actuator_out_w: int
    actuator_discharge_w: int
    actuator_charge_w: int
    house_load_est_w: int
    setpoint_w: int
    target_import_w: float
    soc: float
    soc_reserve: float
    gate_open: bool
    discharging: bool
    bms_state: str
    mode: Mode
    last_written_w: int | None
    last_update_age_s: int | None
