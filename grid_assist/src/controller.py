"""
Grid-assist controller aggregate.

Owns every piece of mutable control state (filter, reserve gate, integral
controller, output writer, strategy monitor, latest telemetry) and exposes
one entry point per event variant plus the keepalive tick. It performs no
I/O: callers pass in the current time and receive the actuator command to
emit, if any.

Mode state machine, evaluated on every accepted grid sample:

- gate closed -> FALLBACK_RESERVE: setpoint dropped to its minimum, the actuator is fed
  max(0, raw import) so its display keeps showing the real meter value.
- gate open -> CONTROL / CONTROL_START_KICK / HOLD_NO_AUTHORITY from the
  integral controller, which feeds the setpoint.
- INIT until the first sample is accepted.

CHANGELOG:
- 2026-10-18: Add startup priming from last known values (STORY-011)
- 2026-10-18: Initial creation (STORY-008)

TODO:
- None
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from grid_assist.src.authority import AuthorityThresholds
from grid_assist.src.events import (
    SELF_POWERED_KEY,
    ActuatorOutputEvent,
    BmsStateEvent,
    Event,
    GridPowerEvent,
    KeepaliveTick,
    SocEvent,
    SocReserveEvent,
    StrategyEvent,
)
from grid_assist.src.integral import ControllerState, clamp, control_step
from grid_assist.src.models import ActuatorCommand, Mode, TelemetrySnapshot
from grid_assist.src.output_writer import OutputWriter, WriteDecision, round_watts
from grid_assist.src.reserve_gate import GateState
from grid_assist.src.signal_filter import SignalFilter
from grid_assist.src.strategy import StrategyMonitor

if TYPE_CHECKING:
    from grid_assist.src.config import AssistSettings
    from grid_assist.src.startup import InitialState

logger = logging.getLogger(__name__)

_ACTIVE_WITH_MISMATCH = "controller active while strategy != self-powered"
_STARTUP_MISMATCH = f"startup: {SELF_POWERED_KEY} != 1"


class GridAssistController:
    """Single owner of all control state.

    Args:
        settings: Tunables for every component.
    """

    def __init__(self, settings: AssistSettings) -> None:
        self.settings = settings
        self.filter = SignalFilter(
            alpha=settings.filter_alpha,
            zero_band=settings.filter_zero_band_w,
        )
        self.gate = GateState(
            soc=0.0,
            soc_reserve=settings.default_soc_reserve_pct,
            hysteresis_margin=settings.soc_on_margin_pct,
        )
        self.control = ControllerState(
            integral_gain=settings.ki_per_s,
            max_step=settings.max_step_w,
            deadband=settings.deadband_w,
            setpoint_min=settings.setpoint_min_w,
            setpoint_max=settings.setpoint_max_w,
            setpoint=settings.setpoint_min_w,
        )
        self.thresholds = AuthorityThresholds(
            output_on_w=settings.output_on_w,
            start_kick_setpoint_w=settings.start_kick_setpoint_w,
            start_kick_error_w=settings.start_kick_error_w,
        )
        self.writer = OutputWriter(
            setpoint_min=settings.setpoint_min_w,
            setpoint_max=settings.setpoint_max_w,
            write_every_s=settings.write_every_s,
            min_send_step_w=settings.min_send_step_w,
            keepalive_s=settings.keepalive_s,
        )
        self.strategy = StrategyMonitor(cooldown_s=settings.strategy_log_interval_s)

        self.grid_raw_w: float = 0.0
        self.actuator_out_w: float = 0.0
        self.bms_state: str = ""
        self.mode: Mode = Mode.INIT
        self._last_sample_ts: datetime | None = None
        self._last_update: datetime | None = None

        self._handlers = {
            "grid_power": self.on_grid_power,
            "soc": self.on_soc,
            "soc_reserve": self.on_soc_reserve,
            "actuator_output": self.on_actuator_output,
            "bms_state": self.on_bms_state,
            "strategy": self.on_strategy,
            "keepalive_tick": self.on_tick,
        }

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, event: Event, now: datetime) -> ActuatorCommand | None:
        """Process one event to completion; return the command to emit."""
        return self._handlers[event.kind](event, now)

    # ------------------------------------------------------------------
    # Grid samples: the control cycle
    # ------------------------------------------------------------------

    def on_grid_power(self, event: GridPowerEvent, now: datetime) -> ActuatorCommand | None:
        s = self.settings
        sample_ts = event.ts or now
        if self._last_sample_ts is None:
            elapsed_s = s.first_elapsed_s
        else:
            elapsed_s = max(s.min_elapsed_s, (sample_ts - self._last_sample_ts).total_seconds())
        self._last_sample_ts = sample_ts

        self.grid_raw_w = event.value
        filtered = self.filter.update(event.value)

        if not self.gate.evaluate():
            self.mode = Mode.FALLBACK_RESERVE
            self.control.setpoint = s.setpoint_min_w
            candidate = self._fallback_feed()
        else:
            step = control_step(
                self.control,
                filtered_import_w=filtered,
                target_import_w=s.target_import_w,
                elapsed_s=elapsed_s,
                actuator_output_w=self.actuator_out_w,
                thresholds=self.thresholds,
            )
            self.mode = step.mode
            candidate = step.setpoint

        decision = self.writer.offer(candidate, now)
        self._last_update = now

        if self.gate.is_open:
            self.strategy.report(now, _ACTIVE_WITH_MISMATCH)

        return self._command(decision, now)

    def _fallback_feed(self) -> float:
        s = self.settings
        return clamp(max(0.0, self.grid_raw_w), s.setpoint_min_w, s.setpoint_max_w)

    # ------------------------------------------------------------------
    # Battery and actuator telemetry
    # ------------------------------------------------------------------

    def on_soc(self, event: SocEvent, now: datetime) -> None:
        self.gate.soc = event.value

    def on_soc_reserve(self, event: SocReserveEvent, now: datetime) -> None:
        self.gate.soc_reserve = event.value

    def on_actuator_output(self, event: ActuatorOutputEvent, now: datetime) -> None:
        self.actuator_out_w = event.value

    def on_bms_state(self, event: BmsStateEvent, now: datetime) -> None:
        self.bms_state = event.value

    def on_strategy(self, event: StrategyEvent, now: datetime) -> None:
        self.strategy.observe(event.value, now)

    # ------------------------------------------------------------------
    # Keepalive
    # ------------------------------------------------------------------

    def on_tick(self, event: KeepaliveTick, now: datetime) -> ActuatorCommand | None:
        return self.tick(now)

    def tick(self, now: datetime) -> ActuatorCommand | None:
        """Re-send the last written value once the keepalive interval is up."""
        if not self.writer.keepalive_due(now):
            return None
        last = self.writer.last_written
        resend = last if last is not None else self.control.setpoint
        decision = self.writer.offer(resend, now, force_keepalive=True)
        if decision is not None:
            logger.info("Keepalive: resent value=%sW", decision.value)
        return self._command(decision, now)

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def prime(self, initial: InitialState, now: datetime) -> ActuatorCommand | None:
        """Seed state from last known values and issue a forced first write.

        A primed grid value counts as the first accepted sample, so the
        mode leaves INIT; without one the controller stays in INIT and
        writes the bottom of the setpoint range.
        """
        s = self.settings
        if initial.soc is not None:
            self.gate.soc = initial.soc
        if initial.soc_reserve is not None:
            self.gate.soc_reserve = initial.soc_reserve
        if initial.actuator_output is not None:
            self.actuator_out_w = initial.actuator_output
        if initial.bms_state is not None:
            self.bms_state = initial.bms_state
        if initial.strategy is not None:
            self.strategy.observe(initial.strategy, now, reason=_STARTUP_MISMATCH)

        primed = initial.grid_power is not None
        if primed:
            self.grid_raw_w = initial.grid_power
            self.filter.update(initial.grid_power)
            self._last_sample_ts = initial.grid_ts or now
            self._last_update = now

        gate_open = self.gate.evaluate()
        if gate_open:
            self.control.setpoint = clamp(
                max(0.0, self.filter.value), s.setpoint_min_w, s.setpoint_max_w
            )
            candidate = self.control.setpoint
        else:
            self.control.setpoint = s.setpoint_min_w
            candidate = self._fallback_feed()

        if primed:
            self.mode = Mode.CONTROL if gate_open else Mode.FALLBACK_RESERVE

        logger.info(
            "Controller primed: grid=%s soc=%.1f reserve=%.1f gate_open=%s u=%.0fW mode=%s",
            initial.grid_power,
            self.gate.soc,
            self.gate.soc_reserve,
            gate_open,
            self.control.setpoint,
            self.mode.value,
        )

        decision = self.writer.offer(candidate, now, force_keepalive=True)
        return self._command(decision, now)

    # ------------------------------------------------------------------
    # Output helpers
    # ------------------------------------------------------------------

    def _command(self, decision: WriteDecision | None, now: datetime) -> ActuatorCommand | None:
        if decision is None:
            return None
        return ActuatorCommand(
            setpoint_w=decision.value,
            mode=self.mode,
            ts=now,
            keepalive=decision.keepalive,
        )

    def snapshot(self, now: datetime) -> TelemetrySnapshot:
        """Build the read-only telemetry view of the current state."""
        raw = self.grid_raw_w
        out = self.actuator_out_w
        grid_import = max(0.0, raw)
        discharge = max(0.0, out)
        age = None
        if self._last_update is not None:
            age = round((now - self._last_update).total_seconds())
        return TelemetrySnapshot(
            ts=now,
            grid_raw_w=round_watts(raw),
            grid_filt_w=round_watts(self.filter.value),
            grid_import_w=round_watts(grid_import),
            grid_export_w=round_watts(max(0.0, -raw)),
            actuator_out_w=round_watts(out),
            actuator_discharge_w=round_watts(discharge),
            actuator_charge_w=round_watts(max(0.0, -out)),
            house_load_est_w=round_watts(grid_import + discharge),
            setpoint_w=round_watts(self.control.setpoint),
            target_import_w=self.settings.target_import_w,
            soc=round(self.gate.soc, 2),
            soc_reserve=round(self.gate.soc_reserve, 2),
            gate_open=self.gate.is_open,
            discharging=self.thresholds.has_authority(out),
            bms_state=self.bms_state,
            mode=self.mode,
            last_written_w=self.writer.last_written,
            last_update_age_s=age,
        )
