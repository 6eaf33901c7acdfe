"""
Grid-assist daemon configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Every tunable of the control loop lives here; none of them are negotiated
at runtime. All fields have defaults, so an empty environment yields the
stock 800 W actuator profile.

CHANGELOG:
- 2026-10-18: Add initial_state_path for startup priming (STORY-011)
- 2026-10-18: Initial creation (STORY-001)

TODO:
- None
"""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class AssistSettings(BaseSettings):
    """Grid-assist controller configuration.

    Attributes:
        target_import_w: Desired steady-state grid import in watts.
        setpoint_min_w: Lower bound of the actuator setpoint (W).
        setpoint_max_w: Upper bound of the actuator setpoint (W).
        filter_alpha: EMA smoothing factor for grid power, in (0, 1].
        filter_zero_band_w: Filtered values below this magnitude snap to 0.
        deadband_w: Control errors at or below this magnitude are ignored.
        ki_per_s: Integral gain (W of setpoint per W of error per second).
        max_step_w: Maximum setpoint change per control cycle.
        min_elapsed_s: Floor for the elapsed time between two samples.
        first_elapsed_s: Elapsed time assumed for the very first sample.
        write_every_s: Minimum interval between two actuator writes.
        min_send_step_w: Minimum change that justifies a non-keepalive write.
        keepalive_s: Interval after which the last command is re-sent.
        keepalive_tick_s: Period of the keepalive check.
        soc_on_margin_pct: Hysteresis margin above reserve to reopen the gate.
        default_soc_reserve_pct: Reserve assumed until telemetry arrives.
        output_on_w: Reported actuator output above which it has authority.
        start_kick_setpoint_w: Setpoint below which a start kick is allowed.
        start_kick_error_w: Error above which a start kick is allowed.
        strategy_log_interval_s: Cooldown between strategy anomaly logs.
        telemetry_path: JSON file receiving the telemetry snapshot.
        initial_state_path: Optional JSON file of last known values used to
            prime the controller at startup. Empty disables priming.
    """

    target_import_w: float = 20.0
    setpoint_min_w: float = 0.0
    setpoint_max_w: float = 800.0
    filter_alpha: float = 0.25
    filter_zero_band_w: float = 10.0
    deadband_w: float = 10.0
    ki_per_s: float = 0.08
    max_step_w: float = 60.0
    min_elapsed_s: float = 0.5
    first_elapsed_s: float = 1.0
    write_every_s: float = 3.0
    min_send_step_w: float = 8.0
    keepalive_s: float = 60.0
    keepalive_tick_s: float = 5.0
    soc_on_margin_pct: float = 1.0
    default_soc_reserve_pct: float = 20.0
    output_on_w: float = 10.0
    start_kick_setpoint_w: float = 80.0
    start_kick_error_w: float = 60.0
    strategy_log_interval_s: float = 300.0
    telemetry_path: str = "/data/telemetry.json"
    initial_state_path: str = ""

    @field_validator("filter_alpha")
    @classmethod
    def filter_alpha_must_be_fraction(cls, v: float) -> float:
        """Validate the EMA factor lies in (0, 1]."""
        if not 0.0 < v <= 1.0:
            raise ValueError("FILTER_ALPHA must be > 0 and <= 1")
        return v

    @field_validator(
        "filter_zero_band_w",
        "deadband_w",
        "ki_per_s",
        "write_every_s",
        "min_send_step_w",
        "soc_on_margin_pct",
        "strategy_log_interval_s",
        "setpoint_min_w",
    )
    @classmethod
    def must_be_non_negative(cls, v: float) -> float:
        """Validate thresholds and intervals are non-negative."""
        if v < 0:
            raise ValueError("value must be >= 0")
        return v

    @field_validator(
        "max_step_w",
        "min_elapsed_s",
        "first_elapsed_s",
        "keepalive_s",
        "keepalive_tick_s",
    )
    @classmethod
    def must_be_positive(cls, v: float) -> float:
        """Validate step sizes and periods are strictly positive."""
        if v <= 0:
            raise ValueError("value must be > 0")
        return v

    @field_validator("default_soc_reserve_pct")
    @classmethod
    def reserve_must_be_percent(cls, v: float) -> float:
        """Validate the default reserve is a percentage."""
        if v < 0 or v > 100:
            raise ValueError("DEFAULT_SOC_RESERVE_PCT must be between 0 and 100")
        return v

    @model_validator(mode="after")
    def _setpoint_bounds_ordered(self) -> "AssistSettings":
        """Reject an empty or inverted setpoint range."""
        if self.setpoint_max_w <= self.setpoint_min_w:
            raise ValueError("SETPOINT_MAX_W must be greater than SETPOINT_MIN_W")
        return self

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
