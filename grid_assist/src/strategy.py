"""
Energy-strategy monitor (advisory only).

The controller assumes the actuator runs its self-powered strategy, where
the setpoint acts as the house-load feed. When it does not, the monitor
logs an error, at most once per cooldown window. It never changes what
the controller does.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-009)

TODO:
- None
"""

from __future__ import annotations

import logging
from datetime import datetime

from grid_assist.src.events import SELF_POWERED_KEY, StrategyObject, StrategyText

logger = logging.getLogger(__name__)


class StrategyMonitor:
    """Tracks the last reported strategy and rate-limits anomaly logs.

    Args:
        cooldown_s: Minimum seconds between two anomaly log lines.
    """

    def __init__(self, *, cooldown_s: float) -> None:
        self.cooldown_s = cooldown_s
        self.last_value: StrategyObject | StrategyText | None = None
        self._last_logged: datetime | None = None

    @property
    def mismatch(self) -> bool:
        """True when a strategy is known and it is not self-powered."""
        return self.last_value is not None and not self.last_value.is_self_powered

    def observe(
        self,
        value: StrategyObject | StrategyText,
        now: datetime,
        *,
        reason: str = f"{SELF_POWERED_KEY} != 1",
    ) -> bool:
        """Record a new strategy value and report it if not self-powered."""
        self.last_value = value
        if value.is_self_powered:
            return False
        return self.report(now, reason)

    def report(self, now: datetime, reason: str) -> bool:
        """Log the current mismatch unless still inside the cooldown.

        Returns True when a line was logged.
        """
        if not self.mismatch:
            return False
        if (
            self._last_logged is not None
            and (now - self._last_logged).total_seconds() < self.cooldown_s
        ):
            return False
        self._last_logged = now
        logger.error(
            "Actuator NOT in self-powered mode | strategy=%s | expected {\"%s\":1} | %s",
            self.last_value.raw,  # type: ignore[union-attr]
            SELF_POWERED_KEY,
            reason,
        )
        return True
