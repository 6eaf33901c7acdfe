"""
Reserve gate: may the battery discharge?

Hysteresis on state of charge. The gate closes when SoC falls to or below
the reserve and reopens only once SoC reaches reserve + margin, so a
single-percent wobble around the reserve never toggles it.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass


def evaluate_gate(
    *,
    soc: float,
    soc_reserve: float,
    margin: float,
    was_open: bool,
) -> bool:
    """Return the new open/closed state of the gate.

    Pure and idempotent: evaluating twice with the same inputs (feeding the
    result back as *was_open*) yields the same answer.
    """
    if was_open and soc <= soc_reserve:
        return False
    if not was_open and soc >= soc_reserve + margin:
        return True
    return was_open


@dataclass(slots=True)
class GateState:
    """Latest SoC inputs plus the gate decision derived from them.

    ``soc`` and ``soc_reserve`` are updated whenever telemetry arrives;
    ``is_open`` only changes in :meth:`evaluate`, which the controller calls
    once per accepted grid sample.
    """

    soc: float
    soc_reserve: float
    hysteresis_margin: float
    is_open: bool = True

    def evaluate(self) -> bool:
        self.is_open = evaluate_gate(
            soc=self.soc,
            soc_reserve=self.soc_reserve,
            margin=self.hysteresis_margin,
            was_open=self.is_open,
        )
        return self.is_open
