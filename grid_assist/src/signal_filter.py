"""
Exponential moving average filter for grid power.

The filtered value drives control decisions only. The raw sample is kept
separately by the controller for display and for the reserve fallback,
which must reflect the meter without lag.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class FilterState:
    """EMA state.

    Attributes:
        alpha: Smoothing factor in (0, 1]; 1 disables smoothing.
        zero_band: Filtered magnitudes below this snap to 0.
        value: Current filtered value in watts.
        initialized: False until the first sample has been seen.
    """

    alpha: float
    zero_band: float
    value: float = 0.0
    initialized: bool = False


class SignalFilter:
    """EMA with zero-band snapping.

    The first sample initializes the average directly so there is no
    warm-up transient from the 0 W starting value.
    """

    def __init__(self, *, alpha: float, zero_band: float) -> None:
        self.state = FilterState(alpha=alpha, zero_band=zero_band)

    @property
    def value(self) -> float:
        return self.state.value

    def update(self, raw: float) -> float:
        """Fold one raw sample into the average and return the result."""
        st = self.state
        if not st.initialized:
            st.value = raw
            st.initialized = True
        else:
            st.value = st.alpha * raw + (1.0 - st.alpha) * st.value
        if abs(st.value) < st.zero_band:
            st.value = 0.0
        return st.value
