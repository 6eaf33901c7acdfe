"""
Unit tests for the grid power EMA filter.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

import pytest
from grid_assist.src.signal_filter import SignalFilter


class TestFirstSample:
    """The first sample initializes the average directly."""

    def test_first_sample_sets_value(self) -> None:
        f = SignalFilter(alpha=0.25, zero_band=10.0)

        assert f.update(200.0) == 200.0
        assert f.state.initialized is True

    def test_first_sample_inside_zero_band_snaps(self) -> None:
        f = SignalFilter(alpha=0.25, zero_band=10.0)

        assert f.update(-6.0) == 0.0


class TestSmoothing:
    """Subsequent samples are blended with alpha."""

    def test_ema_step(self) -> None:
        f = SignalFilter(alpha=0.25, zero_band=10.0)
        f.update(100.0)

        assert f.update(200.0) == pytest.approx(125.0)
        assert f.update(200.0) == pytest.approx(143.75)

    def test_alpha_one_tracks_raw(self) -> None:
        f = SignalFilter(alpha=1.0, zero_band=0.0)
        f.update(100.0)

        assert f.update(-350.0) == -350.0

    def test_converges_toward_constant_input(self) -> None:
        f = SignalFilter(alpha=0.25, zero_band=10.0)
        f.update(0.0)
        for _ in range(60):
            f.update(300.0)

        assert f.value == pytest.approx(300.0, abs=0.01)

    def test_decay_into_zero_band_snaps_to_zero(self) -> None:
        f = SignalFilter(alpha=0.5, zero_band=10.0)
        f.update(40.0)
        f.update(0.0)  # 20
        f.update(0.0)  # 10, not < 10

        assert f.value == pytest.approx(10.0)
        assert f.update(0.0) == 0.0

    def test_negative_export_values_are_filtered(self) -> None:
        f = SignalFilter(alpha=0.25, zero_band=10.0)
        f.update(-400.0)

        assert f.update(-200.0) == pytest.approx(-350.0)
