"""
Unit tests for the rate-limited output writer.

Tests verify:
- The first offer is always written.
- Writes within write_every_s are suppressed.
- Changes smaller than min_send_step_w are suppressed until keepalive.
- Keepalive forces a resend of an unchanged value.
- Values are clamped and rounded half up at write time.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from grid_assist.src.output_writer import OutputWriter, WriteDecision, round_watts

_T0 = datetime(2026, 10, 18, 7, 0, 0, tzinfo=UTC)


def _at(seconds: float) -> datetime:
    return _T0 + timedelta(seconds=seconds)


def _writer(**overrides: float) -> OutputWriter:
    params = {
        "setpoint_min": 0.0,
        "setpoint_max": 800.0,
        "write_every_s": 3.0,
        "min_send_step_w": 8.0,
        "keepalive_s": 60.0,
    }
    params.update(overrides)
    return OutputWriter(**params)


class TestRoundWatts:
    """Half-up rounding to whole watts."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(2.5, 3), (2.49, 2), (-2.5, -2), (-2.51, -3), (0.0, 0), (799.6, 800)],
    )
    def test_round_half_up(self, value: float, expected: int) -> None:
        assert round_watts(value) == expected


class TestFirstWrite:
    def test_first_offer_is_written(self) -> None:
        writer = _writer()

        decision = writer.offer(123.4, _at(0))

        assert decision == WriteDecision(value=123, keepalive=True)
        assert writer.last_written == 123

    def test_nothing_written_initially(self) -> None:
        assert _writer().last_written is None


class TestRateLimit:
    """Ordinary writes honor the minimum interval and step."""

    def test_write_inside_interval_suppressed(self) -> None:
        writer = _writer()
        writer.offer(100.0, _at(0))

        assert writer.offer(300.0, _at(2.9)) is None
        assert writer.last_written == 100

    def test_write_after_interval_with_large_change(self) -> None:
        writer = _writer()
        writer.offer(100.0, _at(0))

        decision = writer.offer(300.0, _at(3.0))

        assert decision == WriteDecision(value=300, keepalive=False)
        assert writer.last_written == 300

    def test_small_change_suppressed(self) -> None:
        writer = _writer()
        writer.offer(100.0, _at(0))

        assert writer.offer(107.0, _at(10)) is None
        assert writer.last_written == 100

    def test_change_equal_to_min_step_written(self) -> None:
        writer = _writer()
        writer.offer(100.0, _at(0))

        decision = writer.offer(108.0, _at(10))

        assert decision is not None
        assert decision.value == 108

    def test_step_compared_after_rounding(self) -> None:
        writer = _writer()
        writer.offer(100.0, _at(0))

        # 107.5 rounds to 108, which meets the 8 W step
        decision = writer.offer(107.5, _at(10))

        assert decision is not None
        assert decision.value == 108

    def test_write_interval_counts_from_last_write(self) -> None:
        writer = _writer()
        writer.offer(100.0, _at(0))
        writer.offer(107.0, _at(5))  # suppressed, does not reset the interval

        decision = writer.offer(200.0, _at(5.5))

        assert decision is not None
        assert decision.value == 200


class TestKeepalive:
    """Keepalive resends regardless of the change size."""

    def test_keepalive_due_after_interval(self) -> None:
        writer = _writer()
        writer.offer(100.0, _at(0))

        assert writer.keepalive_due(_at(59.9)) is False
        assert writer.keepalive_due(_at(60.0)) is True

    def test_keepalive_resends_unchanged_value(self) -> None:
        writer = _writer()
        writer.offer(100.0, _at(0))

        decision = writer.offer(100.0, _at(60))

        assert decision == WriteDecision(value=100, keepalive=True)

    def test_keepalive_bypasses_write_interval(self) -> None:
        writer = _writer()
        writer.offer(100.0, _at(0))

        decision = writer.offer(100.0, _at(1), force_keepalive=True)

        assert decision == WriteDecision(value=100, keepalive=True)

    def test_ordinary_write_does_not_reset_keepalive(self) -> None:
        writer = _writer()
        writer.offer(100.0, _at(0))
        writer.offer(300.0, _at(30))

        assert writer.keepalive_due(_at(60)) is True

    def test_keepalive_resets_timer(self) -> None:
        writer = _writer()
        writer.offer(100.0, _at(0))
        writer.offer(100.0, _at(60))

        assert writer.keepalive_due(_at(100)) is False
        assert writer.offer(100.0, _at(100)) is None

    def test_writes_never_further_apart_than_keepalive(self) -> None:
        writer = _writer()
        writes = []
        for second in range(0, 600, 5):
            decision = writer.offer(250.0, _at(second))
            if decision is not None:
                writes.append(second)

        gaps = [b - a for a, b in zip(writes, writes[1:])]
        assert writes[0] == 0
        assert max(gaps) <= 60


class TestBounds:
    """Emitted values never leave [min, max]."""

    @pytest.mark.parametrize(
        ("candidate", "expected"), [(-50.0, 0), (1000.0, 800), (799.7, 800)]
    )
    def test_clamped(self, candidate: float, expected: int) -> None:
        decision = _writer().offer(candidate, _at(0))

        assert decision is not None
        assert decision.value == expected

    @pytest.mark.parametrize(
        ("candidate", "expected"),
        [(0.0, 1), (0.4, 1), (0.6, 1), (-20.0, 1), (799.9, 799), (900.0, 799)],
    )
    def test_fractional_bounds_stay_inside(
        self, candidate: float, expected: int
    ) -> None:
        writer = _writer(setpoint_min=0.4, setpoint_max=799.5)

        decision = writer.offer(candidate, _at(0))

        assert decision is not None
        assert decision.value == expected
        assert 0.4 <= decision.value <= 799.5

    def test_custom_bounds(self) -> None:
        writer = _writer(setpoint_min=50.0, setpoint_max=300.0)

        assert writer.offer(10.0, _at(0)).value == 50  # type: ignore[union-attr]
        assert writer.offer(900.0, _at(10)).value == 300  # type: ignore[union-attr]
