"""
Tests for the cycle phase calculator.
"""
from datetime import date, timedelta

import pytest

from models import CyclePhase
from services.cycle_phase import (
    PHASE_GUIDANCE,
    CyclePhaseCalculator,
    day_in_cycle,
    phase_for_day,
    phase_guidance,
)

START = date(2026, 3, 1)


@pytest.fixture
def oracle():
    return CyclePhaseCalculator()


class TestDayInCycle:
    def test_period_start_is_day_one(self):
        assert day_in_cycle(START, 28, START) == 1

    def test_wraps_after_cycle_length(self):
        assert day_in_cycle(START, 28, START + timedelta(days=27)) == 28
        assert day_in_cycle(START, 28, START + timedelta(days=28)) == 1

    def test_dates_before_start_wrap_backwards(self):
        assert day_in_cycle(START, 28, START - timedelta(days=1)) == 28


class TestPhaseBoundaries:
    """28-day cycle: menstrual 1-5, follicular 6-11, ovulatory 12-13, luteal 14-28."""

    @pytest.mark.parametrize("day,expected", [
        (1, CyclePhase.MENSTRUAL),
        (5, CyclePhase.MENSTRUAL),
        (6, CyclePhase.FOLLICULAR),
        (11, CyclePhase.FOLLICULAR),
        (12, CyclePhase.OVULATORY),
        (13, CyclePhase.OVULATORY),
        (14, CyclePhase.LUTEAL),
        (28, CyclePhase.LUTEAL),
    ])
    def test_standard_cycle(self, day, expected):
        assert phase_for_day(day, 28) == expected

    def test_long_cycle_stretches_follicular(self):
        # 35 days: 30 after menstruation -> follicular through day 14
        assert phase_for_day(14, 35) == CyclePhase.FOLLICULAR
        assert phase_for_day(15, 35) == CyclePhase.OVULATORY

    def test_short_cycle_keeps_two_ovulatory_days(self):
        # 21 days: 16 after menstruation -> follicular 6-9, ovulatory 10-11
        assert phase_for_day(10, 21) == CyclePhase.OVULATORY
        assert phase_for_day(11, 21) == CyclePhase.OVULATORY
        assert phase_for_day(12, 21) == CyclePhase.LUTEAL


class TestCalculator:
    def test_phase_on_date_three_cycles_out(self, oracle):
        assert oracle.phase_on_date(START, 28, START + timedelta(days=84 + 12)) == CyclePhase.OVULATORY

    def test_rejects_non_positive_cycle_length(self, oracle):
        with pytest.raises(ValueError):
            oracle.phase_on_date(START, 0, START)

    def test_range_is_inclusive(self, oracle):
        phases = oracle.predict_phases_for_range(START, 28, START, START + timedelta(days=6))
        assert len(phases) == 7
        assert phases[START] == CyclePhase.MENSTRUAL
        assert phases[START + timedelta(days=6)] == CyclePhase.FOLLICULAR

    def test_empty_range(self, oracle):
        assert oracle.predict_phases_for_range(START, 28, START, START - timedelta(days=1)) == {}

    def test_estimate_next_period(self, oracle):
        assert oracle.estimate_next_period(START, 30) == date(2026, 3, 31)


def test_phase_guidance_text():
    assert phase_guidance(None) is None
    assert phase_guidance(CyclePhase.LUTEAL) == PHASE_GUIDANCE[CyclePhase.LUTEAL]
    assert phase_guidance("menstrual").startswith("Menstrual phase")
