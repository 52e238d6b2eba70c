"""
Cycle Phase Calculator

Maps calendar dates to menstrual cycle phases from a runner's last period
start and cycle length.

Phase boundaries scale with cycle length. For a standard 28-day cycle:
    - Menstrual:  days 1-5   (fixed length)
    - Follicular: days 6-11  (30% of the days after menstruation)
    - Ovulatory:  days 12-13 (7% of the remainder, never less than 2 days)
    - Luteal:     the rest of the cycle

Dates further out than one cycle wrap around, so a prediction for a date
three cycles ahead uses the same day-in-cycle as the current cycle.
Dates before the period start wrap the same way.
"""

from datetime import date, timedelta
from typing import Dict, Optional

from models import CyclePhase

MENSTRUAL_DAYS = 5
FOLLICULAR_SHARE = 0.30
OVULATORY_SHARE = 0.07
OVULATORY_MIN_DAYS = 2

PHASE_GUIDANCE: Dict[CyclePhase, str] = {
    CyclePhase.MENSTRUAL: "Menstrual phase - Your body needs extra rest. Focus on easy runs and listen to your body.",
    CyclePhase.FOLLICULAR: "Follicular phase - Rising energy! Great time for harder workouts and building strength.",
    CyclePhase.OVULATORY: "Ovulatory phase - Peak performance window! Your body is primed for high-intensity workouts.",
    CyclePhase.LUTEAL: "Luteal phase - More recovery needed. Focus on easy miles and prioritize rest.",
}


def day_in_cycle(period_start: date, cycle_length: int, on: date) -> int:
    """1-based day within the cycle containing `on`."""
    days_since = (on - period_start).days + 1
    # Python's % keeps the result non-negative for dates before period_start
    return ((days_since - 1) % cycle_length) + 1


def phase_for_day(day: int, cycle_length: int) -> CyclePhase:
    if day <= MENSTRUAL_DAYS:
        return CyclePhase.MENSTRUAL

    remaining = cycle_length - MENSTRUAL_DAYS
    follicular_end = MENSTRUAL_DAYS + int(remaining * FOLLICULAR_SHARE)
    if day <= follicular_end:
        return CyclePhase.FOLLICULAR

    ovulatory_end = follicular_end + int(max(OVULATORY_MIN_DAYS, remaining * OVULATORY_SHARE))
    if day <= ovulatory_end:
        return CyclePhase.OVULATORY

    return CyclePhase.LUTEAL


class CyclePhaseCalculator:
    """Default phase oracle used by plan adaptation and regeneration."""

    def phase_on_date(self, period_start: date, cycle_length: int, on: date) -> CyclePhase:
        if cycle_length <= 0:
            raise ValueError(f"cycle_length must be positive, got {cycle_length}")
        return phase_for_day(day_in_cycle(period_start, cycle_length, on), cycle_length)

    def predict_phases_for_range(
        self,
        period_start: date,
        cycle_length: int,
        start: date,
        end: date,
    ) -> Dict[date, CyclePhase]:
        """Phase for every date in [start, end], inclusive. Empty if end < start."""
        phases: Dict[date, CyclePhase] = {}
        current = start
        while current <= end:
            phases[current] = self.phase_on_date(period_start, cycle_length, current)
            current += timedelta(days=1)
        return phases

    def estimate_next_period(self, period_start: date, cycle_length: int) -> date:
        return period_start + timedelta(days=cycle_length)


def phase_guidance(phase: Optional[CyclePhase]) -> Optional[str]:
    if phase is None:
        return None
    return PHASE_GUIDANCE[CyclePhase(phase)]
