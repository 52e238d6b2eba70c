"""
Cycle tracking: period reports and the runner's current cycle position.

A period report moves the runner's last period start, learns the cycle
length from the gap between reported periods, logs how far the
prediction was off and, when it missed by more than the tolerance,
regenerates the upcoming weeks of the active plan around the new phases.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import Clock, SystemClock, today
from core.config import settings
from models import CycleLog, CyclePhase, PlanStatus, Runner, TrainingPlan
from services.ai_plan_generator import AIPlanGenerator
from services.cycle_phase import CyclePhaseCalculator, day_in_cycle, phase_guidance
from services.plan_regeneration import can_regenerate, regenerate_window

logger = logging.getLogger(__name__)

DEFAULT_CYCLE_LENGTH = 28


@dataclass
class ReportPeriodResult:
    cycle_log: CycleLog
    triggered_regeneration: bool
    sessions_regenerated: int = 0
    affected_plan_id: Optional[UUID] = None


@dataclass
class CyclePosition:
    day_in_cycle: int
    cycle_length: int
    current_phase: CyclePhase
    last_period_start: date
    next_predicted_period: date
    days_until_next_period: int
    phase_guidance: str


def current_position(
    db: Session,
    runner_id: UUID,
    clock: Optional[Clock] = None,
    oracle: Optional[CyclePhaseCalculator] = None,
) -> Optional[CyclePosition]:
    """None when the runner is unknown or does not track their cycle."""
    clock = clock or SystemClock()
    oracle = oracle or CyclePhaseCalculator()

    runner = db.get(Runner, runner_id)
    if runner is None or not runner.last_period_start or not runner.cycle_length:
        return None

    current_day = today(clock)
    start, length = runner.last_period_start, runner.cycle_length
    phase = oracle.phase_on_date(start, length, current_day)

    next_period = oracle.estimate_next_period(start, length)
    while next_period < current_day:
        next_period += timedelta(days=length)

    return CyclePosition(
        day_in_cycle=day_in_cycle(start, length, current_day),
        cycle_length=length,
        current_phase=phase,
        last_period_start=start,
        next_predicted_period=next_period,
        days_until_next_period=(next_period - current_day).days,
        phase_guidance=phase_guidance(phase),
    )


def _previous_period_start(db: Session, runner: Runner) -> Optional[date]:
    previous = (
        db.query(CycleLog)
        .filter(CycleLog.runner_id == runner.id, CycleLog.actual_period_start.isnot(None))
        .order_by(CycleLog.actual_period_start.desc())
        .first()
    )
    if previous is not None:
        return previous.actual_period_start
    return runner.last_period_start


def report_period(
    db: Session,
    runner_id: UUID,
    generator: AIPlanGenerator,
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
    clock: Optional[Clock] = None,
    oracle: Optional[CyclePhaseCalculator] = None,
) -> Optional[ReportPeriodResult]:
    """
    Record a period report. Returns None if the runner does not exist.

    A failed regeneration is logged and reported as not triggered; the
    report itself is still recorded.
    """
    clock = clock or SystemClock()

    runner = db.get(Runner, runner_id)
    if runner is None:
        return None

    predicted: Optional[date] = None
    difference: Optional[int] = None
    accurate = False
    actual_length: Optional[int] = None

    if period_start is not None:
        previous = _previous_period_start(db, runner)
        if previous is not None and previous < period_start:
            predicted = previous + timedelta(days=runner.cycle_length or DEFAULT_CYCLE_LENGTH)
            difference = (period_start - predicted).days
            accurate = abs(difference) <= settings.CYCLE_PREDICTION_TOLERANCE_DAYS
            actual_length = (period_start - previous).days
            logger.info(
                f"Period report for runner {runner_id}: predicted {predicted}, "
                f"actual {period_start}, difference {difference} days"
            )
        else:
            logger.info(f"First period report for runner {runner_id}: {period_start}")

        runner.last_period_start = period_start
        if (
            actual_length is not None
            and actual_length != runner.cycle_length
            and settings.CYCLE_LENGTH_MIN_DAYS <= actual_length <= settings.CYCLE_LENGTH_MAX_DAYS
        ):
            logger.info(f"Updating cycle length for runner {runner_id}: {runner.cycle_length} -> {actual_length}")
            runner.cycle_length = actual_length
        db.commit()
    else:
        logger.info(f"Period end only reported for runner {runner_id}: {period_end}")

    triggered = False
    regenerated = 0
    affected_plan_id = None

    if difference is not None and abs(difference) > settings.CYCLE_PREDICTION_TOLERANCE_DAYS:
        plan = (
            db.query(TrainingPlan)
            .filter(TrainingPlan.runner_id == runner_id, TrainingPlan.status == PlanStatus.ACTIVE.value)
            .first()
        )
        if plan is not None and can_regenerate(db, plan.id, clock=clock):
            logger.info(f"Regenerating plan {plan.id} for runner {runner_id}: prediction off by {difference} days")
            try:
                regenerated = regenerate_window(
                    db,
                    plan.id,
                    period_start,
                    runner.cycle_length or actual_length,
                    generator,
                    clock=clock,
                    oracle=oracle,
                )
                triggered = regenerated > 0
                affected_plan_id = plan.id
            except Exception as e:
                db.rollback()
                logger.error(f"Failed to regenerate plan {plan.id} for runner {runner_id}: {e}", exc_info=True)

    log = CycleLog(
        runner_id=runner_id,
        reported_at=clock.now(),
        actual_period_start=period_start,
        actual_period_end=period_end,
        predicted_period_start=predicted,
        days_difference=difference,
        was_prediction_accurate=accurate,
        actual_cycle_length=actual_length,
        triggered_regeneration=triggered,
        affected_plan_id=affected_plan_id,
    )
    db.add(log)
    db.commit()

    return ReportPeriodResult(
        cycle_log=log,
        triggered_regeneration=triggered,
        sessions_regenerated=regenerated,
        affected_plan_id=affected_plan_id,
    )
