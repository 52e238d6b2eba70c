"""
Cycle-triggered plan regeneration.

When a runner reports a period that lands away from the prediction, the
cycle phases of the coming weeks shift. Sessions in the window
[today, today + REGENERATION_WINDOW_DAYS] that are not yet done are
rebuilt from the planner using the new phase map, in place and without
asking the runner to confirm. No history entry is written.

Sessions the planner does not return a date for keep their workout and
only get their phase and phase guidance refreshed.
"""

import logging
from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import Clock, SystemClock, today
from core.config import settings
from core.exceptions import PlanRegenerationError
from models import CyclePhase, Race, Runner, TrainingPlan, TrainingSession
from services.ai_plan_generator import AIPlanGenerator, GeneratedSession, PlanGenerationRequest
from services.cycle_phase import CyclePhaseCalculator, phase_guidance

logger = logging.getLogger(__name__)


def _window(clock: Clock):
    start = today(clock)
    return start, start + timedelta(days=settings.REGENERATION_WINDOW_DAYS)


def _window_sessions(db: Session, plan_id: UUID, start: date, end: date) -> List[TrainingSession]:
    return (
        db.query(TrainingSession)
        .filter(
            TrainingSession.plan_id == plan_id,
            TrainingSession.scheduled_date >= start,
            TrainingSession.scheduled_date <= end,
            TrainingSession.completed_at.is_(None),
        )
        .order_by(TrainingSession.scheduled_date.asc())
        .all()
    )


def _overwrite(session: TrainingSession, generated: GeneratedSession, phase: Optional[CyclePhase], now) -> None:
    session.session_name = generated.session_name
    session.workout_type = generated.workout_type.value
    session.warm_up = generated.warm_up
    session.description = generated.description
    session.duration_minutes = generated.duration_minutes
    session.distance = generated.distance
    session.intensity_level = generated.intensity_level.value
    session.hr_zones = generated.hr_zones
    resolved_phase = generated.cycle_phase or phase
    session.cycle_phase = resolved_phase.value if resolved_phase else None
    session.phase_guidance = generated.phase_guidance or phase_guidance(resolved_phase)
    session.updated_at = now


def regenerate_window(
    db: Session,
    plan_id: UUID,
    new_cycle_start: date,
    cycle_length: int,
    generator: AIPlanGenerator,
    clock: Optional[Clock] = None,
    oracle: Optional[CyclePhaseCalculator] = None,
) -> int:
    """
    Rebuild the upcoming window of a plan around a new cycle start.

    Returns the number of sessions touched. Raises PlanRegenerationError
    when the planner fails; nothing is written in that case.
    """
    clock = clock or SystemClock()
    oracle = oracle or CyclePhaseCalculator()

    plan = db.get(TrainingPlan, plan_id)
    if plan is None or not plan.is_active:
        db.rollback()
        logger.warning(f"Plan {plan_id} not found or not active; skipping regeneration")
        return 0

    start, end = _window(clock)
    sessions = _window_sessions(db, plan.id, start, end)
    if not sessions:
        db.rollback()
        logger.info(f"No upcoming sessions in regeneration window for plan {plan_id}")
        return 0

    phases = oracle.predict_phases_for_range(new_cycle_start, cycle_length, start, end)

    race = db.get(Race, plan.race_id)
    runner = db.get(Runner, plan.runner_id)
    request = PlanGenerationRequest(
        race_name=race.race_name,
        race_date=race.race_date,
        distance=race.distance,
        distance_type=race.distance_type,
        goal_time=race.goal_time,
        fitness_level=runner.fitness_level,
        typical_weekly_mileage=runner.typical_weekly_mileage,
        cycle_length=cycle_length,
        last_period_start=new_cycle_start,
        typical_cycle_regularity=runner.typical_cycle_regularity,
        start_date=start,
        end_date=end,
        phase_map=phases,
    )

    logger.info(f"Regenerating {len(sessions)} sessions for plan {plan_id} (cycle start {new_cycle_start})")
    db.rollback()  # no transaction is held while the planner runs
    try:
        generated = generator.generate(request)
    except Exception as e:
        logger.error(f"Plan regeneration failed for plan {plan_id}: {type(e).__name__}: {e}")
        raise PlanRegenerationError("Failed to regenerate training sessions. Please try again.") from e

    locked = (
        db.query(TrainingPlan)
        .filter(TrainingPlan.id == plan_id)
        .with_for_update()
        .first()
    )
    if locked is None or not locked.is_active:
        db.rollback()
        logger.info(f"Plan {plan_id} changed while sessions were regenerated; discarding them")
        return 0

    now = clock.now()
    touched = 0
    for session in _window_sessions(db, plan_id, start, end):
        phase = phases.get(session.scheduled_date)
        proposed = generated.session_for(session.scheduled_date)
        if proposed is not None:
            _overwrite(session, proposed, phase, now)
            touched += 1
        elif phase is not None:
            session.cycle_phase = phase.value
            session.phase_guidance = phase_guidance(phase)
            session.updated_at = now
            touched += 1

    db.commit()
    logger.info(f"Regeneration complete for plan {plan_id}: {touched} sessions updated")
    return touched


def can_regenerate(db: Session, plan_id: UUID, clock: Optional[Clock] = None) -> bool:
    """Active plan, runner with cycle data, and at least one open session in the window."""
    clock = clock or SystemClock()

    plan = db.get(TrainingPlan, plan_id)
    if plan is None or not plan.is_active:
        return False

    runner = db.get(Runner, plan.runner_id)
    if runner is None or not runner.last_period_start or not runner.cycle_length:
        logger.debug(f"Plan {plan_id} runner has no cycle data")
        return False

    start, end = _window(clock)
    return len(_window_sessions(db, plan.id, start, end)) > 0
