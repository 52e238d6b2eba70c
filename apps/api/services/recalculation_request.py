"""
Session selection and planner request assembly shared by preview building
and unconditional recalculation.
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.config import settings
from models import Race, Runner, TrainingPlan, TrainingSession
from services.ai_plan_generator import HistoricalSession, RecalculationRequest
from services.cycle_phase import CyclePhaseCalculator


def recent_finished_sessions(db: Session, plan_id: UUID, limit: Optional[int] = None) -> List[TrainingSession]:
    """
    Most recent completed or skipped sessions, newest first.

    A session skipped ahead of its date counts, whatever its scheduled date.
    """
    limit = limit or settings.ADAPTATION_LOOKBACK_SESSIONS
    return (
        db.query(TrainingSession)
        .filter(
            TrainingSession.plan_id == plan_id,
            or_(TrainingSession.completed_at.isnot(None), TrainingSession.is_skipped.is_(True)),
        )
        .order_by(TrainingSession.scheduled_date.desc())
        .limit(limit)
        .all()
    )


def upcoming_sessions(db: Session, plan_id: UUID, today: date, limit: Optional[int] = None) -> List[TrainingSession]:
    """Unfinished sessions scheduled strictly after today, soonest first."""
    limit = limit or settings.ADAPTATION_FORWARD_SESSIONS
    return (
        db.query(TrainingSession)
        .filter(
            TrainingSession.plan_id == plan_id,
            TrainingSession.scheduled_date > today,
            TrainingSession.completed_at.is_(None),
            TrainingSession.is_skipped.is_(False),
        )
        .order_by(TrainingSession.scheduled_date.asc())
        .limit(limit)
        .all()
    )


def to_historical(session: TrainingSession) -> HistoricalSession:
    return HistoricalSession(
        scheduled_date=session.scheduled_date,
        workout_type=session.workout_type,
        planned_distance=session.distance,
        planned_duration=session.duration_minutes,
        actual_distance=session.actual_distance,
        actual_duration=session.actual_duration,
        is_skipped=bool(session.is_skipped),
        skip_reason=session.skip_reason,
        was_modified=bool(session.was_modified),
        rpe=session.rpe,
        user_notes=session.user_notes,
    )


def build_recalculation_request(
    db: Session,
    plan: TrainingPlan,
    future: List[TrainingSession],
    recent: List[TrainingSession],
    today: date,
    oracle: Optional[CyclePhaseCalculator] = None,
) -> RecalculationRequest:
    """Planner request for the window spanned by `future` (must be non-empty, ascending)."""
    oracle = oracle or CyclePhaseCalculator()
    race = db.get(Race, plan.race_id)
    runner = db.get(Runner, plan.runner_id)

    window_start = future[0].scheduled_date
    window_end = future[-1].scheduled_date

    phase_map = {}
    if runner is not None and runner.last_period_start and runner.cycle_length:
        phase_map = oracle.predict_phases_for_range(
            runner.last_period_start, runner.cycle_length, window_start, window_end
        )

    return RecalculationRequest(
        plan_name=plan.name,
        race_name=race.race_name if race else plan.name,
        race_date=race.race_date if race else plan.end_date,
        distance=race.distance if race else 0.0,
        distance_type=race.distance_type if race else None,
        goal_time=race.goal_time if race else None,
        fitness_level=runner.fitness_level if runner else "intermediate",
        typical_weekly_mileage=runner.typical_weekly_mileage if runner else None,
        cycle_length=runner.cycle_length if runner else None,
        window_start=window_start,
        window_end=window_end,
        sessions_to_recalculate=len(future),
        today=today,
        recent_sessions=[to_historical(s) for s in recent],
        phase_map=phase_map,
    )
