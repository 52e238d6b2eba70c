"""
Unconditional plan recalculation.

Runs the same selection and planner steps as a preview but applies the
result straight away. This is what the `tasks.recalculate_plan` job runs.

On any failure the transaction is rolled back, the plan's job id is
cleared in a separate transaction (so the drift check is not blocked by
a dead job) and the error is re-raised for the task's retry policy.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import Clock, SystemClock, today
from models import TrainingPlan
from services.adaptation_history import DEFAULT_APPLIED_SUMMARY, TRIGGER_REASON_DRIFT, record_adaptation
from services.ai_plan_generator import AIPlanGenerator
from services.cycle_phase import CyclePhaseCalculator
from services.job_queue import JobQueue, JobState
from services.preview_builder import generate_summary
from services.recalculation_request import (
    build_recalculation_request,
    recent_finished_sessions,
    upcoming_sessions,
)
from services.session_changes import apply_session_changes, build_session_changes

logger = logging.getLogger(__name__)


def _lock_plan(db: Session, plan_id: UUID) -> Optional[TrainingPlan]:
    return (
        db.query(TrainingPlan)
        .filter(TrainingPlan.id == plan_id)
        .with_for_update()
        .first()
    )


def _clear_job_id(db: Session, plan_id: UUID) -> None:
    try:
        db.query(TrainingPlan).filter(TrainingPlan.id == plan_id).update(
            {TrainingPlan.last_recalculation_job_id: None},
            synchronize_session=False,
        )
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Could not clear recalculation job id for plan {plan_id}: {e}")


def request_recalculation(
    db: Session,
    plan_id: UUID,
    job_queue: JobQueue,
    clock: Optional[Clock] = None,
) -> Optional[str]:
    """
    Enqueue a `tasks.recalculate_plan` job and record it on the plan.

    Returns the job id, or None when the plan is missing or inactive or a
    recorded job is still queued or running.
    """
    from tasks.plan_adaptation_tasks import recalculate_plan_task

    clock = clock or SystemClock()

    plan = _lock_plan(db, plan_id)
    if plan is None or not plan.is_active:
        db.rollback()
        return None

    if plan.last_recalculation_job_id:
        try:
            state = job_queue.get_state(plan.last_recalculation_job_id)
        except Exception as e:
            logger.warning(f"Error checking job state for {plan.last_recalculation_job_id}: {e}")
            state = JobState.UNKNOWN
        if state.in_flight:
            db.rollback()
            logger.info(f"Plan {plan_id}: recalculation job {plan.last_recalculation_job_id} still {state.value}")
            return None

    job_id = job_queue.enqueue(recalculate_plan_task, str(plan.id))
    plan.last_recalculation_job_id = job_id
    plan.last_recalculation_requested_at = clock.now()
    db.commit()
    return job_id


def recalculate(
    db: Session,
    plan_id: UUID,
    generator: AIPlanGenerator,
    clock: Optional[Clock] = None,
    oracle: Optional[CyclePhaseCalculator] = None,
) -> int:
    """
    Recalculate and apply the next upcoming sessions.

    Returns the number of sessions whose workout changed (0 when the plan
    is missing, inactive, or has nothing upcoming).
    """
    clock = clock or SystemClock()
    current_day = today(clock)

    plan = db.get(TrainingPlan, plan_id)
    if plan is None:
        logger.error(f"Plan {plan_id} not found for recalculation")
        return 0

    try:
        if not plan.is_active:
            logger.info(f"Plan {plan_id} is not active; clearing recalculation job")
            locked = _lock_plan(db, plan_id)
            locked.last_recalculation_job_id = None
            db.commit()
            return 0

        future = upcoming_sessions(db, plan.id, current_day)
        if not future:
            logger.info(f"No upcoming sessions to recalculate for plan {plan_id}")
            locked = _lock_plan(db, plan_id)
            locked.last_recalculated_at = clock.now()
            locked.last_recalculation_job_id = None
            db.commit()
            return 0

        recent = recent_finished_sessions(db, plan.id)
        request = build_recalculation_request(db, plan, future, recent, current_day, oracle)
        logger.info(f"Recalculating {len(future)} sessions for plan {plan_id} from {len(recent)} recent sessions")
        db.rollback()  # no transaction is held while the planner runs
        generated = generator.recalculate(request)
        summary = generate_summary(generator, request, DEFAULT_APPLIED_SUMMARY)
        changes = build_session_changes(future, generated)

        locked = _lock_plan(db, plan_id)
        now = clock.now()
        affected = apply_session_changes(db, plan_id, changes, now)
        record_adaptation(db, plan_id, summary.text, changes, now, trigger_reason=TRIGGER_REASON_DRIFT)

        locked.last_recalculation_summary = summary.text
        locked.summary_viewed_at = None
        locked.last_recalculated_at = now
        locked.last_recalculation_job_id = None
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Recalculation failed for plan {plan_id}: {type(e).__name__}: {e}", exc_info=True)
        _clear_job_id(db, plan_id)
        raise

    logger.info(f"Recalculation completed for plan {plan_id}: {affected}/{len(changes)} sessions changed")
    return affected
