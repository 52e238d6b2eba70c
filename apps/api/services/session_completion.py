"""
Session completion and skipping.

Recording a finished session is what feeds the drift detector: after
every completion or skip a `tasks.check_plan_drift` job is enqueued for
the session's plan. Enqueue failures are logged; the session record is
already committed and stays.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import Clock, SystemClock
from core.config import settings
from models import TrainingSession
from services.job_queue import JobQueue

logger = logging.getLogger(__name__)


@dataclass
class SessionCompletionResult:
    success: bool
    session: Optional[TrainingSession] = None
    drift_check_job_id: Optional[str] = None
    error: Optional[str] = None


def _deviates(planned, actual, threshold: float) -> bool:
    if planned is None or actual is None or planned <= 0:
        return False
    return abs(actual - planned) / planned > threshold


def is_modified(session: TrainingSession, threshold: Optional[float] = None) -> bool:
    """Actual distance or duration off the plan by more than the threshold."""
    threshold = settings.MODIFIED_SESSION_DEVIATION if threshold is None else threshold
    return (
        _deviates(session.distance, session.actual_distance, threshold)
        or _deviates(session.duration_minutes, session.actual_duration, threshold)
    )


def _enqueue_drift_check(job_queue: JobQueue, plan_id: UUID) -> Optional[str]:
    from tasks.plan_adaptation_tasks import check_plan_drift_task

    try:
        return job_queue.enqueue(check_plan_drift_task, str(plan_id))
    except Exception as e:
        logger.error(f"Could not enqueue drift check for plan {plan_id}: {e}")
        return None


def complete_session(
    db: Session,
    session_id: UUID,
    job_queue: JobQueue,
    actual_distance: Optional[float] = None,
    actual_duration: Optional[int] = None,
    rpe: Optional[int] = None,
    user_notes: Optional[str] = None,
    clock: Optional[Clock] = None,
) -> SessionCompletionResult:
    clock = clock or SystemClock()

    session = db.get(TrainingSession, session_id)
    if session is None:
        return SessionCompletionResult(success=False, error="Session not found")

    now = clock.now()
    session.completed_at = now
    session.actual_distance = actual_distance
    session.actual_duration = actual_duration
    session.rpe = rpe
    session.user_notes = user_notes
    session.is_skipped = False
    session.skip_reason = None
    session.was_modified = is_modified(session)
    session.updated_at = now
    db.commit()

    logger.info(f"Session {session_id} completed (modified={session.was_modified})")
    job_id = _enqueue_drift_check(job_queue, session.plan_id)
    return SessionCompletionResult(success=True, session=session, drift_check_job_id=job_id)


def skip_session(
    db: Session,
    session_id: UUID,
    job_queue: JobQueue,
    skip_reason: Optional[str] = None,
    clock: Optional[Clock] = None,
) -> SessionCompletionResult:
    clock = clock or SystemClock()

    session = db.get(TrainingSession, session_id)
    if session is None:
        return SessionCompletionResult(success=False, error="Session not found")

    now = clock.now()
    session.is_skipped = True
    session.skip_reason = skip_reason
    # Skipping still stamps completed_at; the session is history from here on
    session.completed_at = now
    session.updated_at = now
    db.commit()

    logger.info(f"Session {session_id} skipped")
    job_id = _enqueue_drift_check(job_queue, session.plan_id)
    return SessionCompletionResult(success=True, session=session, drift_check_job_id=job_id)
