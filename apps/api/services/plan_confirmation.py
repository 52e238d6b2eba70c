"""
Confirmation state machine for recalculation previews.

    stable --(preview stored)--> preview_pending
    preview_pending --confirm--> stable (changes applied, history recorded)
    preview_pending --decline--> stable (nothing applied)

Both transitions lock the plan row and commit once. Calling either with
no preview pending returns False and writes nothing, so a repeated
confirm or decline is harmless.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import Clock, SystemClock
from models import TrainingPlan
from services.adaptation_history import DEFAULT_APPLIED_SUMMARY, TRIGGER_REASON_DRIFT, record_adaptation
from services.job_queue import JobQueue
from services.session_changes import apply_session_changes, deserialize_changes

logger = logging.getLogger(__name__)


def _lock_pending_plan(db: Session, plan_id: UUID) -> Optional[TrainingPlan]:
    plan = (
        db.query(TrainingPlan)
        .filter(TrainingPlan.id == plan_id)
        .with_for_update()
        .first()
    )
    if plan is None or not plan.is_active or not plan.pending_confirmation:
        return None
    return plan


def _clear_preview(plan: TrainingPlan) -> None:
    plan.pending_confirmation = False
    plan.pending_preview = None
    plan.pending_summary = None
    plan.preview_generated_at = None


def confirm(db: Session, plan_id: UUID, job_queue: JobQueue, clock: Optional[Clock] = None) -> bool:
    """
    Apply the pending preview.

    A plan flagged pending without a stored payload (legacy rows) falls
    back to enqueueing an unconditional recalculation job.
    """
    clock = clock or SystemClock()

    plan = _lock_pending_plan(db, plan_id)
    if plan is None:
        db.rollback()
        logger.warning(f"Plan {plan_id} not found, not active, or no pending confirmation")
        return False

    now = clock.now()

    if plan.pending_preview is None:
        from tasks.plan_adaptation_tasks import recalculate_plan_task

        try:
            job_id = job_queue.enqueue(recalculate_plan_task, str(plan.id))
        except Exception as e:
            db.rollback()
            logger.error(f"Could not enqueue recalculation for plan {plan_id}: {e}")
            return False

        plan.last_recalculation_job_id = job_id
        plan.last_recalculation_requested_at = now
        _clear_preview(plan)
        plan.confirmation_responded_at = now
        plan.confirmation_accepted = True
        db.commit()
        logger.info(f"Plan {plan_id} confirmed without stored preview; recalculation job {job_id} enqueued")
        return True

    payload = plan.pending_preview
    summary = plan.pending_summary or DEFAULT_APPLIED_SUMMARY

    try:
        changes = deserialize_changes(payload)
        affected = apply_session_changes(db, plan.id, changes, now)
        record_adaptation(
            db,
            plan.id,
            summary,
            changes,
            now,
            trigger_reason=TRIGGER_REASON_DRIFT,
            payload=payload,
        )

        plan.last_recalculation_summary = summary
        plan.summary_viewed_at = None
        plan.last_recalculated_at = now
        plan.last_recalculation_job_id = None
        _clear_preview(plan)
        plan.confirmation_responded_at = now
        plan.confirmation_accepted = True
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Applying preview failed for plan {plan_id}, preview kept: {type(e).__name__}: {e}", exc_info=True)
        return False

    logger.info(f"Plan {plan_id} confirmed: {affected}/{len(changes)} sessions changed")
    return True


def decline(db: Session, plan_id: UUID, clock: Optional[Clock] = None) -> bool:
    """Discard the pending preview. Sessions and history are untouched."""
    clock = clock or SystemClock()

    plan = _lock_pending_plan(db, plan_id)
    if plan is None:
        db.rollback()
        logger.warning(f"Plan {plan_id} not found, not active, or no pending confirmation")
        return False

    now = clock.now()
    _clear_preview(plan)
    plan.confirmation_responded_at = now
    plan.confirmation_accepted = False
    db.commit()
    logger.info(f"Plan {plan_id}: runner declined recalculation preview")
    return True
