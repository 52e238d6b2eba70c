"""
Plan adaptation history ledger.

Entries are written once when an adaptation is applied and never edited,
apart from the one-time `viewed_at` stamp.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from models import PlanAdaptationHistory, TrainingPlan
from services.session_changes import SessionChange, serialize_changes

logger = logging.getLogger(__name__)

TRIGGER_REASON_DRIFT = "Training pattern deviation detected"
DEFAULT_APPLIED_SUMMARY = "Your training plan has been adjusted based on your recent performance."
DEFAULT_PREVIEW_SUMMARY = "Based on your recent training, we recommend adjusting your upcoming sessions."


def record_adaptation(
    db: Session,
    plan_id: UUID,
    summary: Optional[str],
    changes: List[SessionChange],
    now: datetime,
    trigger_reason: str = TRIGGER_REASON_DRIFT,
    payload: Optional[list] = None,
) -> PlanAdaptationHistory:
    """
    Append a history entry. Does not commit.

    `payload` is the serialized change list as stored on a preview; when
    given it is recorded verbatim so the audit trail matches what the
    runner was shown.
    """
    entry = PlanAdaptationHistory(
        plan_id=plan_id,
        adapted_at=now,
        summary=summary or DEFAULT_APPLIED_SUMMARY,
        sessions_affected_count=sum(1 for c in changes if c.has_changes()),
        trigger_reason=trigger_reason,
        changes=payload if payload is not None else serialize_changes(changes),
    )
    db.add(entry)
    db.flush()
    logger.info(
        f"Recorded adaptation {entry.id} for plan {plan_id}: "
        f"{entry.sessions_affected_count}/{len(changes)} sessions changed"
    )
    return entry


def list_history(db: Session, plan_id: UUID, limit: Optional[int] = None) -> List[PlanAdaptationHistory]:
    """History entries for a plan, newest first."""
    query = (
        db.query(PlanAdaptationHistory)
        .filter(PlanAdaptationHistory.plan_id == plan_id)
        .order_by(PlanAdaptationHistory.adapted_at.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def mark_viewed(db: Session, history_id: UUID, now: datetime, plan_id: Optional[UUID] = None) -> bool:
    """Stamp viewed_at once. False if the entry does not exist (or belongs to another plan)."""
    entry = db.get(PlanAdaptationHistory, history_id)
    if entry is None or (plan_id is not None and entry.plan_id != plan_id):
        return False
    if entry.viewed_at is None:
        entry.viewed_at = now
        db.commit()
    return True


def mark_summary_viewed(db: Session, plan_id: UUID, now: datetime) -> bool:
    """Stamp the plan's latest recalculation summary as seen by the runner."""
    plan = db.get(TrainingPlan, plan_id)
    if plan is None or not plan.last_recalculation_summary:
        return False
    if plan.summary_viewed_at is None:
        plan.summary_viewed_at = now
        db.commit()
    return True
