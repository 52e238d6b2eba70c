"""
Recalculation preview builder.

Asks the planner for a revision of the next upcoming sessions and stores
it on the plan as a pending preview. Nothing about the sessions changes
until the runner confirms.

Order of operations:
    1. Select the upcoming sessions (none -> no preview)
    2. Build the planner request and call the planner (failure propagates,
       nothing written)
    3. Ask for a runner-facing summary (failure -> default summary)
    4. Pair generated sessions to existing ones by calendar date
    5. Persist the preview in one transaction
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from core.clock import Clock, SystemClock, today
from models import TrainingPlan
from services.adaptation_history import DEFAULT_PREVIEW_SUMMARY
from services.ai_plan_generator import AIPlanGenerator, RecalculationRequest
from services.cycle_phase import CyclePhaseCalculator
from services.recalculation_request import (
    build_recalculation_request,
    recent_finished_sessions,
    upcoming_sessions,
)
from services.session_changes import build_session_changes, serialize_changes

logger = logging.getLogger(__name__)


@dataclass
class SummaryResult:
    text: str
    generated: bool  # False when the default text was used


def generate_summary(generator: AIPlanGenerator, request: RecalculationRequest, default: str) -> SummaryResult:
    """Runner-facing summary, or `default` when the planner cannot provide one."""
    try:
        text = generator.summarize(request)
    except Exception as e:
        logger.warning(f"Summary generation failed, using default: {type(e).__name__}: {e}")
        return SummaryResult(text=default, generated=False)

    if not text or not text.strip():
        logger.warning("Summary generation returned empty text, using default")
        return SummaryResult(text=default, generated=False)
    return SummaryResult(text=text.strip(), generated=True)


def build_preview(
    db: Session,
    plan: TrainingPlan,
    generator: AIPlanGenerator,
    clock: Optional[Clock] = None,
    oracle: Optional[CyclePhaseCalculator] = None,
) -> bool:
    """
    Generate and store a pending preview for `plan`.

    Returns False when there is nothing to revise or another preview landed
    first. Planner failures raise and leave the plan untouched.
    """
    clock = clock or SystemClock()
    current_day = today(clock)

    future = upcoming_sessions(db, plan.id, current_day)
    if not future:
        logger.info(f"No upcoming sessions to preview for plan {plan.id}")
        return False

    recent = recent_finished_sessions(db, plan.id)
    request = build_recalculation_request(db, plan, future, recent, current_day, oracle)

    logger.info(f"Requesting preview for plan {plan.id}: {len(future)} sessions, {len(recent)} recent")
    db.rollback()  # no transaction is held while the planner runs
    generated = generator.recalculate(request)
    summary = generate_summary(generator, request, DEFAULT_PREVIEW_SUMMARY)

    changes = build_session_changes(future, generated)

    locked = (
        db.query(TrainingPlan)
        .filter(TrainingPlan.id == plan.id)
        .with_for_update()
        .first()
    )
    if locked is None or not locked.is_active or locked.pending_confirmation:
        db.rollback()
        logger.info(f"Plan {plan.id} changed while the preview was generated; discarding it")
        return False

    now = clock.now()
    locked.pending_preview = serialize_changes(changes)
    locked.pending_summary = summary.text
    locked.preview_generated_at = now
    locked.pending_confirmation = True
    locked.confirmation_requested_at = now
    locked.confirmation_responded_at = None
    locked.confirmation_accepted = None
    db.commit()

    affected = sum(1 for c in changes if c.has_changes())
    logger.info(
        f"Preview stored for plan {plan.id}: {len(changes)} sessions, {affected} with changes "
        f"(summary {'generated' if summary.generated else 'default'})"
    )
    return True
