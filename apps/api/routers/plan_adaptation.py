"""
Plan adaptation endpoints.

Drift check, the recalculation preview/confirm/decline flow, unconditional
recalculation jobs, adaptation history, and cycle-triggered regeneration.
"""
from typing import List, Optional
from uuid import UUID

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.clock import Clock
from core.database import get_db
from core.dependencies import get_clock, get_job_queue, get_plan_generator
from core.exceptions import ConflictError, NotFoundError, PlanRegenerationError, ServiceUnavailableError
from models import Runner, TrainingPlan
from schemas import (
    AdaptationHistoryResponse,
    DriftCheckResponse,
    PlanActionResponse,
    RecalculationJobResponse,
    RecalculationPreviewResponse,
    RegenerationEligibilityResponse,
    RegenerationRequest,
    RegenerationResponse,
    SessionChangeResponse,
    TrainingPlanStateResponse,
)
from services import adaptation_history, plan_confirmation
from services.ai_plan_generator import AIPlanGenerator
from services.drift_detector import check_and_trigger
from services.job_queue import JobQueue, JobState
from services.plan_recalculation import request_recalculation
from services.plan_regeneration import can_regenerate, regenerate_window
from services.session_changes import deserialize_changes


router = APIRouter(prefix="/v1/plans", tags=["Plan Adaptation"])
logger = logging.getLogger(__name__)


def _get_plan_or_404(db: Session, plan_id: UUID) -> TrainingPlan:
    plan = db.get(TrainingPlan, plan_id)
    if plan is None:
        raise NotFoundError("Training plan", str(plan_id))
    return plan


@router.get("/{plan_id}", response_model=TrainingPlanStateResponse)
def get_plan_state(plan_id: UUID, db: Session = Depends(get_db)):
    return _get_plan_or_404(db, plan_id)


# =============================================================================
# Recalculation preview flow
# =============================================================================

@router.post("/{plan_id}/recalculation/check", response_model=DriftCheckResponse)
def check_plan_drift(
    plan_id: UUID,
    db: Session = Depends(get_db),
    generator: AIPlanGenerator = Depends(get_plan_generator),
    job_queue: JobQueue = Depends(get_job_queue),
    clock: Clock = Depends(get_clock),
):
    """Run the drift check now. preview_created is False when no new preview was stored."""
    _get_plan_or_404(db, plan_id)
    created = check_and_trigger(db, plan_id, generator, job_queue, clock=clock)
    return DriftCheckResponse(plan_id=plan_id, preview_created=created)


@router.get("/{plan_id}/recalculation/preview", response_model=RecalculationPreviewResponse)
def get_recalculation_preview(plan_id: UUID, db: Session = Depends(get_db)):
    plan = _get_plan_or_404(db, plan_id)
    if not plan.pending_confirmation or plan.pending_preview is None:
        raise NotFoundError("Pending preview for plan", str(plan_id))

    changes = deserialize_changes(plan.pending_preview)
    return RecalculationPreviewResponse(
        plan_id=plan.id,
        summary=plan.pending_summary,
        generated_at=plan.preview_generated_at,
        sessions_affected_count=sum(1 for c in changes if c.has_changes()),
        changes=[
            SessionChangeResponse(**c.model_dump(), has_changes=c.has_changes())
            for c in changes
        ],
    )


@router.post("/{plan_id}/recalculation/confirm", response_model=PlanActionResponse)
def confirm_recalculation(
    plan_id: UUID,
    db: Session = Depends(get_db),
    job_queue: JobQueue = Depends(get_job_queue),
    clock: Clock = Depends(get_clock),
):
    _get_plan_or_404(db, plan_id)
    if not plan_confirmation.confirm(db, plan_id, job_queue, clock=clock):
        raise ConflictError("No pending recalculation to confirm")
    return PlanActionResponse(success=True, message="Recalculation applied")


@router.post("/{plan_id}/recalculation/decline", response_model=PlanActionResponse)
def decline_recalculation(
    plan_id: UUID,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    _get_plan_or_404(db, plan_id)
    if not plan_confirmation.decline(db, plan_id, clock=clock):
        raise ConflictError("No pending recalculation to decline")
    return PlanActionResponse(success=True, message="Recalculation declined")


@router.post("/{plan_id}/recalculation/summary/viewed", response_model=PlanActionResponse)
def mark_summary_viewed(
    plan_id: UUID,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    _get_plan_or_404(db, plan_id)
    if not adaptation_history.mark_summary_viewed(db, plan_id, clock.now()):
        raise ConflictError("Plan has no recalculation summary")
    return PlanActionResponse(success=True, message="Summary marked as viewed")


# =============================================================================
# Unconditional recalculation jobs
# =============================================================================

@router.post("/{plan_id}/recalculation", response_model=RecalculationJobResponse, status_code=202)
def enqueue_recalculation(
    plan_id: UUID,
    db: Session = Depends(get_db),
    job_queue: JobQueue = Depends(get_job_queue),
    clock: Clock = Depends(get_clock),
):
    plan = _get_plan_or_404(db, plan_id)
    if not plan.is_active:
        raise ConflictError("Plan is not active")
    try:
        job_id = request_recalculation(db, plan_id, job_queue, clock=clock)
    except Exception as e:
        logger.error(f"Failed to enqueue recalculation for plan {plan_id}: {e}")
        raise ServiceUnavailableError("Could not queue recalculation")
    if job_id is None:
        raise ConflictError("Recalculation already in progress")
    return RecalculationJobResponse(plan_id=plan_id, job_id=job_id, status=JobState.ENQUEUED.value)


@router.get("/{plan_id}/recalculation/status", response_model=RecalculationJobResponse)
def get_recalculation_status(
    plan_id: UUID,
    db: Session = Depends(get_db),
    job_queue: JobQueue = Depends(get_job_queue),
):
    plan = _get_plan_or_404(db, plan_id)
    if not plan.last_recalculation_job_id:
        raise NotFoundError("Recalculation job for plan", str(plan_id))
    try:
        state = job_queue.get_state(plan.last_recalculation_job_id)
    except Exception as e:
        logger.error(f"Failed to read recalculation job state for plan {plan_id}: {e}")
        raise ServiceUnavailableError("Could not read recalculation status")
    return RecalculationJobResponse(plan_id=plan_id, job_id=plan.last_recalculation_job_id, status=state.value)


# =============================================================================
# Adaptation history
# =============================================================================

@router.get("/{plan_id}/adaptations", response_model=List[AdaptationHistoryResponse])
def list_adaptations(
    plan_id: UUID,
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    _get_plan_or_404(db, plan_id)
    return adaptation_history.list_history(db, plan_id, limit=limit)


@router.post("/{plan_id}/adaptations/{history_id}/viewed", response_model=PlanActionResponse)
def mark_adaptation_viewed(
    plan_id: UUID,
    history_id: UUID,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    if not adaptation_history.mark_viewed(db, history_id, clock.now(), plan_id=plan_id):
        raise NotFoundError("Adaptation", str(history_id))
    return PlanActionResponse(success=True, message="Adaptation marked as viewed")


# =============================================================================
# Cycle-triggered regeneration
# =============================================================================

@router.get("/{plan_id}/regeneration/eligibility", response_model=RegenerationEligibilityResponse)
def get_regeneration_eligibility(
    plan_id: UUID,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    _get_plan_or_404(db, plan_id)
    return RegenerationEligibilityResponse(plan_id=plan_id, can_regenerate=can_regenerate(db, plan_id, clock=clock))


@router.post("/{plan_id}/regeneration", response_model=RegenerationResponse)
def regenerate_plan(
    plan_id: UUID,
    request: Optional[RegenerationRequest] = None,
    db: Session = Depends(get_db),
    generator: AIPlanGenerator = Depends(get_plan_generator),
    job_queue: JobQueue = Depends(get_job_queue),
    clock: Clock = Depends(get_clock),
):
    """Regenerate the upcoming window from the runner's current cycle data."""
    plan = _get_plan_or_404(db, plan_id)
    if not can_regenerate(db, plan_id, clock=clock):
        raise ConflictError("Plan is not eligible for regeneration")

    runner = db.get(Runner, plan.runner_id)
    if request is not None and request.background:
        from tasks.plan_adaptation_tasks import regenerate_plan_window_task

        try:
            job_id = job_queue.enqueue(
                regenerate_plan_window_task,
                str(plan_id),
                runner.last_period_start.isoformat(),
                runner.cycle_length,
            )
        except Exception as e:
            logger.error(f"Failed to enqueue regeneration for plan {plan_id}: {e}")
            raise ServiceUnavailableError("Could not queue regeneration")
        return RegenerationResponse(plan_id=plan_id, job_id=job_id)

    try:
        touched = regenerate_window(
            db, plan_id, runner.last_period_start, runner.cycle_length, generator, clock=clock
        )
    except PlanRegenerationError as e:
        raise ServiceUnavailableError(str(e))
    return RegenerationResponse(plan_id=plan_id, sessions_regenerated=touched)
