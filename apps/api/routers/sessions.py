"""
Training session completion endpoints.

Completing or skipping a session enqueues a drift check for its plan.
"""
from typing import Optional
from uuid import UUID

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.clock import Clock
from core.database import get_db
from core.dependencies import get_clock, get_job_queue
from core.exceptions import NotFoundError
from schemas import CompleteSessionRequest, SessionCompletionResponse, SkipSessionRequest, TrainingSessionResponse
from services.job_queue import JobQueue
from services.session_completion import complete_session, skip_session


router = APIRouter(prefix="/v1/sessions", tags=["Training Sessions"])
logger = logging.getLogger(__name__)


@router.post("/{session_id}/complete", response_model=SessionCompletionResponse)
def complete_training_session(
    session_id: UUID,
    request: CompleteSessionRequest,
    db: Session = Depends(get_db),
    job_queue: JobQueue = Depends(get_job_queue),
    clock: Clock = Depends(get_clock),
):
    result = complete_session(
        db,
        session_id,
        job_queue,
        actual_distance=request.actual_distance,
        actual_duration=request.actual_duration,
        rpe=request.rpe,
        user_notes=request.user_notes,
        clock=clock,
    )
    if not result.success:
        raise NotFoundError("Training session", str(session_id))
    return SessionCompletionResponse(
        success=True,
        session=TrainingSessionResponse.model_validate(result.session),
        drift_check_job_id=result.drift_check_job_id,
    )


@router.post("/{session_id}/skip", response_model=SessionCompletionResponse)
def skip_training_session(
    session_id: UUID,
    request: Optional[SkipSessionRequest] = None,
    db: Session = Depends(get_db),
    job_queue: JobQueue = Depends(get_job_queue),
    clock: Clock = Depends(get_clock),
):
    result = skip_session(
        db,
        session_id,
        job_queue,
        skip_reason=request.skip_reason if request else None,
        clock=clock,
    )
    if not result.success:
        raise NotFoundError("Training session", str(session_id))
    return SessionCompletionResponse(
        success=True,
        session=TrainingSessionResponse.model_validate(result.session),
        drift_check_job_id=result.drift_check_job_id,
    )
