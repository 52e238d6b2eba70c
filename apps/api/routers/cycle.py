"""
Cycle tracking endpoints: current cycle position and period reports.
"""
from uuid import UUID

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.clock import Clock
from core.database import get_db
from core.dependencies import get_clock, get_plan_generator
from core.exceptions import NotFoundError
from schemas import CycleLogResponse, CyclePositionResponse, ReportPeriodRequest, ReportPeriodResponse
from services.ai_plan_generator import AIPlanGenerator
from services.cycle_tracking import current_position, report_period


router = APIRouter(prefix="/v1/runners", tags=["Cycle Tracking"])
logger = logging.getLogger(__name__)


@router.get("/{runner_id}/cycle", response_model=CyclePositionResponse)
def get_cycle_position(
    runner_id: UUID,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    position = current_position(db, runner_id, clock=clock)
    if position is None:
        raise NotFoundError("Cycle data for runner", str(runner_id))
    return CyclePositionResponse(
        day_in_cycle=position.day_in_cycle,
        cycle_length=position.cycle_length,
        current_phase=position.current_phase.value,
        last_period_start=position.last_period_start,
        next_predicted_period=position.next_predicted_period,
        days_until_next_period=position.days_until_next_period,
        phase_guidance=position.phase_guidance,
    )


@router.post("/{runner_id}/cycle/period", response_model=ReportPeriodResponse)
def report_period_start(
    runner_id: UUID,
    request: ReportPeriodRequest,
    db: Session = Depends(get_db),
    generator: AIPlanGenerator = Depends(get_plan_generator),
    clock: Clock = Depends(get_clock),
):
    """Record a period report; may regenerate the active plan's upcoming weeks."""
    result = report_period(
        db,
        runner_id,
        generator,
        period_start=request.period_start,
        period_end=request.period_end,
        clock=clock,
    )
    if result is None:
        raise NotFoundError("Runner", str(runner_id))
    return ReportPeriodResponse(
        cycle_log=CycleLogResponse.model_validate(result.cycle_log),
        triggered_regeneration=result.triggered_regeneration,
        sessions_regenerated=result.sessions_regenerated,
        affected_plan_id=result.affected_plan_id,
    )
