from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import datetime, date
from uuid import UUID
from typing import Optional, List


class TrainingSessionResponse(BaseModel):
    id: UUID
    plan_id: UUID
    scheduled_date: date
    session_name: str
    workout_type: str
    warm_up: Optional[str] = None
    description: Optional[str] = None
    duration_minutes: Optional[int] = None
    distance: Optional[float] = None  # km
    intensity_level: str
    hr_zones: Optional[str] = None
    cycle_phase: Optional[str] = None
    phase_guidance: Optional[str] = None
    # Execution tracking
    completed_at: Optional[datetime] = None
    actual_distance: Optional[float] = None
    actual_duration: Optional[int] = None
    rpe: Optional[int] = None
    user_notes: Optional[str] = None
    is_skipped: bool = False
    skip_reason: Optional[str] = None
    was_modified: bool = False

    model_config = ConfigDict(from_attributes=True)


class TrainingPlanStateResponse(BaseModel):
    """Plan facts plus the adaptation bookkeeping the client needs to render banners."""
    id: UUID
    runner_id: UUID
    race_id: UUID
    name: str
    status: str
    start_date: date
    end_date: date
    # Recalculation
    last_recalculated_at: Optional[datetime] = None
    last_recalculation_requested_at: Optional[datetime] = None
    last_recalculation_job_id: Optional[str] = None
    last_recalculation_summary: Optional[str] = None
    summary_viewed_at: Optional[datetime] = None
    # Preview
    pending_confirmation: bool = False
    pending_summary: Optional[str] = None
    preview_generated_at: Optional[datetime] = None
    confirmation_requested_at: Optional[datetime] = None
    confirmation_responded_at: Optional[datetime] = None
    confirmation_accepted: Optional[bool] = None

    model_config = ConfigDict(from_attributes=True)


class SessionChangeResponse(BaseModel):
    session_id: UUID
    scheduled_date: date
    session_name: str
    old_distance: Optional[float] = None
    new_distance: Optional[float] = None
    old_duration: Optional[int] = None
    new_duration: Optional[int] = None
    old_workout_type: str
    new_workout_type: str
    old_intensity_level: str
    new_intensity_level: str
    has_changes: bool


class RecalculationPreviewResponse(BaseModel):
    plan_id: UUID
    summary: Optional[str] = None
    generated_at: Optional[datetime] = None
    sessions_affected_count: int
    changes: List[SessionChangeResponse]


class DriftCheckResponse(BaseModel):
    plan_id: UUID
    preview_created: bool


class PlanActionResponse(BaseModel):
    success: bool
    message: str


class RecalculationJobResponse(BaseModel):
    plan_id: UUID
    job_id: str
    status: str  # JobState value


class AdaptationHistoryResponse(BaseModel):
    id: UUID
    plan_id: UUID
    adapted_at: datetime
    viewed_at: Optional[datetime] = None
    summary: str
    sessions_affected_count: int
    trigger_reason: str
    changes: List[dict]

    model_config = ConfigDict(from_attributes=True)


class RegenerationRequest(BaseModel):
    background: bool = False  # Enqueue tasks.regenerate_plan_window instead of running inline


class RegenerationResponse(BaseModel):
    plan_id: UUID
    sessions_regenerated: Optional[int] = None
    job_id: Optional[str] = None


class RegenerationEligibilityResponse(BaseModel):
    plan_id: UUID
    can_regenerate: bool


class CompleteSessionRequest(BaseModel):
    actual_distance: Optional[float] = Field(default=None, ge=0)  # km
    actual_duration: Optional[int] = Field(default=None, ge=0)  # minutes
    rpe: Optional[int] = Field(default=None, ge=1, le=10)
    user_notes: Optional[str] = Field(default=None, max_length=2000)


class SkipSessionRequest(BaseModel):
    skip_reason: Optional[str] = Field(default=None, max_length=500)


class SessionCompletionResponse(BaseModel):
    success: bool
    session: TrainingSessionResponse
    drift_check_job_id: Optional[str] = None


class ReportPeriodRequest(BaseModel):
    period_start: Optional[date] = None
    period_end: Optional[date] = None

    @model_validator(mode="after")
    def _require_a_date(self):
        if self.period_start is None and self.period_end is None:
            raise ValueError("period_start or period_end is required")
        if self.period_start and self.period_end and self.period_end < self.period_start:
            raise ValueError("period_end must not be before period_start")
        return self


class CycleLogResponse(BaseModel):
    id: UUID
    runner_id: UUID
    reported_at: datetime
    actual_period_start: Optional[date] = None
    actual_period_end: Optional[date] = None
    predicted_period_start: Optional[date] = None
    days_difference: Optional[int] = None
    was_prediction_accurate: bool
    actual_cycle_length: Optional[int] = None
    triggered_regeneration: bool
    affected_plan_id: Optional[UUID] = None

    model_config = ConfigDict(from_attributes=True)


class ReportPeriodResponse(BaseModel):
    cycle_log: CycleLogResponse
    triggered_regeneration: bool
    sessions_regenerated: int = 0
    affected_plan_id: Optional[UUID] = None


class CyclePositionResponse(BaseModel):
    day_in_cycle: int
    cycle_length: int
    current_phase: str
    last_period_start: date
    next_predicted_period: date
    days_until_next_period: int
    phase_guidance: str
