from sqlalchemy import Column, Integer, Boolean, Float, Date, DateTime, ForeignKey, JSON, Text, Uuid, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from core.database import Base
from enum import Enum
import uuid


class PlanStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class WorkoutType(str, Enum):
    EASY = "easy"
    LONG = "long"
    TEMPO = "tempo"
    INTERVAL = "interval"
    REST = "rest"


class IntensityLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class CyclePhase(str, Enum):
    MENSTRUAL = "menstrual"
    FOLLICULAR = "follicular"
    OVULATORY = "ovulatory"
    LUTEAL = "luteal"


class Runner(Base):
    """
    A runner's training and cycle profile.

    Cycle fields are optional: a runner without `last_period_start` and
    `cycle_length` gets plans without phase maps and is never eligible
    for cycle-triggered regeneration.
    """
    __tablename__ = "runner"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    display_name = Column(Text, nullable=True)

    fitness_level = Column(Text, default="intermediate", nullable=False)  # 'beginner', 'intermediate', 'advanced', 'elite'
    typical_weekly_mileage = Column(Float, nullable=True)  # km

    # Cycle tracking
    cycle_length = Column(Integer, nullable=True)  # days
    last_period_start = Column(Date, nullable=True)
    typical_cycle_regularity = Column(Text, nullable=True)  # 'regular', 'irregular', 'unknown'


class Race(Base):
    """A goal race a runner trains for."""
    __tablename__ = "race"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    runner_id = Column(Uuid, ForeignKey("runner.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    race_name = Column(Text, nullable=False)
    race_date = Column(Date, nullable=False)
    distance = Column(Float, nullable=False)  # km
    distance_type = Column(Text, nullable=False)  # '5k', '10k', 'half_marathon', 'marathon', 'custom'
    goal_time = Column(Text, nullable=True)  # e.g. "3:45:00"

    __table_args__ = (
        Index("ix_race_runner_id", "runner_id"),
    )


class TrainingPlan(Base):
    """
    Training plan for one race. One active plan per runner.

    Besides the plan facts this row carries the adaptation bookkeeping:
    - recalculation: last run, in-flight job id, last summary shown to the runner
    - preview: a proposed revision of upcoming sessions waiting for the
      runner to confirm or decline (`pending_preview` is the serialized
      SessionChange list)
    """
    __tablename__ = "training_plan"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    runner_id = Column(Uuid, ForeignKey("runner.id"), nullable=False)
    race_id = Column(Uuid, ForeignKey("race.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    name = Column(Text, nullable=False)
    status = Column(Text, default=PlanStatus.ACTIVE.value, nullable=False)  # 'active', 'archived'
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    generation_source = Column(Text, default="ai", nullable=False)  # 'ai', 'template'

    # Recalculation bookkeeping
    last_recalculated_at = Column(DateTime(timezone=True), nullable=True)
    last_recalculation_requested_at = Column(DateTime(timezone=True), nullable=True)
    last_recalculation_job_id = Column(Text, nullable=True)  # Set while a background recalculation may be in flight
    last_recalculation_summary = Column(Text, nullable=True)
    summary_viewed_at = Column(DateTime(timezone=True), nullable=True)

    # Pending preview bookkeeping
    pending_confirmation = Column(Boolean, default=False, nullable=False)
    pending_preview = Column(JSON(none_as_null=True), nullable=True)
    pending_summary = Column(Text, nullable=True)
    preview_generated_at = Column(DateTime(timezone=True), nullable=True)
    confirmation_requested_at = Column(DateTime(timezone=True), nullable=True)
    confirmation_responded_at = Column(DateTime(timezone=True), nullable=True)
    confirmation_accepted = Column(Boolean, nullable=True)

    runner = relationship("Runner")
    race = relationship("Race")
    sessions = relationship(
        "TrainingSession",
        back_populates="plan",
        order_by="TrainingSession.scheduled_date",
    )

    __table_args__ = (
        Index("ix_training_plan_runner_id", "runner_id"),
        Index("ix_training_plan_status", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == PlanStatus.ACTIVE.value


class TrainingSession(Base):
    """
    A single scheduled workout within a training plan.

    Recalculation and regeneration overwrite the workout attributes of
    future, unfinished sessions in place; the id never changes. Completed
    or skipped sessions are history and are only read.
    """
    __tablename__ = "training_session"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = Column(Uuid, ForeignKey("training_plan.id"), nullable=False)

    scheduled_date = Column(Date, nullable=False)

    # Workout definition
    session_name = Column(Text, nullable=False)
    workout_type = Column(Text, nullable=False)  # 'easy', 'long', 'tempo', 'interval', 'rest'
    warm_up = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=True)  # Null for rest days
    distance = Column(Float, nullable=True)  # km, null for rest days
    intensity_level = Column(Text, nullable=False, default=IntensityLevel.LOW.value)  # 'low', 'moderate', 'high'
    hr_zones = Column(Text, nullable=True)

    # Cycle-aware guidance
    cycle_phase = Column(Text, nullable=True)  # Null if cycle tracking disabled
    phase_guidance = Column(Text, nullable=True)

    # Execution tracking
    completed_at = Column(DateTime(timezone=True), nullable=True)  # Also stamped when skipped
    actual_distance = Column(Float, nullable=True)
    actual_duration = Column(Integer, nullable=True)
    rpe = Column(Integer, nullable=True)  # 1-10
    user_notes = Column(Text, nullable=True)
    is_skipped = Column(Boolean, default=False, nullable=False)
    skip_reason = Column(Text, nullable=True)
    was_modified = Column(Boolean, default=False, nullable=False)  # Actual deviated >20% from planned

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    plan = relationship("TrainingPlan", back_populates="sessions")

    __table_args__ = (
        Index("ix_training_session_plan_id", "plan_id"),
        Index("ix_training_session_scheduled_date", "scheduled_date"),
        Index("ix_training_session_plan_date", "plan_id", "scheduled_date"),
    )

    @property
    def is_finished(self) -> bool:
        """Completed or skipped; either way historical input only."""
        return self.completed_at is not None or self.is_skipped


class PlanAdaptationHistory(Base):
    """
    Append-only ledger of applied adaptations.

    `changes` is the exact SessionChange payload that was applied, so the
    audit trail matches what the runner was shown. Only `viewed_at` is
    ever written after creation.
    """
    __tablename__ = "plan_adaptation_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = Column(Uuid, ForeignKey("training_plan.id"), nullable=False)
    adapted_at = Column(DateTime(timezone=True), nullable=False)
    viewed_at = Column(DateTime(timezone=True), nullable=True)
    summary = Column(Text, nullable=False)
    sessions_affected_count = Column(Integer, nullable=False, default=0)
    trigger_reason = Column(Text, nullable=False)
    changes = Column(JSON, nullable=False, default=list)

    __table_args__ = (
        Index("ix_plan_adaptation_history_plan_id", "plan_id"),
        Index("ix_plan_adaptation_history_adapted_at", "adapted_at"),
    )


class CycleLog(Base):
    """One period report with prediction accuracy and whether it regenerated the plan."""
    __tablename__ = "cycle_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    runner_id = Column(Uuid, ForeignKey("runner.id"), nullable=False)
    reported_at = Column(DateTime(timezone=True), nullable=False)

    actual_period_start = Column(Date, nullable=True)
    actual_period_end = Column(Date, nullable=True)
    predicted_period_start = Column(Date, nullable=True)
    days_difference = Column(Integer, nullable=True)  # actual - predicted
    was_prediction_accurate = Column(Boolean, default=False, nullable=False)
    actual_cycle_length = Column(Integer, nullable=True)

    triggered_regeneration = Column(Boolean, default=False, nullable=False)
    affected_plan_id = Column(Uuid, ForeignKey("training_plan.id"), nullable=True)

    __table_args__ = (
        Index("ix_cycle_log_runner_id", "runner_id"),
    )
