"""
Plan Drift Detector

Decides whether a runner's recent sessions show enough deviation from the
plan to warrant a recalculation preview, and if so asks the preview
builder for one.

A session is off-track when it was skipped or its actuals deviated from
the plan (was_modified). The decision looks at the most recent finished
sessions only:

    off_track_ratio = off_track / qualifying
    trigger when qualifying >= min_qualifying and ratio >= threshold

Even when the ratio triggers, no preview is built while one is already
waiting for the runner or while a recalculation job recorded on the plan
is still queued or running.

Everything here returns a plain bool. A failed preview build is logged
and reported as False; the check runs after every session completion and
must never fail the caller.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import Clock, SystemClock, as_utc, today
from core.config import settings
from models import TrainingPlan, TrainingSession
from services.ai_plan_generator import AIPlanGenerator
from services.cycle_phase import CyclePhaseCalculator
from services.job_queue import JobQueue
from services.preview_builder import build_preview
from services.recalculation_request import recent_finished_sessions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DriftPolicy:
    lookback_sessions: int = 7
    min_qualifying_sessions: int = 3
    off_track_threshold: float = 0.20
    cooldown_enabled: bool = False
    cooldown_days: int = 7
    early_plan_exemption_enabled: bool = False
    early_plan_days: int = 14

    @classmethod
    def from_settings(cls) -> "DriftPolicy":
        return cls(
            lookback_sessions=settings.ADAPTATION_LOOKBACK_SESSIONS,
            min_qualifying_sessions=settings.ADAPTATION_MIN_QUALIFYING_SESSIONS,
            off_track_threshold=settings.ADAPTATION_OFF_TRACK_THRESHOLD,
            cooldown_enabled=settings.ADAPTATION_COOLDOWN_ENABLED,
            cooldown_days=settings.ADAPTATION_COOLDOWN_DAYS,
            early_plan_exemption_enabled=settings.ADAPTATION_EARLY_PLAN_EXEMPTION_ENABLED,
            early_plan_days=settings.ADAPTATION_EARLY_PLAN_DAYS,
        )


@dataclass
class DriftAssessment:
    qualifying: int
    off_track: int
    triggered: bool
    reason: str

    @property
    def off_track_ratio(self) -> float:
        if self.qualifying == 0:
            return 0.0
        return self.off_track / self.qualifying


def assess_drift(sessions: List[TrainingSession], policy: DriftPolicy) -> DriftAssessment:
    """Pure ratio check over already-selected finished sessions."""
    qualifying = len(sessions)
    off_track = sum(1 for s in sessions if s.is_skipped or s.was_modified)

    if qualifying < policy.min_qualifying_sessions:
        return DriftAssessment(
            qualifying, off_track, False,
            f"only {qualifying} sessions logged, need {policy.min_qualifying_sessions}",
        )

    ratio = off_track / qualifying
    if ratio < policy.off_track_threshold:
        return DriftAssessment(
            qualifying, off_track, False,
            f"{off_track}/{qualifying} off-track ({ratio:.0%}) below {policy.off_track_threshold:.0%}",
        )

    return DriftAssessment(qualifying, off_track, True, f"{off_track}/{qualifying} off-track ({ratio:.0%})")


def _policy_blocks(plan: TrainingPlan, policy: DriftPolicy, clock: Clock) -> Optional[str]:
    now = clock.now()
    if policy.cooldown_enabled and plan.last_recalculated_at is not None:
        since = now - as_utc(plan.last_recalculated_at)
        if since < timedelta(days=policy.cooldown_days):
            return f"last recalculation {since.days} days ago, cool-down active"

    if policy.early_plan_exemption_enabled:
        age_days = (today(clock) - plan.start_date).days
        if age_days < policy.early_plan_days:
            return f"plan is only {age_days} days old"

    return None


def _recalculation_in_flight(plan: TrainingPlan, job_queue: JobQueue) -> bool:
    job_id = plan.last_recalculation_job_id
    if not job_id:
        return False
    try:
        state = job_queue.get_state(job_id)
    except Exception as e:
        # Queue unreachable: the recorded job cannot be confirmed alive
        logger.warning(f"Error checking job state for {job_id}: {type(e).__name__}: {e}")
        return False

    if state.in_flight:
        logger.info(f"Recalculation already in progress for plan {plan.id} (job {job_id}, {state.value})")
        return True
    return False


def check_and_trigger(
    db: Session,
    plan_id: UUID,
    generator: AIPlanGenerator,
    job_queue: JobQueue,
    clock: Optional[Clock] = None,
    policy: Optional[DriftPolicy] = None,
    oracle: Optional[CyclePhaseCalculator] = None,
) -> bool:
    """
    Run the drift check for one plan and build a preview when warranted.

    Returns True only when a new preview was stored.
    """
    clock = clock or SystemClock()
    policy = policy or DriftPolicy.from_settings()

    plan = db.get(TrainingPlan, plan_id)
    if plan is None or not plan.is_active:
        logger.info(f"Plan {plan_id} not found or not active; skipping drift check")
        return False

    sessions = recent_finished_sessions(db, plan.id, policy.lookback_sessions)
    assessment = assess_drift(sessions, policy)
    if not assessment.triggered:
        logger.info(f"Plan {plan_id}: no recalculation ({assessment.reason})")
        return False
    logger.info(f"Plan {plan_id}: drift detected, {assessment.reason}")

    blocked = _policy_blocks(plan, policy, clock)
    if blocked:
        logger.info(f"Plan {plan_id}: recalculation deferred, {blocked}")
        return False

    if plan.pending_confirmation:
        logger.info(f"Plan {plan_id}: preview already awaiting confirmation")
        return False

    if _recalculation_in_flight(plan, job_queue):
        return False

    try:
        return build_preview(db, plan, generator, clock=clock, oracle=oracle)
    except Exception as e:
        db.rollback()
        logger.error(f"Preview generation failed for plan {plan_id}: {type(e).__name__}: {e}", exc_info=True)
        return False
