"""
Session changes: the unit of a proposed or applied plan revision.

A SessionChange pairs one upcoming session with the values the planner
proposed for it. Previews store a serialized list of these on the plan,
history entries store the list that was applied, and both confirm and
unconditional recalculation write sessions through `apply_session_changes`.
"""

import logging
from datetime import date, datetime
from typing import Any, Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.orm import Session

from models import TrainingSession
from services.ai_plan_generator import GeneratedPlan

logger = logging.getLogger(__name__)


class SessionChange(BaseModel):
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

    def has_changes(self) -> bool:
        return (
            self.old_distance != self.new_distance
            or self.old_duration != self.new_duration
            or self.old_workout_type != self.new_workout_type
            or self.old_intensity_level != self.new_intensity_level
        )


def serialize_changes(changes: Iterable[SessionChange]) -> List[dict]:
    """JSON-ready payload for the plan preview and the history ledger."""
    return [c.model_dump(mode="json") for c in changes]


def deserialize_changes(payload: Optional[List[Any]]) -> List[SessionChange]:
    if not payload:
        return []
    return [SessionChange.model_validate(item) for item in payload]


def build_session_changes(
    sessions: List[TrainingSession],
    generated: GeneratedPlan,
) -> List[SessionChange]:
    """
    Pair each upcoming session with the generated session on the same date.

    Sessions without a generated counterpart keep their current values, so
    their change reports has_changes() == False.
    """
    changes: List[SessionChange] = []
    for session in sessions:
        proposed = generated.session_for(session.scheduled_date)
        if proposed is None:
            changes.append(SessionChange(
                session_id=session.id,
                scheduled_date=session.scheduled_date,
                session_name=session.session_name,
                old_distance=session.distance,
                new_distance=session.distance,
                old_duration=session.duration_minutes,
                new_duration=session.duration_minutes,
                old_workout_type=session.workout_type,
                new_workout_type=session.workout_type,
                old_intensity_level=session.intensity_level,
                new_intensity_level=session.intensity_level,
            ))
            continue

        changes.append(SessionChange(
            session_id=session.id,
            scheduled_date=session.scheduled_date,
            session_name=proposed.session_name,
            old_distance=session.distance,
            new_distance=proposed.distance,
            old_duration=session.duration_minutes,
            new_duration=proposed.duration_minutes,
            old_workout_type=session.workout_type,
            new_workout_type=proposed.workout_type.value,
            old_intensity_level=session.intensity_level,
            new_intensity_level=proposed.intensity_level.value,
        ))
    return changes


def apply_session_changes(
    db: Session,
    plan_id: UUID,
    changes: List[SessionChange],
    now: datetime,
) -> int:
    """
    Write each change onto its session by id. Does not commit.

    Raises LookupError if a change names a session that is not in the plan.
    Sessions finished since the change was proposed are left untouched.
    Returns the number of changes that actually altered a workout.
    """
    if not changes:
        return 0

    ids = [c.session_id for c in changes]
    sessions = (
        db.query(TrainingSession)
        .filter(TrainingSession.plan_id == plan_id, TrainingSession.id.in_(ids))
        .all()
    )
    by_id = {s.id: s for s in sessions}

    for change in changes:
        session = by_id.get(change.session_id)
        if session is None:
            raise LookupError(f"Session {change.session_id} not found in plan {plan_id}")
        if session.is_finished:
            logger.info(f"Session {session.id} finished since the change was proposed; leaving it as recorded")
            continue

        session.session_name = change.session_name
        session.distance = change.new_distance
        session.duration_minutes = change.new_duration
        session.workout_type = change.new_workout_type
        session.intensity_level = change.new_intensity_level
        session.updated_at = now

    db.flush()
    return sum(1 for c in changes if c.has_changes())
