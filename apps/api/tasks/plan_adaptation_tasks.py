"""
Plan adaptation Celery tasks.

- tasks.check_plan_drift: enqueued after every session completion or skip.
  Runs the drift check and builds a preview when warranted. Never retried;
  the next completion runs it again.
- tasks.recalculate_plan: unconditional recalculation. Enqueued by the
  confirm endpoint for plans with no stored preview and by the
  recalculation endpoint. Retries with exponential backoff on any error.
- tasks.regenerate_plan_window: cycle-triggered regeneration for a plan,
  used when the API is asked to regenerate in the background.
"""

import logging
from datetime import date
from typing import Dict
from uuid import UUID

from celery import Task
from sqlalchemy.orm import Session

from tasks import celery_app
from core.database import get_db_sync

logger = logging.getLogger(__name__)


@celery_app.task(
    name="tasks.check_plan_drift",
    bind=True,
    max_retries=0,
    soft_time_limit=90,
    time_limit=120,
)
def check_plan_drift_task(self: Task, plan_id: str) -> Dict:
    """Run the drift check for one plan."""
    from services.ai_plan_generator import get_plan_generator
    from services.drift_detector import check_and_trigger
    from services.job_queue import CeleryJobQueue

    db: Session = get_db_sync()
    try:
        triggered = check_and_trigger(db, UUID(plan_id), get_plan_generator(), CeleryJobQueue())
        return {"status": "ok", "plan_id": plan_id, "preview_created": triggered}
    finally:
        db.close()


@celery_app.task(
    name="tasks.recalculate_plan",
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_jitter=True,
    max_retries=3,
    soft_time_limit=120,
    time_limit=180,
)
def recalculate_plan_task(self: Task, plan_id: str) -> Dict:
    """
    Recalculate and apply the plan's upcoming sessions.

    Errors propagate so Celery retries; the service has already cleared
    the plan's job id by then.
    """
    from services.ai_plan_generator import get_plan_generator
    from services.plan_recalculation import recalculate

    db: Session = get_db_sync()
    try:
        affected = recalculate(db, UUID(plan_id), get_plan_generator())
        logger.info(f"Recalculation task finished for plan {plan_id}: {affected} sessions changed")
        return {"status": "ok", "plan_id": plan_id, "sessions_changed": affected}
    finally:
        db.close()


@celery_app.task(
    name="tasks.regenerate_plan_window",
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    max_retries=2,
    soft_time_limit=120,
    time_limit=180,
)
def regenerate_plan_window_task(self: Task, plan_id: str, new_cycle_start: str, cycle_length: int) -> Dict:
    from services.ai_plan_generator import get_plan_generator
    from services.plan_regeneration import regenerate_window

    db: Session = get_db_sync()
    try:
        touched = regenerate_window(
            db,
            UUID(plan_id),
            date.fromisoformat(new_cycle_start),
            cycle_length,
            get_plan_generator(),
        )
        return {"status": "ok", "plan_id": plan_id, "sessions_regenerated": touched}
    finally:
        db.close()
