"""
Plan adaptation scenario helpers.

Factories for runners, races, plans and sessions, plus in-process
stand-ins for the planner, the job queue and the clock. Nothing here
talks to Gemini, Celery or Redis.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

from models import Race, Runner, TrainingPlan, TrainingSession
from services.ai_plan_generator import GeneratedPlan, GeneratedSession
from services.job_queue import JobState


TODAY = date(2026, 3, 10)
NOW = datetime(2026, 3, 10, 9, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------

class FixedClock:
    def __init__(self, now: datetime = NOW):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs) -> None:
        self._now = self._now + timedelta(**kwargs)


class FakePlanGenerator:
    """Planner returning canned sessions; records every request it saw."""

    def __init__(
        self,
        sessions: Optional[List[GeneratedSession]] = None,
        summary: Optional[str] = "Your plan was eased back for the coming week.",
        recalculate_error: Optional[Exception] = None,
        generate_error: Optional[Exception] = None,
        summary_error: Optional[Exception] = None,
    ):
        self.sessions = sessions or []
        self.summary = summary
        self.recalculate_error = recalculate_error
        self.generate_error = generate_error
        self.summary_error = summary_error
        self.recalculate_requests = []
        self.generate_requests = []
        self.summary_requests = []

    def generate(self, request):
        self.generate_requests.append(request)
        if self.generate_error:
            raise self.generate_error
        return GeneratedPlan(sessions=self.sessions)

    def recalculate(self, request):
        self.recalculate_requests.append(request)
        if self.recalculate_error:
            raise self.recalculate_error
        return GeneratedPlan(sessions=self.sessions)

    def summarize(self, request):
        self.summary_requests.append(request)
        if self.summary_error:
            raise self.summary_error
        return self.summary


class TransactionRecordingGenerator(FakePlanGenerator):
    """Notes whether `db` had an open transaction on every planner call."""

    def __init__(self, db, **kwargs):
        super().__init__(**kwargs)
        self.db = db
        self.in_transaction = []

    def generate(self, request):
        self.in_transaction.append(self.db.in_transaction())
        return super().generate(request)

    def recalculate(self, request):
        self.in_transaction.append(self.db.in_transaction())
        return super().recalculate(request)

    def summarize(self, request):
        self.in_transaction.append(self.db.in_transaction())
        return super().summarize(request)


class InMemoryJobQueue:
    """JobQueue keeping jobs in a list; states can be set per job id."""

    def __init__(self, enqueue_error: Optional[Exception] = None, state_error: Optional[Exception] = None):
        self.jobs = []
        self.states: Dict[str, JobState] = {}
        self.enqueue_error = enqueue_error
        self.state_error = state_error

    def enqueue(self, task, *args, **kwargs) -> str:
        if self.enqueue_error:
            raise self.enqueue_error
        job_id = f"job-{len(self.jobs) + 1}"
        self.jobs.append({"id": job_id, "task": task.name, "args": args, "kwargs": kwargs})
        self.states[job_id] = JobState.ENQUEUED
        return job_id

    def get_state(self, job_id: str) -> JobState:
        if self.state_error:
            raise self.state_error
        return self.states.get(job_id, JobState.UNKNOWN)

    def task_names(self) -> List[str]:
        return [job["task"] for job in self.jobs]


def generated_session(on: date, **overrides) -> GeneratedSession:
    values = dict(
        session_name="Recovery Run",
        scheduled_date=on,
        workout_type="easy",
        intensity_level="low",
        duration_minutes=25,
        distance=4.0,
    )
    values.update(overrides)
    return GeneratedSession(**values)


# ---------------------------------------------------------------------------
# Database factories
# ---------------------------------------------------------------------------

def make_runner(db, cycle_length: Optional[int] = None, last_period_start: Optional[date] = None, **kwargs) -> Runner:
    runner = Runner(
        display_name=kwargs.pop("display_name", "Test Runner"),
        fitness_level=kwargs.pop("fitness_level", "intermediate"),
        typical_weekly_mileage=kwargs.pop("typical_weekly_mileage", 30.0),
        cycle_length=cycle_length,
        last_period_start=last_period_start,
        **kwargs,
    )
    db.add(runner)
    db.commit()
    return runner


def make_race(db, runner: Runner, race_date: date = TODAY + timedelta(days=60)) -> Race:
    race = Race(
        runner_id=runner.id,
        race_name="Spring Half",
        race_date=race_date,
        distance=21.1,
        distance_type="half_marathon",
        goal_time="1:55:00",
    )
    db.add(race)
    db.commit()
    return race


def make_plan(db, runner: Runner, race: Optional[Race] = None, start_date: date = TODAY - timedelta(days=21), **kwargs) -> TrainingPlan:
    race = race or make_race(db, runner)
    plan = TrainingPlan(
        runner_id=runner.id,
        race_id=race.id,
        name="Spring Half Plan",
        status=kwargs.pop("status", "active"),
        start_date=start_date,
        end_date=race.race_date,
        **kwargs,
    )
    db.add(plan)
    db.commit()
    return plan


def add_session(
    db,
    plan: TrainingPlan,
    scheduled_date: date,
    workout_type: str = "easy",
    distance: Optional[float] = 6.0,
    duration_minutes: Optional[int] = 40,
    intensity_level: str = "low",
    completed: bool = False,
    skipped: bool = False,
    modified: bool = False,
    commit: bool = True,
) -> TrainingSession:
    session = TrainingSession(
        plan_id=plan.id,
        scheduled_date=scheduled_date,
        session_name=f"{workout_type.title()} Run",
        workout_type=workout_type,
        distance=distance,
        duration_minutes=duration_minutes,
        intensity_level=intensity_level,
        is_skipped=skipped,
        was_modified=modified,
    )
    if completed or skipped:
        session.completed_at = datetime.combine(scheduled_date, datetime.min.time(), tzinfo=timezone.utc)
    if completed and not modified:
        session.actual_distance = distance
        session.actual_duration = duration_minutes
    db.add(session)
    if commit:
        db.commit()
    return session


def seed_history(db, plan: TrainingPlan, finished: int = 7, skipped: int = 0, modified: int = 0) -> List[TrainingSession]:
    """`finished` sessions on the days before TODAY; the oldest ones are skipped, then modified."""
    sessions = []
    for i in range(finished):
        on = TODAY - timedelta(days=finished - i)
        sessions.append(add_session(
            db,
            plan,
            on,
            completed=i >= skipped,
            skipped=i < skipped,
            modified=skipped <= i < skipped + modified,
            commit=False,
        ))
    db.commit()
    return sessions


def seed_upcoming(db, plan: TrainingPlan, count: int = 7, first: date = TODAY + timedelta(days=1)) -> List[TrainingSession]:
    sessions = [
        add_session(db, plan, first + timedelta(days=i), commit=False)
        for i in range(count)
    ]
    db.commit()
    return sessions
