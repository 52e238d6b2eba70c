"""
Drift detector tests.

Covers the off-track ratio, the pending-preview and in-flight job gates,
the optional cool-down and early-plan gates, and failure isolation: a
planner failure must leave the plan exactly as it was.
"""
from datetime import timedelta

import pytest

from core.exceptions import PlanGenerationError
from models import TrainingPlan
from services.drift_detector import DriftPolicy, assess_drift, check_and_trigger
from services.job_queue import JobState

from plan_scenario_helpers import (
    NOW,
    TODAY,
    FakePlanGenerator,
    generated_session,
    make_plan,
    make_runner,
    seed_history,
    seed_upcoming,
)


@pytest.fixture
def plan(db_session):
    runner = make_runner(db_session)
    return make_plan(db_session, runner)


def _check(db_session, plan, generator, job_queue, clock, policy=None):
    return check_and_trigger(db_session, plan.id, generator, job_queue, clock=clock, policy=policy)


class TestAssessDrift:
    def test_two_of_seven_triggers(self, db_session, plan):
        sessions = seed_history(db_session, plan, finished=7, skipped=1, modified=1)
        result = assess_drift(sessions, DriftPolicy())
        assert result.triggered
        assert result.off_track == 2
        assert result.off_track_ratio == pytest.approx(2 / 7)

    def test_one_of_seven_does_not_trigger(self, db_session, plan):
        sessions = seed_history(db_session, plan, finished=7, skipped=1)
        assert not assess_drift(sessions, DriftPolicy()).triggered

    def test_too_few_sessions(self, db_session, plan):
        sessions = seed_history(db_session, plan, finished=2, skipped=2)
        result = assess_drift(sessions, DriftPolicy())
        assert not result.triggered
        assert result.qualifying == 2

    def test_exact_threshold_triggers(self, db_session, plan):
        sessions = seed_history(db_session, plan, finished=5, skipped=1)
        assert assess_drift(sessions, DriftPolicy()).triggered


class TestCheckAndTrigger:
    def test_builds_preview_when_drifting(self, db_session, plan, generator, job_queue, clock):
        seed_history(db_session, plan, finished=7, skipped=2)
        seed_upcoming(db_session, plan, count=7)

        assert _check(db_session, plan, generator, job_queue, clock) is True

        db_session.refresh(plan)
        assert plan.pending_confirmation is True
        assert len(plan.pending_preview) == 7
        assert plan.pending_summary == generator.summary
        assert len(generator.recalculate_requests) == 1

    def test_on_track_plan_is_left_alone(self, db_session, plan, generator, job_queue, clock):
        seed_history(db_session, plan, finished=7, skipped=1)
        seed_upcoming(db_session, plan)

        assert _check(db_session, plan, generator, job_queue, clock) is False
        assert generator.recalculate_requests == []

    def test_too_few_sessions_leave_plan_unchanged(self, db_session, plan, generator, job_queue, clock):
        seed_history(db_session, plan, finished=2, skipped=2)
        seed_upcoming(db_session, plan)

        assert _check(db_session, plan, generator, job_queue, clock) is False
        assert generator.recalculate_requests == []
        assert generator.summary_requests == []
        assert job_queue.jobs == []

        stored = db_session.get(TrainingPlan, plan.id)
        db_session.refresh(stored)
        assert stored.pending_confirmation is False
        assert stored.pending_preview is None
        assert stored.pending_summary is None
        assert stored.preview_generated_at is None
        assert stored.confirmation_requested_at is None
        assert stored.last_recalculated_at is None
        assert stored.last_recalculation_job_id is None

    def test_skipped_future_session_counts(self, db_session, plan, generator, job_queue, clock):
        seed_history(db_session, plan, finished=3)
        upcoming = seed_upcoming(db_session, plan, count=4)
        upcoming[0].is_skipped = True
        upcoming[0].completed_at = NOW
        db_session.commit()

        assert _check(db_session, plan, generator, job_queue, clock) is True

    def test_pending_preview_blocks(self, db_session, plan, generator, job_queue, clock):
        seed_history(db_session, plan, finished=7, skipped=3)
        seed_upcoming(db_session, plan)
        plan.pending_confirmation = True
        plan.pending_preview = []
        db_session.commit()

        assert _check(db_session, plan, generator, job_queue, clock) is False
        assert generator.recalculate_requests == []

    @pytest.mark.parametrize("state", [JobState.ENQUEUED, JobState.PROCESSING])
    def test_in_flight_job_blocks(self, db_session, plan, generator, job_queue, clock, state):
        seed_history(db_session, plan, finished=7, skipped=3)
        seed_upcoming(db_session, plan)
        plan.last_recalculation_job_id = "job-running"
        db_session.commit()
        job_queue.states["job-running"] = state

        assert _check(db_session, plan, generator, job_queue, clock) is False

    @pytest.mark.parametrize("state", [JobState.SUCCEEDED, JobState.FAILED, JobState.UNKNOWN])
    def test_finished_job_does_not_block(self, db_session, plan, generator, job_queue, clock, state):
        seed_history(db_session, plan, finished=7, skipped=3)
        seed_upcoming(db_session, plan)
        plan.last_recalculation_job_id = "job-old"
        db_session.commit()
        job_queue.states["job-old"] = state

        assert _check(db_session, plan, generator, job_queue, clock) is True

    def test_unreachable_queue_does_not_block(self, db_session, plan, generator, clock):
        from plan_scenario_helpers import InMemoryJobQueue

        seed_history(db_session, plan, finished=7, skipped=3)
        seed_upcoming(db_session, plan)
        plan.last_recalculation_job_id = "job-old"
        db_session.commit()
        queue = InMemoryJobQueue(state_error=ConnectionError("broker down"))

        assert _check(db_session, plan, generator, queue, clock) is True

    def test_inactive_plan(self, db_session, plan, generator, job_queue, clock):
        seed_history(db_session, plan, finished=7, skipped=3)
        seed_upcoming(db_session, plan)
        plan.status = "archived"
        db_session.commit()

        assert _check(db_session, plan, generator, job_queue, clock) is False

    def test_no_upcoming_sessions(self, db_session, plan, generator, job_queue, clock):
        seed_history(db_session, plan, finished=7, skipped=3)

        assert _check(db_session, plan, generator, job_queue, clock) is False
        assert generator.recalculate_requests == []

    def test_planner_failure_leaves_plan_untouched(self, db_session, plan, job_queue, clock):
        seed_history(db_session, plan, finished=7, skipped=3)
        upcoming = seed_upcoming(db_session, plan)
        generator = FakePlanGenerator(recalculate_error=PlanGenerationError("timeout"))

        assert _check(db_session, plan, generator, job_queue, clock) is False

        stored = db_session.get(TrainingPlan, plan.id)
        db_session.refresh(stored)
        assert stored.pending_confirmation is False
        assert stored.pending_preview is None
        assert stored.pending_summary is None
        assert all(s.distance == 6.0 for s in upcoming)


class TestPolicyGates:
    def test_cooldown_blocks_recent_recalculation(self, db_session, plan, generator, job_queue, clock):
        seed_history(db_session, plan, finished=7, skipped=3)
        seed_upcoming(db_session, plan)
        plan.last_recalculated_at = NOW - timedelta(days=2)
        db_session.commit()

        policy = DriftPolicy(cooldown_enabled=True, cooldown_days=7)
        assert _check(db_session, plan, generator, job_queue, clock, policy) is False

    def test_cooldown_disabled_by_default(self, db_session, plan, generator, job_queue, clock):
        seed_history(db_session, plan, finished=7, skipped=3)
        seed_upcoming(db_session, plan)
        plan.last_recalculated_at = NOW - timedelta(days=2)
        db_session.commit()

        assert _check(db_session, plan, generator, job_queue, clock, DriftPolicy()) is True

    def test_early_plan_exemption(self, db_session, generator, job_queue, clock):
        runner = make_runner(db_session)
        plan = make_plan(db_session, runner, start_date=TODAY - timedelta(days=7))
        seed_history(db_session, plan, finished=7, skipped=3)
        seed_upcoming(db_session, plan)

        policy = DriftPolicy(early_plan_exemption_enabled=True, early_plan_days=14)
        assert _check(db_session, plan, generator, job_queue, clock, policy) is False


def test_preview_pairs_sessions_by_date(db_session, plan, job_queue, clock):
    seed_history(db_session, plan, finished=7, skipped=2)
    upcoming = seed_upcoming(db_session, plan, count=7)
    generator = FakePlanGenerator(sessions=[
        generated_session(s.scheduled_date) for s in upcoming[:5]
    ])

    assert _check(db_session, plan, generator, job_queue, clock) is True

    preview = db_session.get(TrainingPlan, plan.id).pending_preview
    assert len(preview) == 7
    unchanged = [c for c in preview if c["old_distance"] == c["new_distance"]]
    assert len(unchanged) == 2
    assert {c["scheduled_date"] for c in unchanged} == {
        upcoming[5].scheduled_date.isoformat(),
        upcoming[6].scheduled_date.isoformat(),
    }
