"""
Cycle-triggered regeneration of the upcoming window.
"""
from datetime import timedelta

import pytest

from core.exceptions import PlanGenerationError, PlanRegenerationError
from models import CyclePhase, PlanAdaptationHistory, TrainingPlan
from services.cycle_phase import PHASE_GUIDANCE
from services.plan_regeneration import can_regenerate, regenerate_window

from plan_scenario_helpers import (
    TODAY,
    FakePlanGenerator,
    TransactionRecordingGenerator,
    add_session,
    generated_session,
    make_plan,
    make_runner,
    seed_upcoming,
)


@pytest.fixture
def runner(db_session):
    return make_runner(db_session, cycle_length=28, last_period_start=TODAY - timedelta(days=10))


@pytest.fixture
def plan(db_session, runner):
    return make_plan(db_session, runner)


@pytest.fixture
def window(db_session, plan):
    """Five open sessions starting today."""
    return seed_upcoming(db_session, plan, count=5, first=TODAY)


class TestRegenerateWindow:
    def test_overwrites_matches_and_refreshes_the_rest(self, db_session, plan, window, clock):
        generator = FakePlanGenerator(sessions=[
            generated_session(window[0].scheduled_date, workout_type="rest", distance=None, duration_minutes=None,
                              session_name="Rest Day"),
            generated_session(window[1].scheduled_date, phase_guidance="Go gently today."),
        ])

        touched = regenerate_window(db_session, plan.id, TODAY, 28, generator, clock=clock)

        assert touched == 5
        rest, recovery = window[0], window[1]
        db_session.refresh(rest)
        db_session.refresh(recovery)
        assert rest.workout_type == "rest"
        assert rest.distance is None
        assert rest.cycle_phase == CyclePhase.MENSTRUAL.value
        assert rest.phase_guidance == PHASE_GUIDANCE[CyclePhase.MENSTRUAL]
        assert recovery.distance == 4.0
        assert recovery.phase_guidance == "Go gently today."

        for session in window[2:]:
            db_session.refresh(session)
            assert session.workout_type == "easy"
            assert session.distance == 6.0
            assert session.cycle_phase == CyclePhase.MENSTRUAL.value

    def test_request_uses_new_phase_map(self, db_session, plan, window, generator, clock):
        regenerate_window(db_session, plan.id, TODAY - timedelta(days=11), 28, generator, clock=clock)

        request = generator.generate_requests[0]
        assert request.start_date == TODAY
        assert request.end_date == TODAY + timedelta(days=28)
        assert len(request.phase_map) == 29
        assert request.phase_map[TODAY] == CyclePhase.OVULATORY
        assert request.last_period_start == TODAY - timedelta(days=11)

    def test_leaves_finished_and_distant_sessions_alone(self, db_session, plan, window, generator, clock):
        done = add_session(db_session, plan, TODAY + timedelta(days=6), completed=True)
        distant = add_session(db_session, plan, TODAY + timedelta(days=40))

        touched = regenerate_window(db_session, plan.id, TODAY, 28, generator, clock=clock)

        assert touched == 5
        db_session.refresh(done)
        db_session.refresh(distant)
        assert done.cycle_phase is None
        assert distant.cycle_phase is None

    def test_planner_failure_raises_and_writes_nothing(self, db_session, plan, window, clock):
        generator = FakePlanGenerator(generate_error=PlanGenerationError("timeout"))

        with pytest.raises(PlanRegenerationError):
            regenerate_window(db_session, plan.id, TODAY, 28, generator, clock=clock)

        for session in window:
            db_session.refresh(session)
            assert session.cycle_phase is None

    def test_empty_window(self, db_session, plan, generator, clock):
        assert regenerate_window(db_session, plan.id, TODAY, 28, generator, clock=clock) == 0
        assert generator.generate_requests == []

    def test_no_history_entry(self, db_session, plan, window, generator, clock):
        regenerate_window(db_session, plan.id, TODAY, 28, generator, clock=clock)
        assert db_session.query(PlanAdaptationHistory).count() == 0

    def test_inactive_plan(self, db_session, plan, window, generator, clock):
        plan.status = "archived"
        db_session.commit()
        assert regenerate_window(db_session, plan.id, TODAY, 28, generator, clock=clock) == 0

    def test_planner_runs_outside_a_transaction(self, db_session, plan, window, clock):
        generator = TransactionRecordingGenerator(db_session)

        touched = regenerate_window(db_session, plan.id, TODAY, 28, generator, clock=clock)

        assert generator.in_transaction == [False]
        assert touched == 5

    def test_plan_archived_during_generation(self, db_session, plan, window, clock):
        plan_id = plan.id

        class ArchivingGenerator(FakePlanGenerator):
            def generate(self, request):
                db_session.get(TrainingPlan, plan_id).status = "archived"
                db_session.commit()
                return super().generate(request)

        assert regenerate_window(db_session, plan_id, TODAY, 28, ArchivingGenerator(), clock=clock) == 0
        for session in window:
            db_session.refresh(session)
            assert session.cycle_phase is None


class TestCanRegenerate:
    def test_eligible(self, db_session, plan, window, clock):
        assert can_regenerate(db_session, plan.id, clock=clock) is True

    def test_no_open_sessions(self, db_session, plan, clock):
        assert can_regenerate(db_session, plan.id, clock=clock) is False

    def test_runner_without_cycle_data(self, db_session, clock):
        runner = make_runner(db_session)
        plan = make_plan(db_session, runner)
        seed_upcoming(db_session, plan, first=TODAY)
        assert can_regenerate(db_session, plan.id, clock=clock) is False

    def test_archived_plan(self, db_session, plan, window, clock):
        plan.status = "archived"
        db_session.commit()
        assert can_regenerate(db_session, plan.id, clock=clock) is False
