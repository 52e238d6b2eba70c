"""
Period reports and cycle position.
"""
import uuid
from datetime import timedelta

from core.exceptions import PlanGenerationError
from models import CycleLog, CyclePhase, Runner
from services.cycle_tracking import current_position, report_period

from plan_scenario_helpers import (
    TODAY,
    FakePlanGenerator,
    make_plan,
    make_runner,
    seed_upcoming,
)


class TestReportPeriod:
    def test_accurate_prediction(self, db_session, generator, clock):
        runner = make_runner(db_session, cycle_length=28, last_period_start=TODAY - timedelta(days=29))

        result = report_period(db_session, runner.id, generator, period_start=TODAY, clock=clock)

        log = result.cycle_log
        assert log.predicted_period_start == TODAY - timedelta(days=1)
        assert log.days_difference == 1
        assert log.was_prediction_accurate is True
        assert log.actual_cycle_length == 29
        assert result.triggered_regeneration is False
        db_session.refresh(runner)
        assert runner.last_period_start == TODAY
        assert runner.cycle_length == 29

    def test_late_period_regenerates_active_plan(self, db_session, generator, clock):
        runner = make_runner(db_session, cycle_length=28, last_period_start=TODAY - timedelta(days=33))
        plan = make_plan(db_session, runner)
        seed_upcoming(db_session, plan, count=5, first=TODAY)

        result = report_period(db_session, runner.id, generator, period_start=TODAY, clock=clock)

        assert result.triggered_regeneration is True
        assert result.sessions_regenerated == 5
        assert result.affected_plan_id == plan.id
        assert result.cycle_log.days_difference == 5
        assert result.cycle_log.was_prediction_accurate is False
        assert result.cycle_log.triggered_regeneration is True
        request = generator.generate_requests[0]
        assert request.cycle_length == 33
        assert request.phase_map[TODAY] == CyclePhase.MENSTRUAL

    def test_outlier_cycle_length_is_not_learned(self, db_session, generator, clock):
        runner = make_runner(db_session, cycle_length=28, last_period_start=TODAY - timedelta(days=60))

        result = report_period(db_session, runner.id, generator, period_start=TODAY, clock=clock)

        assert result.cycle_log.actual_cycle_length == 60
        db_session.refresh(runner)
        assert runner.cycle_length == 28

    def test_regeneration_failure_still_records_report(self, db_session, clock):
        runner = make_runner(db_session, cycle_length=28, last_period_start=TODAY - timedelta(days=33))
        plan = make_plan(db_session, runner)
        seed_upcoming(db_session, plan, count=5, first=TODAY)
        generator = FakePlanGenerator(generate_error=PlanGenerationError("timeout"))

        result = report_period(db_session, runner.id, generator, period_start=TODAY, clock=clock)

        assert result.triggered_regeneration is False
        assert db_session.query(CycleLog).count() == 1
        stored = db_session.get(Runner, runner.id)
        db_session.refresh(stored)
        assert stored.last_period_start == TODAY

    def test_first_report(self, db_session, generator, clock):
        runner = make_runner(db_session)

        result = report_period(db_session, runner.id, generator, period_start=TODAY, clock=clock)

        assert result.cycle_log.predicted_period_start is None
        assert result.cycle_log.days_difference is None
        db_session.refresh(runner)
        assert runner.last_period_start == TODAY

    def test_prediction_uses_latest_logged_period(self, db_session, generator, clock):
        runner = make_runner(db_session, cycle_length=28, last_period_start=TODAY - timedelta(days=56))
        report_period(db_session, runner.id, generator, period_start=TODAY - timedelta(days=28), clock=clock)

        result = report_period(db_session, runner.id, generator, period_start=TODAY, clock=clock)

        assert result.cycle_log.predicted_period_start == TODAY
        assert result.cycle_log.was_prediction_accurate is True

    def test_period_end_only(self, db_session, generator, clock):
        runner = make_runner(db_session, cycle_length=28, last_period_start=TODAY - timedelta(days=4))

        result = report_period(db_session, runner.id, generator, period_end=TODAY, clock=clock)

        assert result.cycle_log.actual_period_end == TODAY
        assert result.cycle_log.actual_period_start is None
        db_session.refresh(runner)
        assert runner.last_period_start == TODAY - timedelta(days=4)

    def test_unknown_runner(self, db_session, generator, clock):
        assert report_period(db_session, uuid.uuid4(), generator, period_start=TODAY, clock=clock) is None


class TestCurrentPosition:
    def test_position_in_current_cycle(self, db_session, clock):
        runner = make_runner(db_session, cycle_length=28, last_period_start=TODAY - timedelta(days=12))

        position = current_position(db_session, runner.id, clock=clock)

        assert position.day_in_cycle == 13
        assert position.current_phase == CyclePhase.OVULATORY
        assert position.next_predicted_period == TODAY + timedelta(days=16)
        assert position.days_until_next_period == 16

    def test_stale_period_start_rolls_forward(self, db_session, clock):
        runner = make_runner(db_session, cycle_length=28, last_period_start=TODAY - timedelta(days=40))

        position = current_position(db_session, runner.id, clock=clock)

        assert position.day_in_cycle == 13
        assert position.next_predicted_period == TODAY + timedelta(days=16)

    def test_runner_without_cycle_data(self, db_session, clock):
        runner = make_runner(db_session)
        assert current_position(db_session, runner.id, clock=clock) is None
