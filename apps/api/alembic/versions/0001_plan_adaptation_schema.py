"""plan adaptation schema

Runners, races, training plans with recalculation/preview bookkeeping,
training sessions, the adaptation history ledger and cycle logs.

Revision ID: 0001_plan_adaptation
Revises:
Create Date: 2026-01-12 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_plan_adaptation'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'runner',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('display_name', sa.Text(), nullable=True),
        sa.Column('fitness_level', sa.Text(), server_default='intermediate', nullable=False),
        sa.Column('typical_weekly_mileage', sa.Float(), nullable=True),
        sa.Column('cycle_length', sa.Integer(), nullable=True),
        sa.Column('last_period_start', sa.Date(), nullable=True),
        sa.Column('typical_cycle_regularity', sa.Text(), nullable=True),
    )

    op.create_table(
        'race',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('runner_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('race_name', sa.Text(), nullable=False),
        sa.Column('race_date', sa.Date(), nullable=False),
        sa.Column('distance', sa.Float(), nullable=False),
        sa.Column('distance_type', sa.Text(), nullable=False),
        sa.Column('goal_time', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['runner_id'], ['runner.id'], ),
    )
    op.create_index('ix_race_runner_id', 'race', ['runner_id'])

    op.create_table(
        'training_plan',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('runner_id', sa.Uuid(), nullable=False),
        sa.Column('race_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), server_default='active', nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('generation_source', sa.Text(), server_default='ai', nullable=False),
        sa.Column('last_recalculated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_recalculation_requested_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_recalculation_job_id', sa.Text(), nullable=True),
        sa.Column('last_recalculation_summary', sa.Text(), nullable=True),
        sa.Column('summary_viewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('pending_confirmation', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('pending_preview', sa.JSON(none_as_null=True), nullable=True),
        sa.Column('pending_summary', sa.Text(), nullable=True),
        sa.Column('preview_generated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('confirmation_requested_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('confirmation_responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('confirmation_accepted', sa.Boolean(), nullable=True),
        sa.ForeignKeyConstraint(['runner_id'], ['runner.id'], ),
        sa.ForeignKeyConstraint(['race_id'], ['race.id'], ),
    )
    op.create_index('ix_training_plan_runner_id', 'training_plan', ['runner_id'])
    op.create_index('ix_training_plan_status', 'training_plan', ['status'])

    op.create_table(
        'training_session',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('plan_id', sa.Uuid(), nullable=False),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('session_name', sa.Text(), nullable=False),
        sa.Column('workout_type', sa.Text(), nullable=False),
        sa.Column('warm_up', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('distance', sa.Float(), nullable=True),
        sa.Column('intensity_level', sa.Text(), server_default='low', nullable=False),
        sa.Column('hr_zones', sa.Text(), nullable=True),
        sa.Column('cycle_phase', sa.Text(), nullable=True),
        sa.Column('phase_guidance', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('actual_distance', sa.Float(), nullable=True),
        sa.Column('actual_duration', sa.Integer(), nullable=True),
        sa.Column('rpe', sa.Integer(), nullable=True),
        sa.Column('user_notes', sa.Text(), nullable=True),
        sa.Column('is_skipped', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('skip_reason', sa.Text(), nullable=True),
        sa.Column('was_modified', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['plan_id'], ['training_plan.id'], ),
    )
    op.create_index('ix_training_session_plan_id', 'training_session', ['plan_id'])
    op.create_index('ix_training_session_scheduled_date', 'training_session', ['scheduled_date'])
    op.create_index('ix_training_session_plan_date', 'training_session', ['plan_id', 'scheduled_date'])

    op.create_table(
        'plan_adaptation_history',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('plan_id', sa.Uuid(), nullable=False),
        sa.Column('adapted_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('viewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('sessions_affected_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('trigger_reason', sa.Text(), nullable=False),
        sa.Column('changes', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(['plan_id'], ['training_plan.id'], ),
    )
    op.create_index('ix_plan_adaptation_history_plan_id', 'plan_adaptation_history', ['plan_id'])
    op.create_index('ix_plan_adaptation_history_adapted_at', 'plan_adaptation_history', ['adapted_at'])

    op.create_table(
        'cycle_log',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('runner_id', sa.Uuid(), nullable=False),
        sa.Column('reported_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('actual_period_start', sa.Date(), nullable=True),
        sa.Column('actual_period_end', sa.Date(), nullable=True),
        sa.Column('predicted_period_start', sa.Date(), nullable=True),
        sa.Column('days_difference', sa.Integer(), nullable=True),
        sa.Column('was_prediction_accurate', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('actual_cycle_length', sa.Integer(), nullable=True),
        sa.Column('triggered_regeneration', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('affected_plan_id', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(['runner_id'], ['runner.id'], ),
        sa.ForeignKeyConstraint(['affected_plan_id'], ['training_plan.id'], ),
    )
    op.create_index('ix_cycle_log_runner_id', 'cycle_log', ['runner_id'])


def downgrade() -> None:
    op.drop_index('ix_cycle_log_runner_id', table_name='cycle_log')
    op.drop_table('cycle_log')
    op.drop_index('ix_plan_adaptation_history_adapted_at', table_name='plan_adaptation_history')
    op.drop_index('ix_plan_adaptation_history_plan_id', table_name='plan_adaptation_history')
    op.drop_table('plan_adaptation_history')
    op.drop_index('ix_training_session_plan_date', table_name='training_session')
    op.drop_index('ix_training_session_scheduled_date', table_name='training_session')
    op.drop_index('ix_training_session_plan_id', table_name='training_session')
    op.drop_table('training_session')
    op.drop_index('ix_training_plan_status', table_name='training_plan')
    op.drop_index('ix_training_plan_runner_id', table_name='training_plan')
    op.drop_table('training_plan')
    op.drop_index('ix_race_runner_id', table_name='race')
    op.drop_table('race')
    op.drop_table('runner')
