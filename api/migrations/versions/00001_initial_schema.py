"""Initial schema - process catalog, job requests, applications and activities.

Revision ID: 00001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '00001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # =====================
    # Process catalog
    # =====================

    # process_templates
    op.create_table(
        'process_templates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('GETUTCDATE()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    # process_steps
    op.create_table(
        'process_steps',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=False),
        sa.Column('step_order', sa.Integer(), nullable=False),
        sa.Column('step_name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('GETUTCDATE()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['template_id'], ['process_templates.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('template_id', 'step_order', name='uq_process_steps_template_order'),
    )
    op.create_index('ix_process_steps_template', 'process_steps', ['template_id'])

    # =====================
    # Hiring demand
    # =====================

    # job_requests
    op.create_table(
        'job_requests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('process_template_id', sa.Integer(), nullable=True),
        sa.Column('recruiter_id', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('GETUTCDATE()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['process_template_id'], ['process_templates.id'], ondelete='SET NULL'),
    )

    # applications
    op.create_table(
        'applications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('job_request_id', sa.Integer(), nullable=False),
        sa.Column('cv_id', sa.Integer(), nullable=False),
        sa.Column('recruiter_id', sa.String(100), nullable=True),
        sa.Column('status', sa.String(30), nullable=False, server_default='Submitted'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('GETUTCDATE()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['job_request_id'], ['job_requests.id']),
    )
    op.create_index('ix_applications_job_request_status', 'applications', ['job_request_id', 'status'])

    # =====================
    # Pipeline
    # =====================

    # activities
    op.create_table(
        'activities',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('process_step_id', sa.Integer(), nullable=False),
        sa.Column('activity_type', sa.String(20), nullable=False, server_default='Online'),
        sa.Column('status', sa.String(20), nullable=False, server_default='Scheduled'),
        sa.Column('scheduled_date', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('GETUTCDATE()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['process_step_id'], ['process_steps.id']),
        sa.UniqueConstraint('application_id', 'process_step_id', name='uq_activities_application_step'),
    )
    op.create_index('ix_activities_application', 'activities', ['application_id'])
    op.create_index('ix_activities_scheduled', 'activities', ['scheduled_date'])

    # application_status_changes
    op.create_table(
        'application_status_changes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('from_status', sa.String(30), nullable=False),
        sa.Column('to_status', sa.String(30), nullable=False),
        sa.Column('trigger', sa.String(50), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('user_id', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('GETUTCDATE()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_application_status_changes_application', 'application_status_changes', ['application_id'])
    op.create_index('ix_application_status_changes_created', 'application_status_changes', ['created_at'])


def downgrade() -> None:
    op.drop_table('application_status_changes')
    op.drop_table('activities')
    op.drop_table('applications')
    op.drop_table('job_requests')
    op.drop_table('process_steps')
    op.drop_table('process_templates')
