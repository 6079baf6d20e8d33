"""create companies, employees, templates, timeline and automation tables

Revision ID: create_automation_tables
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'create_automation_tables'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'companies',
        sa.Column('company_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('plan_type', sa.String(), nullable=False, server_default='free'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'employees',
        sa.Column('employee_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('companies.company_id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('department', sa.String(), nullable=True),
        sa.Column('nfc_token', sa.String(), nullable=False, unique=True),
        sa.Column('birthday', sa.Date(), nullable=True),
        sa.Column('hire_date', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('birthday_notifications_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('anniversary_notifications_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_active', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_employees_company_id', 'employees', ['company_id'])

    op.create_table(
        'templates',
        sa.Column('template_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('companies.company_id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(), nullable=False, server_default='general'),
        sa.Column('tags', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_templates_company_id', 'templates', ['company_id'])

    op.create_table(
        'timeline_items',
        sa.Column('item_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('employee_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('employees.employee_id', ondelete='CASCADE'), nullable=False),
        sa.Column('template_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('templates.template_id', ondelete='SET NULL'), nullable=True),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('is_visible', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_timeline_items_employee_id', 'timeline_items', ['employee_id'])
    # lets HR query generated content by trigger ("metadata"->>'automationTrigger')
    op.create_index(
        'ix_timeline_items_metadata',
        'timeline_items',
        ['metadata'],
        postgresql_using='gin',
    )

    op.create_table(
        'employee_events',
        sa.Column('event_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('employee_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('employees.employee_id', ondelete='CASCADE'), nullable=False),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('companies.company_id', ondelete='CASCADE'), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('event_date', sa.Date(), nullable=False),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('reminder_days_before', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('template_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('templates.template_id', ondelete='SET NULL'), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_employee_events_employee_id', 'employee_events', ['employee_id'])
    op.create_index('ix_employee_events_company_id', 'employee_events', ['company_id'])

    op.create_table(
        'automation_markers',
        sa.Column('marker_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('employee_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('employees.employee_id', ondelete='CASCADE'), nullable=False),
        sa.Column('template_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('templates.template_id', ondelete='CASCADE'), nullable=False),
        sa.Column('trigger_type', sa.String(), nullable=False),
        sa.Column('occurrence_date', sa.Date(), nullable=False),
        sa.Column('timeline_item_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('timeline_items.item_id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            'employee_id', 'template_id', 'trigger_type', 'occurrence_date',
            name='uq_automation_marker_occurrence',
        ),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('automation_markers')
    op.drop_index('ix_employee_events_company_id', table_name='employee_events')
    op.drop_index('ix_employee_events_employee_id', table_name='employee_events')
    op.drop_table('employee_events')
    op.drop_index('ix_timeline_items_metadata', table_name='timeline_items')
    op.drop_index('ix_timeline_items_employee_id', table_name='timeline_items')
    op.drop_table('timeline_items')
    op.drop_index('ix_templates_company_id', table_name='templates')
    op.drop_table('templates')
    op.drop_index('ix_employees_company_id', table_name='employees')
    op.drop_table('employees')
    op.drop_table('companies')
