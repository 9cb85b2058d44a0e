"""initial_sync_schema

Revision ID: 001
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('lists'):
        op.create_table('lists',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('clickup_list_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('url', sa.Text(), nullable=True),
        sa.Column('folder_id', sa.String(length=64), nullable=True),
        sa.Column('folder_name', sa.String(length=255), nullable=True),
        sa.Column('space_id', sa.String(length=64), nullable=True),
        sa.Column('space_name', sa.String(length=255), nullable=True),
        sa.Column('workspace_id', sa.String(length=64), nullable=True),
        sa.Column('workspace_name', sa.String(length=255), nullable=True),
        sa.Column('orderindex', sa.Integer(), nullable=True),
        sa.Column('statuses', sa.JSON(), nullable=True),
        sa.Column('permission_level', sa.String(length=50), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=True),
        sa.Column('task_count', sa.Integer(), nullable=True),
        sa.Column('last_synced', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_lists_clickup_list_id'), 'lists', ['clickup_list_id'], unique=True)
        op.create_index(op.f('ix_lists_folder_id'), 'lists', ['folder_id'], unique=False)

    if not inspector.has_table('tasks'):
        op.create_table('tasks',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('list_id', sa.String(length=36), nullable=False),
        sa.Column('clickup_task_id', sa.String(length=64), nullable=False),
        sa.Column('custom_id', sa.String(length=64), nullable=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('text_content', sa.Text(), nullable=True),
        sa.Column('orderindex', sa.String(length=64), nullable=True),
        sa.Column('position', sa.Float(), nullable=True),
        sa.Column('url', sa.Text(), nullable=True),
        sa.Column('parent_task_id', sa.String(length=64), nullable=True),
        sa.Column('dependencies', sa.JSON(), nullable=True),
        sa.Column('linked_tasks', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=100), nullable=True),
        sa.Column('status_type', sa.String(length=50), nullable=True),
        sa.Column('status_color', sa.String(length=20), nullable=True),
        sa.Column('status_orderindex', sa.Integer(), nullable=True),
        sa.Column('canonical_status', sa.String(length=20), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=True),
        sa.Column('priority', sa.String(length=50), nullable=True),
        sa.Column('priority_id', sa.String(length=20), nullable=True),
        sa.Column('priority_color', sa.String(length=20), nullable=True),
        sa.Column('priority_orderindex', sa.String(length=20), nullable=True),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('date_closed', sa.DateTime(timezone=True), nullable=True),
        sa.Column('date_done', sa.DateTime(timezone=True), nullable=True),
        sa.Column('date_created', sa.DateTime(timezone=True), nullable=True),
        sa.Column('date_updated', sa.DateTime(timezone=True), nullable=True),
        sa.Column('assignees', sa.JSON(), nullable=True),
        sa.Column('watchers', sa.JSON(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('creator', sa.JSON(), nullable=True),
        sa.Column('checklists', sa.JSON(), nullable=True),
        sa.Column('custom_fields', sa.JSON(), nullable=True),
        sa.Column('time_estimate', sa.BigInteger(), nullable=True),
        sa.Column('time_spent', sa.BigInteger(), nullable=True),
        sa.Column('points', sa.Float(), nullable=True),
        sa.Column('team_id', sa.String(length=64), nullable=True),
        sa.Column('permission_level', sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['list_id'], ['lists.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_tasks_list_id'), 'tasks', ['list_id'], unique=False)
        op.create_index(op.f('ix_tasks_clickup_task_id'), 'tasks', ['clickup_task_id'], unique=True)
        op.create_index(op.f('ix_tasks_parent_task_id'), 'tasks', ['parent_task_id'], unique=False)
        op.create_index(op.f('ix_tasks_canonical_status'), 'tasks', ['canonical_status'], unique=False)
        op.create_index(op.f('ix_tasks_due_date'), 'tasks', ['due_date'], unique=False)

    if not inspector.has_table('comments'):
        op.create_table('comments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('task_id', sa.String(length=36), nullable=False),
        sa.Column('clickup_comment_id', sa.String(length=64), nullable=False),
        sa.Column('text', sa.Text(), nullable=True),
        sa.Column('author', sa.JSON(), nullable=True),
        sa.Column('resolved', sa.Boolean(), nullable=True),
        sa.Column('assignee', sa.JSON(), nullable=True),
        sa.Column('assigned_by', sa.JSON(), nullable=True),
        sa.Column('reactions', sa.JSON(), nullable=True),
        sa.Column('date', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_comments_task_id'), 'comments', ['task_id'], unique=False)
        op.create_index(op.f('ix_comments_clickup_comment_id'), 'comments', ['clickup_comment_id'], unique=True)
        op.create_index(op.f('ix_comments_date'), 'comments', ['date'], unique=False)

    if not inspector.has_table('webhooks'):
        op.create_table('webhooks',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('list_id', sa.String(length=36), nullable=False),
        sa.Column('clickup_webhook_id', sa.String(length=64), nullable=False),
        sa.Column('callback_url', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('last_event_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['list_id'], ['lists.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_webhooks_list_id'), 'webhooks', ['list_id'], unique=False)
        op.create_index(op.f('ix_webhooks_clickup_webhook_id'), 'webhooks', ['clickup_webhook_id'], unique=True)

    if not inspector.has_table('task_due_date_history'):
        op.create_table('task_due_date_history',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('task_id', sa.String(length=36), nullable=False),
        sa.Column('clickup_task_id', sa.String(length=64), nullable=False),
        sa.Column('old_due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('new_due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('changed_by', sa.JSON(), nullable=True),
        sa.Column('changed_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_task_due_date_history_task_id'), 'task_due_date_history', ['task_id'], unique=False)
        op.create_index(op.f('ix_task_due_date_history_clickup_task_id'), 'task_due_date_history', ['clickup_task_id'], unique=False)
        op.create_index(op.f('ix_task_due_date_history_changed_at'), 'task_due_date_history', ['changed_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table in ('task_due_date_history', 'webhooks', 'comments', 'tasks', 'lists'):
        if inspector.has_table(table):
            op.drop_table(table)
