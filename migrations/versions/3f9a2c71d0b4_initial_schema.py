"""Initial schema: users, tasks, friendships, study and shared sessions

Revision ID: 3f9a2c71d0b4
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f9a2c71d0b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('password_hash', sa.String(length=200), nullable=False),
        sa.Column('image', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('total_study_time', sa.Integer(), nullable=False),
        sa.Column('total_tasks_done', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )

    op.create_table('task',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_completed', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('task', schema=None) as batch_op:
        batch_op.create_index('ix_task_user_id', ['user_id'], unique=False)

    op.create_table('friendship',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('requester_id', sa.Integer(), nullable=False),
        sa.Column('addressee_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['addressee_id'], ['user.id'], ),
        sa.ForeignKeyConstraint(['requester_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('requester_id', 'addressee_id', name='_requester_addressee_uc')
    )
    with op.batch_alter_table('friendship', schema=None) as batch_op:
        batch_op.create_index('ix_friendship_requester_id', ['requester_id'], unique=False)
        batch_op.create_index('ix_friendship_addressee_id', ['addressee_id'], unique=False)

    op.create_table('study_session',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('mode', sa.String(length=20), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=True),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('study_session', schema=None) as batch_op:
        batch_op.create_index('ix_study_session_user_id', ['user_id'], unique=False)

    op.create_table('shared_session',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=True),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('timer_mode', sa.String(length=20), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=True),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('invite_code', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['creator_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invite_code')
    )
    with op.batch_alter_table('shared_session', schema=None) as batch_op:
        batch_op.create_index('ix_shared_session_creator_id', ['creator_id'], unique=False)

    op.create_table('shared_session_participant',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['session_id'], ['shared_session.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'user_id', name='_session_user_uc')
    )
    with op.batch_alter_table('shared_session_participant', schema=None) as batch_op:
        batch_op.create_index('ix_shared_session_participant_session_id', ['session_id'], unique=False)
        batch_op.create_index('ix_shared_session_participant_user_id', ['user_id'], unique=False)


def downgrade():
    with op.batch_alter_table('shared_session_participant', schema=None) as batch_op:
        batch_op.drop_index('ix_shared_session_participant_user_id')
        batch_op.drop_index('ix_shared_session_participant_session_id')
    op.drop_table('shared_session_participant')

    with op.batch_alter_table('shared_session', schema=None) as batch_op:
        batch_op.drop_index('ix_shared_session_creator_id')
    op.drop_table('shared_session')

    with op.batch_alter_table('study_session', schema=None) as batch_op:
        batch_op.drop_index('ix_study_session_user_id')
    op.drop_table('study_session')

    with op.batch_alter_table('friendship', schema=None) as batch_op:
        batch_op.drop_index('ix_friendship_addressee_id')
        batch_op.drop_index('ix_friendship_requester_id')
    op.drop_table('friendship')

    with op.batch_alter_table('task', schema=None) as batch_op:
        batch_op.drop_index('ix_task_user_id')
    op.drop_table('task')

    op.drop_table('user')
