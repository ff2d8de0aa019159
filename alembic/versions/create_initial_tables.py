"""create users, members, admin_action_logs tables

Revision ID: 3c1d7a9e52b4
Revises:
Create Date: 2026-10-19 10:12:40

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1d7a9e52b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


user_role = sa.Enum('user', 'moderator', 'admin', 'superadmin', name='user_role')
account_status = sa.Enum('active', 'inactive', 'suspended', name='account_status')
admin_action = sa.Enum(
    'CREATE_USER', 'UPDATE_USER', 'DELETE_USER', 'SET_ROLE', 'SET_STATUS',
    'RESYNC_PERMISSIONS', 'IMPORT_MEMBERS',
    name='admin_action',
)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('role', user_role, nullable=False),
        sa.Column('status', account_status, nullable=False),
        sa.Column('can_manage_users', sa.Boolean(), nullable=False),
        sa.Column('can_view_analytics', sa.Boolean(), nullable=False),
        sa.Column('can_edit_content', sa.Boolean(), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('province', sa.String(length=100), nullable=True),
        sa.Column('registration_source', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refresh_token_version', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'members',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=50), nullable=True),
        sa.Column('age_group', sa.String(length=50), nullable=True),
        sa.Column('employment_type', sa.String(length=200), nullable=True),
        sa.Column('about', sa.Text(), nullable=True),
        sa.Column('city_province', sa.String(length=200), nullable=True),
        sa.Column('instagram_follow', sa.String(length=20), nullable=True),
        sa.Column('facebook_like', sa.String(length=20), nullable=True),
        sa.Column('heard_about', sa.String(length=200), nullable=True),
        sa.Column('industry', sa.String(length=200), nullable=True),
        sa.Column('intersection', sa.String(length=200), nullable=True),
        sa.Column('occupation', sa.String(length=200), nullable=True),
        sa.Column('aspirations', sa.Text(), nullable=True),
        sa.Column('imported_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['imported_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_members_email', 'members', ['email'])

    op.create_table(
        'admin_action_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('actor_id', sa.Uuid(), nullable=True),
        sa.Column('target_user_id', sa.Uuid(), nullable=True),
        sa.Column('action', admin_action, nullable=False),
        sa.Column('before_role', sa.String(length=20), nullable=True),
        sa.Column('after_role', sa.String(length=20), nullable=True),
        sa.Column('detail', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['target_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    op.drop_table('admin_action_logs')
    op.drop_index('ix_members_email', table_name='members')
    op.drop_table('members')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    admin_action.drop(bind, checkfirst=True)
    account_status.drop(bind, checkfirst=True)
    user_role.drop(bind, checkfirst=True)
