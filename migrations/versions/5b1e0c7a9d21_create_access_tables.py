"""create_access_tables

Revision ID: 5b1e0c7a9d21
Revises:
Create Date: 2026-09-14 10:12:44.104518

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b1e0c7a9d21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PLATFORM_WORKSPACE_ID = '00000000-0000-0000-0000-000000000001'


def upgrade() -> None:
    """Create users, workspaces, grants and invitations, and seed the platform workspace."""
    op.create_table('users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('external_auth_id', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=True),
        sa.Column('display_name', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("role IS NULL OR role = 'super_admin'", name='ck_users_role'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('external_auth_id'),
    )

    op.create_table('workspaces',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('owner_user_id', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('admin_grants',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("role IN ('super_admin', 'platform_staff', 'admin')", name='ck_admin_grants_role'),
        sa.CheckConstraint("(role = 'super_admin') = (workspace_id IS NULL)", name='ck_admin_grants_workspace_shape'),
        sa.CheckConstraint(
            f"(role = 'platform_staff') = (workspace_id IS NOT DISTINCT FROM '{PLATFORM_WORKSPACE_ID}'::uuid)",
            name='ck_admin_grants_platform_workspace',
        ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'workspace_id', name='uq_admin_grants_user_workspace'),
    )
    op.create_index('ix_admin_grants_user_id', 'admin_grants', ['user_id'], unique=False)
    op.create_index('ix_admin_grants_workspace_id', 'admin_grants', ['workspace_id'], unique=False)

    op.create_table('employee_assignments',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('invited_by', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            f"workspace_id <> '{PLATFORM_WORKSPACE_ID}'::uuid",
            name='ck_employee_assignments_client_workspace',
        ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['invited_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index('ix_employee_assignments_workspace_id', 'employee_assignments', ['workspace_id'], unique=False)

    op.create_table('invitations',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('target_role', sa.String(length=20), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('invited_by', sa.UUID(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint("target_role IN ('platform_staff', 'employee')", name='ck_invitations_target_role'),
        sa.CheckConstraint("status IN ('pending', 'accepted', 'expired', 'revoked')", name='ck_invitations_status'),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['invited_by'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_hash'),
    )
    # Duplicate-pending check and workspace listings
    op.create_index(
        'ix_invitations_workspace_email_status', 'invitations',
        ['workspace_id', 'email', 'status'], unique=False,
    )
    # Daily expiry sweep
    op.create_index('ix_invitations_expires_at', 'invitations', ['expires_at'], unique=False)

    op.execute(f"""
        INSERT INTO workspaces (id, name, owner_user_id)
        VALUES ('{PLATFORM_WORKSPACE_ID}', 'Platform', NULL)
        ON CONFLICT (id) DO NOTHING;
    """)


def downgrade() -> None:
    """Drop all access tables."""
    op.drop_index('ix_invitations_expires_at', table_name='invitations')
    op.drop_index('ix_invitations_workspace_email_status', table_name='invitations')
    op.drop_table('invitations')
    op.drop_index('ix_employee_assignments_workspace_id', table_name='employee_assignments')
    op.drop_table('employee_assignments')
    op.drop_index('ix_admin_grants_workspace_id', table_name='admin_grants')
    op.drop_index('ix_admin_grants_user_id', table_name='admin_grants')
    op.drop_table('admin_grants')
    op.drop_table('workspaces')
    op.drop_table('users')
