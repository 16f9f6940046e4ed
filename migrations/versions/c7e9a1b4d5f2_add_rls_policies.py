"""add_rls_policies

Revision ID: c7e9a1b4d5f2
Revises: 8c4d2f6e3a10
Create Date: 2026-09-14 11:41:02.318840

"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "c7e9a1b4d5f2"
down_revision: str | Sequence[str] | None = "8c4d2f6e3a10"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_TABLES = ["workspaces", "admin_grants", "employee_assignments", "invitations"]


def upgrade() -> None:
    """Add read-only Row Level Security policies for direct client connections.

    The API connects with a service account that bypasses RLS and enforces
    workspace scope in the service layer. These policies only cover direct
    Supabase client reads, mapping ``auth.uid()`` to the local user through
    ``users.external_auth_id``.
    """
    # SECURITY DEFINER so the lookups do not recurse into RLS.
    op.execute("""
        CREATE OR REPLACE FUNCTION current_user_workspace_id()
        RETURNS UUID
        LANGUAGE sql
        SECURITY DEFINER
        STABLE
        SET search_path = public
        AS $$
            SELECT workspace_id FROM (
                SELECT g.workspace_id, 1 AS rank FROM admin_grants g
                    JOIN users u ON u.id = g.user_id
                    WHERE u.external_auth_id = (SELECT auth.uid())::text
                      AND g.workspace_id IS NOT NULL
                UNION ALL
                SELECT e.workspace_id, 2 AS rank FROM employee_assignments e
                    JOIN users u ON u.id = e.user_id
                    WHERE u.external_auth_id = (SELECT auth.uid())::text
                      AND e.is_active
            ) scoped
            ORDER BY rank
            LIMIT 1;
        $$;
    """)
    op.execute("""
        CREATE OR REPLACE FUNCTION current_user_is_super_admin()
        RETURNS BOOLEAN
        LANGUAGE sql
        SECURITY DEFINER
        STABLE
        SET search_path = public
        AS $$
            SELECT EXISTS (
                SELECT 1 FROM users
                WHERE external_auth_id = (SELECT auth.uid())::text
                  AND role = 'super_admin'
                  AND is_active
            );
        $$;
    """)

    for table in _TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;")

    op.execute("""
        CREATE POLICY workspaces_select ON workspaces
            FOR SELECT USING (
                current_user_is_super_admin() OR id = current_user_workspace_id()
            );
    """)
    for table in _TABLES[1:]:
        op.execute(f"""
            CREATE POLICY {table}_select ON {table}
                FOR SELECT USING (
                    current_user_is_super_admin()
                    OR workspace_id = current_user_workspace_id()
                );
        """)


def downgrade() -> None:
    """Drop all RLS policies and disable RLS."""
    for table in reversed(_TABLES):
        op.execute(f"DROP POLICY IF EXISTS {table}_select ON {table};")
        op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY;")

    op.execute("DROP FUNCTION IF EXISTS current_user_is_super_admin();")
    op.execute("DROP FUNCTION IF EXISTS current_user_workspace_id();")
