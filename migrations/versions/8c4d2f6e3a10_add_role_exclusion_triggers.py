"""add_role_exclusion_triggers

Revision ID: 8c4d2f6e3a10
Revises: 5b1e0c7a9d21
Create Date: 2026-09-14 11:03:19.552871

"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8c4d2f6e3a10"
down_revision: str | Sequence[str] | None = "5b1e0c7a9d21"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Reject writes that would give one user both an admin grant and an employee assignment.

    The application checks this inside the acceptance transaction under a
    per-principal advisory lock. The triggers hold the same rule for any
    writer that skips the application, such as manual SQL.
    """
    op.execute("""
        CREATE OR REPLACE FUNCTION reject_dual_role_admin_grant()
        RETURNS trigger
        LANGUAGE plpgsql
        AS $$
        BEGIN
            IF EXISTS (SELECT 1 FROM employee_assignments WHERE user_id = NEW.user_id) THEN
                RAISE EXCEPTION 'user % already has an employee assignment', NEW.user_id
                    USING ERRCODE = 'check_violation';
            END IF;
            RETURN NEW;
        END;
        $$;
    """)
    op.execute("""
        CREATE OR REPLACE FUNCTION reject_dual_role_employee_assignment()
        RETURNS trigger
        LANGUAGE plpgsql
        AS $$
        BEGIN
            IF EXISTS (SELECT 1 FROM admin_grants WHERE user_id = NEW.user_id)
               OR EXISTS (SELECT 1 FROM users WHERE id = NEW.user_id AND role = 'super_admin') THEN
                RAISE EXCEPTION 'user % already has an admin grant', NEW.user_id
                    USING ERRCODE = 'check_violation';
            END IF;
            RETURN NEW;
        END;
        $$;
    """)
    op.execute("""
        CREATE TRIGGER admin_grants_role_exclusion
            BEFORE INSERT OR UPDATE OF user_id ON admin_grants
            FOR EACH ROW EXECUTE FUNCTION reject_dual_role_admin_grant();
    """)
    op.execute("""
        CREATE TRIGGER employee_assignments_role_exclusion
            BEFORE INSERT OR UPDATE OF user_id ON employee_assignments
            FOR EACH ROW EXECUTE FUNCTION reject_dual_role_employee_assignment();
    """)


def downgrade() -> None:
    """Drop the role exclusion triggers."""
    op.execute("DROP TRIGGER IF EXISTS employee_assignments_role_exclusion ON employee_assignments;")
    op.execute("DROP TRIGGER IF EXISTS admin_grants_role_exclusion ON admin_grants;")
    op.execute("DROP FUNCTION IF EXISTS reject_dual_role_employee_assignment();")
    op.execute("DROP FUNCTION IF EXISTS reject_dual_role_admin_grant();")
