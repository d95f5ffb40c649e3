"""Name snapshot function and pre-delete trigger on users

Deleting a user row directly in the database still leaves readable names on
records and history: the trigger fills every empty snapshot first. The
function is also callable on its own as update_user_names_before_delete(uuid).

Revision ID: 0002_name_snapshots
Revises: 0001_initial
Create Date: 2026-10-17 00:00:00
"""
from typing import Sequence, Union
from alembic import op

revision: str = "0002_name_snapshots"
down_revision: Union[str, None] = "0001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION update_user_names_before_delete(user_id_to_delete uuid)
        RETURNS void
        LANGUAGE plpgsql
        AS $$
        DECLARE
            v_name text;
        BEGIN
            SELECT name INTO v_name FROM users WHERE id = user_id_to_delete;
            IF v_name IS NULL THEN
                RETURN;
            END IF;

            UPDATE timesheet_records SET user_name = v_name
             WHERE user_id = user_id_to_delete AND user_name IS NULL;
            UPDATE timesheet_records SET supervisor_name = v_name
             WHERE supervisor_id = user_id_to_delete AND supervisor_name IS NULL;
            UPDATE timesheet_records SET section_chief_name = v_name
             WHERE section_chief_id = user_id_to_delete AND section_chief_name IS NULL;

            UPDATE approval_history SET previous_approver_name = v_name
             WHERE previous_approver_id = user_id_to_delete AND previous_approver_name IS NULL;
            UPDATE approval_history SET new_approver_name = v_name
             WHERE new_approver_id = user_id_to_delete AND new_approver_name IS NULL;
        END;
        $$;
    """)
    op.execute("""
        CREATE OR REPLACE FUNCTION trg_users_snapshot_names()
        RETURNS trigger
        LANGUAGE plpgsql
        AS $$
        BEGIN
            PERFORM update_user_names_before_delete(OLD.id);
            RETURN OLD;
        END;
        $$;
    """)
    op.execute("""
        CREATE TRIGGER users_snapshot_names_before_delete
        BEFORE DELETE ON users
        FOR EACH ROW EXECUTE FUNCTION trg_users_snapshot_names();
    """)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS users_snapshot_names_before_delete ON users")
    op.execute("DROP FUNCTION IF EXISTS trg_users_snapshot_names()")
    op.execute("DROP FUNCTION IF EXISTS update_user_names_before_delete(uuid)")
