"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # Create employees table
    op.create_table(
        "employees",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("email", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("department", sa.String(50), nullable=False),
        sa.Column("position", sa.String(50), nullable=False),
        sa.Column("hire_date", sa.Date(), nullable=False),
        sa.Column("salary", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        sa.Column("manager_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("street", sa.String(200), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(50), nullable=True),
        sa.Column("postal_code", sa.String(20), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="employees_email_key"),
        sa.ForeignKeyConstraint(
            ["manager_id"], ["employees.id"], name="fk_employees_manager", ondelete="RESTRICT"
        ),
        sa.CheckConstraint("salary > 0 AND salary <= 1000000", name="ck_employees_salary_range"),
        sa.CheckConstraint(
            "status IN ('ACTIVE', 'TERMINATED', 'ON_LEAVE')", name="ck_employees_status"
        ),
        sa.CheckConstraint(
            "manager_id IS NULL OR manager_id <> id", name="ck_employees_not_own_manager"
        ),
    )
    op.create_index(
        "idx_employees_email_lower", "employees", [sa.text("lower(email)")], unique=True
    )
    op.create_index("idx_employees_department", "employees", ["department"])
    op.create_index("idx_employees_status", "employees", ["status"])
    op.create_index("idx_employees_manager_id", "employees", ["manager_id"])
    op.create_index("idx_employees_name", "employees", ["first_name", "last_name"])

    # Reject manager assignments that would close a reporting loop
    op.execute(
        """
        CREATE OR REPLACE FUNCTION check_circular_management() RETURNS trigger AS $$
        DECLARE
            current_id uuid := NEW.manager_id;
            depth integer := 0;
        BEGIN
            WHILE current_id IS NOT NULL LOOP
                IF current_id = NEW.id THEN
                    RAISE EXCEPTION 'circular management relationship for employee %', NEW.id
                        USING ERRCODE = 'check_violation';
                END IF;
                depth := depth + 1;
                IF depth > 1000 THEN
                    EXIT;
                END IF;
                SELECT manager_id INTO current_id FROM employees WHERE id = current_id;
            END LOOP;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    op.execute(
        """
        CREATE TRIGGER trg_employees_circular_management
        BEFORE INSERT OR UPDATE OF manager_id ON employees
        FOR EACH ROW WHEN (NEW.manager_id IS NOT NULL)
        EXECUTE FUNCTION check_circular_management();
        """
    )

    # Create users table
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(100), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="VIEWER"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("role IN ('ADMIN', 'MANAGER', 'VIEWER')", name="ck_users_role"),
    )
    op.create_index(
        "idx_users_username_lower", "users", [sa.text("lower(username)")], unique=True
    )
    op.create_index("idx_users_email_lower", "users", [sa.text("lower(email)")], unique=True)
    op.create_index("idx_users_role", "users", ["role"])
    op.create_index("idx_users_last_login", "users", ["last_login"])

    # Create audit_logs table (append only, subject may be an employee or a user)
    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("employee_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("operation", sa.String(50), nullable=False),
        sa.Column("user_id", sa.String(100), nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "old_values",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "new_values",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("ip_address", sa.String(45), nullable=False),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_audit_logs_timestamp", "audit_logs", ["timestamp"])
    op.create_index("idx_audit_logs_employee", "audit_logs", ["employee_id", "timestamp"])
    op.create_index("idx_audit_logs_user", "audit_logs", ["user_id", "timestamp"])
    op.create_index("idx_audit_logs_operation", "audit_logs", ["operation"])

    # Create domain_events table (event store)
    op.create_table(
        "domain_events",
        sa.Column("sequence", sa.BigInteger(), sa.Identity(always=True), nullable=False),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("aggregate_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("data", postgresql.JSONB(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.PrimaryKeyConstraint("sequence"),
        sa.UniqueConstraint("id", name="domain_events_id_key"),
    )
    op.create_index(
        "idx_domain_events_aggregate", "domain_events", ["aggregate_id", "sequence"]
    )
    op.create_index("idx_domain_events_type", "domain_events", ["type", "sequence"])
    op.create_index("idx_domain_events_timestamp", "domain_events", ["timestamp"])


def downgrade() -> None:
    op.drop_table("domain_events")
    op.drop_table("audit_logs")
    op.drop_table("users")
    op.execute("DROP TRIGGER IF EXISTS trg_employees_circular_management ON employees")
    op.execute("DROP FUNCTION IF EXISTS check_circular_management()")
    op.drop_table("employees")
