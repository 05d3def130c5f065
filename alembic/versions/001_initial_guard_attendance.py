"""Initial guard attendance schema: organizations, users, units, guards, work events, punches, audit logs

Revision ID: 001_initial_guard_attendance
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001_initial_guard_attendance"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    is_sqlite = bind.dialect.name == "sqlite"
    ts_default = sa.text("CURRENT_TIMESTAMP") if is_sqlite else sa.text("now()")
    open_shift = sa.text("event_status = 'CHECKED_IN' AND deleted_at IS NULL")

    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("subscription_status", sa.String(length=9), nullable=False, server_default="trial"),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("plan", sa.String(), nullable=False, server_default="starter"),
        sa.Column("guard_limit", sa.Integer(), nullable=False, server_default="50"),
        sa.Column("timezone", sa.String(), nullable=False, server_default="Asia/Kolkata"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_organizations_id"), "organizations", ["id"], unique=False)
    op.create_index(op.f("ix_organizations_slug"), "organizations", ["slug"], unique=True)

    op.create_table(
        "org_users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", sa.String(length=6), nullable=False, server_default="VIEWER"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_org_users_id"), "org_users", ["id"], unique=False)
    op.create_index(op.f("ix_org_users_organization_id"), "org_users", ["organization_id"], unique=False)
    op.create_index(op.f("ix_org_users_email"), "org_users", ["email"], unique=True)

    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("unit_name", sa.String(), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("required_guard_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_units_id"), "units", ["id"], unique=False)
    op.create_index(op.f("ix_units_organization_id"), "units", ["organization_id"], unique=False)

    op.create_table(
        "guards",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("guard_code", sa.String(), nullable=False),
        sa.Column("phone_number", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("primary_unit_id", sa.Integer(), nullable=True),
        sa.Column("employment_status", sa.String(length=9), nullable=False, server_default="active"),
        sa.Column("is_supervisor", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("supervised_unit_id", sa.Integer(), nullable=True),
        sa.Column("face_verification_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("face_data_url", sa.String(), nullable=True),
        sa.Column("face_data_ref", sa.String(), nullable=True),
        sa.Column("password_hash", sa.String(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["primary_unit_id"], ["units.id"]),
        sa.ForeignKeyConstraint(["supervised_unit_id"], ["units.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("organization_id", "guard_code", name="uq_guards_org_guard_code"),
    )
    op.create_index(op.f("ix_guards_id"), "guards", ["id"], unique=False)
    op.create_index(op.f("ix_guards_organization_id"), "guards", ["organization_id"], unique=False)
    op.create_index(op.f("ix_guards_guard_code"), "guards", ["guard_code"], unique=False)
    op.create_index(op.f("ix_guards_primary_unit_id"), "guards", ["primary_unit_id"], unique=False)

    op.create_table(
        "work_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("guard_id", sa.Integer(), nullable=False),
        sa.Column("primary_unit_id", sa.Integer(), nullable=True),
        sa.Column("working_unit_id", sa.Integer(), nullable=False),
        sa.Column("check_in_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("check_out_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("shift_date", sa.Date(), nullable=False),
        sa.Column("duty_type", sa.String(length=15), nullable=False),
        sa.Column("event_status", sa.String(length=11), nullable=False, server_default="CHECKED_IN"),
        sa.Column("approval_status", sa.String(length=13), nullable=False),
        sa.Column("anomaly_flag", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("anomaly_reason", sa.String(), nullable=True),
        sa.Column("locked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["guard_id"], ["guards.id"]),
        sa.ForeignKeyConstraint(["primary_unit_id"], ["units.id"]),
        sa.ForeignKeyConstraint(["working_unit_id"], ["units.id"]),
        sa.ForeignKeyConstraint(["approved_by"], ["org_users.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["org_users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_work_events_id"), "work_events", ["id"], unique=False)
    op.create_index(op.f("ix_work_events_organization_id"), "work_events", ["organization_id"], unique=False)
    op.create_index(op.f("ix_work_events_guard_id"), "work_events", ["guard_id"], unique=False)
    op.create_index("ix_work_events_org_shift_date", "work_events", ["organization_id", "shift_date"], unique=False)
    op.create_index(
        "uq_work_events_open_shift_per_guard",
        "work_events",
        ["guard_id"],
        unique=True,
        sqlite_where=open_shift,
        postgresql_where=open_shift,
    )

    op.create_table(
        "attendance_punches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("guard_id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("punch_type", sa.String(length=3), nullable=False),
        sa.Column("punch_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("punch_date", sa.Date(), nullable=False),
        sa.Column("photo_url", sa.String(), nullable=False),
        sa.Column("photo_ref", sa.String(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("location_accuracy", sa.Float(), nullable=True),
        sa.Column("location_address", sa.String(), nullable=True),
        sa.Column("face_match_score", sa.Float(), nullable=True),
        sa.Column("face_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("marked_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["guard_id"], ["guards.id"]),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"]),
        sa.ForeignKeyConstraint(["marked_by"], ["guards.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_attendance_punches_id"), "attendance_punches", ["id"], unique=False)
    op.create_index(op.f("ix_attendance_punches_organization_id"), "attendance_punches", ["organization_id"], unique=False)
    op.create_index("ix_attendance_punches_guard_date", "attendance_punches", ["guard_id", "punch_date"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("actor_type", sa.String(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("entity_type", sa.String(), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("meta_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_logs_id"), "audit_logs", ["id"], unique=False)
    op.create_index(op.f("ix_audit_logs_organization_id"), "audit_logs", ["organization_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_audit_logs_organization_id"), table_name="audit_logs")
    op.drop_index(op.f("ix_audit_logs_id"), table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_attendance_punches_guard_date", table_name="attendance_punches")
    op.drop_index(op.f("ix_attendance_punches_organization_id"), table_name="attendance_punches")
    op.drop_index(op.f("ix_attendance_punches_id"), table_name="attendance_punches")
    op.drop_table("attendance_punches")
    op.drop_index("uq_work_events_open_shift_per_guard", table_name="work_events")
    op.drop_index("ix_work_events_org_shift_date", table_name="work_events")
    op.drop_index(op.f("ix_work_events_guard_id"), table_name="work_events")
    op.drop_index(op.f("ix_work_events_organization_id"), table_name="work_events")
    op.drop_index(op.f("ix_work_events_id"), table_name="work_events")
    op.drop_table("work_events")
    op.drop_index(op.f("ix_guards_primary_unit_id"), table_name="guards")
    op.drop_index(op.f("ix_guards_guard_code"), table_name="guards")
    op.drop_index(op.f("ix_guards_organization_id"), table_name="guards")
    op.drop_index(op.f("ix_guards_id"), table_name="guards")
    op.drop_table("guards")
    op.drop_index(op.f("ix_units_organization_id"), table_name="units")
    op.drop_index(op.f("ix_units_id"), table_name="units")
    op.drop_table("units")
    op.drop_index(op.f("ix_org_users_email"), table_name="org_users")
    op.drop_index(op.f("ix_org_users_organization_id"), table_name="org_users")
    op.drop_index(op.f("ix_org_users_id"), table_name="org_users")
    op.drop_table("org_users")
    op.drop_index(op.f("ix_organizations_slug"), table_name="organizations")
    op.drop_index(op.f("ix_organizations_id"), table_name="organizations")
    op.drop_table("organizations")
