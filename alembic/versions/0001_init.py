"""init schema

Revision ID: 0001_init
Revises: 
Create Date: 2026-08-03
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

ENUMS = {
    "role": ("individual", "member", "employee", "manager", "admin", "org_admin", "super_admin"),
    "user_status": ("invited", "active", "inactive"),
    "license_code": ("EXPLORE", "PLAN", "EXECUTE", "OPTIMIZE"),
    "billing_cycle": ("monthly", "yearly"),
    "subscription_status": ("none", "incomplete", "trialing", "active", "past_due", "canceled", "unpaid"),
    "task_status": ("todo", "in-progress", "blocked", "in-review", "done", "cancelled"),
    "task_priority": ("low", "medium", "high", "critical", "urgent"),
    "task_type": ("regular", "recurring", "approval"),
    "visibility": ("private", "team", "organization"),
    "risk_level": ("low", "medium", "high"),
    "approval_mode": ("any", "all", "majority"),
    "approval_status": ("pending", "approved", "rejected"),
    "approval_decision": ("pending", "approved", "rejected"),
    "audit_action": (
        "created",
        "updated",
        "deleted",
        "assigned",
        "unassigned",
        "status_changed",
        "commented",
        "tagged",
        "due_date_changed",
        "priority_changed",
        "snoozed",
        "unsnoozed",
        "risk_marked",
        "risk_unmarked",
        "approved",
        "rejected",
        "recurrence_skipped",
        "recurrence_stopped",
    ),
}

def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)

def _uuid() -> postgresql.UUID:
    return postgresql.UUID(as_uuid=True)

def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]

def upgrade() -> None:
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(op.get_bind(), checkfirst=True)

    op.create_table(
        "organizations",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("industry", sa.String(length=100), nullable=True),
        sa.Column("size", sa.String(length=20), nullable=True),
        sa.Column("website", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("plan", _enum("license_code"), nullable=False, server_default="EXPLORE"),
        sa.Column("billing_cycle", _enum("billing_cycle"), nullable=False, server_default="monthly"),
        sa.Column("subscription_status", _enum("subscription_status"), nullable=False, server_default="none"),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("stripe_customer_id", sa.String(length=255), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(length=255), nullable=True),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_organizations_slug", "organizations", ["slug"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("org_id", _uuid(), sa.ForeignKey("organizations.id"), nullable=True),
        sa.Column("role", _enum("role"), nullable=False, server_default="individual"),
        sa.Column("status", _enum("user_status"), nullable=False, server_default="active"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("department", sa.String(length=50), nullable=True),
        sa.Column("designation", sa.String(length=50), nullable=True),
        sa.Column("location", sa.String(length=50), nullable=True),
        sa.Column("invited_by", _uuid(), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_org_id", "users", ["org_id"])

    op.create_table(
        "auth_magic_links",
        sa.Column("token_hash", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("user_id", _uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_auth_magic_links_user_id", "auth_magic_links", ["user_id"])

    op.create_table(
        "tasks",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("org_id", _uuid(), sa.ForeignKey("organizations.id"), nullable=True),
        sa.Column("parent_task_id", _uuid(), sa.ForeignKey("tasks.id"), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", _enum("task_status"), nullable=False, server_default="todo"),
        sa.Column("priority", _enum("task_priority"), nullable=False, server_default="medium"),
        sa.Column("task_type", _enum("task_type"), nullable=False, server_default="regular"),
        sa.Column("visibility", _enum("visibility"), nullable=False, server_default="private"),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("tags", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_time", sa.String(length=5), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_by", _uuid(), nullable=True),
        sa.Column("completion_notes", sa.Text(), nullable=True),
        sa.Column("created_by", _uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("assigned_to", _uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("estimated_hours", sa.Float(), nullable=True),
        sa.Column("actual_hours", sa.Float(), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", _uuid(), nullable=True),
        sa.Column("is_snoozed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("snooze_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("snooze_reason", sa.String(length=500), nullable=True),
        sa.Column("snoozed_by", _uuid(), nullable=True),
        sa.Column("is_risky", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("risk_level", _enum("risk_level"), nullable=True),
        sa.Column("risk_reason", sa.String(length=500), nullable=True),
        sa.Column("risk_marked_by", _uuid(), nullable=True),
        sa.Column("risk_marked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("recurrence_pattern", postgresql.JSONB(), nullable=True),
        sa.Column("next_due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("recurrence_parent_id", _uuid(), sa.ForeignKey("tasks.id"), nullable=True),
        sa.Column("recurrence_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("approval_mode", _enum("approval_mode"), nullable=True),
        sa.Column("approval_status", _enum("approval_status"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tasks_org_id", "tasks", ["org_id"])
    op.create_index("ix_tasks_parent_task_id", "tasks", ["parent_task_id"])
    op.create_index("ix_tasks_assigned_to", "tasks", ["assigned_to"])
    op.create_index("ix_tasks_recurrence_parent_id", "tasks", ["recurrence_parent_id"])

    op.create_table(
        "task_collaborators",
        sa.Column("task_id", _uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", _uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "task_approvers",
        sa.Column("task_id", _uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", _uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("decision", _enum("approval_decision"), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("org_id", _uuid(), sa.ForeignKey("organizations.id"), nullable=True),
        sa.Column("task_id", _uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True),
        sa.Column("user_id", _uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action", _enum("audit_action"), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("old_value", postgresql.JSONB(), nullable=True),
        sa.Column("new_value", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_audit_logs_org_id", "audit_logs", ["org_id"])
    op.create_index("ix_audit_logs_task_id", "audit_logs", ["task_id"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

def downgrade() -> None:
    for ix in ("created_at", "user_id", "task_id", "org_id"):
        op.drop_index(f"ix_audit_logs_{ix}", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("task_approvers")
    op.drop_table("task_collaborators")

    for ix in ("recurrence_parent_id", "assigned_to", "parent_task_id", "org_id"):
        op.drop_index(f"ix_tasks_{ix}", table_name="tasks")
    op.drop_table("tasks")

    op.drop_index("ix_auth_magic_links_user_id", table_name="auth_magic_links")
    op.drop_table("auth_magic_links")

    op.drop_index("ix_users_org_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    op.drop_index("ix_organizations_slug", table_name="organizations")
    op.drop_table("organizations")

    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
