"""milestones, quick tasks, comments, forms, calendar connections

Revision ID: 0003_milestones_quick_tasks_forms
Revises: 0002_stripe_webhooks
Create Date: 2026-08-17
"""
from __future__ import annotations

from typing import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0003_milestones_quick_tasks_forms"
down_revision = "0002_stripe_webhooks"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

ENUMS = {
    "milestone_status": ("OPEN", "INPROGRESS", "ACHIEVED", "CANCELLED"),
    "milestone_priority": ("low", "medium", "high", "critical"),
    "milestone_action": (
        "created",
        "task_linked",
        "task_unlinked",
        "task_completed",
        "status_changed",
        "comment_added",
        "achieved",
        "cancelled",
    ),
    "quick_task_status": ("pending", "in-progress", "done"),
    "quick_task_priority": ("low", "medium", "high"),
    "form_response_status": ("submitted", "in_progress", "completed", "rejected"),
}

UUID = postgresql.UUID(as_uuid=True)

def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)

def _existing(name: str) -> postgresql.ENUM:
    # created in 0001
    return postgresql.ENUM(name=name, create_type=False)

def _now() -> sa.TextClause:
    return sa.text("now()")

def upgrade() -> None:
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(op.get_bind(), checkfirst=True)

    op.create_table(
        "milestones",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("org_id", UUID, sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("assigned_to", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", _enum("milestone_status"), nullable=False, server_default="OPEN"),
        sa.Column("priority", _enum("milestone_priority"), nullable=False, server_default="medium"),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("tags", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("progress_percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("achieved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
    )
    op.create_index("ix_milestones_org_id", "milestones", ["org_id"])
    op.create_index("ix_milestones_assigned_to", "milestones", ["assigned_to"])

    op.create_table(
        "milestone_links",
        sa.Column("milestone_id", UUID, sa.ForeignKey("milestones.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("task_id", UUID, sa.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("task_title", sa.String(length=200), nullable=False),
        sa.Column("task_type", _existing("task_type"), nullable=False),
        sa.Column("status", _existing("task_status"), nullable=False),
        sa.Column("completion_percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("linked_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("linked_by", UUID, nullable=False),
    )
    op.create_index("ix_milestone_links_task_id", "milestone_links", ["task_id"])

    op.create_table(
        "milestone_activities",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("milestone_id", UUID, sa.ForeignKey("milestones.id", ondelete="CASCADE"), nullable=False),
        sa.Column("action", _enum("milestone_action"), nullable=False),
        sa.Column("performed_by", UUID, nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("details", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
    )
    op.create_index("ix_milestone_activities_milestone_id", "milestone_activities", ["milestone_id"])

    op.create_table(
        "quick_tasks",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("status", _enum("quick_task_status"), nullable=False, server_default="pending"),
        sa.Column("priority", _enum("quick_task_priority"), nullable=False, server_default="medium"),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tags", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("reminder", sa.DateTime(timezone=True), nullable=True),
        sa.Column("converted_task_id", UUID, sa.ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True),
        sa.Column("converted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
    )
    op.create_index("ix_quick_tasks_user_id", "quick_tasks", ["user_id"])

    op.create_table(
        "comments",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("task_id", UUID, sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True),
        sa.Column("milestone_id", UUID, sa.ForeignKey("milestones.id", ondelete="CASCADE"), nullable=True),
        sa.Column("author_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.String(length=1000), nullable=False),
        sa.Column("parent_id", UUID, sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True),
        sa.Column("mentions", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("edited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
    )
    op.create_index("ix_comments_task_id", "comments", ["task_id"])
    op.create_index("ix_comments_milestone_id", "comments", ["milestone_id"])
    op.create_index("ix_comments_parent_id", "comments", ["parent_id"])

    op.create_table(
        "forms",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("org_id", UUID, sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("fields", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("settings", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("access_link", sa.String(length=64), nullable=True, unique=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
    )
    op.create_index("ix_forms_org_id", "forms", ["org_id"])

    op.create_table(
        "form_responses",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("form_id", UUID, sa.ForeignKey("forms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("submitted_by", UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("values", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("status", _enum("form_response_status"), nullable=False, server_default="submitted"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
    )
    op.create_index("ix_form_responses_form_id", "form_responses", ["form_id"])

    op.create_table(
        "calendar_connections",
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("provider", sa.String(length=32), nullable=False, server_default="google"),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
    )

def downgrade() -> None:
    op.drop_table("calendar_connections")

    op.drop_index("ix_form_responses_form_id", table_name="form_responses")
    op.drop_table("form_responses")
    op.drop_index("ix_forms_org_id", table_name="forms")
    op.drop_table("forms")

    for ix in ("parent_id", "milestone_id", "task_id"):
        op.drop_index(f"ix_comments_{ix}", table_name="comments")
    op.drop_table("comments")

    op.drop_index("ix_quick_tasks_user_id", table_name="quick_tasks")
    op.drop_table("quick_tasks")

    op.drop_index("ix_milestone_activities_milestone_id", table_name="milestone_activities")
    op.drop_table("milestone_activities")
    op.drop_index("ix_milestone_links_task_id", table_name="milestone_links")
    op.drop_table("milestone_links")
    op.drop_index("ix_milestones_assigned_to", table_name="milestones")
    op.drop_index("ix_milestones_org_id", table_name="milestones")
    op.drop_table("milestones")

    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
