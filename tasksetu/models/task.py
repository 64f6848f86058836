import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tasksetu.models.base import Base, JSONType, Timestamps, UUIDPk, enum_type
from tasksetu.models.enums import (
    ApprovalMode,
    ApprovalStatus,
    RiskLevel,
    TaskPriority,
    TaskStatus,
    TaskType,
    Visibility,
)
from tasksetu.time_utils import as_utc, days_until, now_utc

task_collaborators = sa.Table(
    "task_collaborators",
    Base.metadata,
    sa.Column("task_id", sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

class TaskApprover(Base):
    __tablename__ = "task_approvers"

    task_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    # null until the approver decides
    decision: Mapped[ApprovalStatus | None] = mapped_column(
        enum_type(ApprovalStatus, "approval_decision"), nullable=True
    )
    comment: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

class Task(UUIDPk, Timestamps, Base):
    __tablename__ = "tasks"

    org_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid(), sa.ForeignKey("organizations.id"), index=True, nullable=True
    )
    parent_task_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid(), sa.ForeignKey("tasks.id"), index=True, nullable=True
    )

    title: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    status: Mapped[TaskStatus] = mapped_column(
        enum_type(TaskStatus, "task_status"), nullable=False, default=TaskStatus.todo
    )
    priority: Mapped[TaskPriority] = mapped_column(
        enum_type(TaskPriority, "task_priority"), nullable=False, default=TaskPriority.medium
    )
    task_type: Mapped[TaskType] = mapped_column(
        enum_type(TaskType, "task_type"), nullable=False, default=TaskType.regular
    )
    visibility: Mapped[Visibility] = mapped_column(
        enum_type(Visibility, "visibility"), nullable=False, default=Visibility.private
    )
    category: Mapped[str | None] = mapped_column(sa.String(100), nullable=True)
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    due_date: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    start_date: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    # "HH:MM", turns a calendar event into a timed slot
    due_time: Mapped[str | None] = mapped_column(sa.String(5), nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    completed_by: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid(), nullable=True)
    completion_notes: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)

    created_by: Mapped[uuid.UUID] = mapped_column(sa.Uuid(), sa.ForeignKey("users.id"), nullable=False)
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid(), sa.ForeignKey("users.id"), index=True, nullable=True
    )

    estimated_hours: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    actual_hours: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    progress: Mapped[int] = mapped_column(sa.Integer(), nullable=False, default=0)

    is_deleted: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    deleted_by: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid(), nullable=True)

    is_snoozed: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, default=False)
    snooze_until: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    snooze_reason: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)
    snoozed_by: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid(), nullable=True)

    is_risky: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, default=False)
    risk_level: Mapped[RiskLevel | None] = mapped_column(enum_type(RiskLevel, "risk_level"), nullable=True)
    risk_reason: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)
    risk_marked_by: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid(), nullable=True)
    risk_marked_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    recurrence_pattern: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    next_due_date: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    recurrence_parent_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid(), sa.ForeignKey("tasks.id"), index=True, nullable=True
    )
    recurrence_active: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, default=True)

    approval_mode: Mapped[ApprovalMode | None] = mapped_column(
        enum_type(ApprovalMode, "approval_mode"), nullable=True
    )
    approval_status: Mapped[ApprovalStatus | None] = mapped_column(
        enum_type(ApprovalStatus, "approval_status"), nullable=True
    )

    collaborators: Mapped[list["User"]] = relationship("User", secondary=task_collaborators, lazy="selectin")

    approvers: Mapped[list[TaskApprover]] = relationship(
        TaskApprover, cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def collaborator_ids(self) -> list[uuid.UUID]:
        return [u.id for u in self.collaborators]

    @property
    def is_overdue(self) -> bool:
        if self.due_date is None or self.status in (TaskStatus.done, TaskStatus.cancelled):
            return False
        return as_utc(self.due_date) < now_utc()

    @property
    def days_until_due(self) -> int | None:
        if self.due_date is None:
            return None
        return days_until(self.due_date)

