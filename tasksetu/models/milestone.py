import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tasksetu.models.base import Base, JSONType, Timestamps, UUIDPk, enum_type
from tasksetu.models.enums import (
    MilestoneAction,
    MilestonePriority,
    MilestoneStatus,
    TaskStatus,
    TaskType,
)
from tasksetu.time_utils import as_utc, days_until, now_utc

class MilestoneLink(Base):
    __tablename__ = "milestone_links"

    milestone_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(), sa.ForeignKey("milestones.id", ondelete="CASCADE"), primary_key=True
    )
    task_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    # cached from the task at link time
    task_title: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    task_type: Mapped[TaskType] = mapped_column(enum_type(TaskType, "task_type"), nullable=False)
    status: Mapped[TaskStatus] = mapped_column(enum_type(TaskStatus, "task_status"), nullable=False)
    completion_percentage: Mapped[int] = mapped_column(sa.Integer(), nullable=False, default=0)
    linked_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    linked_by: Mapped[uuid.UUID] = mapped_column(sa.Uuid(), nullable=False)

class MilestoneActivity(UUIDPk, Base):
    __tablename__ = "milestone_activities"

    milestone_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(), sa.ForeignKey("milestones.id", ondelete="CASCADE"), index=True, nullable=False
    )
    action: Mapped[MilestoneAction] = mapped_column(
        enum_type(MilestoneAction, "milestone_action"), nullable=False
    )
    performed_by: Mapped[uuid.UUID] = mapped_column(sa.Uuid(), nullable=False)
    description: Mapped[str] = mapped_column(sa.String(500), nullable=False)
    details: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )

class Milestone(UUIDPk, Timestamps, Base):
    __tablename__ = "milestones"

    org_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(), sa.ForeignKey("organizations.id"), index=True, nullable=False
    )
    title: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)

    created_by: Mapped[uuid.UUID] = mapped_column(sa.Uuid(), sa.ForeignKey("users.id"), nullable=False)
    assigned_to: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(), sa.ForeignKey("users.id"), index=True, nullable=False
    )

    status: Mapped[MilestoneStatus] = mapped_column(
        enum_type(MilestoneStatus, "milestone_status"), nullable=False, default=MilestoneStatus.open
    )
    priority: Mapped[MilestonePriority] = mapped_column(
        enum_type(MilestonePriority, "milestone_priority"),
        nullable=False,
        default=MilestonePriority.medium,
    )
    due_date: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    progress_percentage: Mapped[int] = mapped_column(sa.Integer(), nullable=False, default=0)
    achieved_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    links: Mapped[list[MilestoneLink]] = relationship(
        MilestoneLink, cascade="all, delete-orphan", lazy="selectin", order_by=MilestoneLink.linked_at
    )
    activities: Mapped[list[MilestoneActivity]] = relationship(
        MilestoneActivity,
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=MilestoneActivity.created_at.desc(),
    )

    @property
    def is_overdue(self) -> bool:
        if self.status in (MilestoneStatus.achieved, MilestoneStatus.cancelled):
            return False
        return as_utc(self.due_date) < now_utc()

    @property
    def days_until_due(self) -> int | None:
        return days_until(self.due_date)
