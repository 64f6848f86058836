import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from tasksetu.models.base import Base, JSONType, Timestamps, UUIDPk, enum_type
from tasksetu.models.enums import QuickTaskPriority, QuickTaskStatus
from tasksetu.time_utils import as_utc, days_until, now_utc

class QuickTask(UUIDPk, Timestamps, Base):
    __tablename__ = "quick_tasks"

    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    title: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(sa.String(1000), nullable=True)
    status: Mapped[QuickTaskStatus] = mapped_column(
        enum_type(QuickTaskStatus, "quick_task_status"), nullable=False, default=QuickTaskStatus.pending
    )
    priority: Mapped[QuickTaskPriority] = mapped_column(
        enum_type(QuickTaskPriority, "quick_task_priority"),
        nullable=False,
        default=QuickTaskPriority.medium,
    )
    due_date: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    reminder: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    converted_task_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True
    )
    converted_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    @property
    def task_age(self) -> int:
        # whole days since creation
        if self.created_at is None:
            return 0
        return max((now_utc() - as_utc(self.created_at)).days, 0)

    @property
    def is_overdue(self) -> bool:
        if self.due_date is None or self.status == QuickTaskStatus.done:
            return False
        return as_utc(self.due_date) < now_utc()

    @property
    def days_until_due(self) -> int | None:
        return days_until(self.due_date)
