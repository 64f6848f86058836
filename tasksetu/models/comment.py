import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from tasksetu.models.base import Base, JSONType, Timestamps, UUIDPk

class Comment(UUIDPk, Timestamps, Base):
    __tablename__ = "comments"

    # exactly one of task_id / milestone_id is set
    task_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), index=True, nullable=True
    )
    milestone_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid(), sa.ForeignKey("milestones.id", ondelete="CASCADE"), index=True, nullable=True
    )
    author_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(), sa.ForeignKey("users.id"), nullable=False)
    content: Mapped[str] = mapped_column(sa.String(1000), nullable=False)
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid(), sa.ForeignKey("comments.id", ondelete="CASCADE"), index=True, nullable=True
    )
    mentions: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    is_edited: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, default=False)
    edited_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
