import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from tasksetu.models.base import Base, Timestamps

class CalendarConnection(Timestamps, Base):
    __tablename__ = "calendar_connections"

    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    provider: Mapped[str] = mapped_column(sa.String(32), nullable=False, default="google")
    access_token: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    refresh_token: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    last_synced_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
