import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from tasksetu.models.base import Base, Timestamps, UUIDPk, enum_type
from tasksetu.models.enums import Role, UserStatus

class User(UUIDPk, Timestamps, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(sa.String(320), nullable=False, unique=True, index=True)
    first_name: Mapped[str | None] = mapped_column(sa.String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(sa.String(100), nullable=True)

    # null org means an individual account
    org_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid(), sa.ForeignKey("organizations.id"), index=True, nullable=True
    )
    role: Mapped[Role] = mapped_column(enum_type(Role, "role"), nullable=False, default=Role.individual)
    status: Mapped[UserStatus] = mapped_column(
        enum_type(UserStatus, "user_status"), nullable=False, default=UserStatus.active
    )
    is_active: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, default=True)

    department: Mapped[str | None] = mapped_column(sa.String(50), nullable=True)
    designation: Mapped[str | None] = mapped_column(sa.String(50), nullable=True)
    location: Mapped[str | None] = mapped_column(sa.String(50), nullable=True)

    invited_by: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid(), nullable=True)
    last_login_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    @property
    def name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else self.email.split("@", 1)[0]
