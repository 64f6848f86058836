import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from tasksetu.models.base import Base, JSONType, UUIDPk, enum_type
from tasksetu.models.enums import AuditAction

class AuditLog(UUIDPk, Base):
    __tablename__ = "audit_logs"

    org_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid(), sa.ForeignKey("organizations.id"), index=True, nullable=True
    )
    task_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), index=True, nullable=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(), sa.ForeignKey("users.id"), index=True, nullable=False)
    action: Mapped[AuditAction] = mapped_column(enum_type(AuditAction, "audit_action"), nullable=False)
    description: Mapped[str] = mapped_column(sa.String(500), nullable=False)
    old_value: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    new_value: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True
    )
