import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from tasksetu.models.base import Base, JSONType, Timestamps, UUIDPk, enum_type
from tasksetu.models.enums import FormResponseStatus

class Form(UUIDPk, Timestamps, Base):
    __tablename__ = "forms"

    org_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(), sa.ForeignKey("organizations.id"), index=True, nullable=False
    )
    title: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    # list of field dicts, see services.forms
    fields: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    settings: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    is_published: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, default=False)
    access_link: Mapped[str | None] = mapped_column(sa.String(64), unique=True, nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    created_by: Mapped[uuid.UUID] = mapped_column(sa.Uuid(), sa.ForeignKey("users.id"), nullable=False)

class FormResponse(UUIDPk, Base):
    __tablename__ = "form_responses"

    form_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(), sa.ForeignKey("forms.id", ondelete="CASCADE"), index=True, nullable=False
    )
    submitted_by: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid(), sa.ForeignKey("users.id"), nullable=True)
    values: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    status: Mapped[FormResponseStatus] = mapped_column(
        enum_type(FormResponseStatus, "form_response_status"),
        nullable=False,
        default=FormResponseStatus.submitted,
    )
    submitted_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
