import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

class CommentIn(BaseModel):
    content: str = Field(max_length=5000)
    mentions: list[uuid.UUID] = Field(default_factory=list)

class CommentUpdateIn(BaseModel):
    content: str = Field(max_length=5000)

class CommentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    task_id: uuid.UUID | None
    milestone_id: uuid.UUID | None
    author_id: uuid.UUID
    content: str
    parent_id: uuid.UUID | None
    mentions: list[uuid.UUID]
    is_edited: bool
    edited_at: datetime | None
    created_at: datetime
    replies: list["CommentOut"] = Field(default_factory=list)
