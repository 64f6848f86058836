import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from tasksetu.models.enums import QuickTaskPriority, QuickTaskStatus, TaskPriority, Visibility
from tasksetu.schemas.common import Pagination, Title

Tag = Annotated[str, Field(min_length=1, max_length=50)]

class QuickTaskCreateIn(BaseModel):
    title: Title
    description: str | None = Field(default=None, max_length=1000)
    priority: QuickTaskPriority = QuickTaskPriority.medium
    due_date: datetime | None = None
    tags: list[Tag] = Field(default_factory=list)
    reminder: datetime | None = None

class QuickTaskUpdateIn(BaseModel):
    title: Title | None = None
    description: str | None = Field(default=None, max_length=1000)
    status: QuickTaskStatus | None = None
    priority: QuickTaskPriority | None = None
    due_date: datetime | None = None
    tags: list[Tag] | None = None
    reminder: datetime | None = None

class ConvertIn(BaseModel):
    title: Title | None = None
    description: str | None = Field(default=None, max_length=2000)
    priority: TaskPriority | None = None
    visibility: Visibility = Visibility.private
    assigned_to: uuid.UUID | None = None
    due_date: datetime | None = None

class QuickTaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str | None
    status: QuickTaskStatus
    priority: QuickTaskPriority
    due_date: datetime | None
    tags: list[str]
    reminder: datetime | None
    converted_task_id: uuid.UUID | None
    converted_at: datetime | None
    completed_at: datetime | None
    task_age: int
    is_overdue: bool
    days_until_due: int | None
    created_at: datetime
    updated_at: datetime

class QuickTaskListOut(BaseModel):
    items: list[QuickTaskOut]
    pagination: Pagination

class QuickTaskStatsOut(BaseModel):
    total: int
    pending: int
    in_progress: int
    done: int
    overdue: int
