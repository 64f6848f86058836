import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from tasksetu.models.enums import MilestoneAction, MilestonePriority, MilestoneStatus, TaskStatus, TaskType
from tasksetu.schemas.common import Pagination, Title

Tag = Annotated[str, Field(min_length=1, max_length=50)]

class MilestoneCreateIn(BaseModel):
    title: Title
    description: str | None = Field(default=None, max_length=2000)
    assigned_to: uuid.UUID
    priority: MilestonePriority = MilestonePriority.medium
    due_date: datetime
    tags: list[Tag] = Field(default_factory=list)
    task_ids: list[uuid.UUID] = Field(default_factory=list)

class MilestoneUpdateIn(BaseModel):
    title: Title | None = None
    description: str | None = Field(default=None, max_length=2000)
    assigned_to: uuid.UUID | None = None
    status: MilestoneStatus | None = None
    priority: MilestonePriority | None = None
    due_date: datetime | None = None
    tags: list[Tag] | None = None

class LinkTaskIn(BaseModel):
    task_id: uuid.UUID

class AchieveIn(BaseModel):
    force: bool = False

class MilestoneLinkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    task_id: uuid.UUID
    task_title: str
    task_type: TaskType
    status: TaskStatus
    completion_percentage: int
    linked_at: datetime
    linked_by: uuid.UUID

class MilestoneActivityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    action: MilestoneAction
    performed_by: uuid.UUID
    description: str
    details: dict | None
    created_at: datetime

class MilestoneOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    org_id: uuid.UUID
    title: str
    description: str | None
    created_by: uuid.UUID
    assigned_to: uuid.UUID
    status: MilestoneStatus
    priority: MilestonePriority
    due_date: datetime
    tags: list[str]
    progress_percentage: int
    achieved_at: datetime | None
    is_overdue: bool
    days_until_due: int | None
    links: list[MilestoneLinkOut]
    created_at: datetime
    updated_at: datetime

class MilestoneDetailOut(MilestoneOut):
    activities: list[MilestoneActivityOut]

class MilestoneListOut(BaseModel):
    items: list[MilestoneOut]
    pagination: Pagination

class MilestoneStatsOut(BaseModel):
    total: int
    by_status: dict[str, int]
    overdue: int
