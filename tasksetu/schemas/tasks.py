import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from tasksetu.models.enums import (
    ApprovalMode,
    ApprovalStatus,
    AuditAction,
    RiskLevel,
    TaskPriority,
    TaskStatus,
    TaskType,
    Visibility,
)
from tasksetu.schemas.common import Pagination, Title

Tag = Annotated[str, Field(min_length=1, max_length=50)]
Hours = Annotated[float, Field(ge=0, le=1000)]

class TaskCreateIn(BaseModel):
    title: Title
    description: str | None = Field(default=None, max_length=2000)
    priority: TaskPriority = TaskPriority.medium
    task_type: TaskType = TaskType.regular
    visibility: Visibility = Visibility.private
    category: str | None = Field(default=None, max_length=100)
    tags: list[Tag] = Field(default_factory=list)
    due_date: datetime | None = None
    due_time: str | None = Field(default=None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    start_date: datetime | None = None
    assigned_to: uuid.UUID | None = None
    collaborator_ids: list[uuid.UUID] = Field(default_factory=list)
    estimated_hours: Hours | None = None
    recurrence_pattern: dict | None = None
    approval_mode: ApprovalMode = ApprovalMode.any
    approver_ids: list[uuid.UUID] = Field(default_factory=list)

class TaskUpdateIn(BaseModel):
    title: Title | None = None
    description: str | None = Field(default=None, max_length=2000)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    visibility: Visibility | None = None
    category: str | None = Field(default=None, max_length=100)
    tags: list[Tag] | None = None
    due_date: datetime | None = None
    due_time: str | None = Field(default=None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    start_date: datetime | None = None
    assigned_to: uuid.UUID | None = None
    collaborator_ids: list[uuid.UUID] | None = None
    estimated_hours: Hours | None = None
    actual_hours: Hours | None = None
    progress: int | None = Field(default=None, ge=0, le=100)

class StatusIn(BaseModel):
    status: TaskStatus
    completion_notes: str | None = Field(default=None, max_length=2000)

class SnoozeIn(BaseModel):
    snooze_until: datetime
    reason: str | None = Field(default=None, max_length=500)

class RiskIn(BaseModel):
    risk_level: RiskLevel
    reason: str | None = Field(default=None, max_length=500)

class QuickDoneIn(BaseModel):
    completion_notes: str | None = Field(default=None, max_length=2000)

class ApproveIn(BaseModel):
    decision: ApprovalStatus
    comment: str | None = Field(default=None, max_length=1000)

class ApproverOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    decision: ApprovalStatus | None
    comment: str | None
    decided_at: datetime | None

class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    org_id: uuid.UUID | None
    parent_task_id: uuid.UUID | None
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    task_type: TaskType
    visibility: Visibility
    category: str | None
    tags: list[str]
    due_date: datetime | None
    due_time: str | None
    start_date: datetime | None
    completed_at: datetime | None
    completed_by: uuid.UUID | None
    completion_notes: str | None
    created_by: uuid.UUID
    assigned_to: uuid.UUID | None
    collaborator_ids: list[uuid.UUID]
    estimated_hours: float | None
    actual_hours: float | None
    progress: int
    is_snoozed: bool
    snooze_until: datetime | None
    snooze_reason: str | None
    is_risky: bool
    risk_level: RiskLevel | None
    risk_reason: str | None
    recurrence_pattern: dict | None
    next_due_date: datetime | None
    recurrence_parent_id: uuid.UUID | None
    recurrence_active: bool
    approval_mode: ApprovalMode | None
    approval_status: ApprovalStatus | None
    approvers: list[ApproverOut]
    is_overdue: bool
    days_until_due: int | None
    created_at: datetime
    updated_at: datetime

class TaskListOut(BaseModel):
    items: list[TaskOut]
    pagination: Pagination

class StatusChangeOut(BaseModel):
    task: TaskOut
    next_occurrence: TaskOut | None = None

class ActivityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    task_id: uuid.UUID | None
    user_id: uuid.UUID
    action: AuditAction
    description: str
    old_value: dict | None
    new_value: dict | None
    created_at: datetime

class GenerateOut(BaseModel):
    processed: int
    created: list[uuid.UUID]
