import logging
import uuid
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import case, func, or_, select
from sqlalchemy.orm import Session

from tasksetu.billing.gates import enforce_billing_writable, enforce_feature_limit
from tasksetu.db import get_db
from tasksetu.errors import bad_request
from tasksetu.models.enums import (
    ApprovalStatus,
    AuditAction,
    TaskPriority,
    TaskStatus,
    TaskType,
    Visibility,
)
from tasksetu.models.task import Task
from tasksetu.rbac.deps import OrgContext, get_user_context, require_perm
from tasksetu.rbac.perms import can_manage_visibility
from tasksetu.schemas.common import paginate
from tasksetu.schemas.tasks import StatusChangeOut, StatusIn, TaskCreateIn, TaskListOut, TaskOut, TaskUpdateIn
from tasksetu.services import audit, milestones
from tasksetu.services.recurrence import InvalidPattern, next_due_date, validate_pattern
from tasksetu.services.task_access import can_edit_task, get_visible_task, org_member, org_members, visible_tasks_clause
from tasksetu.services.task_lifecycle import apply_status, set_approvers
from tasksetu.services.task_rules import validate_deletion, validate_status_change
from tasksetu.time_utils import as_utc, now_utc

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tasks"])

_FEATURE_BY_TYPE = {
    TaskType.regular: "TASK_BASIC",
    TaskType.recurring: "TASK_RECUR",
    TaskType.approval: "TASK_APPROVAL",
}

_PRIORITY_RANK = case(
    {
        TaskPriority.low: 1,
        TaskPriority.medium: 2,
        TaskPriority.high: 3,
        TaskPriority.critical: 4,
        TaskPriority.urgent: 5,
    },
    value=Task.priority,
    else_=0,
)

_SORT_COLUMNS = {
    "created_at": Task.created_at,
    "updated_at": Task.updated_at,
    "due_date": Task.due_date,
    "priority": _PRIORITY_RANK,
    "title": Task.title,
}

def _plain(value):
    # audit old/new values are stored as json
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value

def _check_assignment(db: Session, ctx: OrgContext, assignee_id: uuid.UUID | None) -> None:
    if assignee_id is None or assignee_id == ctx.user.id:
        return
    if not ctx.can("assign_task"):
        raise HTTPException(status_code=403, detail="cannot assign tasks to others")
    if org_member(db, ctx, assignee_id) is None:
        raise HTTPException(status_code=400, detail="assignee must belong to your organization")

def create_task_record(
    db: Session,
    ctx: OrgContext,
    payload: TaskCreateIn,
    parent: Task | None = None,
) -> Task:
    """Validate, gate and insert a task (or a subtask of `parent`); the caller commits."""
    enforce_billing_writable(ctx.org)

    task_type = TaskType.regular if parent is not None else payload.task_type
    feature = "TASK_SUB" if parent is not None else _FEATURE_BY_TYPE[task_type]
    enforce_feature_limit(db, ctx.org, feature)

    errors: list[str] = []
    pattern = None
    if task_type == TaskType.recurring:
        if payload.due_date is None:
            errors.append("recurring tasks need a due date")
        try:
            pattern = validate_pattern(payload.recurrence_pattern)
        except InvalidPattern as e:
            errors.append(str(e))

    approvers = []
    if task_type == TaskType.approval:
        if not payload.approver_ids:
            errors.append("approval tasks need at least one approver")
        else:
            approvers = org_members(db, ctx, payload.approver_ids)
            if len(approvers) != len(set(payload.approver_ids)):
                errors.append("approvers must belong to your organization")

    collaborators = org_members(db, ctx, payload.collaborator_ids)
    if len(collaborators) != len(set(payload.collaborator_ids)):
        errors.append("collaborators must belong to your organization")

    if errors:
        raise bad_request(errors)

    _check_assignment(db, ctx, payload.assigned_to)
    if payload.visibility != Visibility.private and not can_manage_visibility(ctx.role):
        raise HTTPException(status_code=403, detail="only managers can change task visibility")

    task = Task(
        org_id=ctx.org_id,
        parent_task_id=parent.id if parent is not None else None,
        title=payload.title,
        description=payload.description,
        priority=payload.priority,
        task_type=task_type,
        visibility=payload.visibility,
        category=payload.category,
        tags=list(payload.tags),
        due_date=payload.due_date,
        due_time=payload.due_time,
        start_date=payload.start_date,
        created_by=ctx.user.id,
        assigned_to=payload.assigned_to or ctx.user.id,
        estimated_hours=payload.estimated_hours,
    )
    task.collaborators = collaborators

    if task_type == TaskType.recurring:
        task.recurrence_pattern = pattern
        task.next_due_date = next_due_date(pattern, payload.due_date)
    if task_type == TaskType.approval:
        task.approval_mode = payload.approval_mode
        task.approval_status = ApprovalStatus.pending
        set_approvers(task, [a.id for a in approvers])

    db.add(task)
    db.flush()

    audit.record(
        db,
        action=AuditAction.created,
        user_id=ctx.user.id,
        org_id=task.org_id,
        task_id=task.id,
        description=f"created {task_type.value} task {task.title}",
    )
    if task.assigned_to != ctx.user.id:
        audit.record(
            db,
            action=AuditAction.assigned,
            user_id=ctx.user.id,
            org_id=task.org_id,
            task_id=task.id,
            description="task assigned",
            new_value={"assigned_to": str(task.assigned_to)},
        )
    logger.info("task %s (%s) created by %s", task.id, task_type.value, ctx.user.id)
    return task

@router.post("/tasks", response_model=TaskOut, status_code=201)
def create_task(
    payload: TaskCreateIn,
    ctx: OrgContext = Depends(require_perm("create_task", org_required=False)),
    db: Session = Depends(get_db),
) -> TaskOut:
    task = create_task_record(db, ctx, payload)
    db.commit()
    db.refresh(task)
    return TaskOut.model_validate(task)

def _list(
    db: Session,
    clause,
    *,
    status: TaskStatus | None = None,
    priority: TaskPriority | None = None,
    task_type: TaskType | None = None,
    assignee_id: uuid.UUID | None = None,
    created_by: uuid.UUID | None = None,
    search: str | None = None,
    due_date: date | None = None,
    overdue: bool | None = None,
    include_snoozed: bool = False,
    include_subtasks: bool = False,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> TaskListOut:
    now = now_utc()
    q = select(Task).where(clause)

    if status is not None:
        q = q.where(Task.status == status)
    if priority is not None:
        q = q.where(Task.priority == priority)
    if task_type is not None:
        q = q.where(Task.task_type == task_type)
    if assignee_id is not None:
        q = q.where(Task.assigned_to == assignee_id)
    if created_by is not None:
        q = q.where(Task.created_by == created_by)
    if search:
        like = f"%{search.strip()}%"
        q = q.where(or_(Task.title.ilike(like), Task.description.ilike(like)))
    if due_date is not None:
        start = datetime.combine(due_date, time.min, tzinfo=timezone.utc)
        q = q.where(Task.due_date >= start, Task.due_date < start + timedelta(days=1))
    if overdue is True:
        q = q.where(Task.due_date < now, Task.status.not_in([TaskStatus.done, TaskStatus.cancelled]))
    elif overdue is False:
        q = q.where(
            or_(
                Task.due_date.is_(None),
                Task.due_date >= now,
                Task.status.in_([TaskStatus.done, TaskStatus.cancelled]),
            )
        )
    if not include_snoozed:
        q = q.where(or_(Task.is_snoozed.is_(False), Task.snooze_until <= now))
    if not include_subtasks:
        q = q.where(Task.parent_task_id.is_(None))

    total = db.scalar(select(func.count()).select_from(q.subquery())) or 0

    col = _SORT_COLUMNS.get(sort_by, Task.created_at)
    order = col.asc() if sort_order == "asc" else col.desc()
    rows = db.scalars(q.order_by(order, Task.id).offset((page - 1) * limit).limit(limit)).all()

    return TaskListOut(items=[TaskOut.model_validate(t) for t in rows], pagination=paginate(page, limit, total))

@router.get("/tasks", response_model=TaskListOut)
def list_tasks(
    status: TaskStatus | None = None,
    priority: TaskPriority | None = None,
    task_type: TaskType | None = None,
    assignee_id: uuid.UUID | None = None,
    created_by: uuid.UUID | None = None,
    search: str | None = None,
    due_date: date | None = None,
    overdue: bool | None = None,
    include_snoozed: bool = False,
    include_subtasks: bool = False,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    sort_by: Literal["created_at", "updated_at", "due_date", "priority", "title"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> TaskListOut:
    return _list(
        db,
        visible_tasks_clause(ctx),
        status=status,
        priority=priority,
        task_type=task_type,
        assignee_id=assignee_id,
        created_by=created_by,
        search=search,
        due_date=due_date,
        overdue=overdue,
        include_snoozed=include_snoozed,
        include_subtasks=include_subtasks,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )

@router.get("/mytasks", response_model=TaskListOut)
def my_tasks(
    status: TaskStatus | None = None,
    priority: TaskPriority | None = None,
    search: str | None = None,
    include_snoozed: bool = False,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    sort_by: Literal["created_at", "updated_at", "due_date", "priority", "title"] = "due_date",
    sort_order: Literal["asc", "desc"] = "asc",
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> TaskListOut:
    return _list(
        db,
        visible_tasks_clause(ctx),
        assignee_id=ctx.user.id,
        status=status,
        priority=priority,
        search=search,
        include_snoozed=include_snoozed,
        include_subtasks=True,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )

@router.get("/tasks/{task_id}", response_model=TaskOut)
def get_task(
    task_id: uuid.UUID,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> TaskOut:
    return TaskOut.model_validate(get_visible_task(db, ctx, task_id))

def _require_edit(ctx: OrgContext, task: Task) -> None:
    if not can_edit_task(ctx, task):
        raise HTTPException(status_code=403, detail="forbidden")

@router.put("/tasks/{task_id}", response_model=TaskOut)
def update_task(
    task_id: uuid.UUID,
    payload: TaskUpdateIn,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> TaskOut:
    task = get_visible_task(db, ctx, task_id)
    _require_edit(ctx, task)
    enforce_billing_writable(ctx.org)

    data = payload.model_dump(exclude_unset=True)
    new_status = data.pop("status", None)

    if new_status is not None and new_status != task.status:
        errors = validate_status_change(
            task.status, new_status, ctx.user.id, ctx.role, task.created_by, task.assigned_to
        )
        if errors:
            raise bad_request(errors)

    if "assigned_to" in data and data["assigned_to"] != task.assigned_to:
        _check_assignment(db, ctx, data["assigned_to"])
    if "visibility" in data and data["visibility"] != task.visibility and not can_manage_visibility(ctx.role):
        raise HTTPException(status_code=403, detail="only managers can change task visibility")

    if "collaborator_ids" in data:
        ids = data.pop("collaborator_ids") or []
        members = org_members(db, ctx, ids)
        if len(members) != len(set(ids)):
            raise bad_request(["collaborators must belong to your organization"])
        task.collaborators = members

    def _log(action: AuditAction, description: str, field: str, old, new) -> None:
        audit.record(
            db,
            action=action,
            user_id=ctx.user.id,
            org_id=task.org_id,
            task_id=task.id,
            description=description,
            old_value={field: _plain(old)},
            new_value={field: _plain(new)},
        )

    for field, value in data.items():
        if field in ("title", "priority") and value is None:
            continue
        old = getattr(task, field)
        if field == "due_date" and old is not None:
            old = as_utc(old)
        if old == value:
            continue
        setattr(task, field, value)

        if field == "priority":
            _log(AuditAction.priority_changed, f"priority changed to {value.value}", field, old, value)
        elif field == "due_date":
            _log(AuditAction.due_date_changed, "due date changed", field, old, value)
        elif field == "assigned_to":
            action = AuditAction.assigned if value is not None else AuditAction.unassigned
            _log(action, "task reassigned" if value else "task unassigned", field, old, value)
        elif field == "tags":
            _log(AuditAction.tagged, "tags updated", field, old, value)
        else:
            _log(AuditAction.updated, f"{field} updated", field, old, value)

    db.flush()
    if new_status is not None and new_status != task.status:
        apply_status(db, task, new_status, ctx.user.id)
    else:
        milestones.sync_task(db, task, ctx.user.id)

    db.commit()
    db.refresh(task)
    return TaskOut.model_validate(task)

@router.patch("/tasks/{task_id}/status", response_model=StatusChangeOut)
def change_status(
    task_id: uuid.UUID,
    payload: StatusIn,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> StatusChangeOut:
    task = get_visible_task(db, ctx, task_id)
    _require_edit(ctx, task)
    enforce_billing_writable(ctx.org)

    errors = validate_status_change(
        task.status, payload.status, ctx.user.id, ctx.role, task.created_by, task.assigned_to
    )
    if errors:
        raise bad_request(errors)

    nxt = apply_status(db, task, payload.status, ctx.user.id, notes=payload.completion_notes)
    db.commit()
    db.refresh(task)
    return StatusChangeOut(
        task=TaskOut.model_validate(task),
        next_occurrence=TaskOut.model_validate(nxt) if nxt is not None else None,
    )

@router.delete("/tasks/{task_id}")
def delete_task(
    task_id: uuid.UUID,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> dict:
    task = get_visible_task(db, ctx, task_id)
    enforce_billing_writable(ctx.org)

    open_subtasks = db.scalar(
        select(func.count())
        .select_from(Task)
        .where(
            Task.parent_task_id == task.id,
            Task.is_deleted.is_(False),
            Task.status.not_in([TaskStatus.done, TaskStatus.cancelled]),
        )
    ) or 0
    errors = validate_deletion(task.status, ctx.user.id, ctx.role, task.created_by, open_subtasks)
    if errors:
        raise bad_request(errors)

    task.is_deleted = True
    task.deleted_at = now_utc()
    task.deleted_by = ctx.user.id
    audit.record(
        db,
        action=AuditAction.deleted,
        user_id=ctx.user.id,
        org_id=task.org_id,
        task_id=task.id,
        description=f"deleted task {task.title}",
    )
    db.commit()
    logger.info("task %s deleted by %s", task.id, ctx.user.id)
    return {"deleted": True, "task_id": str(task.id)}

@router.post("/tasks/{task_id}/subtasks", response_model=TaskOut, status_code=201)
def create_subtask(
    task_id: uuid.UUID,
    payload: TaskCreateIn,
    ctx: OrgContext = Depends(require_perm("create_task", org_required=False)),
    db: Session = Depends(get_db),
) -> TaskOut:
    parent = get_visible_task(db, ctx, task_id)
    if parent.parent_task_id is not None:
        raise HTTPException(status_code=400, detail="subtasks cannot have subtasks")

    task = create_task_record(db, ctx, payload, parent=parent)
    db.commit()
    db.refresh(task)
    return TaskOut.model_validate(task)

@router.get("/tasks/{task_id}/subtasks", response_model=list[TaskOut])
def list_subtasks(
    task_id: uuid.UUID,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> list[TaskOut]:
    parent = get_visible_task(db, ctx, task_id)
    rows = db.scalars(
        select(Task)
        .where(Task.parent_task_id == parent.id, Task.is_deleted.is_(False))
        .order_by(Task.created_at.asc(), Task.id)
    ).all()
    return [TaskOut.model_validate(t) for t in rows]
