import logging
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import case, func, or_, select
from sqlalchemy.orm import Session

from tasksetu.billing.gates import enforce_billing_writable, enforce_feature_limit
from tasksetu.config import settings
from tasksetu.db import get_db
from tasksetu.errors import bad_request
from tasksetu.models.enums import QuickTaskPriority, QuickTaskStatus, TaskPriority, TaskType
from tasksetu.models.quick_task import QuickTask
from tasksetu.ratelimit import rate_limit_user
from tasksetu.rbac.deps import OrgContext, get_user_context
from tasksetu.routes.tasks import create_task_record
from tasksetu.schemas.common import paginate
from tasksetu.schemas.quick_tasks import (
    ConvertIn,
    QuickTaskCreateIn,
    QuickTaskListOut,
    QuickTaskOut,
    QuickTaskStatsOut,
    QuickTaskUpdateIn,
)
from tasksetu.schemas.tasks import TaskCreateIn, TaskOut
from tasksetu.time_utils import now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quick-tasks", tags=["quick-tasks"])

_PRIORITY_RANK = case(
    {QuickTaskPriority.low: 1, QuickTaskPriority.medium: 2, QuickTaskPriority.high: 3},
    value=QuickTask.priority,
    else_=0,
)

_SORT_COLUMNS = {
    "created_at": QuickTask.created_at,
    "updated_at": QuickTask.updated_at,
    "due_date": QuickTask.due_date,
    "priority": _PRIORITY_RANK,
    "title": QuickTask.title,
}

_TASK_PRIORITY = {
    QuickTaskPriority.low: TaskPriority.low,
    QuickTaskPriority.medium: TaskPriority.medium,
    QuickTaskPriority.high: TaskPriority.high,
}

def _parse_filter(enum_cls, value: str, name: str):
    if value == "all":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise bad_request([f"invalid {name} filter: {value}"])

def _get_own(db: Session, ctx: OrgContext, quick_task_id: uuid.UUID) -> QuickTask:
    qt = db.scalar(select(QuickTask).where(QuickTask.id == quick_task_id, QuickTask.user_id == ctx.user.id))
    if qt is None:
        raise HTTPException(status_code=404, detail="quick task not found")
    return qt

def _set_status(qt: QuickTask, status: QuickTaskStatus) -> None:
    qt.status = status
    qt.completed_at = now_utc() if status == QuickTaskStatus.done else None

@router.get("", response_model=QuickTaskListOut)
def list_quick_tasks(
    status: str = "all",
    priority: str = "all",
    due_date: date | None = None,
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    sort_by: Literal["created_at", "updated_at", "due_date", "priority", "title"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> QuickTaskListOut:
    status_filter = _parse_filter(QuickTaskStatus, status, "status")
    priority_filter = _parse_filter(QuickTaskPriority, priority, "priority")

    q = select(QuickTask).where(QuickTask.user_id == ctx.user.id)
    if status_filter is not None:
        q = q.where(QuickTask.status == status_filter)
    if priority_filter is not None:
        q = q.where(QuickTask.priority == priority_filter)
    if due_date is not None:
        start = datetime.combine(due_date, time.min, tzinfo=timezone.utc)
        q = q.where(QuickTask.due_date >= start, QuickTask.due_date < start + timedelta(days=1))
    if search:
        like = f"%{search.strip()}%"
        q = q.where(or_(QuickTask.title.ilike(like), QuickTask.description.ilike(like)))

    total = db.scalar(select(func.count()).select_from(q.subquery())) or 0
    col = _SORT_COLUMNS[sort_by]
    order = col.asc() if sort_order == "asc" else col.desc()
    rows = db.scalars(q.order_by(order, QuickTask.id).offset((page - 1) * limit).limit(limit)).all()

    return QuickTaskListOut(
        items=[QuickTaskOut.model_validate(qt) for qt in rows],
        pagination=paginate(page, limit, total),
    )

@router.get("/stats", response_model=QuickTaskStatsOut)
def quick_task_stats(
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> QuickTaskStatsOut:
    counts = dict(
        db.execute(
            select(QuickTask.status, func.count())
            .where(QuickTask.user_id == ctx.user.id)
            .group_by(QuickTask.status)
        ).all()
    )
    overdue = db.scalar(
        select(func.count()).where(
            QuickTask.user_id == ctx.user.id,
            QuickTask.due_date < now_utc(),
            QuickTask.status != QuickTaskStatus.done,
        )
    ) or 0
    return QuickTaskStatsOut(
        total=sum(counts.values()),
        pending=counts.get(QuickTaskStatus.pending, 0),
        in_progress=counts.get(QuickTaskStatus.in_progress, 0),
        done=counts.get(QuickTaskStatus.done, 0),
        overdue=overdue,
    )

@router.post("", response_model=QuickTaskOut, status_code=201)
def create_quick_task(
    payload: QuickTaskCreateIn,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> QuickTaskOut:
    rate_limit_user("quick_task_create", ctx.user.id, settings.rate_limit_quick_task_create_per_min, 60)
    enforce_billing_writable(ctx.org)
    enforce_feature_limit(db, ctx.org, "TASK_QUICK")

    qt = QuickTask(
        user_id=ctx.user.id,
        title=payload.title,
        description=payload.description,
        priority=payload.priority,
        due_date=payload.due_date,
        tags=list(payload.tags),
        reminder=payload.reminder,
    )
    db.add(qt)
    db.commit()
    db.refresh(qt)
    return QuickTaskOut.model_validate(qt)

@router.get("/{quick_task_id}", response_model=QuickTaskOut)
def get_quick_task(
    quick_task_id: uuid.UUID,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> QuickTaskOut:
    return QuickTaskOut.model_validate(_get_own(db, ctx, quick_task_id))

@router.put("/{quick_task_id}", response_model=QuickTaskOut)
def update_quick_task(
    quick_task_id: uuid.UUID,
    payload: QuickTaskUpdateIn,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> QuickTaskOut:
    qt = _get_own(db, ctx, quick_task_id)
    data = payload.model_dump(exclude_unset=True)
    status = data.pop("status", None)

    for field, value in data.items():
        if value is None and field in ("title", "priority", "tags"):
            continue
        setattr(qt, field, value)
    if status is not None and status != qt.status:
        _set_status(qt, status)

    db.commit()
    db.refresh(qt)
    return QuickTaskOut.model_validate(qt)

@router.patch("/{quick_task_id}/status", response_model=QuickTaskOut)
def toggle_quick_task(
    quick_task_id: uuid.UUID,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> QuickTaskOut:
    qt = _get_own(db, ctx, quick_task_id)
    _set_status(qt, QuickTaskStatus.pending if qt.status == QuickTaskStatus.done else QuickTaskStatus.done)
    db.commit()
    db.refresh(qt)
    return QuickTaskOut.model_validate(qt)

@router.delete("/{quick_task_id}")
def delete_quick_task(
    quick_task_id: uuid.UUID,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> dict:
    qt = _get_own(db, ctx, quick_task_id)
    db.delete(qt)
    db.commit()
    return {"deleted": True, "quick_task_id": str(quick_task_id)}

@router.post("/{quick_task_id}/convert", response_model=TaskOut, status_code=201)
def convert_quick_task(
    quick_task_id: uuid.UUID,
    payload: ConvertIn,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> TaskOut:
    qt = _get_own(db, ctx, quick_task_id)
    if qt.converted_task_id is not None:
        raise HTTPException(status_code=409, detail="quick task already converted")
    if not ctx.can("create_task"):
        raise HTTPException(status_code=403, detail="forbidden")

    task = create_task_record(
        db,
        ctx,
        TaskCreateIn(
            title=payload.title or qt.title,
            description=payload.description if payload.description is not None else qt.description,
            priority=payload.priority or _TASK_PRIORITY[qt.priority],
            task_type=TaskType.regular,
            visibility=payload.visibility,
            tags=list(qt.tags or []),
            due_date=payload.due_date or qt.due_date,
            assigned_to=payload.assigned_to,
        ),
    )
    qt.converted_task_id = task.id
    qt.converted_at = now_utc()
    _set_status(qt, QuickTaskStatus.done)

    db.commit()
    db.refresh(task)
    logger.info("quick task %s converted to task %s", qt.id, task.id)
    return TaskOut.model_validate(task)
