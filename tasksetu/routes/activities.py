import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from tasksetu.db import get_db
from tasksetu.models.audit_log import AuditLog
from tasksetu.rbac.deps import OrgContext, get_user_context
from tasksetu.schemas.tasks import ActivityOut
from tasksetu.services.task_access import get_visible_task

router = APIRouter(tags=["activities"])

@router.get("/tasks/{task_id}/activities", response_model=list[ActivityOut])
def task_activities(
    task_id: uuid.UUID,
    limit: int = Query(default=50, ge=1, le=200),
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> list[ActivityOut]:
    task = get_visible_task(db, ctx, task_id)
    rows = db.scalars(
        select(AuditLog)
        .where(AuditLog.task_id == task.id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id)
        .limit(limit)
    ).all()
    return [ActivityOut.model_validate(r) for r in rows]

def recent_activity_query(ctx: OrgContext, limit: int):
    q = select(AuditLog)
    if ctx.org is not None and ctx.can("view_team_reports"):
        q = q.where(AuditLog.org_id == ctx.org.id)
    else:
        q = q.where(AuditLog.user_id == ctx.user.id)
    return q.order_by(AuditLog.created_at.desc(), AuditLog.id).limit(limit)

@router.get("/activities/recent", response_model=list[ActivityOut])
def recent_activities(
    limit: int = Query(default=20, ge=1, le=100),
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> list[ActivityOut]:
    rows = db.scalars(recent_activity_query(ctx, limit)).all()
    return [ActivityOut.model_validate(r) for r in rows]
