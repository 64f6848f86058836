from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tasksetu.db import get_db
from tasksetu.models.enums import TaskPriority, TaskStatus
from tasksetu.models.task import Task
from tasksetu.rbac.deps import OrgContext, get_user_context
from tasksetu.routes.activities import recent_activity_query
from tasksetu.schemas.dashboard import DashboardStatsOut
from tasksetu.schemas.tasks import ActivityOut
from tasksetu.services.task_access import visible_tasks_clause
from tasksetu.time_utils import now_utc

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

_OPEN = (TaskStatus.todo, TaskStatus.in_progress, TaskStatus.blocked, TaskStatus.in_review)

@router.get("/stats", response_model=DashboardStatsOut)
def dashboard_stats(
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> DashboardStatsOut:
    now = now_utc()
    visible = visible_tasks_clause(ctx)

    def count(*where) -> int:
        return db.scalar(select(func.count()).select_from(Task).where(visible, *where)) or 0

    by_status = dict(db.execute(select(Task.status, func.count()).where(visible).group_by(Task.status)).all())
    by_priority = dict(
        db.execute(select(Task.priority, func.count()).where(visible).group_by(Task.priority)).all()
    )

    return DashboardStatsOut(
        total=count(),
        completed=count(Task.status == TaskStatus.done),
        in_progress=count(Task.status == TaskStatus.in_progress),
        overdue=count(Task.due_date < now, Task.status.in_(_OPEN)),
        upcoming=count(Task.due_date >= now, Task.due_date <= now + timedelta(days=7), Task.status.in_(_OPEN)),
        by_priority={p.value: int(by_priority.get(p, 0)) for p in TaskPriority},
        by_status={s.value: int(by_status.get(s, 0)) for s in TaskStatus},
        recent_activity=[ActivityOut.model_validate(r) for r in db.scalars(recent_activity_query(ctx, 10))],
    )
