import uuid

from fastapi import HTTPException
from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from tasksetu.models.enums import Visibility
from tasksetu.models.task import Task, TaskApprover, task_collaborators
from tasksetu.models.user import User
from tasksetu.rbac.deps import OrgContext

def visible_tasks_clause(ctx: OrgContext):
    """WHERE clause for the tasks `ctx.user` may see."""
    uid = ctx.user.id
    own = or_(
        Task.created_by == uid,
        Task.assigned_to == uid,
        Task.id.in_(select(task_collaborators.c.task_id).where(task_collaborators.c.user_id == uid)),
        Task.id.in_(select(TaskApprover.task_id).where(TaskApprover.user_id == uid)),
    )

    if ctx.org is None:
        return and_(Task.is_deleted.is_(False), Task.org_id.is_(None), own)

    scope = and_(Task.is_deleted.is_(False), Task.org_id == ctx.org.id)
    if ctx.can("view_all_tasks"):
        return scope
    return and_(scope, or_(own, Task.visibility == Visibility.organization))

def get_visible_task(db: Session, ctx: OrgContext, task_id: uuid.UUID) -> Task:
    task = db.scalar(select(Task).where(Task.id == task_id, visible_tasks_clause(ctx)))
    if task is None:
        raise HTTPException(status_code=404, detail="task not found")
    return task

def can_edit_task(ctx: OrgContext, task: Task) -> bool:
    if ctx.can("edit_any_task"):
        return True
    return ctx.can("edit_own_task") and ctx.user.id in (task.created_by, task.assigned_to)

def org_member(db: Session, ctx: OrgContext, user_id: uuid.UUID) -> User | None:
    """Active user of the caller's org; for individual users only themselves."""
    if ctx.org is None:
        return ctx.user if user_id == ctx.user.id else None
    return db.scalar(
        select(User).where(User.id == user_id, User.org_id == ctx.org.id, User.is_active.is_(True))
    )

def org_members(db: Session, ctx: OrgContext, user_ids: list[uuid.UUID]) -> list[User]:
    if not user_ids:
        return []
    if ctx.org is None:
        return [ctx.user] if set(user_ids) == {ctx.user.id} else []
    return list(
        db.scalars(
            select(User).where(User.id.in_(user_ids), User.org_id == ctx.org.id, User.is_active.is_(True))
        )
    )
