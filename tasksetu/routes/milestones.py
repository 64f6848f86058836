import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from tasksetu.billing.gates import enforce_billing_writable, enforce_feature_limit
from tasksetu.db import get_db
from tasksetu.models.comment import Comment
from tasksetu.models.enums import MilestoneAction, MilestonePriority, MilestoneStatus, Role, TaskType
from tasksetu.models.milestone import Milestone
from tasksetu.models.task import Task
from tasksetu.rbac.deps import OrgContext, get_org_context, require_perm
from tasksetu.routes.comments import check_comment
from tasksetu.schemas.comments import CommentIn, CommentOut
from tasksetu.schemas.common import paginate
from tasksetu.schemas.milestones import (
    AchieveIn,
    LinkTaskIn,
    MilestoneCreateIn,
    MilestoneDetailOut,
    MilestoneListOut,
    MilestoneOut,
    MilestoneStatsOut,
    MilestoneUpdateIn,
)
from tasksetu.services import milestones as rollup
from tasksetu.services.task_access import org_member
from tasksetu.time_utils import now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/milestone-tasks", tags=["milestones"])

LINKABLE_TYPES = (TaskType.regular, TaskType.recurring, TaskType.approval)

def _visible_clause(ctx: OrgContext):
    scope = Milestone.org_id == ctx.org.id
    if ctx.at_least(Role.admin):
        return scope
    if ctx.at_least(Role.manager):
        return and_(scope, or_(Milestone.created_by == ctx.user.id, Milestone.assigned_to == ctx.user.id))
    return and_(scope, Milestone.assigned_to == ctx.user.id)

def _get(db: Session, ctx: OrgContext, milestone_id: uuid.UUID) -> Milestone:
    m = db.scalar(select(Milestone).where(Milestone.id == milestone_id, _visible_clause(ctx)))
    if m is None:
        raise HTTPException(status_code=404, detail="milestone not found")
    return m

def _require_owner(ctx: OrgContext, m: Milestone) -> None:
    if m.created_by != ctx.user.id and not ctx.at_least(Role.admin):
        raise HTTPException(status_code=403, detail="forbidden")

def _require_contributor(ctx: OrgContext, m: Milestone) -> None:
    if ctx.user.id not in (m.created_by, m.assigned_to) and not ctx.at_least(Role.admin):
        raise HTTPException(status_code=403, detail="forbidden")

def _linkable_task(db: Session, ctx: OrgContext, m: Milestone, task_id: uuid.UUID) -> Task:
    task = db.scalar(
        select(Task).where(Task.id == task_id, Task.org_id == ctx.org.id, Task.is_deleted.is_(False))
    )
    if task is None:
        raise HTTPException(status_code=404, detail="task not found")
    if task.task_type not in LINKABLE_TYPES:
        raise HTTPException(status_code=400, detail="task type cannot be linked")
    if any(l.task_id == task.id for l in m.links):
        raise HTTPException(status_code=409, detail="task already linked")
    return task

@router.post("", response_model=MilestoneDetailOut, status_code=201)
def create_milestone(
    payload: MilestoneCreateIn,
    ctx: OrgContext = Depends(require_perm("manage_team_tasks")),
    db: Session = Depends(get_db),
) -> MilestoneDetailOut:
    enforce_billing_writable(ctx.org)
    enforce_feature_limit(db, ctx.org, "TASK_MSTONE")

    if org_member(db, ctx, payload.assigned_to) is None:
        raise HTTPException(status_code=400, detail="assignee must belong to your organization")

    m = Milestone(
        org_id=ctx.org.id,
        title=payload.title,
        description=payload.description,
        created_by=ctx.user.id,
        assigned_to=payload.assigned_to,
        priority=payload.priority,
        due_date=payload.due_date,
        tags=list(payload.tags),
    )
    db.add(m)
    rollup.add_activity(m, MilestoneAction.created, ctx.user.id, f"milestone {m.title} created")
    db.flush()

    for task_id in dict.fromkeys(payload.task_ids):
        rollup.link_task(m, _linkable_task(db, ctx, m, task_id), ctx.user.id)

    db.commit()
    db.refresh(m)
    logger.info("milestone %s created by %s", m.id, ctx.user.id)
    return MilestoneDetailOut.model_validate(m)

def _filtered(
    ctx: OrgContext,
    status: MilestoneStatus | None,
    priority: MilestonePriority | None,
    search: str | None,
    overdue: bool | None,
):
    q = select(Milestone).where(_visible_clause(ctx))
    if status is not None:
        q = q.where(Milestone.status == status)
    if priority is not None:
        q = q.where(Milestone.priority == priority)
    if search:
        like = f"%{search.strip()}%"
        q = q.where(or_(Milestone.title.ilike(like), Milestone.description.ilike(like)))
    if overdue is True:
        q = q.where(
            Milestone.due_date < now_utc(),
            Milestone.status.in_([MilestoneStatus.open, MilestoneStatus.in_progress]),
        )
    return q

@router.get("", response_model=MilestoneListOut)
def list_milestones(
    status: MilestoneStatus | None = None,
    priority: MilestonePriority | None = None,
    search: str | None = None,
    overdue: bool | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> MilestoneListOut:
    q = _filtered(ctx, status, priority, search, overdue)
    total = db.scalar(select(func.count()).select_from(q.subquery())) or 0
    rows = db.scalars(
        q.order_by(Milestone.due_date.asc(), Milestone.id).offset((page - 1) * limit).limit(limit)
    ).all()
    return MilestoneListOut(
        items=[MilestoneOut.model_validate(m) for m in rows],
        pagination=paginate(page, limit, total),
    )

@router.get("/stats", response_model=MilestoneStatsOut)
def milestone_stats(
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> MilestoneStatsOut:
    counts = dict(
        db.execute(
            select(Milestone.status, func.count()).where(_visible_clause(ctx)).group_by(Milestone.status)
        ).all()
    )
    by_status = {s.value: int(counts.get(s, 0)) for s in MilestoneStatus}
    overdue = db.scalar(
        select(func.count()).select_from(_filtered(ctx, None, None, None, True).subquery())
    ) or 0
    return MilestoneStatsOut(total=sum(by_status.values()), by_status=by_status, overdue=overdue)

@router.get("/{milestone_id}", response_model=MilestoneDetailOut)
def get_milestone(
    milestone_id: uuid.UUID,
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> MilestoneDetailOut:
    return MilestoneDetailOut.model_validate(_get(db, ctx, milestone_id))

@router.put("/{milestone_id}", response_model=MilestoneDetailOut)
def update_milestone(
    milestone_id: uuid.UUID,
    payload: MilestoneUpdateIn,
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> MilestoneDetailOut:
    m = _get(db, ctx, milestone_id)
    _require_owner(ctx, m)
    enforce_billing_writable(ctx.org)

    data = payload.model_dump(exclude_unset=True)
    status = data.pop("status", None)

    if data.get("assigned_to") is not None and org_member(db, ctx, data["assigned_to"]) is None:
        raise HTTPException(status_code=400, detail="assignee must belong to your organization")

    for field, value in data.items():
        # required columns cannot be cleared
        if value is None and field in ("title", "assigned_to", "priority", "due_date", "tags"):
            continue
        setattr(m, field, value)

    if status is not None and status != m.status:
        if status == MilestoneStatus.achieved and m.progress_percentage < 100:
            raise HTTPException(status_code=400, detail="milestone progress is below 100%")
        rollup.set_status(m, status, ctx.user.id)

    db.commit()
    db.refresh(m)
    return MilestoneDetailOut.model_validate(m)

@router.delete("/{milestone_id}")
def delete_milestone(
    milestone_id: uuid.UUID,
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> dict:
    m = _get(db, ctx, milestone_id)
    _require_owner(ctx, m)
    enforce_billing_writable(ctx.org)

    for c in db.scalars(select(Comment).where(Comment.milestone_id == m.id)).all():
        db.delete(c)
    db.flush()
    db.delete(m)
    db.commit()
    logger.info("milestone %s deleted by %s", milestone_id, ctx.user.id)
    return {"deleted": True, "milestone_id": str(milestone_id)}

@router.post("/{milestone_id}/link-task", response_model=MilestoneDetailOut)
def link_task(
    milestone_id: uuid.UUID,
    payload: LinkTaskIn,
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> MilestoneDetailOut:
    m = _get(db, ctx, milestone_id)
    _require_contributor(ctx, m)
    enforce_billing_writable(ctx.org)

    rollup.link_task(m, _linkable_task(db, ctx, m, payload.task_id), ctx.user.id)
    db.commit()
    db.refresh(m)
    return MilestoneDetailOut.model_validate(m)

@router.delete("/{milestone_id}/unlink-task/{task_id}", response_model=MilestoneDetailOut)
def unlink_task(
    milestone_id: uuid.UUID,
    task_id: uuid.UUID,
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> MilestoneDetailOut:
    m = _get(db, ctx, milestone_id)
    _require_contributor(ctx, m)
    enforce_billing_writable(ctx.org)

    if not rollup.unlink_task(m, task_id, ctx.user.id):
        raise HTTPException(status_code=404, detail="task is not linked")
    db.commit()
    db.refresh(m)
    return MilestoneDetailOut.model_validate(m)

@router.get("/{milestone_id}/comments", response_model=list[CommentOut])
def list_milestone_comments(
    milestone_id: uuid.UUID,
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> list[CommentOut]:
    m = _get(db, ctx, milestone_id)
    rows = db.scalars(
        select(Comment).where(Comment.milestone_id == m.id).order_by(Comment.created_at.asc(), Comment.id)
    ).all()
    return [CommentOut.model_validate(c) for c in rows]

@router.post("/{milestone_id}/comments", response_model=CommentOut, status_code=201)
def add_milestone_comment(
    milestone_id: uuid.UUID,
    payload: CommentIn,
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> CommentOut:
    m = _get(db, ctx, milestone_id)
    mentions = check_comment(db, ctx, payload)

    c = Comment(
        milestone_id=m.id,
        author_id=ctx.user.id,
        content=payload.content.strip(),
        mentions=[str(x) for x in mentions],
    )
    db.add(c)
    rollup.add_activity(m, MilestoneAction.comment_added, ctx.user.id, "comment added")
    db.commit()
    db.refresh(c)
    return CommentOut.model_validate(c)

@router.patch("/{milestone_id}/achieve", response_model=MilestoneDetailOut)
def achieve_milestone(
    milestone_id: uuid.UUID,
    payload: AchieveIn,
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> MilestoneDetailOut:
    m = _get(db, ctx, milestone_id)
    _require_contributor(ctx, m)

    if m.status not in (MilestoneStatus.open, MilestoneStatus.in_progress):
        raise HTTPException(status_code=400, detail=f"milestone is already {m.status.value}")
    if m.progress_percentage < 100 and not payload.force:
        raise HTTPException(status_code=400, detail="milestone progress is below 100%")

    rollup.set_status(m, MilestoneStatus.achieved, ctx.user.id)
    db.commit()
    db.refresh(m)
    return MilestoneDetailOut.model_validate(m)
