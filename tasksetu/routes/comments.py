import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from tasksetu.db import get_db
from tasksetu.errors import bad_request
from tasksetu.models.comment import Comment
from tasksetu.models.enums import AuditAction, Role
from tasksetu.models.task import Task
from tasksetu.rbac.deps import OrgContext, get_user_context
from tasksetu.schemas.comments import CommentIn, CommentOut, CommentUpdateIn
from tasksetu.services import audit
from tasksetu.services.task_access import get_visible_task, org_members
from tasksetu.services.task_rules import validate_comment
from tasksetu.time_utils import now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks/{task_id}/comments", tags=["comments"])

def check_comment(db: Session, ctx: OrgContext, payload: CommentIn) -> list[uuid.UUID]:
    """Validate content and mentions; returns the de-duplicated mention ids."""
    errors = validate_comment(payload.content)
    mentions = list(dict.fromkeys(payload.mentions))
    if mentions and len(org_members(db, ctx, mentions)) != len(mentions):
        errors.append("mentioned users must belong to your organization")
    if errors:
        raise bad_request(errors)
    return mentions

def _thread(rows: list[Comment]) -> list[CommentOut]:
    replies: dict[uuid.UUID, list[CommentOut]] = {}
    for c in rows:
        if c.parent_id is not None:
            replies.setdefault(c.parent_id, []).append(CommentOut.model_validate(c))
    return [
        CommentOut.model_validate(c).model_copy(update={"replies": replies.get(c.id, [])})
        for c in rows
        if c.parent_id is None
    ]

def _get_comment(db: Session, task: Task, comment_id: uuid.UUID) -> Comment:
    c = db.scalar(select(Comment).where(Comment.id == comment_id, Comment.task_id == task.id))
    if c is None:
        raise HTTPException(status_code=404, detail="comment not found")
    return c

def _add(db: Session, ctx: OrgContext, task: Task, payload: CommentIn, parent: Comment | None = None) -> Comment:
    mentions = check_comment(db, ctx, payload)
    c = Comment(
        task_id=task.id,
        author_id=ctx.user.id,
        content=payload.content.strip(),
        parent_id=parent.id if parent is not None else None,
        mentions=[str(m) for m in mentions],
    )
    db.add(c)
    db.flush()
    audit.record(
        db,
        action=AuditAction.commented,
        user_id=ctx.user.id,
        org_id=task.org_id,
        task_id=task.id,
        description="replied to a comment" if parent is not None else "added a comment",
        new_value={"comment_id": str(c.id)},
    )
    db.commit()
    db.refresh(c)
    return c

@router.get("", response_model=list[CommentOut])
def list_comments(
    task_id: uuid.UUID,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> list[CommentOut]:
    task = get_visible_task(db, ctx, task_id)
    rows = db.scalars(
        select(Comment).where(Comment.task_id == task.id).order_by(Comment.created_at.asc(), Comment.id)
    ).all()
    return _thread(list(rows))

@router.post("", response_model=CommentOut, status_code=201)
def add_comment(
    task_id: uuid.UUID,
    payload: CommentIn,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> CommentOut:
    task = get_visible_task(db, ctx, task_id)
    return CommentOut.model_validate(_add(db, ctx, task, payload))

@router.post("/{comment_id}/reply", response_model=CommentOut, status_code=201)
def reply_comment(
    task_id: uuid.UUID,
    comment_id: uuid.UUID,
    payload: CommentIn,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> CommentOut:
    task = get_visible_task(db, ctx, task_id)
    parent = _get_comment(db, task, comment_id)
    # replies stay one level deep
    if parent.parent_id is not None:
        parent = _get_comment(db, task, parent.parent_id)
    return CommentOut.model_validate(_add(db, ctx, task, payload, parent=parent))

@router.put("/{comment_id}", response_model=CommentOut)
def edit_comment(
    task_id: uuid.UUID,
    comment_id: uuid.UUID,
    payload: CommentUpdateIn,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> CommentOut:
    task = get_visible_task(db, ctx, task_id)
    c = _get_comment(db, task, comment_id)
    if c.author_id != ctx.user.id:
        raise HTTPException(status_code=403, detail="only the author can edit a comment")

    errors = validate_comment(payload.content)
    if errors:
        raise bad_request(errors)

    c.content = payload.content.strip()
    c.is_edited = True
    c.edited_at = now_utc()
    db.commit()
    db.refresh(c)
    return CommentOut.model_validate(c)

@router.delete("/{comment_id}")
def delete_comment(
    task_id: uuid.UUID,
    comment_id: uuid.UUID,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> dict:
    task = get_visible_task(db, ctx, task_id)
    c = _get_comment(db, task, comment_id)
    if c.author_id != ctx.user.id and not ctx.at_least(Role.manager):
        raise HTTPException(status_code=403, detail="forbidden")

    # replies go with their parent
    replies = db.scalars(select(Comment).where(Comment.parent_id == c.id)).all()
    for r in replies:
        db.delete(r)
    db.flush()
    db.delete(c)
    db.commit()
    return {"deleted": True, "comment_id": str(comment_id), "replies_deleted": len(replies)}
