import logging
import uuid
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from tasksetu.billing.gates import enforce_billing_writable
from tasksetu.db import get_db
from tasksetu.errors import bad_request
from tasksetu.models.enums import ApprovalStatus, AuditAction, TaskStatus, TaskType
from tasksetu.models.task import Task
from tasksetu.rbac.deps import OrgContext, get_user_context, require_perm
from tasksetu.schemas.tasks import ApproveIn, GenerateOut, QuickDoneIn, RiskIn, SnoozeIn, StatusChangeOut, TaskOut
from tasksetu.services import audit
from tasksetu.services.approvals import resolve_approval
from tasksetu.services.recurrence import next_due_date
from tasksetu.services.task_access import can_edit_task, get_visible_task
from tasksetu.services.task_lifecycle import apply_status, spawn_next_occurrence
from tasksetu.services.task_rules import role_errors
from tasksetu.time_utils import as_utc, now_utc

logger = logging.getLogger(__name__)

router = APIRouter(tags=["task-actions"])

def _editable_task(db: Session, ctx: OrgContext, task_id: uuid.UUID) -> Task:
    task = get_visible_task(db, ctx, task_id)
    if not can_edit_task(ctx, task):
        raise HTTPException(status_code=403, detail="forbidden")
    enforce_billing_writable(ctx.org)
    return task

def _audit(db: Session, ctx: OrgContext, task: Task, action: AuditAction, description: str, **values) -> None:
    audit.record(
        db,
        action=action,
        user_id=ctx.user.id,
        org_id=task.org_id,
        task_id=task.id,
        description=description,
        new_value=values or None,
    )

def _done(db: Session, task: Task) -> TaskOut:
    db.commit()
    db.refresh(task)
    return TaskOut.model_validate(task)

@router.patch("/tasks/{task_id}/snooze", response_model=TaskOut)
def snooze_task(
    task_id: uuid.UUID,
    payload: SnoozeIn,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> TaskOut:
    task = _editable_task(db, ctx, task_id)
    until = as_utc(payload.snooze_until)
    if until <= now_utc():
        raise HTTPException(status_code=400, detail="snooze_until must be in the future")

    task.is_snoozed = True
    task.snooze_until = until
    task.snooze_reason = payload.reason
    task.snoozed_by = ctx.user.id
    _audit(db, ctx, task, AuditAction.snoozed, "task snoozed", snooze_until=until.isoformat())
    return _done(db, task)

@router.patch("/tasks/{task_id}/unsnooze", response_model=TaskOut)
def unsnooze_task(
    task_id: uuid.UUID,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> TaskOut:
    task = _editable_task(db, ctx, task_id)
    if not task.is_snoozed:
        raise HTTPException(status_code=400, detail="task is not snoozed")

    task.is_snoozed = False
    task.snooze_until = None
    task.snooze_reason = None
    task.snoozed_by = None
    _audit(db, ctx, task, AuditAction.unsnoozed, "task unsnoozed")
    return _done(db, task)

@router.patch("/tasks/{task_id}/mark-risk", response_model=TaskOut)
def mark_risk(
    task_id: uuid.UUID,
    payload: RiskIn,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> TaskOut:
    task = _editable_task(db, ctx, task_id)

    task.is_risky = True
    task.risk_level = payload.risk_level
    task.risk_reason = payload.reason
    task.risk_marked_by = ctx.user.id
    task.risk_marked_at = now_utc()
    _audit(
        db,
        ctx,
        task,
        AuditAction.risk_marked,
        f"marked as {payload.risk_level.value} risk",
        risk_level=payload.risk_level.value,
    )
    return _done(db, task)

@router.patch("/tasks/{task_id}/unmark-risk", response_model=TaskOut)
def unmark_risk(
    task_id: uuid.UUID,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> TaskOut:
    task = _editable_task(db, ctx, task_id)
    if not task.is_risky:
        raise HTTPException(status_code=400, detail="task is not marked as risky")

    task.is_risky = False
    task.risk_level = None
    task.risk_reason = None
    task.risk_marked_by = None
    task.risk_marked_at = None
    _audit(db, ctx, task, AuditAction.risk_unmarked, "risk flag removed")
    return _done(db, task)

@router.patch("/tasks/{task_id}/quick-done", response_model=StatusChangeOut)
def quick_done(
    task_id: uuid.UUID,
    payload: QuickDoneIn,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> StatusChangeOut:
    task = _editable_task(db, ctx, task_id)
    if task.status == TaskStatus.done:
        raise HTTPException(status_code=400, detail="task is already done")

    # no transition table here, the role rule still applies
    errors = role_errors(TaskStatus.done, ctx.user.id, ctx.role, task.created_by, task.assigned_to)
    if errors:
        raise bad_request(errors)

    nxt = apply_status(db, task, TaskStatus.done, ctx.user.id, notes=payload.completion_notes)
    db.commit()
    db.refresh(task)
    return StatusChangeOut(
        task=TaskOut.model_validate(task),
        next_occurrence=TaskOut.model_validate(nxt) if nxt is not None else None,
    )

@router.post("/tasks/{task_id}/approve", response_model=TaskOut)
def approve_task(
    task_id: uuid.UUID,
    payload: ApproveIn,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> TaskOut:
    task = get_visible_task(db, ctx, task_id)
    if task.task_type != TaskType.approval:
        raise HTTPException(status_code=400, detail="not an approval task")
    if payload.decision == ApprovalStatus.pending:
        raise HTTPException(status_code=400, detail="decision must be approved or rejected")

    entry = next((a for a in task.approvers if a.user_id == ctx.user.id), None)
    if entry is None:
        raise HTTPException(status_code=403, detail="not an approver of this task")
    if entry.decision is not None:
        raise HTTPException(status_code=409, detail="already decided")
    if task.approval_status != ApprovalStatus.pending:
        raise HTTPException(status_code=409, detail="approval already resolved")

    enforce_billing_writable(ctx.org)
    entry.decision = payload.decision
    entry.comment = payload.comment
    entry.decided_at = now_utc()

    task.approval_status = resolve_approval(task.approval_mode, [a.decision for a in task.approvers])

    action = AuditAction.approved if payload.decision == ApprovalStatus.approved else AuditAction.rejected
    _audit(
        db,
        ctx,
        task,
        action,
        f"{payload.decision.value} by approver",
        decision=payload.decision.value,
        approval_status=task.approval_status.value,
    )
    logger.info("task %s approval: %s -> %s", task.id, payload.decision.value, task.approval_status.value)
    return _done(db, task)

def _recurring_task(db: Session, ctx: OrgContext, task_id: uuid.UUID) -> Task:
    task = _editable_task(db, ctx, task_id)
    if task.task_type != TaskType.recurring:
        raise HTTPException(status_code=400, detail="not a recurring task")
    if not task.recurrence_active:
        raise HTTPException(status_code=400, detail="recurrence is not active")
    return task

@router.post("/tasks/{task_id}/recurring/skip", response_model=TaskOut)
def skip_occurrence(
    task_id: uuid.UUID,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> TaskOut:
    task = _recurring_task(db, ctx, task_id)

    old_due = as_utc(task.due_date)
    new_due = next_due_date(task.recurrence_pattern, old_due)
    if new_due is None:
        task.recurrence_active = False
        task.next_due_date = None
        _audit(db, ctx, task, AuditAction.recurrence_stopped, "series ended while skipping")
        return _done(db, task)

    task.due_date = new_due
    task.next_due_date = next_due_date(task.recurrence_pattern, new_due)
    _audit(
        db,
        ctx,
        task,
        AuditAction.recurrence_skipped,
        "occurrence skipped",
        skipped=old_due.isoformat() if old_due else None,
        due_date=new_due.isoformat(),
    )
    return _done(db, task)

@router.post("/tasks/{task_id}/recurring/stop", response_model=TaskOut)
def stop_recurrence(
    task_id: uuid.UUID,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> TaskOut:
    task = _recurring_task(db, ctx, task_id)
    task.recurrence_active = False
    task.next_due_date = None
    _audit(db, ctx, task, AuditAction.recurrence_stopped, "recurrence stopped")
    return _done(db, task)

@router.post("/recurring-tasks/generate", response_model=GenerateOut)
def generate_recurring(
    ctx: OrgContext = Depends(require_perm("manage_team_tasks")),
    db: Session = Depends(get_db),
) -> GenerateOut:
    enforce_billing_writable(ctx.org)
    horizon = now_utc() + timedelta(hours=24)

    due = db.scalars(
        select(Task).where(
            Task.org_id == ctx.org.id,
            Task.task_type == TaskType.recurring,
            Task.recurrence_active.is_(True),
            Task.is_deleted.is_(False),
            Task.next_due_date.is_not(None),
            Task.next_due_date <= horizon,
        )
    ).all()

    created: list[uuid.UUID] = []
    for task in due:
        nxt = spawn_next_occurrence(db, task)
        if nxt is not None:
            created.append(nxt.id)
    db.commit()

    logger.info("org %s: generated %s recurring occurrence(s)", ctx.org.id, len(created))
    return GenerateOut(processed=len(due), created=created)
