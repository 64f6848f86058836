import logging
import uuid
from datetime import datetime

from sqlalchemy.orm import Session

from tasksetu.models.enums import AuditAction, TaskStatus, TaskType
from tasksetu.models.task import Task, TaskApprover
from tasksetu.services import audit, milestones
from tasksetu.services.recurrence import next_due_date
from tasksetu.time_utils import now_utc

logger = logging.getLogger(__name__)

def spawn_next_occurrence(db: Session, task: Task, completion: datetime | None = None) -> Task | None:
    """Create the follow-up occurrence of a recurring task; None once the series has ended."""
    if task.task_type != TaskType.recurring or not task.recurrence_active or not task.recurrence_pattern:
        return None

    due = next_due_date(task.recurrence_pattern, task.due_date, completion=completion)
    # the series continues on the new occurrence
    task.recurrence_active = False
    task.next_due_date = None
    if due is None:
        logger.info("recurring task %s reached the end of its series", task.id)
        return None

    nxt = Task(
        org_id=task.org_id,
        title=task.title,
        description=task.description,
        priority=task.priority,
        task_type=TaskType.recurring,
        visibility=task.visibility,
        category=task.category,
        tags=list(task.tags or []),
        due_date=due,
        due_time=task.due_time,
        created_by=task.created_by,
        assigned_to=task.assigned_to,
        estimated_hours=task.estimated_hours,
        recurrence_pattern=task.recurrence_pattern,
        next_due_date=next_due_date(task.recurrence_pattern, due),
        recurrence_parent_id=task.recurrence_parent_id or task.id,
        recurrence_active=True,
    )
    nxt.collaborators = list(task.collaborators)
    db.add(nxt)
    db.flush()
    logger.info("recurring task %s spawned occurrence %s due %s", task.id, nxt.id, due.isoformat())
    return nxt

def mark_done(task: Task, user_id: uuid.UUID, notes: str | None = None) -> None:
    task.status = TaskStatus.done
    task.completed_at = now_utc()
    task.completed_by = user_id
    task.progress = 100
    if notes is not None:
        task.completion_notes = notes

def clear_completion(task: Task) -> None:
    task.completed_at = None
    task.completed_by = None

def apply_status(db: Session, task: Task, new: TaskStatus, user_id: uuid.UUID, notes: str | None = None) -> Task | None:
    """Set a status already validated by the caller; returns a spawned occurrence, if any."""
    old = task.status
    if old == new:
        return None

    if new == TaskStatus.done:
        mark_done(task, user_id, notes)
    else:
        task.status = new
        if old == TaskStatus.done:
            clear_completion(task)

    audit.record(
        db,
        action=AuditAction.status_changed,
        user_id=user_id,
        org_id=task.org_id,
        task_id=task.id,
        description=f"status changed from {old.value} to {new.value}",
        old_value={"status": old.value},
        new_value={"status": new.value},
    )
    db.flush()
    milestones.sync_task(db, task, user_id)
    logger.info("task %s status %s -> %s by %s", task.id, old.value, new.value, user_id)

    if new == TaskStatus.done:
        return spawn_next_occurrence(db, task, completion=task.completed_at)
    return None

def set_approvers(task: Task, user_ids: list[uuid.UUID]) -> None:
    task.approvers = [TaskApprover(user_id=uid) for uid in dict.fromkeys(user_ids)]
