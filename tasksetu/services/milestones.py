import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from tasksetu.models.enums import MilestoneAction, MilestoneStatus, TaskStatus
from tasksetu.models.milestone import Milestone, MilestoneActivity, MilestoneLink
from tasksetu.models.task import Task
from tasksetu.time_utils import now_utc

logger = logging.getLogger(__name__)

_STATUS_COMPLETION = {
    TaskStatus.done: 100,
    TaskStatus.in_review: 75,
    TaskStatus.in_progress: 50,
    TaskStatus.cancelled: 0,
}

def link_completion(status: TaskStatus, progress: int | None) -> int:
    if status in _STATUS_COMPLETION:
        return _STATUS_COMPLETION[status]
    return max(0, min(100, int(progress or 0)))

def rollup_progress(percentages: list[int]) -> int:
    if not percentages:
        return 0
    return round(sum(percentages) / len(percentages))

def add_activity(
    milestone: Milestone,
    action: MilestoneAction,
    user_id: uuid.UUID,
    description: str,
    details: dict | None = None,
) -> None:
    milestone.activities.append(
        MilestoneActivity(action=action, performed_by=user_id, description=description, details=details)
    )

def set_status(milestone: Milestone, status: MilestoneStatus, user_id: uuid.UUID) -> None:
    if milestone.status == status:
        return
    old = milestone.status
    milestone.status = status
    milestone.achieved_at = now_utc() if status == MilestoneStatus.achieved else None

    if status == MilestoneStatus.achieved:
        action = MilestoneAction.achieved
    elif status == MilestoneStatus.cancelled:
        action = MilestoneAction.cancelled
    else:
        action = MilestoneAction.status_changed
    add_activity(
        milestone,
        action,
        user_id,
        f"status changed from {old.value} to {status.value}",
        {"from": old.value, "to": status.value},
    )

def recompute(milestone: Milestone, user_id: uuid.UUID) -> None:
    milestone.progress_percentage = rollup_progress([l.completion_percentage for l in milestone.links])
    if milestone.progress_percentage >= 100 and milestone.status in (
        MilestoneStatus.open,
        MilestoneStatus.in_progress,
    ):
        set_status(milestone, MilestoneStatus.achieved, user_id)
        logger.info("milestone %s auto-achieved", milestone.id)

def link_task(milestone: Milestone, task: Task, user_id: uuid.UUID) -> MilestoneLink:
    link = MilestoneLink(
        task_id=task.id,
        task_title=task.title,
        task_type=task.task_type,
        status=task.status,
        completion_percentage=link_completion(task.status, task.progress),
        linked_by=user_id,
    )
    milestone.links.append(link)
    add_activity(milestone, MilestoneAction.task_linked, user_id, f"linked task {task.title}", {"task_id": str(task.id)})
    recompute(milestone, user_id)
    return link

def unlink_task(milestone: Milestone, task_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    link = next((l for l in milestone.links if l.task_id == task_id), None)
    if link is None:
        return False
    milestone.links.remove(link)
    add_activity(
        milestone,
        MilestoneAction.task_unlinked,
        user_id,
        f"unlinked task {link.task_title}",
        {"task_id": str(task_id)},
    )
    recompute(milestone, user_id)
    return True

def sync_task(db: Session, task: Task, user_id: uuid.UUID) -> None:
    """Refresh every milestone link pointing at `task` and roll the progress up."""
    milestones = db.scalars(
        select(Milestone).join(MilestoneLink, MilestoneLink.milestone_id == Milestone.id).where(
            MilestoneLink.task_id == task.id
        )
    ).all()
    for m in milestones:
        for link in m.links:
            if link.task_id != task.id:
                continue
            became_done = task.status == TaskStatus.done and link.status != TaskStatus.done
            link.status = task.status
            link.task_title = task.title
            link.completion_percentage = link_completion(task.status, task.progress)
            if became_done:
                add_activity(
                    m,
                    MilestoneAction.task_completed,
                    user_id,
                    f"task {task.title} completed",
                    {"task_id": str(task.id)},
                )
        recompute(m, user_id)
