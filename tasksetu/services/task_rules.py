import re
import uuid

from tasksetu.models.enums import Role, TaskStatus
from tasksetu.rbac.perms import has_role_level

ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.todo: frozenset({TaskStatus.in_progress, TaskStatus.cancelled}),
    TaskStatus.in_progress: frozenset(
        {TaskStatus.todo, TaskStatus.blocked, TaskStatus.in_review, TaskStatus.done, TaskStatus.cancelled}
    ),
    TaskStatus.blocked: frozenset({TaskStatus.todo, TaskStatus.in_progress, TaskStatus.cancelled}),
    TaskStatus.in_review: frozenset({TaskStatus.in_progress, TaskStatus.done, TaskStatus.todo}),
    TaskStatus.done: frozenset({TaskStatus.in_review}),
    TaskStatus.cancelled: frozenset(),
}

COMMENT_MAX_LENGTH = 1000
_SCRIPT_RE = re.compile(r"<\s*script\b", re.IGNORECASE)

def can_transition(current: TaskStatus, new: TaskStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())

def role_errors(
    new: TaskStatus,
    user_id: uuid.UUID,
    role: Role | str,
    created_by: uuid.UUID | None,
    assigned_to: uuid.UUID | None,
) -> list[str]:
    errors: list[str] = []
    is_manager = has_role_level(role, Role.manager)

    if new == TaskStatus.done and assigned_to != user_id and not is_manager:
        errors.append("only the assignee or a manager can mark a task as done")
    if new == TaskStatus.cancelled and created_by != user_id and not is_manager:
        errors.append("only the creator or a manager can cancel a task")
    if new == TaskStatus.in_review and assigned_to != user_id:
        errors.append("only the assignee can submit a task for review")
    return errors

def validate_status_change(
    current: TaskStatus,
    new: TaskStatus,
    user_id: uuid.UUID,
    role: Role | str,
    created_by: uuid.UUID | None,
    assigned_to: uuid.UUID | None,
) -> list[str]:
    """All reasons the change is refused; empty when it is allowed."""
    errors: list[str] = []
    if current == new:
        return errors
    if not can_transition(current, new):
        errors.append(f"cannot move task from {current.value} to {new.value}")
    errors.extend(role_errors(new, user_id, role, created_by, assigned_to))
    return errors

def validate_deletion(
    status: TaskStatus,
    user_id: uuid.UUID,
    role: Role | str,
    created_by: uuid.UUID | None,
    incomplete_subtasks: int,
) -> list[str]:
    errors: list[str] = []
    if incomplete_subtasks > 0:
        errors.append(f"task has {incomplete_subtasks} incomplete subtask(s)")
    if status == TaskStatus.done and not has_role_level(role, Role.admin):
        errors.append("only admins can delete completed tasks")
    if created_by != user_id and not has_role_level(role, Role.manager):
        errors.append("only the creator or a manager can delete this task")
    return errors

def validate_comment(content: str | None) -> list[str]:
    errors: list[str] = []
    text = (content or "").strip()
    if not text:
        errors.append("comment content is required")
    elif len(text) > COMMENT_MAX_LENGTH:
        errors.append(f"comment must be at most {COMMENT_MAX_LENGTH} characters")
    if _SCRIPT_RE.search(content or ""):
        errors.append("comment contains forbidden markup")
    return errors
