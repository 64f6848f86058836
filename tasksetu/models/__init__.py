from tasksetu.models.audit_log import AuditLog
from tasksetu.models.auth_magic_link import AuthMagicLink
from tasksetu.models.calendar_connection import CalendarConnection
from tasksetu.models.comment import Comment
from tasksetu.models.form import Form, FormResponse
from tasksetu.models.milestone import Milestone, MilestoneActivity, MilestoneLink
from tasksetu.models.org import Organization
from tasksetu.models.quick_task import QuickTask
from tasksetu.models.task import Task, TaskApprover, task_collaborators
from tasksetu.models.user import User
from tasksetu.models.webhook_event import WebhookEvent

__all__ = [
    "AuditLog",
    "AuthMagicLink",
    "CalendarConnection",
    "Comment",
    "Form",
    "FormResponse",
    "Milestone",
    "MilestoneActivity",
    "MilestoneLink",
    "Organization",
    "QuickTask",
    "Task",
    "TaskApprover",
    "User",
    "WebhookEvent",
    "task_collaborators",
]
