from enum import Enum

class Role(str, Enum):
    individual = "individual"
    member = "member"
    employee = "employee"
    manager = "manager"
    admin = "admin"
    org_admin = "org_admin"
    super_admin = "super_admin"

    @classmethod
    def _missing_(cls, value):
        # older accounts carry the unseparated spelling
        if value == "superadmin":
            return cls.super_admin
        return None

class UserStatus(str, Enum):
    invited = "invited"
    active = "active"
    inactive = "inactive"

class LicenseCode(str, Enum):
    explore = "EXPLORE"
    plan = "PLAN"
    execute = "EXECUTE"
    optimize = "OPTIMIZE"

class BillingCycle(str, Enum):
    monthly = "monthly"
    yearly = "yearly"

class SubscriptionStatus(str, Enum):
    none = "none"
    incomplete = "incomplete"
    trialing = "trialing"
    active = "active"
    past_due = "past_due"
    canceled = "canceled"
    unpaid = "unpaid"

class TaskStatus(str, Enum):
    todo = "todo"
    in_progress = "in-progress"
    blocked = "blocked"
    in_review = "in-review"
    done = "done"
    cancelled = "cancelled"

class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"
    urgent = "urgent"

class TaskType(str, Enum):
    regular = "regular"
    recurring = "recurring"
    approval = "approval"

class Visibility(str, Enum):
    private = "private"
    team = "team"
    organization = "organization"

class RiskLevel(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"

class ApprovalMode(str, Enum):
    any = "any"
    all = "all"
    majority = "majority"

class ApprovalStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"

class MilestoneStatus(str, Enum):
    open = "OPEN"
    in_progress = "INPROGRESS"
    achieved = "ACHIEVED"
    cancelled = "CANCELLED"

class MilestonePriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"

class MilestoneAction(str, Enum):
    created = "created"
    task_linked = "task_linked"
    task_unlinked = "task_unlinked"
    task_completed = "task_completed"
    status_changed = "status_changed"
    comment_added = "comment_added"
    achieved = "achieved"
    cancelled = "cancelled"

class QuickTaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in-progress"
    done = "done"

class QuickTaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"

class AuditAction(str, Enum):
    created = "created"
    updated = "updated"
    deleted = "deleted"
    assigned = "assigned"
    unassigned = "unassigned"
    status_changed = "status_changed"
    commented = "commented"
    tagged = "tagged"
    due_date_changed = "due_date_changed"
    priority_changed = "priority_changed"
    snoozed = "snoozed"
    unsnoozed = "unsnoozed"
    risk_marked = "risk_marked"
    risk_unmarked = "risk_unmarked"
    approved = "approved"
    rejected = "rejected"
    recurrence_skipped = "recurrence_skipped"
    recurrence_stopped = "recurrence_stopped"

class FormFieldType(str, Enum):
    text = "text"
    date = "date"
    dropdown = "dropdown"
    multiselect = "multiselect"
    number = "number"
    textarea = "textarea"
    email = "email"
    phone = "phone"

class FormResponseStatus(str, Enum):
    submitted = "submitted"
    in_progress = "in_progress"
    completed = "completed"
    rejected = "rejected"
