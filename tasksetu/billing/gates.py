import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tasksetu.billing.plans import feature_limit, get_plan
from tasksetu.models.enums import SubscriptionStatus, TaskType
from tasksetu.models.form import Form
from tasksetu.models.milestone import Milestone
from tasksetu.models.org import Organization
from tasksetu.models.quick_task import QuickTask
from tasksetu.models.task import Task
from tasksetu.models.user import User
from tasksetu.time_utils import as_utc, day_start, month_start, now_utc

logger = logging.getLogger(__name__)

BLOCKED_STATUSES = {SubscriptionStatus.past_due, SubscriptionStatus.canceled, SubscriptionStatus.unpaid}

def trial_expired(org: Organization, now: datetime | None = None) -> bool:
    if org.subscription_status != SubscriptionStatus.trialing or org.trial_ends_at is None:
        return False
    return as_utc(org.trial_ends_at) <= (now or now_utc())

def enforce_billing_writable(org: Organization | None) -> None:
    # individual accounts are not billed per org
    if org is None:
        return
    # if billing says no, no writes
    if org.subscription_status in BLOCKED_STATUSES:
        raise HTTPException(status_code=402, detail="billing_required")
    if trial_expired(org):
        raise HTTPException(status_code=402, detail="trial_expired")

def _period_start(period: str | None, now: datetime) -> datetime | None:
    if period == "MONTH":
        return month_start(now)
    if period == "DAY":
        return day_start(now)
    return None

def feature_usage(db: Session, org: Organization, feature: str, now: datetime | None = None) -> int | None:
    """Creations counted against `feature` in the current period, None if unmetered."""
    now = now or now_utc()
    since = _period_start(feature_limit(org.plan, feature).period, now)

    if feature in ("TASK_BASIC", "TASK_SUB", "TASK_RECUR", "TASK_APPROVAL"):
        q = select(func.count()).select_from(Task).where(Task.org_id == org.id)
        if feature == "TASK_SUB":
            q = q.where(Task.parent_task_id.is_not(None))
        elif feature == "TASK_BASIC":
            q = q.where(Task.parent_task_id.is_(None), Task.task_type == TaskType.regular)
        elif feature == "TASK_RECUR":
            # generated occurrences are not new recurring tasks
            q = q.where(Task.task_type == TaskType.recurring, Task.recurrence_parent_id.is_(None))
        else:
            q = q.where(Task.task_type == TaskType.approval)
        if since is not None:
            q = q.where(Task.created_at >= since)
        return db.scalar(q) or 0

    if feature == "TASK_MSTONE":
        q = select(func.count()).select_from(Milestone).where(Milestone.org_id == org.id)
        if since is not None:
            q = q.where(Milestone.created_at >= since)
        return db.scalar(q) or 0

    if feature == "TASK_QUICK":
        q = (
            select(func.count())
            .select_from(QuickTask)
            .join(User, User.id == QuickTask.user_id)
            .where(User.org_id == org.id)
        )
        if since is not None:
            q = q.where(QuickTask.created_at >= since)
        return db.scalar(q) or 0

    if feature == "FORM_CREATE":
        q = select(func.count()).select_from(Form).where(Form.org_id == org.id)
        if since is not None:
            q = q.where(Form.created_at >= since)
        return db.scalar(q) or 0

    return None

def enforce_feature_limit(db: Session, org: Organization | None, feature: str) -> None:
    if org is None:
        return
    limit = feature_limit(org.plan, feature)
    if not limit.enabled:
        raise HTTPException(status_code=402, detail="feature_not_in_plan")
    if limit.limit is None:
        return

    used = feature_usage(db, org, feature)
    if used is not None and used >= limit.limit:
        logger.info("org %s hit %s limit (%s/%s)", org.id, feature, used, limit.limit)
        raise HTTPException(status_code=402, detail="plan_limit_reached")

def seats_used(db: Session, org: Organization) -> int:
    q = select(func.count()).select_from(User).where(User.org_id == org.id, User.is_active.is_(True))
    return db.scalar(q) or 0

def enforce_seat_limit(db: Session, org: Organization, adding: int = 1) -> None:
    plan = get_plan(org.plan)
    if plan is None or plan.max_users is None:
        return
    if seats_used(db, org) + adding > plan.max_users:
        raise HTTPException(status_code=402, detail="seat_limit_reached")
