import uuid
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from tasksetu.config import settings
from tasksetu.db import SessionLocal
from tasksetu.models.enums import LicenseCode, Role, SubscriptionStatus, TaskPriority
from tasksetu.models.milestone import Milestone
from tasksetu.models.org import Organization
from tasksetu.models.quick_task import QuickTask
from tasksetu.models.task import Task
from tasksetu.models.user import User
from tasksetu.services import milestones
from tasksetu.time_utils import now_utc

@dataclass
class SeedResult:
    super_admin_email: str
    org_admin_email: str
    manager_email: str
    employee_email: str
    org_id: uuid.UUID
    task_id: uuid.UUID
    milestone_id: uuid.UUID

def get_or_create_org(db: Session, name: str, slug: str) -> Organization:
    o = db.scalar(select(Organization).where(Organization.slug == slug))
    if o is None:
        o = Organization(
            name=name,
            slug=slug,
            plan=LicenseCode(settings.default_license_code),
            subscription_status=SubscriptionStatus.trialing,
            trial_ends_at=now_utc() + timedelta(days=settings.trial_days),
        )
        db.add(o)
        db.flush()
    return o

def get_or_create_user(
    db: Session,
    email: str,
    role: Role,
    org_id: uuid.UUID | None,
    first_name: str | None = None,
) -> User:
    email = email.lower().strip()
    u = db.scalar(select(User).where(User.email == email))
    if u is None:
        u = User(email=email, role=role, org_id=org_id, first_name=first_name)
        db.add(u)
        db.flush()
    elif u.role != role or u.org_id != org_id:
        # keep it stable if you re-run seed
        u.role = role
        u.org_id = org_id
        db.flush()
    return u

def get_or_create_task(
    db: Session,
    org_id: uuid.UUID,
    title: str,
    created_by: uuid.UUID,
    assigned_to: uuid.UUID,
    priority: TaskPriority = TaskPriority.medium,
    due_in_days: int | None = None,
) -> Task:
    t = db.scalar(select(Task).where(Task.org_id == org_id, Task.title == title))
    if t is None:
        t = Task(
            org_id=org_id,
            title=title,
            created_by=created_by,
            assigned_to=assigned_to,
            priority=priority,
            due_date=now_utc() + timedelta(days=due_in_days) if due_in_days is not None else None,
        )
        db.add(t)
        db.flush()
    return t

def get_or_create_milestone(db: Session, org_id: uuid.UUID, title: str, owner: User, tasks: list[Task]) -> Milestone:
    m = db.scalar(select(Milestone).where(Milestone.org_id == org_id, Milestone.title == title))
    if m is None:
        m = Milestone(
            org_id=org_id,
            title=title,
            created_by=owner.id,
            assigned_to=owner.id,
            due_date=now_utc() + timedelta(days=30),
        )
        db.add(m)
        db.flush()
        for t in tasks:
            milestones.link_task(m, t, owner.id)
        db.flush()
    return m

def seed() -> SeedResult:
    db = SessionLocal()
    try:
        super_admin = get_or_create_user(db, "superadmin@tasksetu.dev", Role.super_admin, None, "Super")

        org = get_or_create_org(db, "Acme Corp", "acme-corp")
        org_admin = get_or_create_user(db, "admin@acme.dev", Role.org_admin, org.id, "Asha")
        manager = get_or_create_user(db, "manager@acme.dev", Role.manager, org.id, "Ravi")
        employee = get_or_create_user(db, "employee@acme.dev", Role.employee, org.id, "Meera")

        launch = get_or_create_task(
            db, org.id, "prepare launch checklist", manager.id, employee.id, TaskPriority.high, due_in_days=5
        )
        review = get_or_create_task(db, org.id, "review pricing page", manager.id, manager.id, due_in_days=10)

        milestone = get_or_create_milestone(db, org.id, "public launch", manager, [launch, review])

        if db.scalar(select(QuickTask).where(QuickTask.user_id == employee.id)) is None:
            db.add(QuickTask(user_id=employee.id, title="call the printer about banners"))

        db.commit()

        return SeedResult(
            super_admin_email=super_admin.email,
            org_admin_email=org_admin.email,
            manager_email=manager.email,
            employee_email=employee.email,
            org_id=org.id,
            task_id=launch.id,
            milestone_id=milestone.id,
        )
    finally:
        db.close()

if __name__ == "__main__":
    r = seed()
    print("seed complete")
    print(f"org_id={r.org_id}")
    print(f"task_id={r.task_id}")
    print(f"milestone_id={r.milestone_id}")
    print("users:")
    print(f"  super admin: {r.super_admin_email}")
    print(f"  org admin:   {r.org_admin_email}")
    print(f"  manager:     {r.manager_email}")
    print(f"  employee:    {r.employee_email}")
