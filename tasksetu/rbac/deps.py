from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from tasksetu.auth.deps import get_current_user
from tasksetu.db import get_db
from tasksetu.models.enums import Role
from tasksetu.models.org import Organization
from tasksetu.models.user import User
from tasksetu.rbac.perms import PERMISSIONS, has_permission, has_role_level, normalize_role

class OrgContext:
    """The caller plus the organization they act in (None for individual users)."""

    def __init__(self, org: Organization | None, user: User):
        self.org = org
        self.user = user

    @property
    def role(self) -> Role:
        return normalize_role(self.user.role) or Role.individual

    @property
    def org_id(self):
        return self.org.id if self.org is not None else None

    def can(self, permission: str) -> bool:
        return has_permission(self.role, permission)

    def at_least(self, role: Role) -> bool:
        return has_role_level(self.role, role)

def get_user_context(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> OrgContext:
    if user.org_id is None:
        return OrgContext(org=None, user=user)

    org = db.get(Organization, user.org_id)
    if org is None:
        raise HTTPException(status_code=404, detail="organization not found")
    if not org.is_active:
        raise HTTPException(status_code=403, detail="organization inactive")
    return OrgContext(org=org, user=user)

def get_org_context(ctx: OrgContext = Depends(get_user_context)) -> OrgContext:
    if ctx.org is None:
        raise HTTPException(status_code=403, detail="organization required")
    return ctx

def require_perm(*permissions: str, org_required: bool = True):
    """Dependency passing when the caller's role holds any of `permissions`."""
    for p in permissions:
        if p not in PERMISSIONS:
            raise RuntimeError(f"unknown permission: {p}")

    base = get_org_context if org_required else get_user_context

    def _checker(ctx: OrgContext = Depends(base)) -> OrgContext:
        if not any(ctx.can(p) for p in permissions):
            raise HTTPException(status_code=403, detail="forbidden")
        return ctx

    return _checker
