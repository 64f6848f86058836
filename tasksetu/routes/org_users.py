import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from tasksetu.billing.gates import enforce_billing_writable, enforce_seat_limit
from tasksetu.db import get_db
from tasksetu.models.enums import Role, UserStatus
from tasksetu.models.user import User
from tasksetu.rbac.deps import OrgContext, require_perm
from tasksetu.rbac.perms import can_grant_role
from tasksetu.schemas.users import InviteBatchIn, InviteBatchOut, InviteResult, UserOut, UserUpdateIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organization/users", tags=["users"])

def _org_user(db: Session, ctx: OrgContext, user_id: uuid.UUID) -> User:
    u = db.scalar(select(User).where(User.id == user_id, User.org_id == ctx.org.id))
    if u is None:
        raise HTTPException(status_code=404, detail="user not found")
    return u

@router.get("", response_model=list[UserOut])
def list_users(
    role: Role | None = None,
    status: UserStatus | None = None,
    search: str | None = None,
    ctx: OrgContext = Depends(require_perm("view_users")),
    db: Session = Depends(get_db),
) -> list[UserOut]:
    q = select(User).where(User.org_id == ctx.org.id)
    if role is not None:
        q = q.where(User.role == role)
    if status is not None:
        q = q.where(User.status == status)
    if search:
        like = f"%{search.strip()}%"
        q = q.where(or_(User.email.ilike(like), User.first_name.ilike(like), User.last_name.ilike(like)))
    rows = db.scalars(q.order_by(User.created_at.asc())).all()
    return [UserOut.model_validate(u) for u in rows]

@router.post("/invite", response_model=InviteBatchOut)
def invite_users(
    payload: InviteBatchIn,
    ctx: OrgContext = Depends(require_perm("invite_users")),
    db: Session = Depends(get_db),
) -> InviteBatchOut:
    enforce_billing_writable(ctx.org)

    results: list[InviteResult] = []
    to_add: list[tuple] = []
    seen: set[str] = set()

    for item in payload.users:
        email = item.email.lower().strip()
        if email in seen:
            continue
        seen.add(email)

        if not can_grant_role(ctx.role, item.role):
            results.append(InviteResult(email=email, status="failed", reason="role_not_allowed"))
            continue

        existing = db.scalar(select(User).where(User.email == email))
        if existing is not None and existing.org_id == ctx.org.id:
            results.append(InviteResult(email=email, status="existing", user_id=existing.id))
            continue
        if existing is not None and existing.org_id is not None:
            results.append(InviteResult(email=email, status="failed", reason="belongs_to_another_organization"))
            continue
        to_add.append((item, email, existing))

    if to_add:
        enforce_seat_limit(db, ctx.org, adding=len(to_add))

    for item, email, user in to_add:
        if user is None:
            user = User(email=email)
            db.add(user)
        user.org_id = ctx.org.id
        user.role = item.role
        # someone who already signed in as an individual joins as active
        user.status = UserStatus.active if user.last_login_at else UserStatus.invited
        user.is_active = True
        user.invited_by = ctx.user.id
        for field in ("first_name", "last_name", "department", "designation", "location"):
            value = getattr(item, field)
            if value is not None:
                setattr(user, field, value)
        db.flush()
        results.append(InviteResult(email=email, status="invited", user_id=user.id))

    db.commit()
    logger.info("org %s: %s invited by %s", ctx.org.id, len(to_add), ctx.user.id)

    return InviteBatchOut(
        invited=sum(1 for r in results if r.status == "invited"),
        existing=sum(1 for r in results if r.status == "existing"),
        failed=sum(1 for r in results if r.status == "failed"),
        results=results,
    )

@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdateIn,
    ctx: OrgContext = Depends(require_perm("manage_users")),
    db: Session = Depends(get_db),
) -> UserOut:
    target = _org_user(db, ctx, user_id)
    data = payload.model_dump(exclude_unset=True)

    new_role = data.pop("role", None)
    if new_role is not None and new_role != target.role:
        if target.id == ctx.user.id:
            raise HTTPException(status_code=400, detail="cannot change your own role")
        # both the current and the new role must be within the caller's grant
        if not can_grant_role(ctx.role, target.role) or not can_grant_role(ctx.role, new_role):
            raise HTTPException(status_code=403, detail="forbidden")
        target.role = new_role

    for field, value in data.items():
        setattr(target, field, value)

    db.commit()
    db.refresh(target)
    return UserOut.model_validate(target)

@router.post("/{user_id}/deactivate", response_model=UserOut)
def deactivate_user(
    user_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("manage_users")),
    db: Session = Depends(get_db),
) -> UserOut:
    target = _org_user(db, ctx, user_id)
    if target.id == ctx.user.id:
        raise HTTPException(status_code=400, detail="cannot deactivate yourself")
    if not can_grant_role(ctx.role, target.role):
        raise HTTPException(status_code=403, detail="forbidden")

    target.is_active = False
    target.status = UserStatus.inactive
    db.commit()
    db.refresh(target)
    logger.info("user %s deactivated by %s", target.id, ctx.user.id)
    return UserOut.model_validate(target)

@router.post("/{user_id}/reactivate", response_model=UserOut)
def reactivate_user(
    user_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("manage_users")),
    db: Session = Depends(get_db),
) -> UserOut:
    target = _org_user(db, ctx, user_id)
    if target.is_active:
        return UserOut.model_validate(target)

    enforce_billing_writable(ctx.org)
    enforce_seat_limit(db, ctx.org, adding=1)
    target.is_active = True
    target.status = UserStatus.active if target.last_login_at else UserStatus.invited
    db.commit()
    db.refresh(target)
    return UserOut.model_validate(target)

@router.delete("/{user_id}")
def remove_user(
    user_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("delete_users", "manage_users")),
    db: Session = Depends(get_db),
) -> dict:
    target = _org_user(db, ctx, user_id)
    if target.id == ctx.user.id:
        raise HTTPException(status_code=400, detail="cannot remove yourself")
    if not can_grant_role(ctx.role, target.role):
        raise HTTPException(status_code=403, detail="forbidden")

    # the account survives as an individual user
    target.org_id = None
    target.role = Role.individual
    db.commit()
    logger.info("user %s removed from org %s", target.id, ctx.org.id)
    return {"removed": True, "user_id": str(target.id)}
