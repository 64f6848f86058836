import logging
import re
import secrets
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from tasksetu.auth.deps import get_current_user
from tasksetu.config import settings
from tasksetu.db import get_db
from tasksetu.models.enums import LicenseCode, Role, SubscriptionStatus
from tasksetu.models.org import Organization
from tasksetu.models.user import User
from tasksetu.rbac.deps import OrgContext, get_org_context, require_perm
from tasksetu.schemas.orgs import OrgCreateIn, OrgOut, OrgUpdateIn
from tasksetu.time_utils import now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations", tags=["organizations"])

def _slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug[:100] or "org"

def _unique_slug(db: Session, base: str) -> str:
    slug = base
    while db.scalar(select(Organization.id).where(Organization.slug == slug)) is not None:
        slug = f"{base}-{secrets.token_hex(3)}"
    return slug

@router.post("", response_model=OrgOut, status_code=201)
def create_org(
    payload: OrgCreateIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> OrgOut:
    if user.org_id is not None:
        raise HTTPException(status_code=409, detail="already a member of an organization")

    if payload.slug:
        if db.scalar(select(Organization.id).where(Organization.slug == payload.slug)) is not None:
            raise HTTPException(status_code=409, detail="slug already taken")
        slug = payload.slug
    else:
        slug = _unique_slug(db, _slugify(payload.name))

    org = Organization(
        name=payload.name,
        slug=slug,
        description=payload.description,
        industry=payload.industry,
        size=payload.size,
        website=payload.website,
        plan=LicenseCode(settings.default_license_code),
        subscription_status=SubscriptionStatus.trialing,
        trial_ends_at=now_utc() + timedelta(days=settings.trial_days),
    )
    db.add(org)
    db.flush()

    # the founder administers the new org
    user.org_id = org.id
    user.role = Role.org_admin
    db.commit()
    db.refresh(org)

    logger.info("org %s created by %s", org.id, user.id)
    return OrgOut.model_validate(org)

@router.get("/current", response_model=OrgOut)
def get_current_org(ctx: OrgContext = Depends(get_org_context)) -> OrgOut:
    return OrgOut.model_validate(ctx.org)

@router.patch("/current", response_model=OrgOut)
def update_current_org(
    payload: OrgUpdateIn,
    ctx: OrgContext = Depends(require_perm("edit_org_settings")),
    db: Session = Depends(get_db),
) -> OrgOut:
    org = ctx.org
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            continue
        setattr(org, field, value)
    db.commit()
    db.refresh(org)
    return OrgOut.model_validate(org)

@router.get("", response_model=list[OrgOut])
def list_orgs(
    _: OrgContext = Depends(require_perm("system_admin", org_required=False)),
    db: Session = Depends(get_db),
) -> list[OrgOut]:
    orgs = db.scalars(select(Organization).order_by(Organization.created_at.desc())).all()
    return [OrgOut.model_validate(o) for o in orgs]
