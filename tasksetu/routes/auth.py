import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from tasksetu.auth.deps import get_current_user
from tasksetu.auth.tokens import hash_magic_token, issue_access_token, magic_link_expiry, new_magic_token
from tasksetu.config import settings
from tasksetu.db import get_db
from tasksetu.models.auth_magic_link import AuthMagicLink
from tasksetu.models.enums import UserStatus
from tasksetu.models.user import User
from tasksetu.ratelimit import rate_limit
from tasksetu.rbac.perms import permissions_for, redirect_path
from tasksetu.schemas.auth import AccessTokenOut, MeOut, RedeemIn, RequestLinkIn, RequestLinkOut
from tasksetu.time_utils import as_utc, now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

def _user_for_email(db: Session, email: str) -> User:
    user = db.scalar(select(User).where(User.email == email))
    if user is None:
        user = User(email=email)
        db.add(user)
        db.flush()
        logger.info("new user signed up: %s", user.id)
    return user

def _claim(db: Session, token_hash: str, now: datetime) -> uuid.UUID:
    """Marks the link used and returns its user; 400 with the reason otherwise."""
    user_id = db.scalar(
        update(AuthMagicLink)
        .where(
            AuthMagicLink.token_hash == token_hash,
            AuthMagicLink.used_at.is_(None),
            AuthMagicLink.expires_at > now,
        )
        .values(used_at=now)
        .returning(AuthMagicLink.user_id)
    )
    if user_id is not None:
        return user_id

    db.rollback()
    link = db.get(AuthMagicLink, token_hash)
    if link is not None and link.used_at is not None:
        reason = "token already used"
    elif link is not None and as_utc(link.expires_at) <= now:
        reason = "token expired"
    else:
        reason = "invalid token"
    raise HTTPException(status_code=400, detail=reason)

@router.post(
    "/request-link",
    response_model=RequestLinkOut,
    dependencies=[Depends(rate_limit("auth:request_link", settings.rate_limit_auth_request_link_per_min, 60))],
)
def request_link(payload: RequestLinkIn, db: Session = Depends(get_db)) -> RequestLinkOut:
    user = _user_for_email(db, payload.email.strip().lower())

    token = new_magic_token()
    db.add(AuthMagicLink(token_hash=hash_magic_token(token), user_id=user.id, expires_at=magic_link_expiry()))
    db.commit()

    # dev and test hand the raw token back
    if settings.app_env != "prod":
        return RequestLinkOut(sent=True, token=token, link=None)
    return RequestLinkOut(token=None, link=f"{settings.base_url}/auth/redeem?token={token}")

@router.post(
    "/redeem",
    response_model=AccessTokenOut,
    dependencies=[Depends(rate_limit("auth:redeem", settings.rate_limit_auth_redeem_per_min, 60))],
)
def redeem(payload: RedeemIn, db: Session = Depends(get_db)) -> AccessTokenOut:
    now = now_utc()
    user_id = _claim(db, hash_magic_token(payload.token.strip()), now)

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=400, detail="invalid token")
    if not user.is_active:
        # the link stays consumed
        db.commit()
        raise HTTPException(status_code=403, detail="account deactivated")

    if user.status == UserStatus.invited:
        user.status = UserStatus.active
    user.last_login_at = now
    db.commit()
    logger.info("user %s signed in", user.id)

    return AccessTokenOut(access_token=issue_access_token(user.id, role=user.role.value, org_id=user.org_id))

@router.get("/me", response_model=MeOut)
def me(user: User = Depends(get_current_user)) -> MeOut:
    return MeOut(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        org_id=user.org_id,
        role=user.role,
        status=user.status,
        permissions=permissions_for(user.role),
        redirect_path=redirect_path(user.role),
        last_login_at=user.last_login_at,
    )
