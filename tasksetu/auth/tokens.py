"""
Magic-link tokens and the HS256 access tokens they are exchanged for.

Only the HMAC of a magic-link token is stored; the raw token travels in the
link. Access tokens carry the user id in `sub` plus the role and org at issue
time, which clients use for routing. Authorization always re-reads the user.
"""

import hashlib
import hmac
import secrets
import uuid
from datetime import datetime, timedelta

import jwt

from tasksetu.config import settings
from tasksetu.time_utils import now_utc

JWT_ALGORITHM = "HS256"
MAGIC_TOKEN_BYTES = 32

def new_magic_token() -> str:
    return secrets.token_urlsafe(MAGIC_TOKEN_BYTES)

def hash_magic_token(token: str) -> str:
    return hmac.new(
        settings.magic_link_pepper.encode("utf-8"),
        token.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()

def magic_link_expiry(now: datetime | None = None) -> datetime:
    return (now or now_utc()) + timedelta(minutes=settings.magic_link_expires_minutes)

def issue_access_token(
    user_id: str | uuid.UUID,
    role: str | None = None,
    org_id: str | uuid.UUID | None = None,
) -> str:
    issued = now_utc()
    claims: dict = {
        "sub": str(user_id),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=settings.jwt_expires_minutes)).timestamp()),
    }
    if role:
        claims["role"] = role
    if org_id:
        claims["org"] = str(org_id)
    return jwt.encode(claims, settings.jwt_secret, algorithm=JWT_ALGORITHM)

def decode_access_token(token: str) -> dict:
    """Raises `jwt.PyJWTError` on a bad signature, expiry, issuer or audience."""
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[JWT_ALGORITHM],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )
