import logging

from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from tasksetu.config import settings
from tasksetu.db import get_db
from tasksetu.models.user import User
from tasksetu.ratelimit import rate_limit
from tasksetu.schemas.email import BulkEmailIn, BulkEmailOut, BulkEmailResult, EmailCheckOut, EmailSuggestOut

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/email",
    tags=["email"],
    dependencies=[Depends(rate_limit("email_check", settings.rate_limit_auth_request_link_per_min, 60))],
)

MAX_SUGGESTIONS = 3

def _normalize(email: str) -> str | None:
    try:
        return validate_email(email.strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        return None

def _taken(db: Session, emails: list[str]) -> set[str]:
    if not emails:
        return set()
    return set(db.scalars(select(User.email).where(User.email.in_(emails))))

def _suggestions(db: Session, email: str) -> list[str]:
    local, domain = email.rsplit("@", 1)
    candidates = [f"{local}{n}@{domain}" for n in range(1, 21)]
    taken = _taken(db, candidates)
    return [c for c in candidates if c not in taken][:MAX_SUGGESTIONS]

@router.get("/check-email/{email}", response_model=EmailCheckOut)
def check_email(email: str, db: Session = Depends(get_db)) -> EmailCheckOut:
    normalized = _normalize(email)
    if normalized is None:
        raise HTTPException(status_code=400, detail="invalid email format")

    if not _taken(db, [normalized]):
        return EmailCheckOut(success=True, exists=False, message="Email is available")

    suggestions = _suggestions(db, normalized)
    return EmailCheckOut(
        success=True,
        exists=True,
        message="Email is already registered",
        suggestion=suggestions[0] if suggestions else None,
    )

@router.post("/check-emails-bulk", response_model=BulkEmailOut)
def check_emails_bulk(payload: BulkEmailIn, db: Session = Depends(get_db)) -> BulkEmailOut:
    normalized = {raw: _normalize(raw) for raw in payload.emails}
    taken = _taken(db, [e for e in normalized.values() if e])

    results = []
    for raw, email in normalized.items():
        if email is None:
            results.append(BulkEmailResult(email=raw, valid=False, exists=False, status="invalid"))
        elif email in taken:
            results.append(BulkEmailResult(email=email, valid=True, exists=True, status="registered"))
        else:
            results.append(BulkEmailResult(email=email, valid=True, exists=False, status="available"))
    return BulkEmailOut(results=results)

@router.get("/suggest-email/{email}", response_model=EmailSuggestOut)
def suggest_email(email: str, db: Session = Depends(get_db)) -> EmailSuggestOut:
    normalized = _normalize(email)
    if normalized is None:
        raise HTTPException(status_code=400, detail="invalid email format")

    available = None if _taken(db, [normalized]) else normalized
    return EmailSuggestOut(available=available, suggestions=_suggestions(db, normalized))
