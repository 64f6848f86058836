import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from tasksetu.billing.gates import enforce_feature_limit
from tasksetu.config import settings
from tasksetu.db import get_db
from tasksetu.models.calendar_connection import CalendarConnection
from tasksetu.models.task import Task
from tasksetu.models.user import User
from tasksetu.rbac.deps import OrgContext, get_user_context
from tasksetu.schemas.calendar import (
    CalendarAuthIn,
    CalendarConfigOut,
    CalendarStatusOut,
    CalendarSyncIn,
    CalendarSyncOut,
)
from tasksetu.services import calendar as gcal
from tasksetu.services.task_access import visible_tasks_clause
from tasksetu.time_utils import as_utc, now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/google-calendar", tags=["calendar"])

def _require_configured() -> None:
    if not gcal.is_configured():
        raise HTTPException(status_code=503, detail="google calendar is not configured")

def _connection(db: Session, ctx: OrgContext) -> CalendarConnection:
    conn = db.get(CalendarConnection, ctx.user.id)
    if conn is None:
        raise HTTPException(status_code=400, detail="google calendar not connected")
    return conn

def _expired(conn: CalendarConnection) -> bool:
    return conn.expires_at is not None and as_utc(conn.expires_at) <= now_utc()

def _fresh_token(db: Session, conn: CalendarConnection) -> str:
    if not _expired(conn):
        return conn.access_token
    if not conn.refresh_token:
        raise HTTPException(status_code=401, detail="calendar authorization expired, reconnect")
    try:
        tokens = gcal.refresh_access_token(conn.refresh_token)
    except gcal.CalendarError as e:
        logger.warning("calendar token refresh failed for %s: %s", conn.user_id, e)
        raise HTTPException(status_code=502, detail="calendar token refresh failed")

    conn.access_token = tokens["access_token"]
    conn.expires_at = tokens["expires_at"]
    if tokens.get("refresh_token"):
        conn.refresh_token = tokens["refresh_token"]
    db.flush()
    return conn.access_token

@router.get("/config", response_model=CalendarConfigOut)
def calendar_config(_: OrgContext = Depends(get_user_context)) -> CalendarConfigOut:
    return CalendarConfigOut(
        configured=gcal.is_configured(),
        has_client_id=bool(settings.google_client_id),
        has_client_secret=bool(settings.google_client_secret),
        redirect_uri=settings.google_redirect_uri,
    )

@router.post("/auth", response_model=CalendarStatusOut)
def calendar_auth(
    payload: CalendarAuthIn,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> CalendarStatusOut:
    _require_configured()
    enforce_feature_limit(db, ctx.org, "TASK_CAL")

    try:
        tokens = gcal.exchange_code(payload.code)
    except gcal.CalendarError as e:
        logger.warning("calendar code exchange failed for %s: %s", ctx.user.id, e)
        raise HTTPException(status_code=502, detail="calendar authorization failed")

    conn = db.get(CalendarConnection, ctx.user.id)
    if conn is None:
        conn = CalendarConnection(user_id=ctx.user.id, provider="google", access_token=tokens["access_token"])
        db.add(conn)
    conn.access_token = tokens["access_token"]
    conn.expires_at = tokens["expires_at"]
    if tokens.get("refresh_token"):
        conn.refresh_token = tokens["refresh_token"]

    db.commit()
    db.refresh(conn)
    logger.info("google calendar connected for %s", ctx.user.id)
    return _status(conn)

@router.post("/sync", response_model=CalendarSyncOut)
def calendar_sync(
    payload: CalendarSyncIn,
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> CalendarSyncOut:
    _require_configured()
    enforce_feature_limit(db, ctx.org, "TASK_CAL")
    conn = _connection(db, ctx)
    token = _fresh_token(db, conn)

    q = select(Task).where(visible_tasks_clause(ctx))
    if payload.task_ids is not None:
        q = q.where(Task.id.in_(payload.task_ids))
    else:
        q = q.where(Task.assigned_to == ctx.user.id)
    tasks = db.scalars(q.order_by(Task.due_date.asc(), Task.id)).all()

    assignee_ids = {t.assigned_to for t in tasks if t.assigned_to is not None}
    names = {u.id: u.name for u in db.scalars(select(User).where(User.id.in_(assignee_ids)))} if assignee_ids else {}

    synced, failed, skipped = 0, 0, 0
    event_ids: list[str] = []
    for task in tasks:
        if task.due_date is None:
            skipped += 1
            continue
        try:
            created = gcal.insert_event(token, gcal.build_event(task, names.get(task.assigned_to)))
        except gcal.CalendarError as e:
            logger.warning("calendar sync failed for task %s: %s", task.id, e)
            failed += 1
            continue
        synced += 1
        if created.get("id"):
            event_ids.append(created["id"])

    conn.last_synced_at = now_utc()
    db.commit()
    logger.info("calendar sync for %s: %d synced, %d failed, %d skipped", ctx.user.id, synced, failed, skipped)
    return CalendarSyncOut(synced=synced, failed=failed, skipped=skipped, event_ids=event_ids)

@router.delete("/disconnect")
def calendar_disconnect(
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> dict:
    conn = db.get(CalendarConnection, ctx.user.id)
    if conn is not None:
        db.delete(conn)
        db.commit()
    return {"disconnected": True}

def _status(conn: CalendarConnection | None) -> CalendarStatusOut:
    if conn is None:
        return CalendarStatusOut(connected=False, has_valid_tokens=False, expires_at=None, last_synced_at=None)
    return CalendarStatusOut(
        connected=True,
        has_valid_tokens=not _expired(conn) or bool(conn.refresh_token),
        expires_at=conn.expires_at,
        last_synced_at=conn.last_synced_at,
    )

@router.get("/status", response_model=CalendarStatusOut)
def calendar_status(
    ctx: OrgContext = Depends(get_user_context),
    db: Session = Depends(get_db),
) -> CalendarStatusOut:
    return _status(db.get(CalendarConnection, ctx.user.id))
