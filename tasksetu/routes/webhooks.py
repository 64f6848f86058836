import json
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from tasksetu.billing.stripe_events import HANDLED_EVENTS, EventIgnored, apply_event, verify_stripe_signature
from tasksetu.config import settings
from tasksetu.db import get_db
from tasksetu.models.webhook_event import WebhookEvent
from tasksetu.ratelimit import rate_limit
from tasksetu.time_utils import now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

PROVIDER = "stripe"
FINAL_STATUSES = {"processed", "ignored"}

def _parse(raw: bytes) -> tuple[str, str, dict | None, dict]:
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise HTTPException(status_code=400, detail="invalid json")

    if not isinstance(payload, dict) or not payload.get("id") or not payload.get("type"):
        raise HTTPException(status_code=400, detail="invalid_stripe_event")
    obj = (payload.get("data") or {}).get("object")
    return payload["id"], payload["type"], obj, payload

def _ledger_row(db: Session, event_id: str, event_type: str, payload: dict) -> WebhookEvent:
    row = db.scalar(select(WebhookEvent).where(WebhookEvent.provider == PROVIDER, WebhookEvent.event_id == event_id))
    if row is None:
        row = WebhookEvent(provider=PROVIDER, event_id=event_id, event_type=event_type, status="received", payload=payload)
        db.add(row)
        db.commit()
        db.refresh(row)
    return row

def _settle(db: Session, row: WebhookEvent, status: str, error: str | None = None) -> None:
    row.status = status
    row.error = error
    # failed rows stay unprocessed so a redelivery runs them again
    row.processed_at = None if status == "failed" else now_utc()
    db.commit()

@router.post(
    "/stripe",
    dependencies=[Depends(rate_limit("webhooks:stripe", settings.rate_limit_webhooks_per_min, 60))],
)
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    stripe_signature: str | None = Header(default=None, alias="stripe-signature"),
):
    raw = await request.body()
    verify_stripe_signature(raw, stripe_signature)
    event_id, event_type, obj, payload = _parse(raw)

    row = _ledger_row(db, event_id, event_type, payload)
    if row.status in FINAL_STATUSES:
        logger.info("stripe event %s already %s", event_id, row.status)
        return {"status": "ignored", "reason": "duplicate", "event_id": event_id, "duplicate": True}

    reason = None
    if event_type not in HANDLED_EVENTS:
        reason = "unhandled_type"
    else:
        try:
            apply_event(db, event_type, obj)
        except EventIgnored as e:
            db.rollback()
            reason = e.reason
        except Exception as e:
            db.rollback()
            _settle(db, row, "failed", f"{type(e).__name__}: {e}"[:1000])
            logger.exception("stripe event %s (%s) failed", event_id, event_type)
            raise HTTPException(status_code=500, detail="webhook_processing_failed")

    if reason is not None:
        _settle(db, row, "ignored")
        logger.info("stripe event %s (%s) ignored: %s", event_id, event_type, reason)
        return {"status": "ignored", "reason": reason, "event_id": event_id}

    _settle(db, row, "processed")
    logger.info("stripe event %s (%s) processed", event_id, event_type)
    return {"status": "ok", "event_id": event_id}
