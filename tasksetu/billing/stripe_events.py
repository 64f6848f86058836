import hashlib
import hmac
import logging
import time
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from tasksetu.config import settings
from tasksetu.models.enums import LicenseCode, SubscriptionStatus
from tasksetu.models.org import Organization

logger = logging.getLogger(__name__)

STRIPE_TOLERANCE_SECONDS = 300

SUBSCRIPTION_EVENTS = {"customer.subscription.updated", "customer.subscription.deleted"}
INVOICE_EVENTS = {"invoice.paid", "invoice.payment_failed"}
HANDLED_EVENTS = SUBSCRIPTION_EVENTS | INVOICE_EVENTS

class EventIgnored(Exception):
    """Raised by handlers for well-formed events that do not apply to any org."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

def verify_stripe_signature(payload_bytes: bytes, signature: str | None, now: int | None = None) -> None:
    secret = settings.STRIPE_WEBHOOK_SECRET
    if not secret:
        return

    if not signature:
        raise HTTPException(status_code=400, detail="missing stripe-signature")

    # header looks like t=<unix>,v1=<hex>[,v1=<hex>...]
    parts: dict[str, list[str]] = {}
    for item in signature.split(","):
        if "=" not in item:
            continue
        k, v = item.split("=", 1)
        parts.setdefault(k.strip(), []).append(v.strip())

    ts_list = parts.get("t") or []
    v1_list = parts.get("v1") or []
    if not ts_list or not v1_list:
        raise HTTPException(status_code=400, detail="invalid stripe-signature format")

    try:
        ts = int(ts_list[0])
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid stripe-signature timestamp")

    now = int(time.time()) if now is None else now
    if abs(now - ts) > STRIPE_TOLERANCE_SECONDS:
        raise HTTPException(status_code=400, detail="stale stripe-signature")

    signed_payload = f"{ts}.".encode("utf-8") + payload_bytes
    expected = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()

    if not any(hmac.compare_digest(expected, cand) for cand in v1_list):
        raise HTTPException(status_code=400, detail="invalid stripe-signature")

def find_org(
    db: Session,
    customer_id: str | None,
    sub_id: str | None,
    metadata: dict | None,
) -> Organization | None:
    if customer_id:
        org = db.scalar(select(Organization).where(Organization.stripe_customer_id == customer_id))
        if org:
            return org
    if sub_id:
        org = db.scalar(select(Organization).where(Organization.stripe_subscription_id == sub_id))
        if org:
            return org
    if isinstance(metadata, dict) and metadata.get("org_id"):
        try:
            org_id = uuid.UUID(str(metadata["org_id"]))
        except ValueError:
            return None
        org = db.get(Organization, org_id)
        if org is not None and customer_id and not org.stripe_customer_id:
            # first event for this org, remember the customer
            org.stripe_customer_id = customer_id
        return org
    return None

_STRIPE_STATUS = {s.value: s for s in SubscriptionStatus}

def map_subscription_status(raw: str | None) -> SubscriptionStatus:
    return _STRIPE_STATUS.get(raw or "", SubscriptionStatus.none)

def license_from_metadata(metadata: dict | None) -> LicenseCode | None:
    if not isinstance(metadata, dict):
        return None
    raw = metadata.get("license_code") or metadata.get("plan")
    if not raw:
        return None
    try:
        return LicenseCode(str(raw).upper())
    except ValueError:
        logger.warning("stripe metadata names unknown license %r", raw)
        return None

def _epoch(value) -> datetime | None:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)

def apply_event(db: Session, event_type: str, obj: dict) -> None:
    """Apply a handled stripe event to its organization; the caller commits."""
    if not isinstance(obj, dict):
        raise TypeError("stripe event data.object must be an object")

    customer = obj.get("customer")
    if not customer:
        raise EventIgnored("missing_customer")

    sub_id = obj.get("id") if event_type in SUBSCRIPTION_EVENTS else obj.get("subscription")
    org = find_org(db, customer, sub_id, obj.get("metadata"))
    if org is None:
        raise EventIgnored("unknown_customer")

    org.stripe_subscription_id = sub_id or org.stripe_subscription_id

    if event_type == "customer.subscription.deleted":
        org.subscription_status = SubscriptionStatus.canceled
        org.plan = LicenseCode(settings.default_license_code)
    elif event_type == "customer.subscription.updated":
        org.subscription_status = map_subscription_status(obj.get("status"))
        org.plan = license_from_metadata(obj.get("metadata")) or org.plan
        org.current_period_end = _epoch(obj.get("current_period_end")) or org.current_period_end
    elif event_type == "invoice.paid":
        org.subscription_status = SubscriptionStatus.active
        org.plan = license_from_metadata(obj.get("metadata")) or org.plan
    else:
        org.subscription_status = SubscriptionStatus.past_due

    logger.info("stripe %s applied to org %s: %s/%s", event_type, org.id, org.plan.value, org.subscription_status.value)
