import logging
import uuid
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tasksetu.billing.gates import BLOCKED_STATUSES, feature_usage, seats_used, trial_expired
from tasksetu.billing.plans import FEATURES, LICENSE_PLANS, LicensePlan, feature_limit, get_plan
from tasksetu.db import get_db
from tasksetu.models.enums import BillingCycle, SubscriptionStatus
from tasksetu.models.org import Organization
from tasksetu.rbac.deps import OrgContext, get_org_context, require_perm
from tasksetu.schemas.licenses import (
    FeatureCheckOut,
    FeatureOut,
    PlanOut,
    SubscriptionOut,
    TrialExtendIn,
    UpgradeIn,
)
from tasksetu.time_utils import as_utc, days_until, now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/licenses", tags=["licenses"])

def _plan_out(plan: LicensePlan) -> PlanOut:
    features = []
    for code, name in FEATURES.items():
        fl = feature_limit(plan.code, code)
        features.append(FeatureOut(code=code, name=name, enabled=fl.enabled, limit=fl.limit, period=fl.period))
    return PlanOut(
        code=plan.code,
        name=plan.name,
        description=plan.description,
        price_monthly=plan.price_monthly,
        price_yearly=plan.price_yearly,
        max_users=plan.max_users,
        trial_days=plan.trial_days,
        features=features,
    )

def _subscription(db: Session, org: Organization) -> SubscriptionOut:
    plan = get_plan(org.plan)
    trial_left = None
    if org.subscription_status == SubscriptionStatus.trialing and org.trial_ends_at is not None:
        trial_left = max(days_until(org.trial_ends_at), 0)
    return SubscriptionOut(
        plan=org.plan,
        billing_cycle=org.billing_cycle,
        subscription_status=org.subscription_status,
        trial_ends_at=org.trial_ends_at,
        trial_days_left=trial_left,
        current_period_end=org.current_period_end,
        writable=org.subscription_status not in BLOCKED_STATUSES and not trial_expired(org),
        seats_used=seats_used(db, org),
        max_users=plan.max_users if plan is not None else None,
    )

@router.get("/plans", response_model=list[PlanOut])
def list_plans() -> list[PlanOut]:
    return [_plan_out(p) for p in LICENSE_PLANS.values()]

@router.get("/plans/{code}", response_model=PlanOut)
def get_plan_by_code(code: str) -> PlanOut:
    plan = get_plan(code.upper())
    if plan is None:
        raise HTTPException(status_code=404, detail="plan not found")
    return _plan_out(plan)

@router.get("/subscription", response_model=SubscriptionOut)
def get_subscription(
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> SubscriptionOut:
    return _subscription(db, ctx.org)

@router.get("/feature/{code}/check", response_model=FeatureCheckOut)
def check_feature(
    code: str,
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> FeatureCheckOut:
    code = code.upper()
    if code not in FEATURES:
        raise HTTPException(status_code=404, detail="feature not found")

    fl = feature_limit(ctx.org.plan, code)
    used = feature_usage(db, ctx.org, code) if fl.enabled else None
    remaining = None
    if fl.enabled and fl.limit is not None and used is not None:
        remaining = max(fl.limit - used, 0)

    return FeatureCheckOut(
        feature=code,
        enabled=fl.enabled,
        allowed=fl.enabled and (remaining is None or remaining > 0),
        limit=fl.limit,
        period=fl.period,
        used=used,
        remaining=remaining,
    )

@router.post("/upgrade", response_model=SubscriptionOut)
def upgrade(
    payload: UpgradeIn,
    ctx: OrgContext = Depends(require_perm("manage_billing")),
    db: Session = Depends(get_db),
) -> SubscriptionOut:
    org = ctx.org
    plan = get_plan(payload.plan)

    if plan.max_users is not None and seats_used(db, org) > plan.max_users:
        raise HTTPException(status_code=400, detail="too many active users for this plan")

    now = now_utc()
    old = org.plan
    org.plan = plan.code
    org.billing_cycle = payload.billing_cycle
    org.subscription_status = SubscriptionStatus.active
    org.trial_ends_at = None
    org.current_period_end = now + timedelta(days=365 if payload.billing_cycle == BillingCycle.yearly else 30)

    db.commit()
    db.refresh(org)
    logger.info("org %s moved from %s to %s (%s)", org.id, old.value, plan.code.value, payload.billing_cycle.value)
    return _subscription(db, org)

@router.post("/trial/extend", response_model=SubscriptionOut)
def extend_trial(
    payload: TrialExtendIn,
    _: OrgContext = Depends(require_perm("system_admin", org_required=False)),
    db: Session = Depends(get_db),
) -> SubscriptionOut:
    try:
        org_id = uuid.UUID(payload.org_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="organization not found")
    org = db.get(Organization, org_id)
    if org is None:
        raise HTTPException(status_code=404, detail="organization not found")

    now = now_utc()
    base = as_utc(org.trial_ends_at) if org.trial_ends_at is not None else now
    org.trial_ends_at = max(base, now) + timedelta(days=payload.days)
    org.subscription_status = SubscriptionStatus.trialing

    db.commit()
    db.refresh(org)
    logger.info("trial for org %s extended by %d days", org.id, payload.days)
    return _subscription(db, org)
