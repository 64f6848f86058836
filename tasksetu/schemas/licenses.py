from datetime import datetime

from pydantic import BaseModel, Field

from tasksetu.models.enums import BillingCycle, LicenseCode, SubscriptionStatus

class FeatureOut(BaseModel):
    code: str
    name: str
    enabled: bool
    limit: int | None
    period: str | None

class PlanOut(BaseModel):
    code: LicenseCode
    name: str
    description: str
    price_monthly: int
    price_yearly: int
    max_users: int | None
    trial_days: int | None
    features: list[FeatureOut]

class SubscriptionOut(BaseModel):
    plan: LicenseCode
    billing_cycle: BillingCycle
    subscription_status: SubscriptionStatus
    trial_ends_at: datetime | None
    trial_days_left: int | None
    current_period_end: datetime | None
    writable: bool
    seats_used: int
    max_users: int | None

class FeatureCheckOut(BaseModel):
    feature: str
    enabled: bool
    allowed: bool
    limit: int | None
    period: str | None
    used: int | None
    remaining: int | None

class UpgradeIn(BaseModel):
    plan: LicenseCode
    billing_cycle: BillingCycle = BillingCycle.monthly

class TrialExtendIn(BaseModel):
    org_id: str
    days: int = Field(ge=1, le=90)
