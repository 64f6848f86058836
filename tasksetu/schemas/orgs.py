import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from tasksetu.models.enums import BillingCycle, LicenseCode, SubscriptionStatus
from tasksetu.schemas.common import Title

class OrgCreateIn(BaseModel):
    name: Title
    slug: str | None = Field(default=None, max_length=120, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: str | None = Field(default=None, max_length=2000)
    industry: str | None = Field(default=None, max_length=100)
    size: str | None = Field(default=None, max_length=20)
    website: str | None = Field(default=None, max_length=255)

class OrgUpdateIn(BaseModel):
    name: Title | None = None
    description: str | None = Field(default=None, max_length=2000)
    industry: str | None = Field(default=None, max_length=100)
    size: str | None = Field(default=None, max_length=20)
    website: str | None = Field(default=None, max_length=255)

class OrgOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    description: str | None
    industry: str | None
    size: str | None
    website: str | None
    is_active: bool
    plan: LicenseCode
    billing_cycle: BillingCycle
    subscription_status: SubscriptionStatus
    trial_ends_at: datetime | None
    current_period_end: datetime | None
    created_at: datetime
