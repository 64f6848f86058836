from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from tasksetu.models.base import Base, Timestamps, UUIDPk, enum_type
from tasksetu.models.enums import BillingCycle, LicenseCode, SubscriptionStatus

class Organization(UUIDPk, Timestamps, Base):
    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    slug: Mapped[str] = mapped_column(sa.String(120), nullable=False, unique=True, index=True)
    description: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    industry: Mapped[str | None] = mapped_column(sa.String(100), nullable=True)
    size: Mapped[str | None] = mapped_column(sa.String(20), nullable=True)
    website: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, default=True)

    plan: Mapped[LicenseCode] = mapped_column(
        enum_type(LicenseCode, "license_code"), nullable=False, default=LicenseCode.explore
    )
    billing_cycle: Mapped[BillingCycle] = mapped_column(
        enum_type(BillingCycle, "billing_cycle"), nullable=False, default=BillingCycle.monthly
    )
    subscription_status: Mapped[SubscriptionStatus] = mapped_column(
        enum_type(SubscriptionStatus, "subscription_status"),
        nullable=False,
        default=SubscriptionStatus.none,
    )
    trial_ends_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    stripe_customer_id: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    stripe_subscription_id: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    current_period_end: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
