"""Plan catalog and vendor subscription models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.models.base import AuditMixin, Base, VendorScopedMixin
from marketplace.models.enums import SubscriptionStatus


class VendorPlan(Base, AuditMixin):
    __tablename__ = "vendor_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    daily_limit: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    weekly_limit: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    yearly_limit: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, default=365, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class VendorPlanSubscription(Base, AuditMixin, VendorScopedMixin):
    __tablename__ = "vendor_plan_subscriptions"
    __table_args__ = (
        Index("idx_vendor_subscriptions_vendor_status", "vendor_id", "status"),
        Index("idx_vendor_subscriptions_status_end", "status", "end_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    plan_id: Mapped[int] = mapped_column(Integer, ForeignKey("vendor_plans.id", ondelete="RESTRICT"), nullable=False)
    status: Mapped[SubscriptionStatus] = mapped_column(
        Enum(SubscriptionStatus), default=SubscriptionStatus.ACTIVE, nullable=False
    )
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    renewal_notification_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    plan = relationship("VendorPlan")
