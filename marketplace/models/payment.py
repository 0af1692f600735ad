"""Subscription payments recorded by the billing boundary."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.models.base import AuditMixin, Base, VendorScopedMixin
from marketplace.models.enums import PaymentStatus


class VendorPayment(Base, AuditMixin, VendorScopedMixin):
    __tablename__ = "vendor_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    plan_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("vendor_plans.id", ondelete="SET NULL"))
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    net_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    status: Mapped[PaymentStatus] = mapped_column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    referral_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("vendor_referrals.id", ondelete="SET NULL"))
