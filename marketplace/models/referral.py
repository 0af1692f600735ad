"""Referral program settings, codes and referral edges."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.models.base import AuditMixin, Base
from marketplace.models.enums import DiscountType, ReferralStatus

GLOBAL_SETTINGS_KEY = "GLOBAL"


class ReferralProgramSettings(Base, AuditMixin):
    __tablename__ = "referral_program_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    settings_key: Mapped[str] = mapped_column(String(32), unique=True, default=GLOBAL_SETTINGS_KEY, nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    first_paid_plan_only: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    allow_coupon_stack: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    min_plan_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    min_cashout_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("500"), nullable=False)
    reward_hold_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class ReferralPlanRule(Base, AuditMixin):
    __tablename__ = "referral_plan_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    plan_id: Mapped[int] = mapped_column(Integer, ForeignKey("vendor_plans.id", ondelete="CASCADE"), index=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    discount_type: Mapped[DiscountType] = mapped_column(Enum(DiscountType), default=DiscountType.PERCENT, nullable=False)
    discount_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    discount_cap: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    reward_type: Mapped[DiscountType] = mapped_column(Enum(DiscountType), default=DiscountType.PERCENT, nullable=False)
    reward_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    reward_cap: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    valid_from: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    valid_to: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class VendorReferralProfile(Base, AuditMixin):
    __tablename__ = "vendor_referral_profiles"

    vendor_id: Mapped[int] = mapped_column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), primary_key=True)
    referral_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class VendorReferral(Base, AuditMixin):
    __tablename__ = "vendor_referrals"
    __table_args__ = (Index("idx_vendor_referrals_referrer", "referrer_vendor_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    referrer_vendor_id: Mapped[int] = mapped_column(Integer, ForeignKey("vendors.id", ondelete="RESTRICT"), nullable=False)
    referred_vendor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vendors.id", ondelete="RESTRICT"), unique=True, nullable=False
    )
    referral_code: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[ReferralStatus] = mapped_column(Enum(ReferralStatus), default=ReferralStatus.LINKED, nullable=False)
    qualified_payment_id: Mapped[int | None] = mapped_column(Integer)
    qualified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rewarded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[str | None] = mapped_column(Text)
