"""Vendor identity and lead preference models."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.models.base import AuditMixin, Base

DEFAULT_MIN_BUDGET = Decimal("0")
DEFAULT_MAX_BUDGET = Decimal("999999")


class Vendor(Base, AuditMixin):
    __tablename__ = "vendors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str | None] = mapped_column(String(64), unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(320), index=True)
    company_name: Mapped[str | None] = mapped_column(String(255))
    owner_name: Mapped[str | None] = mapped_column(String(255))
    vendor_code: Mapped[str | None] = mapped_column(String(64))

    preferences = relationship("VendorPreferences", back_populates="vendor", uselist=False)


class VendorPreferences(Base, AuditMixin):
    __tablename__ = "vendor_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    vendor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vendors.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    preferred_micro_categories: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    preferred_states: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    preferred_cities: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    min_budget: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=DEFAULT_MIN_BUDGET, nullable=False)
    max_budget: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=DEFAULT_MAX_BUDGET, nullable=False)
    auto_lead_filter: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    vendor = relationship("Vendor", back_populates="preferences")
