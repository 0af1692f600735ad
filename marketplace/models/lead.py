"""Marketplace lead, purchase and contact models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.models.base import AuditMixin, Base, VendorScopedMixin, utcnow
from marketplace.models.enums import ConsumptionType, ContactStatus, ContactType, LeadStatus, PaymentStatus


class Lead(Base, AuditMixin):
    __tablename__ = "leads"
    __table_args__ = (
        Index("idx_leads_status_created", "status", "created_at"),
        Index("idx_leads_vendor", "vendor_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str | None] = mapped_column(String(255))
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    budget: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    quantity: Mapped[str | None] = mapped_column(String(120))
    location: Mapped[str | None] = mapped_column(String(255))
    state: Mapped[str | None] = mapped_column(String(120))
    city: Mapped[str | None] = mapped_column(String(120))
    micro_category_id: Mapped[str | None] = mapped_column(String(64), index=True)
    message: Mapped[str | None] = mapped_column(Text)
    status: Mapped[LeadStatus] = mapped_column(Enum(LeadStatus), default=LeadStatus.AVAILABLE, nullable=False)
    buyer_name: Mapped[str | None] = mapped_column(String(255))
    buyer_email: Mapped[str | None] = mapped_column(String(320))
    buyer_phone: Mapped[str | None] = mapped_column(String(40))
    company_name: Mapped[str | None] = mapped_column(String(255))
    # Set only for direct proposals addressed to one vendor.
    vendor_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("vendors.id", ondelete="SET NULL"))

    purchases = relationship("LeadPurchase", back_populates="lead")


class LeadPurchase(Base, AuditMixin, VendorScopedMixin):
    __tablename__ = "lead_purchases"
    __table_args__ = (
        UniqueConstraint("vendor_id", "lead_id", name="uq_lead_purchases_vendor_lead"),
        Index("idx_lead_purchases_lead", "lead_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lead_id: Mapped[int] = mapped_column(Integer, ForeignKey("leads.id", ondelete="RESTRICT"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus), default=PaymentStatus.COMPLETED, nullable=False
    )
    consumption_type: Mapped[ConsumptionType] = mapped_column(
        Enum(ConsumptionType), default=ConsumptionType.PAID_EXTRA, nullable=False
    )
    purchase_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    subscription_plan_name: Mapped[str | None] = mapped_column(String(120))

    lead = relationship("Lead", back_populates="purchases")


class LeadContact(Base, AuditMixin, VendorScopedMixin):
    __tablename__ = "lead_contacts"
    __table_args__ = (Index("idx_lead_contacts_vendor_lead", "vendor_id", "lead_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lead_id: Mapped[int] = mapped_column(Integer, ForeignKey("leads.id", ondelete="RESTRICT"), nullable=False)
    contact_type: Mapped[ContactType] = mapped_column(Enum(ContactType), nullable=False)
    status: Mapped[ContactStatus] = mapped_column(Enum(ContactStatus), default=ContactStatus.PENDING, nullable=False)
    contact_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
