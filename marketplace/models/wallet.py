"""Referral wallet, ledger, bank details and cashout requests."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.models.base import AuditMixin, Base, VendorScopedMixin
from marketplace.models.enums import CashoutStatus, LedgerEntryStatus, LedgerEntryType

ZERO = Decimal("0")


class VendorReferralWallet(Base, AuditMixin):
    """Balances derived from the ledger.

    available + pending + reserved + lifetime_paid_out == lifetime_earned.
    """

    __tablename__ = "vendor_referral_wallets"

    vendor_id: Mapped[int] = mapped_column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), primary_key=True)
    available_balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    pending_balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    reserved_balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    lifetime_earned: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    lifetime_paid_out: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)


class WalletLedgerEntry(Base, AuditMixin, VendorScopedMixin):
    __tablename__ = "wallet_ledger_entries"
    __table_args__ = (Index("idx_wallet_ledger_vendor_created", "vendor_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    entry_type: Mapped[LedgerEntryType] = mapped_column(Enum(LedgerEntryType), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[LedgerEntryStatus] = mapped_column(
        Enum(LedgerEntryStatus), default=LedgerEntryStatus.COMPLETED, nullable=False
    )
    referral_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("vendor_referrals.id", ondelete="SET NULL"))
    payment_id: Mapped[int | None] = mapped_column(Integer)
    cashout_request_id: Mapped[int | None] = mapped_column(Integer)
    hold_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    reference_key: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    meta: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)


class VendorBankDetail(Base, AuditMixin, VendorScopedMixin):
    __tablename__ = "vendor_bank_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_holder: Mapped[str] = mapped_column(String(255), nullable=False)
    account_number: Mapped[str] = mapped_column(String(40), nullable=False)
    ifsc_code: Mapped[str | None] = mapped_column(String(20))
    bank_name: Mapped[str | None] = mapped_column(String(255))
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class CashoutRequest(Base, AuditMixin, VendorScopedMixin):
    __tablename__ = "cashout_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    requested_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    bank_detail_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("vendor_bank_details.id", ondelete="SET NULL")
    )
    bank_snapshot: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    status: Mapped[CashoutStatus] = mapped_column(Enum(CashoutStatus), default=CashoutStatus.REQUESTED, nullable=False)
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    utr_number: Mapped[str | None] = mapped_column(String(64))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
