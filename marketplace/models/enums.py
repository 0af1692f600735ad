"""Canonical enum values for the marketplace schema."""

from __future__ import annotations

import enum


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class LeadStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    SOLD = "SOLD"
    CLOSED = "CLOSED"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PurchaseMode(str, enum.Enum):
    AUTO = "AUTO"
    USE_WEEKLY = "USE_WEEKLY"
    BUY_EXTRA = "BUY_EXTRA"
    PAID = "PAID"

    @property
    def is_paid(self) -> bool:
        return self in (PurchaseMode.BUY_EXTRA, PurchaseMode.PAID)


class ConsumptionType(str, enum.Enum):
    DAILY_INCLUDED = "DAILY_INCLUDED"
    WEEKLY_INCLUDED = "WEEKLY_INCLUDED"
    PAID_EXTRA = "PAID_EXTRA"


class ContactType(str, enum.Enum):
    CALL = "CALL"
    WHATSAPP = "WHATSAPP"
    EMAIL = "EMAIL"


class ContactStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONTACTED = "CONTACTED"
    CONVERTED = "CONVERTED"


class ReferralStatus(str, enum.Enum):
    LINKED = "LINKED"
    QUALIFIED = "QUALIFIED"
    REWARDED = "REWARDED"
    REJECTED = "REJECTED"


class DiscountType(str, enum.Enum):
    PERCENT = "PERCENT"
    FLAT = "FLAT"


class LedgerEntryType(str, enum.Enum):
    REFERRAL_REWARD_CREDIT = "REFERRAL_REWARD_CREDIT"
    REFERRAL_REWARD_RELEASE = "REFERRAL_REWARD_RELEASE"
    CASHOUT_DEBIT = "CASHOUT_DEBIT"
    CASHOUT_REVERT = "CASHOUT_REVERT"
    CASHOUT_PAID = "CASHOUT_PAID"


class LedgerEntryStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    REVERSED = "REVERSED"


class CashoutStatus(str, enum.Enum):
    REQUESTED = "REQUESTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"

    @property
    def is_open(self) -> bool:
        return self in (CashoutStatus.REQUESTED, CashoutStatus.APPROVED)
