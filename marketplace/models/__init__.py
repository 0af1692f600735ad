"""SQLAlchemy model package for the marketplace schema."""

from marketplace.models.base import Base
from marketplace.models.enums import (
    CashoutStatus,
    ConsumptionType,
    ContactStatus,
    ContactType,
    DiscountType,
    LeadStatus,
    LedgerEntryStatus,
    LedgerEntryType,
    PaymentStatus,
    PurchaseMode,
    ReferralStatus,
    SubscriptionStatus,
)
from marketplace.models.lead import Lead, LeadContact, LeadPurchase
from marketplace.models.payment import VendorPayment
from marketplace.models.quota import VendorLeadQuota
from marketplace.models.referral import (
    ReferralPlanRule,
    ReferralProgramSettings,
    VendorReferral,
    VendorReferralProfile,
)
from marketplace.models.subscription import VendorPlan, VendorPlanSubscription
from marketplace.models.vendor import Vendor, VendorPreferences
from marketplace.models.wallet import CashoutRequest, VendorBankDetail, VendorReferralWallet, WalletLedgerEntry

__all__ = [
    "Base",
    "CashoutRequest",
    "CashoutStatus",
    "ConsumptionType",
    "ContactStatus",
    "ContactType",
    "DiscountType",
    "Lead",
    "LeadContact",
    "LeadPurchase",
    "LeadStatus",
    "LedgerEntryStatus",
    "LedgerEntryType",
    "PaymentStatus",
    "PurchaseMode",
    "ReferralPlanRule",
    "ReferralProgramSettings",
    "ReferralStatus",
    "SubscriptionStatus",
    "Vendor",
    "VendorBankDetail",
    "VendorLeadQuota",
    "VendorPayment",
    "VendorPlan",
    "VendorPlanSubscription",
    "VendorPreferences",
    "VendorReferral",
    "VendorReferralProfile",
    "VendorReferralWallet",
    "WalletLedgerEntry",
]
