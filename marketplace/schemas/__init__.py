"""Pydantic schema package for API contracts."""

from marketplace.schemas.common import APIEnvelope, ErrorEnvelope, PaginationMeta
from marketplace.schemas.leads import (
    ContactCreateRequest,
    ContactResponse,
    ContactStatusUpdateRequest,
    LeadPurchaseRequest,
    PreferencesUpdateRequest,
)
from marketplace.schemas.referrals import CashoutCreateRequest, ReferralLinkRequest

__all__ = [
    "APIEnvelope",
    "CashoutCreateRequest",
    "ContactCreateRequest",
    "ContactResponse",
    "ContactStatusUpdateRequest",
    "ErrorEnvelope",
    "LeadPurchaseRequest",
    "PaginationMeta",
    "PreferencesUpdateRequest",
    "ReferralLinkRequest",
]
