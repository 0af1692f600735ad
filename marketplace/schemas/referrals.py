"""Referral wallet request schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ReferralLinkRequest(BaseModel):
    referral_code: str | None = Field(default=None, max_length=64)


class CashoutCreateRequest(BaseModel):
    amount: float
    bank_detail_id: int | None = None
    note: str | None = Field(default=None, max_length=2000)
