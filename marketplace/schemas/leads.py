"""Lead marketplace request/response schemas for API contracts."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class LeadPurchaseRequest(BaseModel):
    mode: str = Field(default="AUTO", max_length=20)
    amount: float | None = None


class ContactCreateRequest(BaseModel):
    contact_type: str = Field(min_length=1, max_length=20)
    notes: str | None = Field(default=None, max_length=4000)


class ContactStatusUpdateRequest(BaseModel):
    status: str = Field(min_length=1, max_length=20)
    notes: str | None = Field(default=None, max_length=4000)


class PreferencesUpdateRequest(BaseModel):
    preferred_micro_categories: list[str] = Field(default_factory=list)
    preferred_states: list[str] = Field(default_factory=list)
    preferred_cities: list[str] = Field(default_factory=list)
    min_budget: float | None = Field(default=None, ge=0)
    max_budget: float | None = Field(default=None, ge=0)
    auto_lead_filter: bool = True


class ContactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vendor_id: int
    lead_id: int
    contact_type: str
    status: str
    contact_date: str | None = None
    notes: str | None = None
