"""Vendor lead marketplace endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.v1._authz import current_vendor, raise_http
from marketplace.core.config import Config
from marketplace.core.dependencies import get_db_session, get_settings
from marketplace.core.exceptions import MarketplaceException
from marketplace.models.vendor import Vendor
from marketplace.schemas.leads import (
    ContactCreateRequest,
    ContactStatusUpdateRequest,
    LeadPurchaseRequest,
    PreferencesUpdateRequest,
)
from marketplace.services.contact_service import ContactService
from marketplace.services.lead_marketplace_service import LeadFilters, LeadMarketplaceService, contact_to_dict
from marketplace.services.preference_service import PreferenceService, preferences_to_dict
from marketplace.services.purchase_service import LeadPurchaseService

router = APIRouter(prefix="/vendors/me", tags=["leads"])


@router.get("/leads/available")
def available_leads(
    budget_min: float | None = Query(default=None, ge=0),
    budget_max: float | None = Query(default=None, ge=0),
    search: str | None = Query(default=None, max_length=120),
    page: int | None = Query(default=None, ge=1),
    limit: int | None = Query(default=None, ge=1),
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    filters = LeadFilters.from_mapping(
        {"budget_min": budget_min, "budget_max": budget_max, "search": search, "page": page, "limit": limit}
    )
    try:
        result = LeadMarketplaceService(db=session, config=settings).get_available_leads(vendor.id, filters)
    except MarketplaceException as exc:
        raise_http(exc)
    return {"success": True, **result}


@router.get("/leads/stats")
def lead_stats(
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    data = LeadMarketplaceService(db=session, config=settings).get_lead_stats(vendor.id)
    return {"success": True, "data": data}


@router.get("/leads/purchased")
def purchased_leads(
    page: int | None = Query(default=None, ge=1),
    limit: int | None = Query(default=None, ge=1),
    sort_by: str | None = Query(default=None, max_length=20),
    status: str | None = Query(default=None, max_length=20),
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    filters = {"page": page, "limit": limit, "sort_by": sort_by, "status": status}
    try:
        result = LeadMarketplaceService(db=session, config=settings).get_purchased_leads(vendor.id, filters)
    except MarketplaceException as exc:
        raise_http(exc)
    return {"success": True, **result}


@router.get("/leads/{lead_id}/summary")
def lead_summary(
    lead_id: int,
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    service = LeadMarketplaceService(db=session, config=settings)
    try:
        data = service.get_lead_summary(lead_id)
    except MarketplaceException as exc:
        raise_http(exc)
    data["is_purchased"] = service.get_purchase(vendor.id, lead_id) is not None
    return {"success": True, "data": data}


@router.get("/leads/{lead_id}")
def purchased_lead_details(
    lead_id: int,
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    try:
        data = LeadMarketplaceService(db=session, config=settings).get_purchased_lead_details(vendor.id, lead_id)
    except MarketplaceException as exc:
        raise_http(exc)
    return {"success": True, "data": data}


@router.get("/leads/{lead_id}/contacts")
def lead_contacts(
    lead_id: int,
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    try:
        data = LeadMarketplaceService(db=session, config=settings).get_lead_with_contact_summary(vendor.id, lead_id)
    except MarketplaceException as exc:
        raise_http(exc)
    return {"success": True, "data": data}


@router.post("/leads/{lead_id}/purchase")
def purchase_lead(
    lead_id: int,
    payload: LeadPurchaseRequest,
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    try:
        result = LeadPurchaseService(db=session, config=settings).purchase_lead(
            vendor.id, lead_id, mode=payload.mode, amount=payload.amount
        )
    except MarketplaceException as exc:
        raise_http(exc)
    if not result["success"]:
        return result
    return {"success": True, "data": result}


@router.post("/leads/{lead_id}/contacts", status_code=201)
def log_contact(
    lead_id: int,
    payload: ContactCreateRequest,
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    try:
        contact = ContactService(db=session, config=settings).log_contact(
            vendor.id, lead_id, payload.contact_type, notes=payload.notes
        )
    except MarketplaceException as exc:
        raise_http(exc)
    return {"success": True, "data": contact_to_dict(contact)}


@router.patch("/contacts/{contact_id}")
def update_contact(
    contact_id: int,
    payload: ContactStatusUpdateRequest,
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    try:
        contact = ContactService(db=session, config=settings).update_contact_status(
            vendor.id, contact_id, payload.status, notes=payload.notes
        )
    except MarketplaceException as exc:
        raise_http(exc)
    return {"success": True, "data": contact_to_dict(contact)}


@router.get("/preferences")
def get_preferences(
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    data = PreferenceService(db=session, config=settings).get_preferences_payload(vendor.id)
    return {"success": True, "data": data}


@router.put("/preferences")
def save_preferences(
    payload: PreferencesUpdateRequest,
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    try:
        preferences = PreferenceService(db=session, config=settings).save_preferences(
            vendor.id, payload.model_dump()
        )
    except MarketplaceException as exc:
        raise_http(exc)
    return {"success": True, "data": preferences_to_dict(preferences)}
