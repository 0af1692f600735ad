"""Referral program and wallet cashout endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from marketplace.api.v1._authz import current_vendor, raise_http
from marketplace.core.config import Config
from marketplace.core.dependencies import get_db_session, get_settings
from marketplace.core.exceptions import InvalidReferralError, MarketplaceException
from marketplace.models.vendor import Vendor
from marketplace.schemas.referrals import CashoutCreateRequest, ReferralLinkRequest
from marketplace.services.referral_service import ReferralService, cashout_to_dict, referral_to_dict
from marketplace.utils.validators import normalize_referral_code

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/referrals", tags=["referrals"])


@router.get("/me")
def referral_overview(
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    try:
        data = ReferralService(db=session, config=settings).get_overview(vendor)
    except MarketplaceException as exc:
        raise_http(exc)
    return {"success": True, "data": data}


@router.post("/link")
def link_referral(
    payload: ReferralLinkRequest,
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    if not normalize_referral_code(payload.referral_code):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"success": False, "error": "Referral code is required"},
        )
    try:
        referral = ReferralService(db=session, config=settings).link_referral_for_vendor(vendor, payload.referral_code)
    except InvalidReferralError as exc:
        raise_http(exc)
    except MarketplaceException as exc:
        logger.warning(
            "referral.link.failed",
            extra={"event": "referral.link.failed", "vendor_id": vendor.id, "reason": str(exc)},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"success": False, "error": "Failed to link referral code"},
        ) from exc
    return {"success": True, "data": referral_to_dict(referral)}


@router.get("/cashouts")
def list_cashouts(
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    requests = ReferralService(db=session, config=settings).list_cashouts(vendor.id)
    return {"success": True, "data": [cashout_to_dict(item) for item in requests]}


@router.post("/cashout", status_code=201)
def create_cashout(
    payload: CashoutCreateRequest,
    vendor: Vendor = Depends(current_vendor),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> dict:
    try:
        request = ReferralService(db=session, config=settings).create_cashout_request(
            vendor.id, payload.amount, bank_detail_id=payload.bank_detail_id, note=payload.note
        )
    except MarketplaceException as exc:
        raise_http(exc)
    return {"success": True, "data": cashout_to_dict(request)}
