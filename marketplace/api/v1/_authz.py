"""Shared authorization and error-mapping helpers for API v1 route modules."""

from __future__ import annotations

import logging
from typing import NoReturn

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from marketplace.core.config import Config
from marketplace.core.dependencies import get_current_vendor, get_db_session, get_settings
from marketplace.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InvalidReferralError,
    MarketplaceException,
    NotFoundError,
    ValidationError,
)
from marketplace.models.vendor import Vendor

logger = logging.getLogger(__name__)


def current_vendor(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    session: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> Vendor:
    try:
        return get_current_vendor(
            session=session,
            authorization=authorization,
            cookie_token=request.cookies.get(settings.AUTH_COOKIE_NAME),
            settings=settings,
        )
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"success": False, "error": str(exc)},
        ) from exc


def map_domain_error(exc: Exception) -> tuple[int, str]:
    if isinstance(exc, AuthenticationError):
        return status.HTTP_401_UNAUTHORIZED, str(exc)
    if isinstance(exc, AuthorizationError):
        return status.HTTP_403_FORBIDDEN, str(exc)
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND, str(exc)
    if isinstance(exc, (ValidationError, InvalidReferralError)):
        return status.HTTP_400_BAD_REQUEST, str(exc)
    if isinstance(exc, ConflictError):
        return status.HTTP_409_CONFLICT, str(exc)
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"


def raise_http(exc: MarketplaceException) -> NoReturn:
    code, message = map_domain_error(exc)
    if code >= 500:
        logger.exception("api.unhandled_domain_error", extra={"event": "api.unhandled_domain_error"})
    detail = {"success": False, "error": message}
    error_code = getattr(exc, "code", None) or getattr(exc, "kind", None)
    if error_code:
        detail["code"] = error_code
    raise HTTPException(status_code=code, detail=detail) from exc
