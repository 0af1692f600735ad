"""Resolve the calling vendor from identity-provider claims."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from marketplace.auth.jwt import decode_jwt
from marketplace.core.config import Config
from marketplace.core.exceptions import AuthenticationError
from marketplace.models.vendor import Vendor

VENDOR_NOT_FOUND_MESSAGE = "Vendor profile not found"


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str | None
    claims: dict[str, Any]


def extract_bearer_token(authorization: str | None) -> str | None:
    if authorization is None or not authorization.strip():
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Authorization header must use Bearer token.")
    return parts[1].strip() or None


def select_token(authorization: str | None, cookie_token: str | None) -> str:
    """Bearer header wins over the session cookie when both are sent."""
    token = extract_bearer_token(authorization) or (cookie_token or "").strip()
    if not token:
        raise AuthenticationError("Authentication required.")
    return token


def identity_from_token(token: str, settings: Config) -> Identity:
    claims = decode_jwt(token=token, secret=settings.AUTH_JWT_SECRET)
    try:
        user_id = str(claims["sub"]).strip()
    except (KeyError, TypeError) as exc:
        raise AuthenticationError("Invalid auth claims.") from exc
    if not user_id:
        raise AuthenticationError("Invalid auth claims.")
    email = claims.get("email")
    return Identity(user_id=user_id, email=str(email).strip().lower() if email else None, claims=claims)


def resolve_vendor(session: Session, identity: Identity) -> Vendor:
    """Vendor linked to the identity by user id, falling back to email."""
    vendor = session.query(Vendor).filter(Vendor.user_id == identity.user_id).first()
    if vendor is None and identity.email:
        vendor = session.query(Vendor).filter(func.lower(Vendor.email) == identity.email).first()
    if vendor is None:
        raise AuthenticationError(VENDOR_NOT_FOUND_MESSAGE)
    return vendor
