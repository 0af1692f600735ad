"""HS256 tokens carrying the vendor identity claims (`sub`, `email`)."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from datetime import timedelta
from typing import Any

from marketplace.core.exceptions import AuthenticationError

ALGORITHM = "HS256"


def _encode_segment(value: dict[str, Any] | bytes) -> str:
    raw = value if isinstance(value, bytes) else json.dumps(value, separators=(",", ":"), sort_keys=True).encode()
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _decode_segment(segment: str) -> dict[str, Any]:
    try:
        raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
        value = json.loads(raw)
    except ValueError as exc:
        raise AuthenticationError("Invalid token payload.") from exc
    if not isinstance(value, dict):
        raise AuthenticationError("Invalid token payload.")
    return value


def _signature(signing_input: str, secret: str) -> str:
    if not secret:
        raise AuthenticationError("JWT secret must be configured.")
    mac = hmac.new(secret.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256)
    return _encode_segment(mac.digest())


_HEADER_SEGMENT = _encode_segment({"alg": ALGORITHM, "typ": "JWT"})


def encode_jwt(payload: dict[str, Any], secret: str, ttl: timedelta) -> str:
    issued_at = int(time.time())
    claims = {"iat": issued_at, "exp": issued_at + int(ttl.total_seconds()), **payload}
    signing_input = f"{_HEADER_SEGMENT}.{_encode_segment(claims)}"
    return f"{signing_input}.{_signature(signing_input, secret)}"


def decode_jwt(token: str, secret: str, verify_exp: bool = True) -> dict[str, Any]:
    """Verify signature and expiry, returning the claims.

    Every failure is an AuthenticationError; the API layer turns it into 401.
    """
    parts = (token or "").split(".")
    if len(parts) != 3:
        raise AuthenticationError("Invalid token format.")
    header_segment, payload_segment, signature_segment = parts

    expected = _signature(f"{header_segment}.{payload_segment}", secret)
    if not hmac.compare_digest(expected, signature_segment):
        raise AuthenticationError("Invalid token signature.")
    if _decode_segment(header_segment).get("alg") != ALGORITHM:
        raise AuthenticationError("Invalid token format.")

    claims = _decode_segment(payload_segment)
    if verify_exp:
        try:
            expires_at = int(claims["exp"])
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthenticationError("Token is missing exp claim.") from exc
        if expires_at < int(time.time()):
            raise AuthenticationError("Token has expired.")
    return claims


def create_access_token(user_id: str, secret: str, email: str | None = None, ttl_minutes: int = 60) -> str:
    claims: dict[str, Any] = {"sub": str(user_id), "token_use": "access"}
    if email:
        claims["email"] = email
    return encode_jwt(claims, secret, timedelta(minutes=ttl_minutes))
