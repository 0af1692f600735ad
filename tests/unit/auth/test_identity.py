from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from marketplace.auth.identity import (
    VENDOR_NOT_FOUND_MESSAGE,
    Identity,
    identity_from_token,
    resolve_vendor,
    select_token,
)
from marketplace.auth.jwt import create_access_token, decode_jwt, encode_jwt
from marketplace.core.config import get_config
from marketplace.core.exceptions import AuthenticationError
from marketplace.models import Base, Vendor

SECRET = "unit-test-secret"


def _build_session():
    engine = create_engine("sqlite:///:memory:")
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    return TestingSessionLocal()


def test_access_token_round_trip_and_tamper_detection():
    token = create_access_token("user-1", SECRET, email="Owner@Example.com")
    claims = decode_jwt(token, SECRET)
    assert claims["sub"] == "user-1"
    assert claims["token_use"] == "access"

    with pytest.raises(AuthenticationError, match="signature"):
        decode_jwt(token, "other-secret")
    with pytest.raises(AuthenticationError, match="format"):
        decode_jwt("not-a-token", SECRET)


def test_expired_token_is_rejected():
    token = encode_jwt({"sub": "user-1"}, SECRET, ttl=timedelta(minutes=-5))
    with pytest.raises(AuthenticationError, match="expired"):
        decode_jwt(token, SECRET)


def test_bearer_header_wins_over_cookie():
    assert select_token("Bearer header-token", "cookie-token") == "header-token"
    assert select_token(None, " cookie-token ") == "cookie-token"
    with pytest.raises(AuthenticationError):
        select_token("Basic abc", "cookie-token")
    with pytest.raises(AuthenticationError, match="required"):
        select_token("", None)


def test_identity_from_token_normalizes_email():
    settings = replace(get_config(), AUTH_JWT_SECRET=SECRET)
    token = create_access_token("user-9", SECRET, email=" Owner@Example.COM ")
    identity = identity_from_token(token, settings)
    assert identity.user_id == "user-9"
    assert identity.email == "owner@example.com"


def test_resolve_vendor_by_user_id_then_email():
    session = _build_session()
    by_id = Vendor(user_id="user-1", email="first@example.com")
    by_email = Vendor(user_id=None, email="Second@Example.com")
    session.add_all([by_id, by_email])
    session.commit()

    assert resolve_vendor(session, Identity("user-1", None, {})).id == by_id.id
    assert resolve_vendor(session, Identity("unknown", "second@example.com", {})).id == by_email.id
    with pytest.raises(AuthenticationError, match=VENDOR_NOT_FOUND_MESSAGE):
        resolve_vendor(session, Identity("unknown", "nobody@example.com", {}))
    session.close()
