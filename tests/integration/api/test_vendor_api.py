from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from marketplace.auth.jwt import create_access_token
from marketplace.core.config import get_config
from marketplace.core.dependencies import get_db_session
from marketplace.main import create_app
from marketplace.models import Lead, LeadStatus, Vendor, VendorPlan, VendorPlanSubscription
from marketplace.models.base import utcnow
from marketplace.models.referral import ReferralProgramSettings

PREFIX = get_config().API_PREFIX


@pytest.fixture
def client(isolated_session_factory):
    app = create_app()

    def _override_db():
        session = isolated_session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = _override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(isolated_session_factory):
    session = isolated_session_factory()
    now = utcnow()
    vendor = Vendor(user_id="api-user", email="api@example.com", company_name="Api Traders")
    plan = VendorPlan(name="Starter", daily_limit=1, weekly_limit=1, yearly_limit=10)
    session.add_all([vendor, plan])
    session.flush()
    session.add(
        VendorPlanSubscription(
            vendor_id=vendor.id,
            plan_id=plan.id,
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=30),
        )
    )
    leads = [
        Lead(product_name="Steel pipes", status=LeadStatus.AVAILABLE, buyer_phone="+91-9000000001", budget=Decimal("5000")),
        Lead(product_name="Copper wire", status=LeadStatus.AVAILABLE, buyer_phone="+91-9000000002", budget=Decimal("8000")),
    ]
    session.add_all(leads)
    session.add(ReferralProgramSettings(is_enabled=True, min_cashout_amount=Decimal("500")))
    session.commit()
    ids = {"vendor_id": vendor.id, "lead_ids": [lead.id for lead in leads]}
    session.close()
    return ids


def _auth(user_id: str = "api-user") -> dict[str, str]:
    token = create_access_token(user_id, get_config().AUTH_JWT_SECRET)
    return {"Authorization": f"Bearer {token}"}


def test_health_reports_database_backend(client):
    response = client.get(f"{PREFIX}/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["database"]


def test_requests_without_token_or_vendor_are_unauthorized(client, seeded):
    assert client.get(f"{PREFIX}/vendors/me/leads/available").status_code == 401
    response = client.get(f"{PREFIX}/vendors/me/leads/available", headers=_auth("ghost"))
    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "Vendor profile not found"


def test_available_leads_hide_buyer_contact(client, seeded):
    response = client.get(f"{PREFIX}/vendors/me/leads/available", headers=_auth())
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert {item["product_name"] for item in body["data"]} == {"Steel pipes", "Copper wire"}
    assert all("buyer_phone" not in item for item in body["data"])
    assert body["pagination"]["total"] == 2


def test_purchase_success_refusal_and_duplicate(client, seeded):
    first, second = seeded["lead_ids"]

    bought = client.post(f"{PREFIX}/vendors/me/leads/{first}/purchase", json={}, headers=_auth())
    assert bought.status_code == 200
    assert bought.json()["data"]["consumption_type"] == "DAILY_INCLUDED"

    details = client.get(f"{PREFIX}/vendors/me/leads/{first}", headers=_auth())
    assert details.json()["data"]["buyer"]["phone"] == "+91-9000000001"

    refused = client.post(f"{PREFIX}/vendors/me/leads/{second}/purchase", json={"mode": "AUTO"}, headers=_auth())
    assert refused.status_code == 200
    assert refused.json()["success"] is False
    assert refused.json()["code"] == "PAID_REQUIRED"

    duplicate = client.post(f"{PREFIX}/vendors/me/leads/{first}/purchase", json={}, headers=_auth())
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"]["code"] == "ALREADY_PURCHASED"


def test_unpurchased_details_are_forbidden_and_unknown_lead_is_404(client, seeded):
    _, second = seeded["lead_ids"]
    assert client.get(f"{PREFIX}/vendors/me/leads/{second}", headers=_auth()).status_code == 403
    assert client.get(f"{PREFIX}/vendors/me/leads/99999", headers=_auth()).status_code == 404


def test_contact_logging_and_status_update(client, seeded):
    first, _ = seeded["lead_ids"]
    client.post(f"{PREFIX}/vendors/me/leads/{first}/purchase", json={}, headers=_auth())

    logged = client.post(
        f"{PREFIX}/vendors/me/leads/{first}/contacts",
        json={"contact_type": "call", "notes": "Asked for a quote"},
        headers=_auth(),
    )
    assert logged.status_code == 201
    contact_id = logged.json()["data"]["id"]

    updated = client.patch(
        f"{PREFIX}/vendors/me/contacts/{contact_id}",
        json={"status": "CONTACTED"},
        headers=_auth(),
    )
    assert updated.json()["data"]["status"] == "CONTACTED"

    bad = client.post(f"{PREFIX}/vendors/me/leads/{first}/contacts", json={"contact_type": "fax"}, headers=_auth())
    assert bad.status_code == 400


def test_preferences_round_trip(client, seeded):
    defaults = client.get(f"{PREFIX}/vendors/me/preferences", headers=_auth())
    assert defaults.json()["data"]["auto_lead_filter"] is True

    saved = client.put(
        f"{PREFIX}/vendors/me/preferences",
        json={"preferred_states": ["Gujarat"], "min_budget": 1000, "max_budget": 500},
        headers=_auth(),
    )
    assert saved.status_code == 400


def test_referral_link_requires_code(client, seeded):
    empty = client.post(f"{PREFIX}/referrals/link", json={"referral_code": "  "}, headers=_auth())
    assert empty.status_code == 400
    assert empty.json()["detail"]["error"] == "Referral code is required"

    unknown = client.post(f"{PREFIX}/referrals/link", json={"referral_code": "NOPE123"}, headers=_auth())
    assert unknown.status_code == 400
    assert unknown.json()["detail"]["code"] == "INVALID_CODE"


def test_referral_overview_and_cashout_errors(client, seeded):
    overview = client.get(f"{PREFIX}/referrals/me", headers=_auth())
    assert overview.status_code == 200
    assert overview.json()["data"]["profile"]["referral_code"] == "APITRADE"

    below_minimum = client.post(f"{PREFIX}/referrals/cashout", json={"amount": 100}, headers=_auth())
    assert below_minimum.status_code == 400

    no_balance = client.post(f"{PREFIX}/referrals/cashout", json={"amount": 800}, headers=_auth())
    assert no_balance.status_code == 409
    assert no_balance.json()["detail"]["code"] == "INSUFFICIENT_BALANCE"

    assert client.get(f"{PREFIX}/referrals/cashouts", headers=_auth()).json()["data"] == []
