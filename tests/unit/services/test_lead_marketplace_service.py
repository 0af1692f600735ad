from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from marketplace.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from marketplace.models import (
    Base,
    ConsumptionType,
    ContactStatus,
    ContactType,
    Lead,
    LeadContact,
    LeadPurchase,
    LeadStatus,
    PaymentStatus,
    Vendor,
    VendorLeadQuota,
    VendorPlan,
    VendorPlanSubscription,
    VendorPreferences,
)
from marketplace.services.lead_marketplace_service import NO_SUBSCRIPTION_MESSAGE, LeadMarketplaceService

NOW = datetime(2026, 3, 4, 10, 0, tzinfo=timezone.utc)
TODAY = datetime(2026, 3, 4, tzinfo=timezone.utc)
MONDAY = datetime(2026, 3, 2, tzinfo=timezone.utc)


def _build_session():
    engine = create_engine("sqlite:///:memory:")
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    return TestingSessionLocal()


def _vendor(session, *, daily=3, weekly=10, yearly=100, subscribed=True):
    vendor = Vendor(user_id="lead-user", email="leads@example.com", company_name="Leadco")
    plan = VendorPlan(name="Growth", daily_limit=daily, weekly_limit=weekly, yearly_limit=yearly)
    session.add_all([vendor, plan])
    session.flush()
    if subscribed:
        session.add(
            VendorPlanSubscription(
                vendor_id=vendor.id,
                plan_id=plan.id,
                start_date=NOW - timedelta(days=5),
                end_date=NOW + timedelta(days=30),
            )
        )
    session.commit()
    return vendor, plan


def _lead(session, product="Steel pipes", *, days_old=1, **fields):
    lead = Lead(
        product_name=product,
        title=f"Need {product}",
        status=fields.pop("status", LeadStatus.AVAILABLE),
        buyer_name="Buyer",
        buyer_email="buyer@example.com",
        buyer_phone="+91-9000000000",
        created_at=NOW - timedelta(days=days_old),
        **fields,
    )
    session.add(lead)
    session.commit()
    return lead


def test_listing_without_subscription_returns_message_not_error():
    session = _build_session()
    vendor, _ = _vendor(session, subscribed=False)
    _lead(session)

    result = LeadMarketplaceService(db=session).get_available_leads(vendor.id, {}, now=NOW)

    assert result["data"] == []
    assert result["message"] == NO_SUBSCRIPTION_MESSAGE
    assert result["subscription"] is None
    session.close()


def test_listing_excludes_old_sold_and_direct_leads_and_hides_buyer_contact():
    session = _build_session()
    vendor, _ = _vendor(session)
    fresh = _lead(session, "Fresh lead")
    _lead(session, "Old lead", days_old=45)
    _lead(session, "Sold lead", status=LeadStatus.SOLD)
    _lead(session, "Direct lead", vendor_id=vendor.id)

    result = LeadMarketplaceService(db=session).get_available_leads(vendor.id, {}, now=NOW)

    assert [item["id"] for item in result["data"]] == [fresh.id]
    assert "buyer_phone" not in result["data"][0]
    assert "buyer_email" not in result["data"][0]
    assert result["data"][0]["is_purchased"] is False
    assert result["pagination"]["total"] == 1
    assert "message" not in result
    session.close()


def test_listing_flags_leads_already_purchased():
    session = _build_session()
    vendor, _ = _vendor(session)
    lead = _lead(session)
    session.add(
        LeadPurchase(
            vendor_id=vendor.id,
            lead_id=lead.id,
            amount=Decimal("0"),
            payment_status=PaymentStatus.COMPLETED,
            consumption_type=ConsumptionType.DAILY_INCLUDED,
            purchase_date=NOW,
        )
    )
    session.commit()

    result = LeadMarketplaceService(db=session).get_available_leads(vendor.id, {}, now=NOW)
    assert result["data"][0]["is_purchased"] is True
    session.close()


def test_listing_hidden_when_daily_limit_reached():
    session = _build_session()
    vendor, plan = _vendor(session, daily=2)
    _lead(session)
    session.add(
        VendorLeadQuota(
            vendor_id=vendor.id,
            plan_id=plan.id,
            daily_used=2,
            weekly_used=2,
            yearly_used=2,
            daily_limit=2,
            weekly_limit=10,
            yearly_limit=100,
            daily_reset_at=TODAY,
            weekly_reset_at=MONDAY,
        )
    )
    session.commit()

    result = LeadMarketplaceService(db=session).get_available_leads(vendor.id, {}, now=NOW)

    assert result["data"] == []
    assert result["message"] == "Daily lead limit reached"
    assert result["quota"]["daily_used"] == 2
    session.close()


def test_listing_resets_stale_daily_usage_before_gating():
    session = _build_session()
    vendor, plan = _vendor(session, daily=2)
    _lead(session)
    session.add(
        VendorLeadQuota(
            vendor_id=vendor.id,
            plan_id=plan.id,
            daily_used=2,
            daily_limit=2,
            weekly_limit=10,
            yearly_limit=100,
            daily_reset_at=TODAY - timedelta(days=1),
            weekly_reset_at=MONDAY,
        )
    )
    session.commit()

    result = LeadMarketplaceService(db=session).get_available_leads(vendor.id, {}, now=NOW)

    assert len(result["data"]) == 1
    assert result["quota"]["daily_used"] == 0
    session.close()


def test_zero_limit_is_not_treated_as_exhausted_for_listing():
    session = _build_session()
    vendor, plan = _vendor(session, daily=0, weekly=0, yearly=0)
    _lead(session)
    session.add(VendorLeadQuota(vendor_id=vendor.id, plan_id=plan.id, daily_reset_at=TODAY, weekly_reset_at=MONDAY))
    session.commit()

    result = LeadMarketplaceService(db=session).get_available_leads(vendor.id, {}, now=NOW)
    assert len(result["data"]) == 1
    session.close()


def test_preferences_filter_applies_only_when_auto_filter_enabled():
    session = _build_session()
    vendor, _ = _vendor(session)
    gujarat = _lead(session, "Gloves", state="Gujarat", city="Surat", budget=Decimal("5000"))
    _lead(session, "Pipes", state="Kerala", city="Kochi", budget=Decimal("5000"))
    preferences = VendorPreferences(
        vendor_id=vendor.id,
        preferred_states=["Gujarat"],
        min_budget=Decimal("0"),
        max_budget=Decimal("10000"),
        auto_lead_filter=True,
    )
    session.add(preferences)
    session.commit()
    service = LeadMarketplaceService(db=session)

    filtered = service.get_available_leads(vendor.id, {}, now=NOW)
    assert [item["id"] for item in filtered["data"]] == [gujarat.id]

    preferences.auto_lead_filter = False
    session.commit()
    unfiltered = service.get_available_leads(vendor.id, {}, now=NOW)
    assert len(unfiltered["data"]) == 2
    session.close()


def test_budget_search_and_pagination_filters():
    session = _build_session()
    vendor, _ = _vendor(session)
    _lead(session, "Copper wire", budget=Decimal("1000"), days_old=3)
    cheap_pipe = _lead(session, "PVC pipe", budget=Decimal("2000"), days_old=2)
    _lead(session, "Steel pipe", budget=Decimal("90000"), days_old=1)
    service = LeadMarketplaceService(db=session)

    by_budget = service.get_available_leads(vendor.id, {"budget_min": 1500, "budget_max": 5000}, now=NOW)
    assert [item["id"] for item in by_budget["data"]] == [cheap_pipe.id]

    by_search = service.get_available_leads(vendor.id, {"search": "pipe"}, now=NOW)
    assert {item["product_name"] for item in by_search["data"]} == {"PVC pipe", "Steel pipe"}

    page_two = service.get_available_leads(vendor.id, {"page": 2, "limit": 2}, now=NOW)
    assert page_two["pagination"] == {"page": 2, "limit": 2, "total": 3}
    assert [item["product_name"] for item in page_two["data"]] == ["Copper wire"]
    session.close()


def test_purchased_details_require_purchase():
    session = _build_session()
    vendor, _ = _vendor(session)
    lead = _lead(session)
    service = LeadMarketplaceService(db=session)

    with pytest.raises(AuthorizationError):
        service.get_purchased_lead_details(vendor.id, lead.id)
    with pytest.raises(NotFoundError):
        service.get_purchased_lead_details(vendor.id, 9999)

    session.add(
        LeadPurchase(
            vendor_id=vendor.id,
            lead_id=lead.id,
            amount=Decimal("0"),
            consumption_type=ConsumptionType.DAILY_INCLUDED,
            purchase_date=NOW,
        )
    )
    session.commit()
    details = service.get_purchased_lead_details(vendor.id, lead.id)
    assert details["buyer"]["phone"] == "+91-9000000000"
    assert details["purchase"]["consumption_type"] == "DAILY_INCLUDED"
    session.close()


def test_purchased_leads_listing_and_unknown_status():
    session = _build_session()
    vendor, _ = _vendor(session)
    first = _lead(session, "First")
    second = _lead(session, "Second")
    for index, lead in enumerate([first, second]):
        session.add(
            LeadPurchase(
                vendor_id=vendor.id,
                lead_id=lead.id,
                amount=Decimal("0"),
                consumption_type=ConsumptionType.DAILY_INCLUDED,
                purchase_date=NOW - timedelta(hours=2 - index),
            )
        )
    session.commit()
    service = LeadMarketplaceService(db=session)

    newest_first = service.get_purchased_leads(vendor.id, {})
    assert [row["lead"]["product_name"] for row in newest_first["data"]] == ["Second", "First"]
    oldest_first = service.get_purchased_leads(vendor.id, {"sort_by": "oldest"})
    assert [row["lead"]["product_name"] for row in oldest_first["data"]] == ["First", "Second"]

    completed = service.get_purchased_leads(vendor.id, {"status": PaymentStatus.COMPLETED})
    assert completed["pagination"]["total"] == 2

    with pytest.raises(ValidationError):
        service.get_purchased_leads(vendor.id, {"status": "bogus"})
    session.close()


def test_contact_summary_and_stats():
    session = _build_session()
    vendor, _ = _vendor(session)
    lead = _lead(session)
    session.add(
        LeadPurchase(
            vendor_id=vendor.id,
            lead_id=lead.id,
            amount=Decimal("250"),
            consumption_type=ConsumptionType.PAID_EXTRA,
            purchase_date=NOW - timedelta(hours=1),
        )
    )
    session.add_all(
        [
            LeadContact(vendor_id=vendor.id, lead_id=lead.id, contact_type=ContactType.CALL, contact_date=NOW),
            LeadContact(
                vendor_id=vendor.id,
                lead_id=lead.id,
                contact_type=ContactType.WHATSAPP,
                status=ContactStatus.CONVERTED,
                contact_date=NOW,
            ),
        ]
    )
    session.commit()
    service = LeadMarketplaceService(db=session)

    summary = service.get_lead_with_contact_summary(vendor.id, lead.id)["summary"]
    assert summary == {"total_contacts": 2, "calls": 1, "whatsapp": 1, "emails": 0, "converted": True}

    stats = service.get_lead_stats(vendor.id, now=NOW)
    assert stats["daily"] == 1
    assert stats["total_purchased"] == 1
    assert stats["total_amount"] == 250.0
    assert stats["converted"] == 1
    assert stats["conversion_rate"] == 100.0
    session.close()
