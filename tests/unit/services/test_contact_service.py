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
    LeadPurchase,
    Vendor,
    VendorLeadQuota,
)
from marketplace.services.contact_service import ContactService
from marketplace.services.events import LEAD_CONTACTED, event_bus

NOW = datetime(2026, 3, 4, 10, 0, tzinfo=timezone.utc)
TODAY = datetime(2026, 3, 4, tzinfo=timezone.utc)
MONDAY = datetime(2026, 3, 2, tzinfo=timezone.utc)


def _build_session():
    engine = create_engine("sqlite:///:memory:")
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    return TestingSessionLocal()


def _purchased_lead(session, *, daily_used=0, daily_limit=1):
    vendor = Vendor(user_id="contact-user", email="contact@example.com")
    session.add(vendor)
    session.flush()
    lead = Lead(product_name="Cement", created_at=NOW - timedelta(days=1))
    session.add(lead)
    session.flush()
    session.add(
        LeadPurchase(
            vendor_id=vendor.id,
            lead_id=lead.id,
            amount=Decimal("0"),
            consumption_type=ConsumptionType.DAILY_INCLUDED,
            purchase_date=NOW,
        )
    )
    session.add(
        VendorLeadQuota(
            vendor_id=vendor.id,
            daily_used=daily_used,
            weekly_used=daily_used,
            yearly_used=daily_used,
            daily_limit=daily_limit,
            weekly_limit=5,
            yearly_limit=50,
            daily_reset_at=TODAY,
            weekly_reset_at=MONDAY,
        )
    )
    session.commit()
    return vendor, lead


def test_log_contact_counts_against_quota_even_past_limit():
    session = _build_session()
    vendor, lead = _purchased_lead(session, daily_used=1, daily_limit=1)

    contact = ContactService(db=session).log_contact(vendor.id, lead.id, "call", notes="  Left voicemail ", now=NOW)

    assert contact.contact_type == ContactType.CALL
    assert contact.status == ContactStatus.PENDING
    assert contact.notes == "Left voicemail"
    quota = session.query(VendorLeadQuota).filter(VendorLeadQuota.vendor_id == vendor.id).one()
    session.refresh(quota)
    assert (quota.daily_used, quota.weekly_used, quota.yearly_used) == (2, 2, 2)
    session.close()


def test_log_contact_resets_stale_quota_before_counting():
    session = _build_session()
    vendor, lead = _purchased_lead(session, daily_used=1)
    next_day = NOW + timedelta(days=1)

    ContactService(db=session).log_contact(vendor.id, lead.id, ContactType.EMAIL, now=next_day)

    quota = session.query(VendorLeadQuota).filter(VendorLeadQuota.vendor_id == vendor.id).one()
    session.refresh(quota)
    assert quota.daily_used == 1
    assert quota.weekly_used == 2
    session.close()


def test_log_contact_requires_purchase_or_ownership():
    session = _build_session()
    vendor, _ = _purchased_lead(session)
    stranger_lead = Lead(product_name="Bricks", created_at=NOW)
    own_lead = Lead(product_name="Sand", vendor_id=vendor.id, created_at=NOW)
    session.add_all([stranger_lead, own_lead])
    session.commit()
    service = ContactService(db=session)

    with pytest.raises(AuthorizationError, match="not purchased"):
        service.log_contact(vendor.id, stranger_lead.id, "CALL", now=NOW)
    with pytest.raises(NotFoundError):
        service.log_contact(vendor.id, 9999, "CALL", now=NOW)

    contact = service.log_contact(vendor.id, own_lead.id, "WHATSAPP", now=NOW)
    assert contact.lead_id == own_lead.id
    session.close()


def test_log_contact_rejects_unknown_type():
    session = _build_session()
    vendor, lead = _purchased_lead(session)
    with pytest.raises(ValidationError):
        ContactService(db=session).log_contact(vendor.id, lead.id, "FAX", now=NOW)
    session.close()


def test_log_contact_publishes_event():
    session = _build_session()
    vendor, lead = _purchased_lead(session)
    received = []
    event_bus.subscribe(LEAD_CONTACTED, received.append)

    contact = ContactService(db=session).log_contact(vendor.id, lead.id, "EMAIL", now=NOW)

    assert len(received) == 1
    assert received[0]["id"] == contact.id
    assert received[0]["contact_type"] == "EMAIL"
    session.close()


def test_failing_listener_does_not_break_contact_logging():
    session = _build_session()
    vendor, lead = _purchased_lead(session)

    def _broken(payload):
        raise RuntimeError("ui offline")

    event_bus.subscribe(LEAD_CONTACTED, _broken)
    contact = ContactService(db=session).log_contact(vendor.id, lead.id, "CALL", now=NOW)
    assert contact.id is not None
    session.close()


def test_update_contact_status_is_vendor_scoped():
    session = _build_session()
    vendor, lead = _purchased_lead(session)
    service = ContactService(db=session)
    contact = service.log_contact(vendor.id, lead.id, "CALL", now=NOW)

    updated = service.update_contact_status(vendor.id, contact.id, "converted", notes="Order placed")
    assert updated.status == ContactStatus.CONVERTED
    assert updated.notes == "Order placed"

    with pytest.raises(NotFoundError):
        service.update_contact_status(vendor.id + 100, contact.id, "CONTACTED")
    with pytest.raises(ValidationError):
        service.update_contact_status(vendor.id, contact.id, "LOST")
    session.close()


def test_enum_members_are_accepted_for_type_and_status():
    session = _build_session()
    vendor, lead = _purchased_lead(session)
    service = ContactService(db=session)

    contact = service.log_contact(vendor.id, lead.id, ContactType.WHATSAPP, now=NOW)
    assert contact.contact_type == ContactType.WHATSAPP

    updated = service.update_contact_status(vendor.id, contact.id, ContactStatus.CONVERTED)
    assert updated.status == ContactStatus.CONVERTED
    session.close()
