"""Post-purchase contact logging."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from marketplace.core.exceptions import NotFoundError, ValidationError
from marketplace.models.base import as_utc, utcnow
from marketplace.models.enums import ContactStatus, ContactType
from marketplace.models.lead import LeadContact
from marketplace.services.base_service import BaseService
from marketplace.services.events import LEAD_CONTACTED, event_bus
from marketplace.services.lead_marketplace_service import LeadMarketplaceService, contact_to_dict
from marketplace.services.quota_service import QuotaService
from marketplace.utils.validators import enum_token, optional_text

logger = logging.getLogger(__name__)


def _parse_enum(enum_cls, value: Any, label: str):
    try:
        return enum_cls(enum_token(value))
    except ValueError as exc:
        raise ValidationError(f"Invalid {label}: {value}") from exc


class ContactService(BaseService):
    """Records vendor follow-ups on leads they own or bought.

    Logging a contact always counts against quota usage, even past a limit:
    exhaustion only hides new leads, it never blocks follow-up.
    """

    def log_contact(
        self,
        vendor_id: int,
        lead_id: int,
        contact_type: Any,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> LeadContact:
        kind = _parse_enum(ContactType, contact_type, "contact type")
        current = as_utc(now) or utcnow()
        LeadMarketplaceService(db=self.db, config=self.config).require_access(vendor_id, lead_id)

        quota_service = QuotaService(db=self.db, config=self.config)
        quota_service.load_quota(vendor_id, now=current)

        try:
            quota_service.increment_usage(vendor_id, daily=1, weekly=1, yearly=1)
            contact = LeadContact(
                vendor_id=vendor_id,
                lead_id=lead_id,
                contact_type=kind,
                status=ContactStatus.PENDING,
                contact_date=current,
                notes=optional_text(notes, max_len=4000),
            )
            self.db.add(contact)
            self.commit()
        except Exception:
            self.rollback()
            raise
        self.db.refresh(contact)

        payload = contact_to_dict(contact)
        logger.info(
            "lead.contacted",
            extra={"event": "lead.contacted", "vendor_id": vendor_id, "lead_id": lead_id, "contact_id": contact.id},
        )
        event_bus.publish(LEAD_CONTACTED, payload)
        return contact

    def update_contact_status(
        self,
        vendor_id: int,
        contact_id: int,
        status: Any,
        notes: str | None = None,
    ) -> LeadContact:
        new_status = _parse_enum(ContactStatus, status, "contact status")
        contact = (
            self.db.query(LeadContact)
            .filter(LeadContact.id == contact_id, LeadContact.vendor_id == vendor_id)
            .first()
        )
        if contact is None:
            raise NotFoundError("Contact not found")
        contact.status = new_status
        if notes is not None:
            contact.notes = optional_text(notes, max_len=4000)
        self.commit()
        self.db.refresh(contact)
        return contact

    def get_contact_history(self, vendor_id: int, lead_id: int) -> list[LeadContact]:
        return LeadMarketplaceService(db=self.db, config=self.config).get_contact_history(vendor_id, lead_id)
