"""Lead eligibility filtering and vendor-facing lead reads."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import func, or_

from marketplace.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from marketplace.models.base import as_utc, utcnow
from marketplace.models.enums import ContactStatus, ContactType, LeadStatus, PaymentStatus
from marketplace.models.lead import Lead, LeadContact, LeadPurchase
from marketplace.models.vendor import VendorPreferences
from marketplace.services.base_service import BaseService
from marketplace.services.preference_service import default_preferences, preferences_to_dict
from marketplace.services.quota_service import QuotaService, QuotaSnapshot
from marketplace.services.subscription_service import SubscriptionService
from marketplace.utils.clock import local_midnight
from marketplace.utils.validators import as_float, clamp_page, enum_token, sanitize_text, to_amount

logger = logging.getLogger(__name__)

NO_SUBSCRIPTION_MESSAGE = "No active subscription plan. Please subscribe to view leads."
NOT_PURCHASED_MESSAGE = "You have not purchased this lead"
LIMIT_PERIODS = ("daily", "weekly", "yearly")


@dataclass
class LeadFilters:
    budget_min: Decimal | None = None
    budget_max: Decimal | None = None
    search: str | None = None
    page: int | None = None
    limit: int | None = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> "LeadFilters":
        data = data or {}
        return cls(
            budget_min=to_amount(data.get("budget_min")),
            budget_max=to_amount(data.get("budget_max")),
            search=sanitize_text(data.get("search"), max_len=120) or None,
            page=data.get("page"),
            limit=data.get("limit"),
        )


def _iso(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


def lead_summary_to_dict(lead: Lead) -> dict[str, Any]:
    """Pre-purchase view of a lead; never includes buyer contact details."""
    return {
        "id": lead.id,
        "title": lead.title,
        "product_name": lead.product_name,
        "budget": as_float(lead.budget) if lead.budget is not None else None,
        "quantity": lead.quantity,
        "location": lead.location,
        "state": lead.state,
        "city": lead.city,
        "micro_category_id": lead.micro_category_id,
        "status": lead.status.value,
        "created_at": _iso(lead.created_at),
    }


def lead_to_dict(lead: Lead) -> dict[str, Any]:
    payload = lead_summary_to_dict(lead)
    payload.update(
        {
            "message": lead.message,
            "buyer_name": lead.buyer_name,
            "buyer_email": lead.buyer_email,
            "buyer_phone": lead.buyer_phone,
            "company_name": lead.company_name,
            "vendor_id": lead.vendor_id,
        }
    )
    return payload


def purchase_to_dict(purchase: LeadPurchase) -> dict[str, Any]:
    return {
        "id": purchase.id,
        "vendor_id": purchase.vendor_id,
        "lead_id": purchase.lead_id,
        "amount": as_float(purchase.amount),
        "payment_status": purchase.payment_status.value,
        "consumption_type": purchase.consumption_type.value,
        "purchase_date": _iso(purchase.purchase_date),
        "subscription_plan_name": purchase.subscription_plan_name,
    }


def contact_to_dict(contact: LeadContact) -> dict[str, Any]:
    return {
        "id": contact.id,
        "vendor_id": contact.vendor_id,
        "lead_id": contact.lead_id,
        "contact_type": contact.contact_type.value,
        "status": contact.status.value,
        "contact_date": _iso(contact.contact_date),
        "notes": contact.notes,
    }


class LeadMarketplaceService(BaseService):
    """Vendor-facing reads over the lead marketplace."""

    def get_available_leads(
        self,
        vendor_id: int,
        filters: LeadFilters | dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Quota- and subscription-gated listing of marketplace leads.

        Exhausted limits and missing subscriptions are expected states and come
        back as an empty page with a `message`, never as an exception.
        """
        if not isinstance(filters, LeadFilters):
            filters = LeadFilters.from_mapping(filters)
        current = as_utc(now) or utcnow()
        page, limit = clamp_page(filters.page, filters.limit, self.config.DEFAULT_PAGE_SIZE, self.config.MAX_PAGE_SIZE)

        quota = QuotaService(db=self.db, config=self.config).load_quota(vendor_id, now=current)
        resolved = SubscriptionService(db=self.db, config=self.config).resolve_active_subscription(vendor_id)
        preferences = self.db.query(VendorPreferences).filter(VendorPreferences.vendor_id == vendor_id).first()

        result: dict[str, Any] = {
            "data": [],
            "quota": quota.to_dict() if quota else None,
            "preferences": preferences_to_dict(preferences) if preferences else default_preferences(vendor_id),
            "subscription": resolved.to_dict(current) if resolved else None,
            "pagination": {"page": page, "limit": limit, "total": 0},
        }

        if resolved is None or not resolved.is_active(current):
            result["message"] = NO_SUBSCRIPTION_MESSAGE
            return result

        message = self._limit_message(resolved.plan, quota)
        if message:
            result["message"] = message
            return result

        query = self.db.query(Lead).filter(
            Lead.status == LeadStatus.AVAILABLE,
            Lead.vendor_id.is_(None),
            Lead.created_at >= current - timedelta(days=self.config.LEAD_WINDOW_DAYS),
        )
        if filters.budget_min is not None:
            query = query.filter(Lead.budget >= filters.budget_min)
        if filters.budget_max is not None:
            query = query.filter(Lead.budget <= filters.budget_max)
        if filters.search:
            query = query.filter(Lead.product_name.ilike(f"%{filters.search}%"))
        if preferences is not None and preferences.auto_lead_filter:
            query = self._apply_preferences(query, preferences)

        total = query.count()
        rows = (
            query.order_by(Lead.created_at.desc(), Lead.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        purchased_ids = self._purchased_lead_ids(vendor_id, [row.id for row in rows])

        data = []
        for row in rows:
            item = lead_summary_to_dict(row)
            item["is_purchased"] = row.id in purchased_ids
            data.append(item)
        result["data"] = data
        result["pagination"]["total"] = total
        return result

    @staticmethod
    def _limit_message(plan, quota: QuotaSnapshot | None) -> str | None:
        if plan is None or quota is None:
            return None
        for period in LIMIT_PERIODS:
            limit = getattr(plan, f"{period}_limit") or 0
            used = getattr(quota, f"{period}_used") or 0
            if limit > 0 and used >= limit:
                return f"{period.capitalize()} lead limit reached"
        return None

    @staticmethod
    def _apply_preferences(query, preferences: VendorPreferences):
        categories = list(preferences.preferred_micro_categories or [])
        states = list(preferences.preferred_states or [])
        cities = list(preferences.preferred_cities or [])
        if categories:
            query = query.filter(Lead.micro_category_id.in_(categories))
        if states or cities:
            clauses = []
            if states:
                clauses.append(Lead.state.in_(states))
            if cities:
                clauses.append(Lead.city.in_(cities))
            query = query.filter(or_(*clauses))
        query = query.filter(
            or_(
                Lead.budget.is_(None),
                Lead.budget.between(preferences.min_budget, preferences.max_budget),
            )
        )
        return query

    def _purchased_lead_ids(self, vendor_id: int, lead_ids: list[int]) -> set[int]:
        if not lead_ids:
            return set()
        rows = (
            self.db.query(LeadPurchase.lead_id)
            .filter(LeadPurchase.vendor_id == vendor_id, LeadPurchase.lead_id.in_(lead_ids))
            .all()
        )
        return {row.lead_id for row in rows}

    def get_lead(self, lead_id: int) -> Lead | None:
        return self.db.query(Lead).filter(Lead.id == lead_id).first()

    def get_purchase(self, vendor_id: int, lead_id: int) -> LeadPurchase | None:
        return (
            self.db.query(LeadPurchase)
            .filter(LeadPurchase.vendor_id == vendor_id, LeadPurchase.lead_id == lead_id)
            .first()
        )

    def get_lead_summary(self, lead_id: int) -> dict[str, Any]:
        lead = self.get_lead(lead_id)
        if lead is None:
            raise NotFoundError("Lead not found")
        return lead_summary_to_dict(lead)

    def require_access(self, vendor_id: int, lead_id: int) -> tuple[Lead, LeadPurchase | None]:
        """Lead plus the vendor's purchase; owners of direct leads pass without one."""
        lead = self.get_lead(lead_id)
        if lead is None:
            raise NotFoundError("Lead not found")
        purchase = self.get_purchase(vendor_id, lead_id)
        if purchase is None and lead.vendor_id != vendor_id:
            raise AuthorizationError(NOT_PURCHASED_MESSAGE)
        return lead, purchase

    def get_contact_history(self, vendor_id: int, lead_id: int) -> list[LeadContact]:
        return (
            self.db.query(LeadContact)
            .filter(LeadContact.vendor_id == vendor_id, LeadContact.lead_id == lead_id)
            .order_by(LeadContact.contact_date.desc(), LeadContact.id.desc())
            .all()
        )

    def get_purchased_lead_details(self, vendor_id: int, lead_id: int) -> dict[str, Any]:
        lead, purchase = self.require_access(vendor_id, lead_id)
        contacts = self.get_contact_history(vendor_id, lead_id)
        return {
            "lead": lead_to_dict(lead),
            "purchase": purchase_to_dict(purchase) if purchase else None,
            "contacts": [contact_to_dict(contact) for contact in contacts],
            "buyer": {
                "name": lead.buyer_name,
                "email": lead.buyer_email,
                "phone": lead.buyer_phone,
                "company": lead.company_name,
            },
        }

    def get_purchased_leads(self, vendor_id: int, filters: dict[str, Any] | None = None) -> dict[str, Any]:
        filters = filters or {}
        page, limit = clamp_page(
            filters.get("page"), filters.get("limit"), self.config.DEFAULT_PAGE_SIZE, self.config.MAX_PAGE_SIZE
        )
        query = (
            self.db.query(LeadPurchase, Lead)
            .join(Lead, Lead.id == LeadPurchase.lead_id)
            .filter(LeadPurchase.vendor_id == vendor_id)
        )
        status = filters.get("status")
        if status:
            try:
                query = query.filter(LeadPurchase.payment_status == PaymentStatus(enum_token(status)))
            except ValueError as exc:
                raise ValidationError(f"Unknown purchase status: {status}") from exc
        if filters.get("sort_by") == "oldest":
            query = query.order_by(LeadPurchase.purchase_date.asc(), LeadPurchase.id.asc())
        else:
            query = query.order_by(LeadPurchase.purchase_date.desc(), LeadPurchase.id.desc())

        total = query.count()
        rows = query.offset((page - 1) * limit).limit(limit).all()
        data = []
        for purchase, lead in rows:
            item = purchase_to_dict(purchase)
            item["lead"] = lead_to_dict(lead)
            data.append(item)
        return {"data": data, "pagination": {"page": page, "limit": limit, "total": total}}

    def get_lead_with_contact_summary(self, vendor_id: int, lead_id: int) -> dict[str, Any]:
        lead, purchase = self.require_access(vendor_id, lead_id)
        contacts = self.get_contact_history(vendor_id, lead_id)
        summary = {
            "total_contacts": len(contacts),
            "calls": sum(1 for c in contacts if c.contact_type == ContactType.CALL),
            "whatsapp": sum(1 for c in contacts if c.contact_type == ContactType.WHATSAPP),
            "emails": sum(1 for c in contacts if c.contact_type == ContactType.EMAIL),
            "converted": any(c.status == ContactStatus.CONVERTED for c in contacts),
        }
        return {
            "lead": lead_to_dict(lead),
            "purchase": purchase_to_dict(purchase) if purchase else None,
            "contacts": [contact_to_dict(contact) for contact in contacts],
            "summary": summary,
        }

    def get_lead_stats(self, vendor_id: int, now: datetime | None = None) -> dict[str, Any]:
        current = as_utc(now) or utcnow()
        purchases = self.db.query(LeadPurchase).filter(LeadPurchase.vendor_id == vendor_id)

        def _since(start: datetime) -> int:
            return purchases.filter(LeadPurchase.purchase_date >= start).count()

        total_purchased = purchases.count()
        total_amount = (
            self.db.query(func.coalesce(func.sum(LeadPurchase.amount), 0))
            .filter(LeadPurchase.vendor_id == vendor_id)
            .scalar()
        )
        contacts = self.db.query(LeadContact).filter(LeadContact.vendor_id == vendor_id)
        total_contacted = contacts.count()
        converted = contacts.filter(LeadContact.status == ContactStatus.CONVERTED).count()
        direct = (
            self.db.query(Lead)
            .filter(Lead.vendor_id == vendor_id, Lead.status != LeadStatus.CLOSED)
            .count()
        )
        quota = QuotaService(db=self.db, config=self.config).load_quota(vendor_id, now=current)
        conversion_rate = round(converted / total_purchased * 100, 2) if total_purchased else 0.0

        return {
            "daily": _since(local_midnight(current, self.config.quota_zone)),
            "weekly": _since(current - timedelta(days=7)),
            "yearly": _since(current - timedelta(days=365)),
            "direct": direct,
            "total_purchased": total_purchased,
            "total_amount": float(total_amount or 0),
            "total_contacted": total_contacted,
            "converted": converted,
            "conversion_rate": conversion_rate,
            "quota": quota.to_dict() if quota else None,
        }
