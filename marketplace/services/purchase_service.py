"""Server-side lead purchase transaction.

Lead, subscription and quota rows are locked and the quota decrement and the
purchase insert commit together, so two tabs racing on the same lead cannot
both win or consume quota twice.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from marketplace.core.exceptions import ConflictError, NotFoundError, ValidationError
from marketplace.models.base import as_utc, utcnow
from marketplace.models.enums import ConsumptionType, LeadStatus, PaymentStatus, PurchaseMode
from marketplace.models.lead import Lead, LeadPurchase
from marketplace.services.base_service import BaseService
from marketplace.services.concurrency import lock_for_update, run_with_retry
from marketplace.services.events import LEAD_PURCHASED, event_bus
from marketplace.services.lead_marketplace_service import NO_SUBSCRIPTION_MESSAGE, purchase_to_dict
from marketplace.services.quota_service import QuotaService, QuotaSnapshot
from marketplace.services.subscription_service import SubscriptionService
from marketplace.utils.validators import enum_token, to_amount

logger = logging.getLogger(__name__)

ALREADY_PURCHASED_MESSAGE = "You already purchased this lead"
PAID_REQUIRED_MESSAGE = "Included quota exhausted. Paid consumption required."
ZERO = Decimal("0")


def normalize_mode(value: Any) -> PurchaseMode:
    """Unknown or missing modes fall back to AUTO."""
    try:
        return PurchaseMode(enum_token(value))
    except ValueError:
        return PurchaseMode.AUTO


def decide_consumption(mode: PurchaseMode, remaining: dict[str, int], charge: Decimal) -> ConsumptionType | None:
    """Pick how a purchase is paid for; None means payment is required.

    Paid modes always charge. Otherwise daily slots go first, then weekly, and
    only while yearly headroom remains. AUTO with an amount falls back to a
    paid purchase once included quota is gone.
    """
    if mode.is_paid:
        return ConsumptionType.PAID_EXTRA
    if remaining["yearly"] > 0:
        if remaining["daily"] > 0:
            return ConsumptionType.DAILY_INCLUDED
        if remaining["weekly"] > 0:
            return ConsumptionType.WEEKLY_INCLUDED
    if mode == PurchaseMode.AUTO and charge > ZERO:
        return ConsumptionType.PAID_EXTRA
    return None


class LeadPurchaseService(BaseService):
    def purchase_lead(
        self,
        vendor_id: int,
        lead_id: int,
        mode: Any = None,
        amount: Any = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Buy a marketplace lead for `vendor_id`.

        Raises NotFoundError for unknown leads and ConflictError for duplicate
        purchases, unavailable leads and the per-lead vendor cap. Inactive
        subscriptions and exhausted quota come back as `success: False`.
        """
        if not vendor_id or not lead_id:
            raise ValidationError("vendor_id and lead_id are required")
        purchase_mode = normalize_mode(mode)
        charge = max(to_amount(amount, default=ZERO), ZERO)
        if purchase_mode.is_paid and charge <= ZERO:
            raise ValidationError("A positive amount is required for paid purchases")

        return run_with_retry(
            self.db,
            lambda: self._purchase(vendor_id, lead_id, purchase_mode, charge, as_utc(now) or utcnow()),
        )

    def _purchase(
        self,
        vendor_id: int,
        lead_id: int,
        mode: PurchaseMode,
        charge: Decimal,
        current: datetime,
    ) -> dict[str, Any]:
        try:
            return self._purchase_locked(vendor_id, lead_id, mode, charge, current)
        except Exception:
            self.rollback()
            raise

    def _purchase_locked(
        self,
        vendor_id: int,
        lead_id: int,
        mode: PurchaseMode,
        charge: Decimal,
        current: datetime,
    ) -> dict[str, Any]:
        lead = lock_for_update(self.db.query(Lead).filter(Lead.id == lead_id)).first()
        if lead is None:
            raise NotFoundError("Lead not found")

        existing = (
            self.db.query(LeadPurchase.id)
            .filter(LeadPurchase.vendor_id == vendor_id, LeadPurchase.lead_id == lead_id)
            .first()
        )
        if existing is not None:
            raise ConflictError(ALREADY_PURCHASED_MESSAGE, code="ALREADY_PURCHASED")

        if lead.vendor_id is not None and lead.vendor_id != vendor_id:
            raise ConflictError("Lead is not available for marketplace purchase", code="LEAD_NOT_PURCHASABLE")
        if lead.status != LeadStatus.AVAILABLE:
            raise ConflictError("Lead is no longer available", code="LEAD_UNAVAILABLE")

        resolved = SubscriptionService(db=self.db, config=self.config).lock_current_subscription(vendor_id, current)
        if resolved is None:
            self.rollback()
            return self._refusal("SUBSCRIPTION_INACTIVE", NO_SUBSCRIPTION_MESSAGE)

        quota_service = QuotaService(db=self.db, config=self.config)
        quota = quota_service.lock_or_create(vendor_id, resolved.plan, current)

        cap = self.config.MAX_VENDORS_PER_LEAD
        buyers = self.db.query(func.count(LeadPurchase.id)).filter(LeadPurchase.lead_id == lead_id).scalar() or 0
        if buyers >= cap:
            raise ConflictError(f"This lead has reached maximum {cap} vendors limit", code="LEAD_CAP_REACHED")

        plan_name = resolved.plan.name if resolved.plan else ""
        remaining = QuotaSnapshot.from_model(quota).remaining()
        consumption = decide_consumption(mode, remaining, charge)
        if consumption is None:
            self.rollback()
            return self._refusal("PAID_REQUIRED", PAID_REQUIRED_MESSAGE, remaining=remaining, plan_name=plan_name)

        purchase = LeadPurchase(
            vendor_id=vendor_id,
            lead_id=lead_id,
            amount=charge if consumption == ConsumptionType.PAID_EXTRA else ZERO,
            payment_status=PaymentStatus.COMPLETED,
            consumption_type=consumption,
            purchase_date=current,
            subscription_plan_name=plan_name,
        )
        self.db.add(purchase)
        try:
            self.db.flush()
        except IntegrityError as exc:
            raise ConflictError(ALREADY_PURCHASED_MESSAGE, code="ALREADY_PURCHASED") from exc

        if consumption == ConsumptionType.DAILY_INCLUDED:
            updated = quota_service.increment_usage(vendor_id, daily=1, weekly=1, yearly=1, guard="daily")
        elif consumption == ConsumptionType.WEEKLY_INCLUDED:
            updated = quota_service.increment_usage(vendor_id, daily=0, weekly=1, yearly=1, guard="weekly")
        else:
            updated = 1
        if updated == 0:
            raise ConflictError("Quota changed while purchasing; please retry", code="QUOTA_CONFLICT")

        if buyers + 1 >= cap:
            lead.status = LeadStatus.SOLD
        self.commit()
        self.db.refresh(quota)
        self.db.refresh(purchase)

        snapshot = QuotaSnapshot.from_model(quota)
        payload = {
            "vendor_id": vendor_id,
            "lead_id": lead_id,
            "purchase_id": purchase.id,
            "consumption_type": consumption.value,
        }
        logger.info("lead.purchased", extra={"event": "lead.purchased", **payload})
        event_bus.publish(LEAD_PURCHASED, payload)

        return {
            "success": True,
            "existing_purchase": False,
            "consumption_type": consumption.value,
            "purchase": purchase_to_dict(purchase),
            "remaining": snapshot.remaining(),
            "quota": snapshot.to_dict(),
            "subscription": resolved.to_dict(current),
            "plan_name": plan_name,
        }

    @staticmethod
    def _refusal(
        code: str,
        message: str,
        remaining: dict[str, int] | None = None,
        plan_name: str = "",
    ) -> dict[str, Any]:
        return {
            "success": False,
            "code": code,
            "message": message,
            "remaining": remaining or {"daily": 0, "weekly": 0, "yearly": 0},
            "plan_name": plan_name,
        }
