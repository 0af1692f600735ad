"""Subscription resolution and lifecycle housekeeping."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import or_

from marketplace.models.base import as_utc, utcnow
from marketplace.models.enums import SubscriptionStatus
from marketplace.models.subscription import VendorPlan, VendorPlanSubscription
from marketplace.services.base_service import BaseService
from marketplace.services.concurrency import lock_for_update
from marketplace.services.quota_service import QuotaService
from marketplace.utils.clock import days_left

logger = logging.getLogger(__name__)

RENEWAL_REMINDER_DAYS = 7


def is_subscription_active(subscription: VendorPlanSubscription | None, now: datetime | None = None) -> bool:
    """Computed activity; never trust `status` alone."""
    if subscription is None or subscription.status != SubscriptionStatus.ACTIVE:
        return False
    if subscription.end_date is None:
        return True
    return days_left(subscription.end_date, now) > 0


@dataclass
class ResolvedSubscription:
    subscription: VendorPlanSubscription
    plan: VendorPlan | None

    def is_active(self, now: datetime | None = None) -> bool:
        return is_subscription_active(self.subscription, now)

    def to_dict(self, now: datetime | None = None) -> dict[str, Any]:
        sub = self.subscription
        plan = self.plan
        end_date = as_utc(sub.end_date)
        start_date = as_utc(sub.start_date)
        return {
            "id": sub.id,
            "plan_id": sub.plan_id,
            "plan_name": plan.name if plan else None,
            "status": sub.status.value,
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
            "days_left": days_left(end_date, now) if end_date else None,
            "is_active": self.is_active(now),
            "daily_limit": plan.daily_limit if plan else 0,
            "weekly_limit": plan.weekly_limit if plan else 0,
            "yearly_limit": plan.yearly_limit if plan else 0,
        }


class SubscriptionService(BaseService):
    def resolve_active_subscription(self, vendor_id: int) -> ResolvedSubscription | None:
        """First ACTIVE subscription (newest first) joined with its plan.

        Storage is not assumed to keep a single ACTIVE row, so the filter runs
        here. The returned row may still be date-expired; check `is_active`.
        """
        rows = (
            self.db.query(VendorPlanSubscription)
            .filter(VendorPlanSubscription.vendor_id == vendor_id)
            .order_by(VendorPlanSubscription.created_at.desc(), VendorPlanSubscription.id.desc())
            .all()
        )
        subscription = next((row for row in rows if row.status == SubscriptionStatus.ACTIVE), None)
        if subscription is None:
            return None
        plan = self.db.query(VendorPlan).filter(VendorPlan.id == subscription.plan_id).first()
        return ResolvedSubscription(subscription=subscription, plan=plan)

    def lock_current_subscription(self, vendor_id: int, now: datetime | None = None) -> ResolvedSubscription | None:
        """Row-locked authoritative subscription for the purchase transaction."""
        current = as_utc(now) or utcnow()
        subscription = lock_for_update(
            self.db.query(VendorPlanSubscription)
            .filter(
                VendorPlanSubscription.vendor_id == vendor_id,
                VendorPlanSubscription.status == SubscriptionStatus.ACTIVE,
                or_(VendorPlanSubscription.end_date.is_(None), VendorPlanSubscription.end_date > current),
            )
            .order_by(VendorPlanSubscription.end_date.desc(), VendorPlanSubscription.id.desc())
        ).first()
        if subscription is None or not is_subscription_active(subscription, current):
            return None
        plan = self.db.query(VendorPlan).filter(VendorPlan.id == subscription.plan_id).first()
        return ResolvedSubscription(subscription=subscription, plan=plan)

    def create_subscription(
        self,
        vendor_id: int,
        plan_id: int,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> VendorPlanSubscription:
        plan = self.db.query(VendorPlan).filter(VendorPlan.id == plan_id).first()
        start = as_utc(start_date) or utcnow()
        if end_date is None and plan is not None:
            end_date = start + timedelta(days=plan.duration_days)
        subscription = VendorPlanSubscription(
            vendor_id=vendor_id,
            plan_id=plan_id,
            status=SubscriptionStatus.ACTIVE,
            start_date=start,
            end_date=end_date,
        )
        self.db.add(subscription)
        self.commit()
        self.db.refresh(subscription)
        return subscription

    def expire_lapsed_subscriptions(self, now: datetime | None = None) -> int:
        """Transition ACTIVE rows past their end date to EXPIRED and clear quota."""
        current = as_utc(now) or utcnow()
        lapsed = (
            self.db.query(VendorPlanSubscription)
            .filter(
                VendorPlanSubscription.status == SubscriptionStatus.ACTIVE,
                VendorPlanSubscription.end_date.is_not(None),
                VendorPlanSubscription.end_date <= current,
            )
            .all()
        )
        quota_service = QuotaService(db=self.db, config=self.config)
        for subscription in lapsed:
            subscription.status = SubscriptionStatus.EXPIRED
        self.db.flush()
        for vendor_id in sorted({subscription.vendor_id for subscription in lapsed}):
            still_active = self.resolve_active_subscription(vendor_id)
            if still_active is None or not still_active.is_active(current):
                quota_service.clear_quota(vendor_id)
        self.commit()
        if lapsed:
            logger.info(
                "subscriptions.expired",
                extra={"event": "subscriptions.expired", "count": len(lapsed)},
            )
        return len(lapsed)

    def flag_renewals_due(self, now: datetime | None = None, within_days: int = RENEWAL_REMINDER_DAYS) -> list[int]:
        """Mark subscriptions ending within `within_days` as notified; returns their ids.

        Delivering the reminder belongs to the notification service; this only
        records that one is owed and logs it.
        """
        current = as_utc(now) or utcnow()
        due = (
            self.db.query(VendorPlanSubscription)
            .filter(
                VendorPlanSubscription.status == SubscriptionStatus.ACTIVE,
                VendorPlanSubscription.renewal_notification_sent.is_(False),
                VendorPlanSubscription.end_date > current,
                VendorPlanSubscription.end_date <= current + timedelta(days=within_days),
            )
            .all()
        )
        for subscription in due:
            subscription.renewal_notification_sent = True
            logger.info(
                "subscriptions.renewal_due",
                extra={
                    "event": "subscriptions.renewal_due",
                    "vendor_id": subscription.vendor_id,
                    "count": days_left(subscription.end_date, current),
                },
            )
        self.commit()
        return [subscription.id for subscription in due]

    def expiration_summary(self, now: datetime | None = None) -> dict[str, int]:
        current = as_utc(now) or utcnow()
        base = self.db.query(VendorPlanSubscription).filter(
            VendorPlanSubscription.status == SubscriptionStatus.ACTIVE,
            VendorPlanSubscription.end_date.is_not(None),
        )
        return {
            "expiring_in_7_days": base.filter(
                VendorPlanSubscription.end_date > current,
                VendorPlanSubscription.end_date <= current + timedelta(days=7),
            ).count(),
            "expiring_in_30_days": base.filter(
                VendorPlanSubscription.end_date > current,
                VendorPlanSubscription.end_date <= current + timedelta(days=30),
            ).count(),
            "already_expired": base.filter(VendorPlanSubscription.end_date <= current).count(),
        }
