"""Lazy quota reset engine and quota row accessors.

Counters are never reset by a scheduler. Every read path calls
`reset_quota`, which compares the stored watermarks against the current local
day/week boundaries and zeroes what has rolled over.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from marketplace.models.base import as_utc, utcnow
from marketplace.models.quota import VendorLeadQuota
from marketplace.models.subscription import VendorPlan
from marketplace.services.base_service import BaseService
from marketplace.services.concurrency import lock_for_update
from marketplace.utils.clock import local_midnight, week_start, year_start

logger = logging.getLogger(__name__)

_WATERMARKS = ("daily_reset_at", "weekly_reset_at", "yearly_reset_at")


@dataclass(frozen=True)
class QuotaBoundaries:
    day_start: datetime
    week_start: datetime
    year_start: datetime | None = None


@dataclass
class QuotaSnapshot:
    """Plain copy of a quota row, safe to return after a rollback."""

    vendor_id: int
    daily_used: int = 0
    weekly_used: int = 0
    yearly_used: int = 0
    daily_limit: int = 0
    weekly_limit: int = 0
    yearly_limit: int = 0
    daily_reset_at: datetime | None = None
    weekly_reset_at: datetime | None = None
    yearly_reset_at: datetime | None = None

    @classmethod
    def from_model(cls, quota: VendorLeadQuota) -> "QuotaSnapshot":
        return cls(
            vendor_id=quota.vendor_id,
            daily_used=quota.daily_used or 0,
            weekly_used=quota.weekly_used or 0,
            yearly_used=quota.yearly_used or 0,
            daily_limit=quota.daily_limit or 0,
            weekly_limit=quota.weekly_limit or 0,
            yearly_limit=quota.yearly_limit or 0,
            daily_reset_at=as_utc(quota.daily_reset_at),
            weekly_reset_at=as_utc(quota.weekly_reset_at),
            yearly_reset_at=as_utc(quota.yearly_reset_at),
        )

    def remaining(self) -> dict[str, int]:
        return {
            "daily": max(self.daily_limit - self.daily_used, 0),
            "weekly": max(self.weekly_limit - self.weekly_used, 0),
            "yearly": max(self.yearly_limit - self.yearly_used, 0),
        }

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        for key in _WATERMARKS:
            value = payload[key]
            payload[key] = value.isoformat() if value is not None else None
        payload["remaining"] = self.remaining()
        return payload


def compute_quota_reset(quota: VendorLeadQuota, boundaries: QuotaBoundaries) -> dict[str, Any]:
    """Return the column changes needed to roll `quota` over; empty when current.

    Daily and weekly checks are independent, so crossing a Monday midnight
    fires both. Missing watermarks fall back to updated_at, then created_at.
    """
    fallback = as_utc(quota.updated_at) or as_utc(quota.created_at)
    changes: dict[str, Any] = {}

    daily_mark = as_utc(quota.daily_reset_at) or fallback
    if daily_mark is None or daily_mark < boundaries.day_start:
        changes["daily_used"] = 0
        changes["daily_reset_at"] = boundaries.day_start

    weekly_mark = as_utc(quota.weekly_reset_at) or fallback
    if weekly_mark is None or weekly_mark < boundaries.week_start:
        changes["weekly_used"] = 0
        changes["weekly_reset_at"] = boundaries.week_start

    if boundaries.year_start is not None:
        yearly_mark = as_utc(quota.yearly_reset_at) or fallback
        if yearly_mark is None or yearly_mark < boundaries.year_start:
            changes["yearly_used"] = 0
            changes["yearly_reset_at"] = boundaries.year_start

    return changes


class QuotaService(BaseService):
    """Quota reads, lazy resets and atomic counter updates."""

    def boundaries(self, now: datetime | None = None) -> QuotaBoundaries:
        current = as_utc(now) or utcnow()
        zone = self.config.quota_zone
        yearly = None
        if self.config.QUOTA_YEARLY_RESET_MODE == "calendar_year":
            yearly = year_start(current, zone)
        return QuotaBoundaries(
            day_start=local_midnight(current, zone),
            week_start=week_start(current, zone),
            year_start=yearly,
        )

    def get_quota(self, vendor_id: int) -> VendorLeadQuota | None:
        return self.db.query(VendorLeadQuota).filter(VendorLeadQuota.vendor_id == vendor_id).first()

    def load_quota(self, vendor_id: int, now: datetime | None = None) -> QuotaSnapshot | None:
        """Load the vendor's quota row and bring it up to date."""
        quota = self.get_quota(vendor_id)
        if quota is None:
            return None
        return self.reset_quota(vendor_id, quota, now=now)

    def reset_quota(self, vendor_id: int, quota: VendorLeadQuota, now: datetime | None = None) -> QuotaSnapshot:
        """Zero counters whose period has rolled over and persist the new watermarks.

        The write is conditioned on the watermarks read here, so of two
        concurrent resets for the same boundary only one lands. Persistence
        errors are logged and the computed snapshot is returned regardless.
        """
        changes = compute_quota_reset(quota, self.boundaries(now))
        snapshot = QuotaSnapshot.from_model(quota)
        if not changes:
            return snapshot

        for key, value in changes.items():
            setattr(snapshot, key, value)

        stmt = update(VendorLeadQuota).where(VendorLeadQuota.id == quota.id)
        for key in _WATERMARKS:
            if key not in changes:
                continue
            column = getattr(VendorLeadQuota, key)
            previous = getattr(quota, key)
            stmt = stmt.where(column.is_(None) if previous is None else column == previous)

        try:
            result = self.db.execute(
                stmt.values(**changes, updated_at=utcnow()).execution_options(synchronize_session=False)
            )
            self.commit()
        except SQLAlchemyError:
            logger.exception(
                "quota.reset.persist_failed",
                extra={"event": "quota.reset.persist_failed", "vendor_id": vendor_id},
            )
            return snapshot

        self.db.expire(quota)
        if result.rowcount == 0:
            # Another request already advanced this boundary; its values win.
            self.db.refresh(quota)
            return QuotaSnapshot.from_model(quota)

        logger.info(
            "quota.reset.applied",
            extra={"event": "quota.reset.applied", "vendor_id": vendor_id, "reason": ",".join(sorted(changes))},
        )
        return snapshot

    def lock_or_create(self, vendor_id: int, plan: VendorPlan | None, now: datetime | None = None) -> VendorLeadQuota:
        """Lock the vendor's quota row for the current transaction, creating it if absent.

        Resets and plan limits are applied in memory and flushed; the caller
        owns the commit.
        """
        quota = lock_for_update(
            self.db.query(VendorLeadQuota).filter(VendorLeadQuota.vendor_id == vendor_id)
        ).first()
        bounds = self.boundaries(now)
        if quota is None:
            quota = VendorLeadQuota(
                vendor_id=vendor_id,
                daily_used=0,
                weekly_used=0,
                yearly_used=0,
                daily_reset_at=bounds.day_start,
                weekly_reset_at=bounds.week_start,
                yearly_reset_at=bounds.year_start,
            )
            self.db.add(quota)
        else:
            for key, value in compute_quota_reset(quota, bounds).items():
                setattr(quota, key, value)

        if plan is not None:
            quota.plan_id = plan.id
            quota.daily_limit = plan.daily_limit
            quota.weekly_limit = plan.weekly_limit
            quota.yearly_limit = plan.yearly_limit
        self.db.flush()
        return quota

    def increment_usage(
        self,
        vendor_id: int,
        *,
        daily: int = 1,
        weekly: int = 1,
        yearly: int = 1,
        guard: str | None = None,
    ) -> int:
        """Atomically add to the usage counters; returns affected row count.

        `guard` names a period ("daily", "weekly") whose used counter must still
        be under its limit for the update to apply. Caller commits.
        """
        stmt = update(VendorLeadQuota).where(VendorLeadQuota.vendor_id == vendor_id)
        if guard == "daily":
            stmt = stmt.where(VendorLeadQuota.daily_used < VendorLeadQuota.daily_limit)
        elif guard == "weekly":
            stmt = stmt.where(VendorLeadQuota.weekly_used < VendorLeadQuota.weekly_limit)
        if guard is not None:
            stmt = stmt.where(VendorLeadQuota.yearly_used < VendorLeadQuota.yearly_limit)

        result = self.db.execute(
            stmt.values(
                daily_used=VendorLeadQuota.daily_used + daily,
                weekly_used=VendorLeadQuota.weekly_used + weekly,
                yearly_used=VendorLeadQuota.yearly_used + yearly,
                updated_at=utcnow(),
            ).execution_options(synchronize_session=False)
        )
        return result.rowcount

    def clear_quota(self, vendor_id: int) -> int:
        """Zero limits and counters, used when a subscription lapses. Caller commits."""
        result = self.db.execute(
            update(VendorLeadQuota)
            .where(VendorLeadQuota.vendor_id == vendor_id)
            .values(
                daily_limit=0,
                weekly_limit=0,
                yearly_limit=0,
                daily_used=0,
                weekly_used=0,
                yearly_used=0,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
