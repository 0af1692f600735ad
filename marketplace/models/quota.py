"""Per-vendor lead quota counters."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.models.base import AuditMixin, Base


class VendorLeadQuota(Base, AuditMixin):
    """Usage counters with lazily advanced reset watermarks.

    `*_used` only grows between resets; each reset zeroes a counter once per
    boundary crossing and moves the matching watermark to that boundary.
    """

    __tablename__ = "vendor_lead_quota"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    vendor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vendors.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    plan_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("vendor_plans.id", ondelete="SET NULL"))
    daily_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    weekly_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    yearly_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    daily_limit: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    weekly_limit: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    yearly_limit: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    daily_reset_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    weekly_reset_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    yearly_reset_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
