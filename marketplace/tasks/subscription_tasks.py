"""Scheduled and event-driven background jobs.

Subscription expiry, renewal reminders and referral reward maturation run on
the beat schedule; reward accrual is queued by the payment flow.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import Any

from marketplace.database.db import get_db_session
from marketplace.services.referral_service import ReferralService
from marketplace.services.subscription_service import SubscriptionService
from marketplace.tasks.celery_app import celery_app
from marketplace.tasks.hooks import after_task, before_task

logger = logging.getLogger(__name__)


def run_job(task_name: str, job: Callable[[Any], Any], context: dict[str, Any] | None = None) -> Any:
    """Run `job(session)` inside a fresh session with start/finish logging."""
    context = dict(context or {})
    context.setdefault("trace_id", uuid.uuid4().hex)
    logger.info("task.start", extra=before_task(task_name, context))
    try:
        with get_db_session() as session:
            result = job(session)
    except Exception:
        logger.exception("task.failed", extra=after_task(task_name, context, status="failed"))
        raise
    logger.info("task.finish", extra=after_task(task_name, context, status="succeeded"))
    return result


@celery_app.task(name="subscriptions.expire_lapsed")
def expire_lapsed_subscriptions() -> int:
    return run_job(
        "subscriptions.expire_lapsed",
        lambda session: SubscriptionService(db=session).expire_lapsed_subscriptions(),
    )


@celery_app.task(name="subscriptions.flag_renewals_due")
def flag_renewals_due() -> list[int]:
    return run_job(
        "subscriptions.flag_renewals_due",
        lambda session: SubscriptionService(db=session).flag_renewals_due(),
    )


@celery_app.task(name="referrals.release_matured_rewards")
def release_matured_rewards() -> int:
    return run_job(
        "referrals.release_matured_rewards",
        lambda session: ReferralService(db=session).release_matured_rewards(),
    )


@celery_app.task(
    name="referrals.apply_reward",
    autoretry_for=(ConnectionError,),
    retry_backoff=True,
    max_retries=3,
)
def apply_referral_reward(referred_vendor_id: int, payment_id: int) -> dict[str, Any]:
    """Accrue the referrer's reward for a completed payment; safe to redeliver."""
    return run_job(
        "referrals.apply_reward",
        lambda session: ReferralService(db=session).apply_reward_after_payment(referred_vendor_id, payment_id),
        context={"vendor_id": referred_vendor_id},
    )
