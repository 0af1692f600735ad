from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal

import pytest

from marketplace.models import (
    DiscountType,
    PaymentStatus,
    SubscriptionStatus,
    Vendor,
    VendorPayment,
    VendorPlan,
    VendorPlanSubscription,
)
from marketplace.models.base import utcnow
from marketplace.models.referral import ReferralPlanRule, ReferralProgramSettings
from marketplace.services.referral_service import ReferralService
from marketplace.tasks import subscription_tasks
from marketplace.tasks.celery_app import celery_app


def test_beat_schedule_registers_maintenance_jobs():
    scheduled = {entry["task"] for entry in celery_app.conf.beat_schedule.values()}
    assert scheduled == {
        "subscriptions.expire_lapsed",
        "subscriptions.flag_renewals_due",
        "referrals.release_matured_rewards",
    }


def test_expire_task_runs_in_its_own_session(patched_task_sessions):
    session = patched_task_sessions()
    now = utcnow()
    vendor = Vendor(user_id="task-user", email="task@example.com")
    plan = VendorPlan(name="Starter", daily_limit=1, weekly_limit=5, yearly_limit=50)
    session.add_all([vendor, plan])
    session.flush()
    lapsed = VendorPlanSubscription(
        vendor_id=vendor.id,
        plan_id=plan.id,
        start_date=now - timedelta(days=40),
        end_date=now - timedelta(days=1),
    )
    session.add(lapsed)
    session.commit()
    lapsed_id = lapsed.id
    session.close()

    assert subscription_tasks.expire_lapsed_subscriptions() == 1
    assert subscription_tasks.expire_lapsed_subscriptions() == 0

    check = patched_task_sessions()
    assert check.get(VendorPlanSubscription, lapsed_id).status == SubscriptionStatus.EXPIRED
    check.close()


def test_apply_reward_task_is_safe_to_redeliver(patched_task_sessions):
    session = patched_task_sessions()
    referrer = Vendor(user_id="ref-user", email="ref@example.com", company_name="Referrer Co")
    referred = Vendor(user_id="new-user", email="new@example.com")
    plan = VendorPlan(name="Annual", price=Decimal("1000"))
    session.add_all([referrer, referred, plan])
    session.flush()
    session.add(ReferralProgramSettings(is_enabled=True))
    session.add(ReferralPlanRule(plan_id=plan.id, reward_type=DiscountType.FLAT, reward_value=Decimal("100")))
    payment = VendorPayment(
        vendor_id=referred.id,
        plan_id=plan.id,
        amount=Decimal("1000"),
        status=PaymentStatus.COMPLETED,
        payment_date=utcnow(),
    )
    session.add(payment)
    session.commit()
    service = ReferralService(db=session)
    code = service.ensure_referral_profile(referrer).referral_code
    service.link_referral_for_vendor(referred, code)
    ids = (referrer.id, referred.id, payment.id)
    session.close()

    first = subscription_tasks.apply_referral_reward(ids[1], ids[2])
    again = subscription_tasks.apply_referral_reward(ids[1], ids[2])

    assert first["applied"] is True
    assert again == {"applied": False, "reason": "already_rewarded"}
    check = patched_task_sessions()
    assert ReferralService(db=check).get_wallet(ids[0]).available_balance == Decimal("100")
    check.close()


def test_run_job_logs_and_reraises_failures(patched_task_sessions, caplog):
    def _boom(session):
        raise RuntimeError("job exploded")

    with caplog.at_level(logging.INFO, logger="marketplace.tasks.subscription_tasks"):
        with pytest.raises(RuntimeError):
            subscription_tasks.run_job("unit.failing_job", _boom, context={"vendor_id": 7})

    failed = [record for record in caplog.records if record.getMessage() == "task.failed"]
    assert len(failed) == 1
    assert failed[0].status == "failed"
    assert failed[0].task_name == "unit.failing_job"
