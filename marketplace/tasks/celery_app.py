"""Celery application bootstrap."""

from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from marketplace.core.config import get_config

config = get_config()

celery_app = Celery(
    "marketplace",
    broker=config.CELERY_BROKER_URL,
    backend=config.CELERY_RESULT_BACKEND,
    include=["marketplace.tasks.subscription_tasks"],
)
celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    beat_schedule={
        "expire-lapsed-subscriptions": {
            "task": "subscriptions.expire_lapsed",
            "schedule": crontab(minute=5, hour=0),
        },
        "flag-renewals-due": {
            "task": "subscriptions.flag_renewals_due",
            "schedule": crontab(minute=15, hour=0),
        },
        "release-matured-referral-rewards": {
            "task": "referrals.release_matured_rewards",
            "schedule": crontab(minute=0),
        },
    },
)

# Local/dev convenience: run tasks synchronously when requested.
if config.CELERY_TASK_ALWAYS_EAGER:
    celery_app.conf.task_always_eager = True
