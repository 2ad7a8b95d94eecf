"""Periodic housekeeping run by the Celery beat schedule.

Request handlers never depend on these having run: a post's expiry is also
applied at read time through ``FoodPost.effective_status``.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from ..models.claim import Claim
from ..models.enums import ACTIVE_CLAIM_STATUSES
from ..models.food_post import EXPIRABLE_STATUSES, FoodPost
from ..timeutil import utcnow
from .notifications import NotificationService
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def expire_overdue_posts(session, now: Optional[datetime] = None) -> int:
    """Persist ``expired`` for available/claimed posts past their expiry time."""
    now = now or utcnow()
    with UnitOfWork(session):
        count = (
            session.query(FoodPost)
            .filter(FoodPost.status.in_(EXPIRABLE_STATUSES), FoodPost.expiry_time < now)
            .update({"status": "expired"}, synchronize_session=False)
        )
    if count:
        logger.info("Expired %d overdue post(s)", count)
    return int(count or 0)


def send_near_expiry_notifications(
    session,
    notifications: NotificationService,
    now: Optional[datetime] = None,
    window_start: timedelta = timedelta(hours=24),
    window_end: timedelta = timedelta(hours=25),
) -> int:
    """Warn active claimers of posts expiring in the next day.

    Meant to run hourly; the one-hour window means each post is picked up once.
    """
    now = now or utcnow()
    sent = 0
    with UnitOfWork(session) as uow:
        rows = (
            session.query(Claim, FoodPost)
            .join(FoodPost, Claim.post_id == FoodPost.id)
            .filter(
                FoodPost.status.in_(EXPIRABLE_STATUSES),
                FoodPost.expiry_time >= now + window_start,
                FoodPost.expiry_time <= now + window_end,
                Claim.status.in_(ACTIVE_CLAIM_STATUSES),
            )
            .all()
        )
        for claim, post in rows:
            notifications.notify(
                uow,
                claim.claimer_id,
                "expiry_warning",
                "Post expiring soon",
                f'"{post.title}" expires in about a day.',
                related_id=post.id,
                related_type="post",
            )
            sent += 1
    if sent:
        logger.info("Sent %d near-expiry warning(s)", sent)
    return sent
