from __future__ import annotations

from flask import Blueprint, jsonify
from sqlalchemy import func

from ...extensions import db
from ...models import enums
from ...models.claim import Claim
from ...timeutil import utcnow

bp = Blueprint("public", __name__)


@bp.get("/enums")
def list_enums():
    """Allowed values for the enumerated fields, used to build client forms."""
    return jsonify(
        {
            "postTypes": list(enums.POST_TYPES),
            "foodCategories": list(enums.FOOD_CATEGORIES),
            "dietaryOptions": list(enums.DIETARY_OPTIONS),
            "postStatuses": list(enums.POST_STATUSES),
            "claimStatuses": list(enums.CLAIM_STATUSES),
            "contactPreferences": list(enums.CONTACT_PREFERENCES),
            "notificationTypes": list(enums.NOTIFICATION_TYPES),
        }
    )


@bp.get("/public/stats/monthly")
def public_stats_monthly():
    """Public stats used on the landing page.

    Returns: { exchangesThisMonth: number }, counting claims completed since the
    first day of the current (UTC) month.
    """
    month_start = utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    completed = (
        db.session.query(func.count(Claim.id))
        .filter(Claim.status == "completed", Claim.completed_at >= month_start)
        .scalar()
    )
    return jsonify({"exchangesThisMonth": int(completed or 0)})
