from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func

from ..errors import Forbidden, InvalidInput, InvalidState, NotFound
from ..models.claim import Claim
from ..models.rating import Rating
from ..models.user import User
from . import policy
from .notifications import NotificationService
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

# Reputation threshold for the "trusted" badge
TRUSTED_MIN_RATINGS = 5
TRUSTED_MIN_AVERAGE = 4.0


def _valid_score(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 5


class RatingService:
    def __init__(self, session, notifications: NotificationService):
        self.session = session
        self.notifications = notifications

    def submit(
        self,
        claim_id: int,
        from_user_id: int,
        to_user_id: Optional[int],
        rating: int,
        comment: Optional[str] = None,
        categories: Optional[Sequence[str]] = None,
    ) -> Tuple[Rating, bool]:
        """Create or update the rating for (claim, from, to).

        Returns ``(rating, created)``. ``to_user_id`` defaults to the other party.
        """
        if not _valid_score(rating):
            raise InvalidInput("Rating must be an integer between 1 and 5")

        with UnitOfWork(self.session) as uow:
            claim = self.session.get(Claim, claim_id)
            if claim is None:
                raise NotFound("Claim not found")
            role = policy.claim_role(claim, from_user_id)
            if role is None:
                raise Forbidden("Only the parties to a claim can rate it")
            owner_id = int(claim.post.user_id)
            claimer_id = int(claim.claimer_id)
            if to_user_id is None:
                to_user_id = claimer_id if role == policy.OWNER else owner_id
            to_user_id = int(to_user_id)
            if to_user_id not in (owner_id, claimer_id):
                raise Forbidden("You can only rate the other party to this claim")
            if to_user_id == int(from_user_id):
                raise Forbidden("You cannot rate yourself")
            if claim.status != "completed":
                raise InvalidState("Ratings can only be left on completed claims")

            existing = self.session.query(Rating).filter_by(
                claim_id=claim.id, from_user_id=from_user_id, to_user_id=to_user_id
            ).first()
            tags = sorted(set(categories or []))
            created = existing is None
            if created:
                row = Rating(
                    claim_id=claim.id,
                    from_user_id=from_user_id,
                    to_user_id=to_user_id,
                    rating=rating,
                    comment=comment,
                    categories=tags,
                )
                self.session.add(row)
                self.session.flush()
                self.notifications.notify(
                    uow,
                    to_user_id,
                    "rating",
                    "New rating received",
                    f"You received a {rating}-star rating for a food exchange",
                    related_id=row.id,
                    related_type="rating",
                )
            else:
                row = existing
                previous = row.rating
                row.rating = rating
                row.comment = comment
                row.categories = tags
                if previous != rating:
                    self.notifications.notify(
                        uow,
                        to_user_id,
                        "rating_update",
                        "Rating updated",
                        f"Your rating was updated to {rating} stars",
                        related_id=row.id,
                        related_type="rating",
                    )
            self.session.flush()
            self._refresh_reputation(to_user_id)
        logger.info(
            "Rating %s for claim %s (%s -> %s)",
            "created" if created else "updated",
            claim_id,
            from_user_id,
            to_user_id,
        )
        return row, created

    def _refresh_reputation(self, user_id: int) -> None:
        avg, count = (
            self.session.query(func.avg(Rating.rating), func.count(Rating.id))
            .filter(Rating.to_user_id == user_id)
            .one()
        )
        user = self.session.get(User, user_id)
        if user is None:
            return
        count = int(count or 0)
        user.rating_count = count
        user.average_rating = round(float(avg), 2) if count else None
        user.is_trusted = count >= TRUSTED_MIN_RATINGS and (user.average_rating or 0) >= TRUSTED_MIN_AVERAGE

    def list_for_claim(self, claim_id: int, user_id: int) -> List[Rating]:
        claim = self.session.get(Claim, claim_id)
        if claim is None:
            raise NotFound("Claim not found")
        policy.require_claim_party(claim, user_id)
        return self.session.query(Rating).filter_by(claim_id=claim_id).order_by(Rating.id).all()

    def list_received(self, user_id: int, limit: int = 50, offset: int = 0) -> List[Rating]:
        if self.session.get(User, user_id) is None:
            raise NotFound("User not found")
        return (
            self.session.query(Rating).filter_by(to_user_id=user_id)
            .order_by(Rating.created_at.desc(), Rating.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
