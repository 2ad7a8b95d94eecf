"""Claim lifecycle engine.

Owns the state machine on ``Claim.status`` and its side effects on the parent
``FoodPost`` and on notifications::

    pending -> approved | rejected | cancelled
    approved -> in_progress | completed | cancelled
    in_progress -> completed

Every public operation runs in its own :class:`UnitOfWork` and locks the post
row first, so approvals and new claims on the same post serialize.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select

from ..errors import Conflict, Forbidden, InvalidState, NotFound
from ..models.claim import Claim
from ..models.enums import ACTIVE_CLAIM_STATUSES
from ..models.food_post import FoodPost
from ..models.user import User
from ..timeutil import utcnow
from . import policy
from .notifications import NotificationService
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class ClaimLifecycle:
    def __init__(self, session, notifications: NotificationService, single_active_claim: bool = True):
        self.session = session
        self.notifications = notifications
        self.single_active_claim = single_active_claim

    # ----- lookups -------------------------------------------------------

    def get_claim(self, claim_id: int) -> Claim:
        claim = self.session.get(Claim, claim_id)
        if claim is None:
            raise NotFound("Claim not found")
        return claim

    def get_for_party(self, claim_id: int, user_id: int) -> Claim:
        claim = self.get_claim(claim_id)
        policy.require_claim_party(claim, user_id)
        return claim

    def lock_post(self, post_id: int) -> FoodPost:
        # FOR UPDATE is a no-op on SQLite; on Postgres it serializes writers per post
        stmt = (
            select(FoodPost)
            .where(FoodPost.id == post_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        post = self.session.execute(stmt).scalar_one_or_none()
        if post is None:
            raise NotFound("Post not found")
        return post

    def list_for_user(
        self,
        user_id: int,
        post_id: Optional[int] = None,
        status: Optional[str] = None,
        role: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Claim]:
        """Claims the user made or received on their posts."""
        q = self.session.query(Claim).join(FoodPost, Claim.post_id == FoodPost.id)
        if role == policy.CLAIMER:
            q = q.filter(Claim.claimer_id == user_id)
        elif role == policy.OWNER:
            q = q.filter(FoodPost.user_id == user_id)
        else:
            q = q.filter((Claim.claimer_id == user_id) | (FoodPost.user_id == user_id))
        if post_id is not None:
            q = q.filter(Claim.post_id == post_id)
        if status:
            q = q.filter(Claim.status == status)
        return q.order_by(Claim.created_at.desc(), Claim.id.desc()).limit(limit).offset(offset).all()

    def list_for_post(self, post_id: int, user_id: int) -> List[Claim]:
        post = self.session.get(FoodPost, post_id)
        if post is None:
            raise NotFound("Post not found")
        policy.require_post_owner(post, user_id, "Only the post owner can view its claims")
        return (
            self.session.query(Claim).filter(Claim.post_id == post_id)
            .order_by(Claim.created_at.desc(), Claim.id.desc())
            .all()
        )

    # ----- creation ------------------------------------------------------

    def create(
        self,
        post_id: int,
        claimer_id: int,
        message: Optional[str] = None,
        contact_preference: str = "in_app",
    ) -> Claim:
        with UnitOfWork(self.session) as uow:
            post = self.lock_post(post_id)
            if post.effective_status() != "available":
                raise InvalidState("This post is no longer available")
            if policy.is_post_owner(post, claimer_id):
                raise Forbidden("You cannot claim your own post")

            active = self.session.query(Claim).filter(
                Claim.post_id == post.id,
                Claim.status.in_(ACTIVE_CLAIM_STATUSES),
            )
            if not self.single_active_claim:
                active = active.filter(Claim.claimer_id == claimer_id)
            if active.first() is not None:
                raise Conflict("This post already has an active claim")

            claim = Claim(
                post_id=post.id,
                claimer_id=claimer_id,
                status="pending",
                message=message,
                contact_preference=contact_preference or "in_app",
            )
            self.session.add(claim)
            self.session.flush()

            self.notifications.notify(
                uow,
                post.user_id,
                "claim_request",
                "New claim on your post",
                f'Someone has claimed your food post "{post.title}"',
                related_id=claim.id,
                related_type="claim",
            )
        logger.info("Claim %s created on post %s by user %s", claim.id, post_id, claimer_id)
        return claim

    # ----- transitions ---------------------------------------------------

    def transition(self, claim_id: int, user_id: int, target: str) -> Claim:
        """Dispatch a requested status change after the role check."""
        claim = self.get_claim(claim_id)
        policy.authorize_transition(claim, user_id, target)
        handlers = {
            "approved": self.approve,
            "rejected": self.reject,
            "cancelled": self.cancel,
            "in_progress": self.start,
            "completed": self.complete,
        }
        handler = handlers.get(target)
        if handler is None:
            raise InvalidState(f"Unsupported claim status '{target}'")
        return handler(claim_id, user_id)

    def _ensure_transition(self, claim: Claim, target: str) -> None:
        if not policy.can_transition(claim.status, target):
            raise InvalidState(f"Cannot change a {claim.status} claim to {target}")

    def approve(self, claim_id: int, user_id: int) -> Claim:
        with UnitOfWork(self.session) as uow:
            claim = self.get_claim(claim_id)
            post = self.lock_post(claim.post_id)
            policy.require_claim_owner(claim, user_id, "Only the post owner can approve claims")
            if claim.status != "pending":
                raise InvalidState(f"Only pending claims can be approved (claim is {claim.status})")
            if post.effective_status() != "available":
                raise InvalidState("This post is no longer available")

            claim.status = "approved"
            claim.approved_at = utcnow()
            post.status = "claimed"

            siblings = self.session.query(Claim).filter(
                Claim.post_id == post.id,
                Claim.id != claim.id,
                Claim.status == "pending",
            ).all()
            for other in siblings:
                other.status = "rejected"
                self.notifications.notify(
                    uow,
                    other.claimer_id,
                    "claim_rejected",
                    "Claim rejected",
                    f'Another claim for "{post.title}" was accepted, so yours has been rejected.',
                    related_id=other.id,
                    related_type="claim",
                )

            self.notifications.notify(
                uow,
                claim.claimer_id,
                "claim_accepted",
                "Claim approved",
                f'Your claim for "{post.title}" has been approved. You can now arrange pickup.',
                related_id=claim.id,
                related_type="claim",
            )
        logger.info("Claim %s approved; %d sibling claim(s) rejected", claim_id, len(siblings))
        return claim

    def reject(self, claim_id: int, user_id: int) -> Claim:
        with UnitOfWork(self.session) as uow:
            claim = self.get_claim(claim_id)
            post = self.lock_post(claim.post_id)
            policy.require_claim_owner(claim, user_id, "Only the post owner can reject claims")
            if claim.status != "pending":
                raise InvalidState(f"Only pending claims can be rejected (claim is {claim.status})")

            claim.status = "rejected"
            self.notifications.notify(
                uow,
                claim.claimer_id,
                "claim_rejected",
                "Claim rejected",
                f'Your claim for "{post.title}" has been rejected.',
                related_id=claim.id,
                related_type="claim",
            )
        logger.info("Claim %s rejected", claim_id)
        return claim

    def cancel(self, claim_id: int, user_id: int) -> Claim:
        with UnitOfWork(self.session) as uow:
            claim = self.get_claim(claim_id)
            post = self.lock_post(claim.post_id)
            policy.require_claimer(claim, user_id, "Only the claimer can cancel a claim")
            if claim.status != "pending":
                raise InvalidState(f"Only pending claims can be cancelled (claim is {claim.status})")

            claim.status = "cancelled"
            self.notifications.notify(
                uow,
                post.user_id,
                "claim_cancelled",
                "Claim cancelled",
                f'The claim for "{post.title}" has been cancelled.',
                related_id=claim.id,
                related_type="claim",
            )
        logger.info("Claim %s cancelled by claimer", claim_id)
        return claim

    def start(self, claim_id: int, user_id: int) -> Claim:
        """Claimer marks the pickup as under way."""
        with UnitOfWork(self.session) as uow:
            claim = self.get_claim(claim_id)
            post = self.lock_post(claim.post_id)
            policy.require_claimer(claim, user_id, "Only the claimer can mark a claim in progress")
            self._ensure_transition(claim, "in_progress")

            claim.status = "in_progress"
            post.status = "in_progress"
            self.notifications.notify(
                uow,
                post.user_id,
                "claim_in_progress",
                "Pickup in progress",
                f'The pickup for "{post.title}" is on its way.',
                related_id=claim.id,
                related_type="claim",
            )
        logger.info("Claim %s in progress", claim_id)
        return claim

    def complete(self, claim_id: int, user_id: int) -> Claim:
        with UnitOfWork(self.session) as uow:
            claim = self.get_claim(claim_id)
            post = self.lock_post(claim.post_id)
            policy.require_claim_party(claim, user_id)
            self.complete_in(uow, claim, post)
        logger.info("Claim %s completed by user %s", claim_id, user_id)
        return claim

    def complete_in(self, uow: UnitOfWork, claim: Claim, post: FoodPost) -> None:
        """Complete ``claim`` inside an open unit of work (shared with handover)."""
        if claim.status not in ("approved", "in_progress"):
            raise InvalidState(f"Only approved or in-progress claims can be completed (claim is {claim.status})")
        post_status = post.effective_status()
        if post_status in ("expired", "cancelled"):
            raise InvalidState(f"A {post_status} post cannot be completed")

        claim.status = "completed"
        claim.completed_at = utcnow()
        post.status = "completed"

        owner = self.session.get(User, post.user_id)
        claimer = self.session.get(User, claim.claimer_id)
        # Donations: the owner gives and the claimer receives; requests are the reverse
        giver, receiver = (owner, claimer) if post.type == "donation" else (claimer, owner)
        if giver is not None:
            giver.donation_count = (giver.donation_count or 0) + 1
        if receiver is not None:
            receiver.received_count = (receiver.received_count or 0) + 1

        for recipient in (post.user_id, claim.claimer_id):
            self.notifications.notify(
                uow,
                recipient,
                "claim_completed",
                "Exchange completed",
                "The food exchange has been completed. Please rate your experience.",
                related_id=claim.id,
                related_type="claim",
            )

    def cancel_for_post(self, uow: UnitOfWork, post: FoodPost) -> int:
        """Cancel every active claim on a post being withdrawn by its owner."""
        active = self.session.query(Claim).filter(
            Claim.post_id == post.id,
            Claim.status.in_(("pending", "approved")),
        ).all()
        for claim in active:
            claim.status = "cancelled"
            self.notifications.notify(
                uow,
                claim.claimer_id,
                "claim_cancelled",
                "Post withdrawn",
                f'"{post.title}" was withdrawn by its owner and your claim has been cancelled.',
                related_id=claim.id,
                related_type="claim",
            )
        return len(active)

    # ----- deletion ------------------------------------------------------

    def delete(self, claim_id: int, user_id: int) -> None:
        with UnitOfWork(self.session):
            claim = self.get_claim(claim_id)
            policy.require_claimer(claim, user_id, "Only the claimer can delete a claim")
            if claim.status not in ("pending", "rejected"):
                raise InvalidState("Only pending or rejected claims can be deleted")
            self.session.delete(claim)
        logger.info("Claim %s deleted by claimer", claim_id)
