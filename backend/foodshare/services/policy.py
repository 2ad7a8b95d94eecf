"""Authorization predicates for posts and claims.

Everything here is pure: callers pass the entity and the authenticated user
id, and a denial raises :class:`~foodshare.errors.Forbidden` before any
mutation happens.
"""
from __future__ import annotations

from ..errors import Forbidden
from ..models.claim import Claim
from ..models.food_post import FoodPost

OWNER = "owner"
CLAIMER = "claimer"

# Which target statuses each role may request on a claim
OWNER_TARGETS = frozenset({"approved", "rejected", "completed"})
CLAIMER_TARGETS = frozenset({"cancelled", "in_progress", "completed"})

# Edges of the claim state machine
CLAIM_TRANSITIONS = {
    "pending": frozenset({"approved", "rejected", "cancelled"}),
    "approved": frozenset({"in_progress", "completed", "cancelled"}),
    "in_progress": frozenset({"completed"}),
    "rejected": frozenset(),
    "cancelled": frozenset(),
    "completed": frozenset(),
}


def is_post_owner(post: FoodPost, user_id: int | None) -> bool:
    return user_id is not None and int(post.user_id) == int(user_id)


def claim_role(claim: Claim, user_id: int | None) -> str | None:
    if user_id is None:
        return None
    if claim.post is not None and int(claim.post.user_id) == int(user_id):
        return OWNER
    if int(claim.claimer_id) == int(user_id):
        return CLAIMER
    return None


def can_transition(current: str, target: str) -> bool:
    return target in CLAIM_TRANSITIONS.get(current, frozenset())


def require_post_owner(post: FoodPost, user_id: int | None, message: str = "Only the post owner can do this") -> None:
    if not is_post_owner(post, user_id):
        raise Forbidden(message)


def require_claim_party(claim: Claim, user_id: int | None) -> str:
    role = claim_role(claim, user_id)
    if role is None:
        raise Forbidden("You are not a party to this claim")
    return role


def require_claimer(claim: Claim, user_id: int | None, message: str = "Only the claimer can do this") -> None:
    if claim_role(claim, user_id) != CLAIMER:
        raise Forbidden(message)


def require_claim_owner(claim: Claim, user_id: int | None, message: str = "Only the post owner can do this") -> None:
    if claim_role(claim, user_id) != OWNER:
        raise Forbidden(message)


def authorize_transition(claim: Claim, user_id: int | None, target: str) -> str:
    """Check the caller's role permits requesting ``target``; return the role."""
    role = claim_role(claim, user_id)
    if role == OWNER:
        allowed = OWNER_TARGETS
    elif role == CLAIMER:
        allowed = CLAIMER_TARGETS
    else:
        raise Forbidden("You are not a party to this claim")
    if target not in allowed:
        raise Forbidden(f"The {role} cannot set a claim to '{target}'")
    return role
