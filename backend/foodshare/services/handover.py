from __future__ import annotations

import hmac
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple

from ..errors import InvalidCode, InvalidState
from ..models.claim import Claim
from ..timeutil import as_utc, utcnow
from . import policy
from .claims import ClaimLifecycle
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

# Uppercase letters and digits without look-alikes (0/O, 1/I)
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_handover_code(length: int = 6) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class HandoverService:
    """Pickup confirmation codes shared out-of-band by the post owner."""

    def __init__(
        self,
        session,
        claims: ClaimLifecycle,
        code_length: int = 6,
        ttl: timedelta = timedelta(hours=24),
        code_factory: Optional[Callable[[], str]] = None,
    ):
        self.session = session
        self.claims = claims
        self.code_length = code_length
        self.ttl = ttl
        self.code_factory = code_factory or (lambda: generate_handover_code(self.code_length))

    def generate(self, claim_id: int, user_id: int) -> Tuple[str, datetime]:
        with UnitOfWork(self.session):
            claim = self.claims.get_claim(claim_id)
            policy.require_claim_owner(claim, user_id, "Only the post owner can generate a handover code")
            if claim.status != "approved":
                raise InvalidState("A handover code can only be generated for an approved claim")
            code = self.code_factory()
            expires_at = utcnow() + self.ttl
            # Regenerating replaces (and so revokes) any earlier code
            claim.handover_code = code
            claim.handover_code_expires_at = expires_at
        logger.info("Handover code generated for claim %s", claim_id)
        return code, expires_at

    def verify(self, claim_id: int, user_id: int, code: str) -> Claim:
        with UnitOfWork(self.session) as uow:
            claim = self.claims.get_claim(claim_id)
            # Lock before reading status and code so concurrent verifies serialize
            post = self.claims.lock_post(claim.post_id)
            self.session.refresh(claim)
            policy.require_claimer(claim, user_id, "Only the claimer can verify the handover")
            if claim.status not in ("approved", "in_progress"):
                raise InvalidState(f"Handover cannot be verified for a {claim.status} claim")
            if not claim.handover_code:
                raise InvalidCode("No handover code has been generated for this claim")
            expires_at = as_utc(claim.handover_code_expires_at)
            if expires_at is not None and expires_at <= utcnow():
                raise InvalidCode("The handover code has expired; ask the owner for a new one")
            if not hmac.compare_digest(claim.handover_code.encode("utf-8"), (code or "").encode("utf-8")):
                raise InvalidCode("Invalid handover code")

            claim.is_handover_verified = True
            # Single use
            claim.handover_code = None
            claim.handover_code_expires_at = None
            self.claims.complete_in(uow, claim, post)
        logger.info("Handover verified for claim %s", claim_id)
        return claim
