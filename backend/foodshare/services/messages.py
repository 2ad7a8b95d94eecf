from __future__ import annotations

from typing import List

from sqlalchemy import func

from ..errors import Forbidden, NotFound
from ..models.message import Message
from . import policy
from .claims import ClaimLifecycle
from .notifications import NotificationService
from .unit_of_work import UnitOfWork


class MessageService:
    """Append-only conversation between the two parties of a claim."""

    def __init__(self, session, claims: ClaimLifecycle, notifications: NotificationService):
        self.session = session
        self.claims = claims
        self.notifications = notifications

    def send(self, claim_id: int, sender_id: int, content: str) -> Message:
        with UnitOfWork(self.session) as uow:
            claim = self.claims.get_claim(claim_id)
            role = policy.require_claim_party(claim, sender_id)
            receiver_id = claim.claimer_id if role == policy.OWNER else claim.post.user_id
            msg = Message(
                claim_id=claim.id,
                sender_id=sender_id,
                receiver_id=receiver_id,
                content=content,
            )
            self.session.add(msg)
            self.session.flush()
            self.notifications.notify(
                uow,
                receiver_id,
                "message",
                "New message",
                "You have a new message regarding a food exchange",
                related_id=msg.id,
                related_type="message",
            )
        return msg

    def list_for_claim(self, claim_id: int, user_id: int) -> List[Message]:
        self.claims.get_for_party(claim_id, user_id)
        return (
            self.session.query(Message).filter_by(claim_id=claim_id)
            .order_by(Message.created_at, Message.id)
            .all()
        )

    def mark_read(self, message_id: int, user_id: int) -> Message:
        with UnitOfWork(self.session):
            msg = self.session.get(Message, message_id)
            if msg is None:
                raise NotFound("Message not found")
            if int(msg.receiver_id) != int(user_id):
                raise Forbidden("Only the receiver can mark a message as read")
            msg.is_read = True
        return msg

    def unread_count(self, user_id: int) -> int:
        count = (
            self.session.query(func.count(Message.id))
            .filter(Message.receiver_id == user_id, Message.is_read.is_(False))
            .scalar()
        )
        return int(count or 0)
