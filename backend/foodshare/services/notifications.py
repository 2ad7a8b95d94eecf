from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func

from ..errors import Forbidden, NotFound
from ..models.notification import Notification
from ..timeutil import utcnow
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class NotificationService:
    """Creates notification rows for lifecycle events and tracks read state."""

    def __init__(self, session):
        self.session = session

    def notify(
        self,
        uow: UnitOfWork,
        user_id: int,
        type_: str,
        title: str,
        message: str,
        related_id: Optional[int] = None,
        related_type: Optional[str] = None,
    ) -> Notification:
        # Inserted inside the caller's transaction: if this fails, the triggering mutation fails too
        n = Notification(
            user_id=int(user_id),
            type=type_,
            title=title,
            message=message,
            related_id=related_id,
            related_type=related_type,
        )
        self.session.add(n)
        uow.notifications.append(n)
        logger.debug("Queued %s notification for user %s", type_, user_id)
        return n

    def list_for_user(
        self,
        user_id: int,
        is_read: Optional[bool] = None,
        type_: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Notification]:
        q = self.session.query(Notification).filter(Notification.user_id == user_id)
        if is_read is not None:
            q = q.filter(Notification.is_read == is_read)
        if type_:
            q = q.filter(Notification.type == type_)
        return (
            q.order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )

    def unread_count(self, user_id: int) -> int:
        count = (
            self.session.query(func.count(Notification.id))
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .scalar()
        )
        return int(count or 0)

    def _owned(self, notification_id: int, user_id: int) -> Notification:
        n = self.session.get(Notification, notification_id)
        if n is None:
            raise NotFound("Notification not found")
        if int(n.user_id) != int(user_id):
            raise Forbidden("You can only manage your own notifications")
        return n

    def mark_read(self, notification_id: int, user_id: int) -> Notification:
        with UnitOfWork(self.session):
            n = self._owned(notification_id, user_id)
            if not n.is_read:
                n.is_read = True
                n.read_at = utcnow()
        return n

    def mark_all_read(self, user_id: int) -> int:
        with UnitOfWork(self.session):
            updated = (
                self.session.query(Notification)
                .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
                .update({"is_read": True, "read_at": utcnow()}, synchronize_session=False)
            )
        return int(updated or 0)

    def delete(self, notification_id: int, user_id: int) -> None:
        with UnitOfWork(self.session):
            n = self._owned(notification_id, user_id)
            self.session.delete(n)
