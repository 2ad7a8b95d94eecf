from __future__ import annotations

import logging
from typing import List

from ..models.notification import Notification

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Transaction boundary for one multi-entity mutation.

    Commits on a clean exit and rolls back on any exception, so a claim, its
    post and the notifications it fans out either all land or none do.
    Notifications recorded during the unit are pushed to live subscribers only
    after the commit succeeds.
    """

    def __init__(self, session):
        self.session = session
        self.notifications: List[Notification] = []

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.session.rollback()
            return False
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self._publish()
        return False

    def _publish(self) -> None:
        # Lazy import: the bus lives with the notifications HTTP module
        from ..modules.notifications.bus import publish
        from ..schemas.notification import NotificationSchema

        schema = NotificationSchema()
        for n in self.notifications:
            try:
                publish(int(n.user_id), {"type": "notification", "notification": schema.dump(n)})
            except Exception:
                # Live delivery is best-effort; the row is already committed
                logger.warning("Failed to publish notification %s", getattr(n, "id", None), exc_info=True)
