import logging

from foodshare import create_app
from foodshare.extensions import db
from foodshare.services import get_services
from foodshare.services.maintenance import expire_overdue_posts, send_near_expiry_notifications
from foodshare.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)

_flask_app = None


def _app():
    global _flask_app
    if _flask_app is None:
        _flask_app = create_app()
    return _flask_app


@celery_app.task
def expire_posts() -> int:
    with _app().app_context():
        return expire_overdue_posts(db.session)


@celery_app.task
def warn_near_expiry() -> int:
    with _app().app_context():
        return send_near_expiry_notifications(db.session, get_services().notifications)
