from datetime import timedelta

from foodshare.extensions import db
from foodshare.models.notification import Notification
from foodshare.services.maintenance import expire_overdue_posts, send_near_expiry_notifications
from foodshare.timeutil import utcnow

from conftest import make_post


def test_expire_overdue_posts(services, people):
    alice, bob, _ = people
    overdue = make_post(services, alice, title="Overdue")
    claimed = make_post(services, alice, title="Claimed overdue")
    fresh = make_post(services, alice, title="Fresh")
    claim = services.claims.create(claimed.id, bob.id)
    services.claims.approve(claim.id, alice.id)
    overdue.expiry_time = utcnow() - timedelta(hours=2)
    claimed.expiry_time = utcnow() - timedelta(hours=2)
    db.session.commit()

    assert expire_overdue_posts(db.session) == 2
    db.session.expire_all()
    assert overdue.status == "expired"
    assert claimed.status == "expired"
    assert fresh.status == "available"
    assert expire_overdue_posts(db.session) == 0


def test_near_expiry_warnings(services, people):
    alice, bob, _ = people
    now = utcnow()
    soon = make_post(services, alice, title="Soon", expiry_time=now + timedelta(hours=24, minutes=30))
    later = make_post(services, alice, title="Later", expiry_time=now + timedelta(hours=72))
    services.claims.create(soon.id, bob.id)
    services.claims.create(later.id, bob.id)

    assert send_near_expiry_notifications(db.session, services.notifications, now=now) == 1
    warning = Notification.query.filter_by(user_id=bob.id, type="expiry_warning").one()
    assert warning.related_id == soon.id
