from datetime import timedelta

import pytest

from foodshare.errors import Conflict, Forbidden, InvalidState, NotFound
from foodshare.extensions import db
from foodshare.models.claim import Claim
from foodshare.models.food_post import FoodPost
from foodshare.models.notification import Notification
from foodshare.services.maintenance import expire_overdue_posts
from foodshare.timeutil import utcnow

from conftest import make_post


def _types_for(user):
    return [n.type for n in Notification.query.filter_by(user_id=user.id).order_by(Notification.id)]


def test_create_claim_notifies_owner(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)

    claim = services.claims.create(post.id, bob.id, message="Can pick up at 6")

    assert claim.status == "pending"
    assert claim.contact_preference == "in_app"
    assert _types_for(alice) == ["claim_request"]
    assert post.effective_status() == "available"


def test_cannot_claim_own_post(services, people):
    alice, _, _ = people
    post = make_post(services, alice)
    with pytest.raises(Forbidden):
        services.claims.create(post.id, alice.id)


def test_second_active_claim_conflicts(services, people):
    alice, bob, carol = people
    post = make_post(services, alice)
    services.claims.create(post.id, bob.id)

    with pytest.raises(Conflict):
        services.claims.create(post.id, carol.id)
    assert Claim.query.filter_by(post_id=post.id).count() == 1


def test_claim_missing_post(services, people):
    _, bob, _ = people
    with pytest.raises(NotFound):
        services.claims.create(9999, bob.id)


@pytest.mark.config(SINGLE_ACTIVE_CLAIM_PER_POST=False)
def test_approve_rejects_pending_siblings(services, people):
    alice, bob, carol = people
    post = make_post(services, alice)
    first = services.claims.create(post.id, bob.id)
    second = services.claims.create(post.id, carol.id)

    with pytest.raises(Conflict):
        services.claims.create(post.id, bob.id)

    services.claims.approve(first.id, alice.id)

    assert db.session.get(Claim, first.id).status == "approved"
    assert db.session.get(Claim, second.id).status == "rejected"
    assert post.status == "claimed"
    assert _types_for(bob) == ["claim_accepted"]
    assert _types_for(carol) == ["claim_rejected"]


def test_only_owner_approves(services, people):
    alice, bob, carol = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)

    with pytest.raises(Forbidden):
        services.claims.approve(claim.id, bob.id)
    with pytest.raises(Forbidden):
        services.claims.approve(claim.id, carol.id)
    assert db.session.get(Claim, claim.id).status == "pending"


def test_approve_twice_is_invalid(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)
    services.claims.approve(claim.id, alice.id)

    with pytest.raises(InvalidState):
        services.claims.approve(claim.id, alice.id)


def test_reject_leaves_post_available(services, people):
    alice, bob, carol = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)

    services.claims.reject(claim.id, alice.id)

    assert claim.status == "rejected"
    assert post.effective_status() == "available"
    # A rejected claim no longer blocks new ones
    services.claims.create(post.id, carol.id)


def test_claimer_cancels_pending_only(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)

    with pytest.raises(Forbidden):
        services.claims.cancel(claim.id, alice.id)
    services.claims.cancel(claim.id, bob.id)
    assert claim.status == "cancelled"
    assert "claim_cancelled" in _types_for(alice)

    other = services.claims.create(post.id, bob.id)
    services.claims.approve(other.id, alice.id)
    with pytest.raises(InvalidState):
        services.claims.cancel(other.id, bob.id)


def test_start_and_complete(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)

    with pytest.raises(InvalidState):
        services.claims.start(claim.id, bob.id)

    services.claims.approve(claim.id, alice.id)
    services.claims.start(claim.id, bob.id)
    assert claim.status == "in_progress"
    assert post.status == "in_progress"

    services.claims.complete(claim.id, alice.id)
    assert claim.status == "completed"
    assert claim.completed_at is not None
    assert post.status == "completed"
    assert "claim_completed" in _types_for(alice)
    assert "claim_completed" in _types_for(bob)


def test_complete_updates_counters_by_post_type(services, people):
    alice, bob, carol = people
    donation = make_post(services, alice)
    request_post = make_post(services, alice, type="request", title="Need rice", category="pantry")

    c1 = services.claims.create(donation.id, bob.id)
    services.claims.approve(c1.id, alice.id)
    services.claims.complete(c1.id, bob.id)

    c2 = services.claims.create(request_post.id, carol.id)
    services.claims.approve(c2.id, alice.id)
    services.claims.complete(c2.id, alice.id)

    assert (alice.donation_count, alice.received_count) == (1, 1)
    assert (bob.donation_count, bob.received_count) == (0, 1)
    assert (carol.donation_count, carol.received_count) == (1, 0)


def test_complete_pending_is_invalid(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)
    with pytest.raises(InvalidState):
        services.claims.complete(claim.id, alice.id)


def test_terminal_claims_stay_terminal(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)
    services.claims.reject(claim.id, alice.id)

    for target in ("approved", "rejected", "completed"):
        with pytest.raises(InvalidState):
            services.claims.transition(claim.id, alice.id, target)


def test_transition_role_asymmetry(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)

    with pytest.raises(Forbidden):
        services.claims.transition(claim.id, bob.id, "approved")
    with pytest.raises(Forbidden):
        services.claims.transition(claim.id, alice.id, "cancelled")
    with pytest.raises(Forbidden):
        services.claims.transition(claim.id, alice.id, "in_progress")

    assert services.claims.transition(claim.id, alice.id, "approved").status == "approved"


def test_claim_on_unavailable_post(services, people):
    alice, bob, carol = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)
    services.claims.approve(claim.id, alice.id)

    with pytest.raises((InvalidState, Conflict)):
        services.claims.create(post.id, carol.id)


def test_delete_claim(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)

    with pytest.raises(Forbidden):
        services.claims.delete(claim.id, alice.id)
    services.claims.delete(claim.id, bob.id)
    assert db.session.get(Claim, claim.id) is None

    approved = services.claims.create(post.id, bob.id)
    services.claims.approve(approved.id, alice.id)
    with pytest.raises(InvalidState):
        services.claims.delete(approved.id, bob.id)


def test_list_for_user_roles(services, people):
    alice, bob, carol = people
    post = make_post(services, alice)
    bobs_post = make_post(services, bob, title="Apples", category="produce")
    services.claims.create(post.id, bob.id)
    services.claims.create(bobs_post.id, carol.id)

    assert len(services.claims.list_for_user(bob.id)) == 2
    assert len(services.claims.list_for_user(bob.id, role="claimer")) == 1
    assert len(services.claims.list_for_user(bob.id, role="owner")) == 1
    assert services.claims.list_for_user(alice.id, status="approved") == []

    with pytest.raises(Forbidden):
        services.claims.list_for_post(post.id, bob.id)
    assert len(services.claims.list_for_post(post.id, alice.id)) == 1


def test_expired_post_cannot_be_completed(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)
    services.claims.approve(claim.id, alice.id)
    code, _ = services.handover.generate(claim.id, alice.id)
    post.expiry_time = utcnow() - timedelta(hours=1)
    db.session.commit()
    expire_overdue_posts(db.session)

    with pytest.raises(InvalidState):
        services.claims.complete(claim.id, bob.id)
    with pytest.raises(InvalidState):
        services.handover.verify(claim.id, bob.id, code)

    db.session.expire_all()
    assert db.session.get(FoodPost, post.id).status == "expired"
    assert db.session.get(Claim, claim.id).status == "approved"
    assert bob.received_count == 0
