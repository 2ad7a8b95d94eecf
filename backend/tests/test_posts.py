from datetime import timedelta

import pytest

from foodshare.errors import Forbidden, InvalidInput, InvalidState
from foodshare.extensions import db
from foodshare.models.claim import Claim
from foodshare.models.food_post import FoodPost
from foodshare.services.posts import haversine_km
from foodshare.timeutil import utcnow

from conftest import make_post


def test_create_defaults(services, people):
    alice, _, _ = people
    post = make_post(services, alice, dietary=["vegan", "halal", "vegan"])
    assert post.status == "available"
    assert post.dietary == ["halal", "vegan"]
    assert post.expiry_time is not None


def test_expiry_must_be_future(services, people):
    alice, _, _ = people
    with pytest.raises(InvalidInput):
        make_post(services, alice, expiry_time=utcnow() - timedelta(hours=1))


def test_effective_status_applies_expiry():
    post = FoodPost(status="available", expiry_time=utcnow() - timedelta(seconds=1))
    assert post.effective_status() == "expired"
    post.status = "completed"
    assert post.effective_status() == "completed"
    post.status = "claimed"
    assert post.effective_status(now=utcnow() - timedelta(days=1)) == "claimed"


def test_list_filters(services, people):
    alice, bob, _ = people
    make_post(services, alice, title="Sourdough loaf", dietary=["vegan"])
    make_post(services, alice, type="request", title="Looking for milk", category="dairy")
    make_post(services, bob, title="Carrots", category="produce", dietary=["vegan", "gluten_free"])

    assert len(services.posts.list()) == 3
    assert {p.title for p in services.posts.list(type_="request")} == {"Looking for milk"}
    assert {p.title for p in services.posts.list(user_id=bob.id)} == {"Carrots"}
    assert {p.title for p in services.posts.list(categories=["produce", "dairy"])} == {"Carrots", "Looking for milk"}
    assert {p.title for p in services.posts.list(dietary=["vegan", "gluten_free"])} == {"Carrots"}
    assert {p.title for p in services.posts.list(search="sourdough")} == {"Sourdough loaf"}
    assert len(services.posts.list(limit=2)) == 2
    assert len(services.posts.list(limit=2, offset=2)) == 1


def test_list_by_distance(services, people):
    alice, _, _ = people
    make_post(services, alice, title="Near", latitude=52.52, longitude=13.405)
    make_post(services, alice, title="Far", latitude=48.137, longitude=11.575)
    make_post(services, alice, title="Nowhere")

    found = services.posts.list(latitude=52.50, longitude=13.40, distance_km=10)
    assert [p.title for p in found] == ["Near"]


def test_haversine_known_distance():
    # Berlin to Munich is roughly 504 km
    assert 495 < haversine_km(52.52, 13.405, 48.137, 11.575) < 515


def test_list_status_uses_effective_expiry(services, people):
    alice, _, _ = people
    stale = make_post(services, alice, title="Stale")
    make_post(services, alice, title="Fresh")
    stale.expiry_time = utcnow() - timedelta(hours=1)
    db.session.commit()

    assert [p.title for p in services.posts.list(status="available")] == ["Fresh"]
    assert [p.title for p in services.posts.list(status="expired")] == ["Stale"]


def test_update_only_by_owner(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    with pytest.raises(Forbidden):
        services.posts.update(post.id, bob.id, {"title": "Mine now"})
    updated = services.posts.update(post.id, alice.id, {"title": "Rye bread", "dietary": ["vegan"]})
    assert updated.title == "Rye bread"
    assert updated.dietary == ["vegan"]


def test_cancel_post_cascades_to_claims(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)
    services.claims.approve(claim.id, alice.id)

    services.posts.update(post.id, alice.id, {"status": "cancelled"})

    assert post.status == "cancelled"
    assert db.session.get(Claim, claim.id).status == "cancelled"
    with pytest.raises(InvalidState):
        services.posts.update(post.id, alice.id, {"title": "Back again"})


def test_delete_post(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    services.claims.create(post.id, bob.id)
    services.posts.delete(post.id, alice.id)
    assert db.session.get(FoodPost, post.id) is None
    assert Claim.query.count() == 0


def test_delete_post_with_accepted_claim(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)
    services.claims.approve(claim.id, alice.id)
    with pytest.raises(InvalidState):
        services.posts.delete(post.id, alice.id)
