import pytest

from foodshare.errors import Forbidden, InvalidInput, InvalidState, NotFound
from foodshare.models.notification import Notification
from foodshare.models.rating import Rating

from conftest import make_post, make_user


@pytest.fixture
def completed_claim(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)
    services.claims.approve(claim.id, alice.id)
    services.claims.complete(claim.id, alice.id)
    return claim


def test_rating_defaults_to_other_party_and_upserts(services, people, completed_claim):
    alice, bob, _ = people

    row, created = services.ratings.submit(completed_claim.id, bob.id, None, 5, comment="Lovely")
    assert created is True
    assert row.to_user_id == alice.id
    assert (alice.average_rating, alice.rating_count) == (5.0, 1)

    again, created = services.ratings.submit(completed_claim.id, bob.id, alice.id, 3, categories=["punctual", "punctual"])
    assert created is False
    assert again.id == row.id
    assert again.categories == ["punctual"]
    assert Rating.query.count() == 1
    assert (alice.average_rating, alice.rating_count) == (3.0, 1)

    types = [n.type for n in Notification.query.filter_by(user_id=alice.id, related_type="rating")]
    assert types == ["rating", "rating_update"]


def test_both_parties_rate_each_other(services, people, completed_claim):
    alice, bob, _ = people
    services.ratings.submit(completed_claim.id, bob.id, None, 4)
    services.ratings.submit(completed_claim.id, alice.id, None, 2)

    assert bob.average_rating == 2.0
    assert alice.average_rating == 4.0
    assert len(services.ratings.list_for_claim(completed_claim.id, alice.id)) == 2
    assert len(services.ratings.list_received(alice.id)) == 1


@pytest.mark.parametrize("value", [0, 6, -1])
def test_out_of_range_rating(services, people, completed_claim, value):
    _, bob, _ = people
    with pytest.raises(InvalidInput):
        services.ratings.submit(completed_claim.id, bob.id, None, value)


def test_cannot_rate_self_or_outsiders(services, people, completed_claim):
    alice, bob, carol = people
    with pytest.raises(Forbidden):
        services.ratings.submit(completed_claim.id, bob.id, bob.id, 5)
    with pytest.raises(Forbidden):
        services.ratings.submit(completed_claim.id, bob.id, carol.id, 5)
    with pytest.raises(Forbidden):
        services.ratings.submit(completed_claim.id, carol.id, alice.id, 5)


def test_rating_requires_completed_claim(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)
    with pytest.raises(InvalidState):
        services.ratings.submit(claim.id, bob.id, None, 5)
    with pytest.raises(NotFound):
        services.ratings.submit(9999, bob.id, None, 5)


def test_trusted_after_enough_good_ratings(services):
    owner = make_user(services, "owner")
    for i in range(5):
        claimer = make_user(services, f"claimer{i}")
        post = make_post(services, owner, title=f"Soup {i}", category="meal")
        claim = services.claims.create(post.id, claimer.id)
        services.claims.approve(claim.id, owner.id)
        services.claims.complete(claim.id, owner.id)
        services.ratings.submit(claim.id, claimer.id, None, 4 if i else 5)
        assert owner.is_trusted is (i == 4)

    assert owner.rating_count == 5
    assert owner.average_rating == 4.2
