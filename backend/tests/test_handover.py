from datetime import timedelta

import pytest

from foodshare.errors import Forbidden, InvalidCode, InvalidState
from foodshare.extensions import db
from foodshare.services.handover import CODE_ALPHABET, HandoverService, generate_handover_code
from foodshare.timeutil import as_utc, utcnow

from conftest import make_post


@pytest.fixture
def approved_claim(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)
    services.claims.approve(claim.id, alice.id)
    return claim


def test_generated_codes_use_unambiguous_alphabet():
    code = generate_handover_code(8)
    assert len(code) == 8
    assert set(code) <= set(CODE_ALPHABET)
    assert not set("01OI") & set(CODE_ALPHABET)


def test_generate_requires_owner_and_approved(services, people):
    alice, bob, _ = people
    post = make_post(services, alice)
    claim = services.claims.create(post.id, bob.id)

    with pytest.raises(InvalidState):
        services.handover.generate(claim.id, alice.id)
    services.claims.approve(claim.id, alice.id)
    with pytest.raises(Forbidden):
        services.handover.generate(claim.id, bob.id)

    code, expires_at = services.handover.generate(claim.id, alice.id)
    assert len(code) == 6
    assert expires_at > utcnow() + timedelta(hours=23)


def test_verify_completes_claim_once(services, people, approved_claim):
    alice, bob, _ = people
    code, _ = services.handover.generate(approved_claim.id, alice.id)

    claim = services.handover.verify(approved_claim.id, bob.id, code)

    assert claim.status == "completed"
    assert claim.is_handover_verified is True
    assert claim.handover_code is None
    assert claim.post.status == "completed"
    assert bob.received_count == 1
    with pytest.raises(InvalidState):
        services.handover.verify(approved_claim.id, bob.id, code)


def test_verify_mismatch_leaves_claim_untouched(services, people, approved_claim):
    alice, bob, _ = people
    code, _ = services.handover.generate(approved_claim.id, alice.id)
    wrong = "A" * len(code) if code != "A" * len(code) else "B" * len(code)

    with pytest.raises(InvalidCode):
        services.handover.verify(approved_claim.id, bob.id, wrong)

    claim = db.session.get(type(approved_claim), approved_claim.id)
    assert claim.status == "approved"
    assert claim.is_handover_verified is False
    assert claim.handover_code == code


def test_verify_without_code(services, people, approved_claim):
    _, bob, _ = people
    with pytest.raises(InvalidCode):
        services.handover.verify(approved_claim.id, bob.id, "ABC123")


def test_only_claimer_verifies(services, people, approved_claim):
    alice, _, carol = people
    code, _ = services.handover.generate(approved_claim.id, alice.id)
    with pytest.raises(Forbidden):
        services.handover.verify(approved_claim.id, alice.id, code)
    with pytest.raises(Forbidden):
        services.handover.verify(approved_claim.id, carol.id, code)


def test_expired_code_is_rejected(services, people, approved_claim):
    alice, bob, _ = people
    code, _ = services.handover.generate(approved_claim.id, alice.id)
    approved_claim.handover_code_expires_at = utcnow() - timedelta(minutes=1)
    db.session.commit()

    with pytest.raises(InvalidCode):
        services.handover.verify(approved_claim.id, bob.id, code)


def test_regenerating_replaces_code(app, services, people, approved_claim):
    alice, bob, _ = people
    codes = iter(["FIRST1", "SECND2"])
    handover = HandoverService(db.session, services.claims, code_factory=lambda: next(codes))

    first, _ = handover.generate(approved_claim.id, alice.id)
    second, expires_at = handover.generate(approved_claim.id, alice.id)
    assert as_utc(approved_claim.handover_code_expires_at) == expires_at

    with pytest.raises(InvalidCode):
        handover.verify(approved_claim.id, bob.id, first)
    assert handover.verify(approved_claim.id, bob.id, second).status == "completed"


def test_verify_from_in_progress(services, people, approved_claim):
    alice, bob, _ = people
    code, _ = services.handover.generate(approved_claim.id, alice.id)
    services.claims.start(approved_claim.id, bob.id)

    # Codes are only issued while approved, but an issued one still works
    with pytest.raises(InvalidState):
        services.handover.generate(approved_claim.id, alice.id)
    assert services.handover.verify(approved_claim.id, bob.id, code).status == "completed"


@pytest.mark.parametrize("mangle", [str.lower, lambda c: f"  {c} ", lambda c: c + "\n", lambda c: c[:-1]])
def test_near_miss_codes_are_rejected(services, people, approved_claim, mangle):
    alice, bob, _ = people
    codes = iter(["X7K9QA"])
    handover = HandoverService(db.session, services.claims, code_factory=lambda: next(codes))
    code, _ = handover.generate(approved_claim.id, alice.id)

    with pytest.raises(InvalidCode):
        handover.verify(approved_claim.id, bob.id, mangle(code))

    claim = db.session.get(type(approved_claim), approved_claim.id)
    assert claim.status == "approved"
    assert claim.is_handover_verified is False
    assert claim.handover_code == code
