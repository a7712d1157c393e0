import pytest

from invitepool.core.exceptions import DuplicateCode, NotFound, ValidationError
from invitepool.models.code_usage import CodeUsage
from invitepool.models.invite_code import InviteCode
from invitepool.services.allocation import AllocationEngine
from invitepool.services.code_repository import CodeRepository
from invitepool.services.contribution import ContributionEngine


def test_contribute_round_trip(db):
    engine = ContributionEngine(db)
    engine.contribute("  X  ", "donor")

    code = CodeRepository(db).get_by_value("X")
    assert code is not None
    assert code.status == "available"
    assert code.usage_count == 0
    assert code.max_uses == 6

    with pytest.raises(DuplicateCode) as exc:
        engine.contribute("X", "donor")
    assert "'X'" in exc.value.message


def test_contribute_rejects_blank(db):
    with pytest.raises(ValidationError):
        ContributionEngine(db).contribute("   ", "donor")
    assert db.query(InviteCode).count() == 0


def test_contribute_links_latest_claim_from_same_ip(db, make_code):
    make_code("GIVEN")
    claimed = AllocationEngine(db).claim("donor-hash", "ua")

    donated = ContributionEngine(db).contribute("FRESH", "donor-hash")

    usage = db.get(CodeUsage, claimed.usage.id)
    assert usage.status == "confirmed"
    assert usage.contributed_code_id == donated.id


def test_contribute_without_matching_claim(db, make_code):
    make_code("GIVEN")
    claimed = AllocationEngine(db).claim("someone-else", "ua")

    donated = ContributionEngine(db).contribute("FRESH", "stranger")

    assert donated.status == "available"
    usage = db.get(CodeUsage, claimed.usage.id)
    assert usage.status == "claimed"
    assert usage.contributed_code_id is None


def test_contribute_attribution_is_shared_behind_one_address(db, make_code):
    # Two people behind one NAT share a hash; the newest claim gets the credit
    make_code("GIVEN")
    engine = AllocationEngine(db)
    alice = engine.claim("office-nat", "Alice")
    bob = engine.claim("office-nat", "Bob")

    donated = ContributionEngine(db).contribute("FROM-ALICE", "office-nat")

    assert db.get(CodeUsage, bob.usage.id).contributed_code_id == donated.id
    assert db.get(CodeUsage, alice.usage.id).contributed_code_id is None


def test_add_codes(db):
    created = ContributionEngine(db).add_codes(["  one ", "", "two", "   "], max_uses=3)

    assert [c.code for c in created] == ["one", "two"]
    assert all(c.max_uses == 3 for c in created)


def test_add_codes_rejects_whole_batch_on_duplicate(db, make_code):
    make_code("taken")
    engine = ContributionEngine(db)

    with pytest.raises(DuplicateCode) as exc:
        engine.add_codes(["new-1", "taken", "new-2"])
    assert exc.value.codes == ["taken"]
    assert db.query(InviteCode).count() == 1

    with pytest.raises(DuplicateCode):
        engine.add_codes(["same", "same"])
    assert db.query(InviteCode).count() == 1


def test_add_codes_requires_a_value(db):
    with pytest.raises(ValidationError):
        ContributionEngine(db).add_codes(["", "  "])


def test_delete_code_cascades_usages(db, make_code):
    a = make_code("A")
    make_code("B")
    engine = AllocationEngine(db)
    for _ in range(2):
        engine.claim("ip", "ua")
    assert db.query(CodeUsage).count() == 2

    ContributionEngine(db).delete_code(a.id)

    db.expire_all()
    assert db.query(CodeUsage).count() == 0
    with pytest.raises(NotFound):
        ContributionEngine(db).delete_code(a.id)


def test_statistics(db, make_code):
    make_code("fresh-1")
    make_code("fresh-2")
    make_code("half", usage_count=3)
    make_code("done", usage_count=6)
    make_code("bad", status="invalid")

    engine = AllocationEngine(db)
    engine.claim("ip", "ua")

    stats = ContributionEngine(db).get_statistics()
    assert stats == {
        "total": 5,
        "available": 1,
        "active": 2,
        "exhausted": 1,
        "invalid": 1,
        "totalClaims": 1,
    }


def test_statistics_total_claims_follow_deletions(db, make_code):
    a = make_code("A", max_uses=2)
    make_code("B")
    engine = AllocationEngine(db)
    for _ in range(3):
        engine.claim("ip", "ua")  # A, A, then B

    contrib = ContributionEngine(db)
    assert contrib.get_statistics()["totalClaims"] == 3

    contrib.delete_code(a.id)
    assert contrib.get_statistics()["totalClaims"] == 1


def test_second_contribution_keeps_first_link(db, make_code):
    make_code("GIVEN")
    claimed = AllocationEngine(db).claim("donor-hash", "ua")
    engine = ContributionEngine(db)

    first = engine.contribute("FIRST-GIFT", "donor-hash")
    engine.contribute("SECOND-GIFT", "donor-hash")

    db.expire_all()
    usage = db.get(CodeUsage, claimed.usage.id)
    assert usage.status == "confirmed"
    assert usage.contributed_code_id == first.id
    assert CodeRepository(db).get_by_value("SECOND-GIFT") is not None


def test_contribute_length_is_checked_after_trimming(db):
    engine = ContributionEngine(db)
    padded = "   " + "x" * 255 + "   "

    assert engine.contribute(padded, "donor").code == "x" * 255
    with pytest.raises(ValidationError):
        engine.contribute("y" * 256, "donor")
    with pytest.raises(ValidationError):
        engine.add_codes(["z" * 256])
