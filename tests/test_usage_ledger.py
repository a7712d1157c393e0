import pytest

from invitepool.core.exceptions import ValidationError
from invitepool.services.usage_ledger import UsageLedger


def test_record_and_list_for_code(db, make_code):
    c = make_code("L1")
    ledger = UsageLedger(db)

    u1 = ledger.record_claim(c.id, "hash-a", "UA/1")
    u2 = ledger.record_claim(c.id, "hash-b", None)
    db.commit()

    assert u1.status == "claimed"
    assert u1.feedback is None
    assert [u.id for u in ledger.list_for_code(c.id)] == [u2.id, u1.id]
    assert ledger.count() == 2


def test_find_latest_by_ip_hash(db, make_code):
    c1 = make_code("L2")
    c2 = make_code("L3")
    ledger = UsageLedger(db)

    ledger.record_claim(c1.id, "same", "ua")
    newer = ledger.record_claim(c2.id, "same", "ua")
    ledger.record_claim(c1.id, "other", "ua")
    db.commit()

    assert ledger.find_latest_by_ip_hash("same").id == newer.id
    assert ledger.find_latest_by_ip_hash("nobody") is None


def test_set_status_and_link(db, make_code):
    c = make_code("L4")
    donated = make_code("L5")
    ledger = UsageLedger(db)
    u = ledger.record_claim(c.id, "h", "ua")
    db.commit()

    assert ledger.set_status(u.id, "used").status == "used"
    assert ledger.set_status(999, "used") is None
    with pytest.raises(ValidationError):
        ledger.set_status(u.id, "working")

    linked = ledger.link_contribution(u.id, donated.id)
    db.commit()
    assert linked.status == "confirmed"
    assert linked.contributed_code_id == donated.id
    assert ledger.link_contribution(999, donated.id) is None


def test_link_contribution_keeps_first_link(db, make_code):
    c = make_code("L6")
    first = make_code("L7")
    second = make_code("L8")
    ledger = UsageLedger(db)
    u = ledger.record_claim(c.id, "h", "ua")
    db.commit()

    assert ledger.link_contribution(u.id, first.id) is not None
    assert ledger.link_contribution(u.id, second.id) is None
    db.commit()
    assert ledger.get(u.id).contributed_code_id == first.id
