from invitepool.core.security import verify_password
from invitepool.models.admin import Admin
from invitepool.models.invite_code import InviteCode
from invitepool.services.seed import DEMO_CODES, seed_admin, seed_demo_codes


def test_seed_admin_is_idempotent(db):
    first = seed_admin(db, "boss", "pw-123456")
    second = seed_admin(db, "boss", "other")

    assert first.id == second.id
    assert db.query(Admin).count() == 1
    assert verify_password("pw-123456", second.hashed_password)


def test_seed_demo_codes_only_into_empty_pool(db):
    assert seed_demo_codes(db) == len(DEMO_CODES)
    assert seed_demo_codes(db) == 0
    assert db.query(InviteCode).count() == len(DEMO_CODES)
