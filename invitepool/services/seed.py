# invitepool/services/seed.py
import logging

from sqlalchemy.orm import Session

from invitepool.core.config import SEED_ADMIN_USERNAME, SEED_ADMIN_PASSWORD
from invitepool.core.security import hash_password
from invitepool.models.admin import Admin
from invitepool.models.invite_code import InviteCode
from invitepool.services.contribution import ContributionEngine

logger = logging.getLogger("invitepool.seed")
logger.setLevel(logging.INFO)

DEMO_CODES = [
    "DEMO-INVITE-001",
    "DEMO-INVITE-002",
    "DEMO-INVITE-003",
    "DEMO-INVITE-004",
]


def seed_admin(db: Session, username: str = SEED_ADMIN_USERNAME, password: str = SEED_ADMIN_PASSWORD) -> Admin:
    existing = db.query(Admin).filter(Admin.username == username).first()
    if existing:
        return existing

    admin = Admin(username=username, hashed_password=hash_password(password))
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info(f"Created bootstrap admin '{username}'")
    if password == "admin123":
        logger.warning("Bootstrap admin uses the default password; set SEED_ADMIN_PASSWORD in production")
    return admin


def seed_demo_codes(db: Session) -> int:
    if db.query(InviteCode.id).first():
        return 0
    created = ContributionEngine(db).add_codes(DEMO_CODES)
    logger.info(f"Seeded {len(created)} demo codes")
    return len(created)


def seed_database(db: Session) -> None:
    """Idempotent bootstrap: admin account plus demo codes for an empty pool."""
    seed_admin(db)
    seed_demo_codes(db)
