# invitepool/services/usage_ledger.py
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from invitepool.core.exceptions import ValidationError
from invitepool.models.code_usage import CodeUsage, USAGE_CLAIMED, USAGE_CONFIRMED, USAGE_STATUSES


class UsageLedger:
    """Claim records per code. Like CodeRepository, flushes only."""

    def __init__(self, db: Session):
        self.db = db

    def record_claim(self, code_id: int, ip_hash: str, user_agent: Optional[str]) -> CodeUsage:
        usage = CodeUsage(
            code_id=code_id,
            ip_hash=ip_hash,
            user_agent=user_agent,
            status=USAGE_CLAIMED,
        )
        self.db.add(usage)
        self.db.flush()
        return usage

    def get(self, usage_id: int, for_update: bool = False) -> Optional[CodeUsage]:
        q = self.db.query(CodeUsage).filter(CodeUsage.id == usage_id)
        if for_update:
            q = q.with_for_update().populate_existing()
        return q.first()

    def list_for_code(self, code_id: int) -> List[CodeUsage]:
        return (
            self.db.query(CodeUsage)
            .filter(CodeUsage.code_id == code_id)
            .order_by(CodeUsage.claimed_at.desc(), CodeUsage.id.desc())
            .all()
        )

    def find_latest_by_ip_hash(self, ip_hash: str) -> Optional[CodeUsage]:
        """
        Most recent claim from this hashed address.
        Heuristic only: callers behind one NAT share a hash.
        """
        return (
            self.db.query(CodeUsage)
            .filter(CodeUsage.ip_hash == ip_hash)
            .order_by(CodeUsage.claimed_at.desc(), CodeUsage.id.desc())
            .first()
        )

    def set_status(self, usage_id: int, status: str) -> Optional[CodeUsage]:
        if status not in USAGE_STATUSES:
            raise ValidationError(f"Invalid usage status '{status}'")
        usage = self.get(usage_id)
        if not usage:
            return None
        usage.status = status
        self.db.flush()
        return usage

    def link_contribution(self, usage_id: int, contributed_code_id: int) -> Optional[CodeUsage]:
        """Link a donated code to a claim. Returns None if missing or already linked; the first link stands."""
        usage = self.get(usage_id)
        if not usage or usage.contributed_code_id is not None:
            return None
        usage.status = USAGE_CONFIRMED
        usage.contributed_code_id = contributed_code_id
        self.db.flush()
        return usage

    def count(self) -> int:
        return self.db.query(func.count(CodeUsage.id)).scalar()
