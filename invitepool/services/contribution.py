# invitepool/services/contribution.py
from __future__ import annotations
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from invitepool.core.exceptions import DuplicateCode, NotFound, ValidationError
from invitepool.models.invite_code import (
    InviteCode,
    CODE_ACTIVE,
    CODE_EXHAUSTED,
    CODE_INVALID,
    MAX_CODE_LENGTH,
)
from invitepool.services.code_repository import CodeRepository
from invitepool.services.usage_ledger import UsageLedger
from invitepool.services.tx import atomic

logger = logging.getLogger("invitepool.contribution")
logger.setLevel(logging.INFO)


class ContributionEngine:
    """Brings codes into the pool (donations and admin bulk-add) and reports on it."""

    def __init__(self, db: Session):
        self.db = db
        self.codes = CodeRepository(db)
        self.ledger = UsageLedger(db)

    def contribute(self, code_value: str, caller_ip_hash: str) -> InviteCode:
        """
        Add a donated code and credit the donor's latest claim, if any.

        Attribution is by hashed IP only, so two people behind one address can
        be mixed up. A donation with no matching claim still succeeds.
        """
        value = (code_value or "").strip()
        if not value:
            raise ValidationError("Code is required")
        if len(value) > MAX_CODE_LENGTH:
            raise ValidationError(f"Code must be at most {MAX_CODE_LENGTH} characters")

        with atomic(self.db, "contribute"):
            code = self.codes.create(value)
            usage = self.ledger.find_latest_by_ip_hash(caller_ip_hash)
            linked = None
            if usage:
                linked = self.ledger.link_contribution(usage.id, code.id)

        if linked:
            logger.info(f"Contributed code {code.id} linked to usage {usage.id}")
        else:
            logger.info(f"Contributed code {code.id} with no claim to credit (ip={caller_ip_hash[:8]})")
        return code

    def add_codes(self, values: List[str], max_uses: Optional[int] = None) -> List[InviteCode]:
        """
        Admin bulk-add. Blank entries are dropped; any duplicate, inside the
        batch or against the pool, rejects the whole batch before inserting.
        """
        cleaned = [v.strip() for v in values if v and v.strip()]
        if not cleaned:
            raise ValidationError("At least one code is required")
        too_long = [v for v in cleaned if len(v) > MAX_CODE_LENGTH]
        if too_long:
            raise ValidationError(f"Codes must be at most {MAX_CODE_LENGTH} characters")

        seen = set()
        repeated = set()
        for v in cleaned:
            if v in seen:
                repeated.add(v)
            seen.add(v)
        if repeated:
            raise DuplicateCode(repeated)

        with atomic(self.db, "add_codes"):
            existing = self.codes.existing_values(cleaned)
            if existing:
                raise DuplicateCode(existing)
            created = self.codes.create_many(cleaned, max_uses=max_uses)

        logger.info(f"Admin added {len(created)} codes")
        return created

    def delete_code(self, code_id: int) -> None:
        """Hard delete; the code's usage rows go with it."""
        with atomic(self.db, "delete_code"):
            if not self.codes.delete(code_id):
                raise NotFound("Code", code_id)
        logger.info(f"Admin deleted code {code_id}")

    def get_statistics(self) -> Dict[str, int]:
        by_status = self.codes.count_by_status()
        return {
            "total": sum(by_status.values()),
            "available": self.codes.count_available(),
            "active": by_status[CODE_ACTIVE],
            "exhausted": by_status[CODE_EXHAUSTED],
            "invalid": by_status[CODE_INVALID],
            "totalClaims": self.ledger.count(),
        }
