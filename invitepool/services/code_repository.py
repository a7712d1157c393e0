# invitepool/services/code_repository.py
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from invitepool.core.config import DEFAULT_MAX_USES
from invitepool.core.exceptions import DuplicateCode, ValidationError
from invitepool.models.invite_code import InviteCode, CODE_AVAILABLE, CODE_INVALID, CODE_STATUSES

logger = logging.getLogger("invitepool.codes")
logger.setLevel(logging.INFO)


class CodeRepository:
    """
    Persistence for InviteCode rows.
    Flushes but never commits: the engine that owns the request owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, code: str, max_uses: Optional[int] = None, status: Optional[str] = None) -> InviteCode:
        status = status or CODE_AVAILABLE
        _check_status(status)
        # A new row has no uses, so only these two statuses are consistent with it
        if status not in (CODE_AVAILABLE, CODE_INVALID):
            raise ValidationError(f"A new code cannot start as '{status}'")
        if self.get_by_value(code) is not None:
            raise DuplicateCode([code])

        row = InviteCode(
            code=code,
            status=status,
            usage_count=0,
            max_uses=_check_max_uses(max_uses),
        )
        self.db.add(row)
        try:
            self.db.flush()
        except IntegrityError:
            # Lost a race with a concurrent insert of the same value
            raise DuplicateCode([code])
        return row

    def create_many(self, values: List[str], max_uses: Optional[int] = None) -> List[InviteCode]:
        """Insert all values with one batched statement; caller has already checked duplicates."""
        if not values:
            return []
        max_uses = _check_max_uses(max_uses)
        rows = [
            {"code": v, "status": CODE_AVAILABLE, "usage_count": 0, "max_uses": max_uses}
            for v in values
        ]
        try:
            self.db.execute(insert(InviteCode), rows)
        except IntegrityError:
            raise DuplicateCode(values)
        return (
            self.db.query(InviteCode)
            .filter(InviteCode.code.in_(values))
            .order_by(InviteCode.id.asc())
            .all()
        )

    def get_by_id(self, code_id: int) -> Optional[InviteCode]:
        return self.db.get(InviteCode, code_id)

    def get_by_value(self, code: str) -> Optional[InviteCode]:
        return self.db.query(InviteCode).filter(InviteCode.code == code).first()

    def existing_values(self, values: Iterable[str]) -> Set[str]:
        values = list(values)
        if not values:
            return set()
        rows = self.db.execute(select(InviteCode.code).where(InviteCode.code.in_(values))).all()
        return {r[0] for r in rows}

    def list_all(self) -> List[InviteCode]:
        return (
            self.db.query(InviteCode)
            .order_by(InviteCode.created_at.desc(), InviteCode.id.desc())
            .all()
        )

    def list_by_status(self, status: str) -> List[InviteCode]:
        _check_status(status)
        return (
            self.db.query(InviteCode)
            .filter(InviteCode.status == status)
            .order_by(InviteCode.created_at.desc(), InviteCode.id.desc())
            .all()
        )

    def update_status(self, code_id: int, status: str) -> Optional[InviteCode]:
        _check_status(status)
        row = self.get_by_id(code_id)
        if not row:
            return None
        row.status = status
        row.updated_at = datetime.now(timezone.utc)
        self.db.flush()
        return row

    def delete(self, code_id: int) -> bool:
        row = self.get_by_id(code_id)
        if not row:
            return False
        self.db.delete(row)
        self.db.flush()
        return True

    def count_by_status(self) -> Dict[str, int]:
        counts = {s: 0 for s in CODE_STATUSES}
        rows = (
            self.db.query(InviteCode.status, func.count(InviteCode.id))
            .group_by(InviteCode.status)
            .all()
        )
        for status, n in rows:
            counts[status] = n
        return counts

    def count_available(self) -> int:
        return (
            self.db.query(func.count(InviteCode.id))
            .filter(
                InviteCode.status == CODE_AVAILABLE,
                InviteCode.usage_count < InviteCode.max_uses,
            )
            .scalar()
        )


def _check_status(status: str) -> None:
    if status not in CODE_STATUSES:
        raise ValidationError(f"Invalid status '{status}'")


def _check_max_uses(max_uses: Optional[int]) -> int:
    if max_uses is None:
        return DEFAULT_MAX_USES
    if max_uses < 1:
        raise ValidationError("maxUses must be a positive integer")
    return max_uses
