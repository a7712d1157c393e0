# invitepool/services/allocation.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from invitepool.core.config import CLAIM_MAX_ATTEMPTS
from invitepool.core.exceptions import NoCodesAvailable, NotFound, TransactionFailure, ValidationError
from invitepool.models.invite_code import (
    InviteCode,
    CLAIMABLE_STATUSES,
    CODE_ACTIVE,
    CODE_AVAILABLE,
    CODE_EXHAUSTED,
    CODE_INVALID,
)
from invitepool.models.code_usage import CodeUsage, FEEDBACK_NOT_WORKING, FEEDBACK_WORKING, USAGE_USED
from invitepool.services.code_repository import CodeRepository
from invitepool.services.usage_ledger import UsageLedger
from invitepool.services.tx import atomic

logger = logging.getLogger("invitepool.allocation")
logger.setLevel(logging.INFO)

MSG_WORKING = "Thanks for confirming the code works!"
MSG_NO_REPLACEMENT = "Sorry, no replacement code is available right now. Please check back later."
MSG_ALREADY_RECORDED = "Feedback for this code was already recorded."


@dataclass
class ClaimResult:
    code: InviteCode
    usage: CodeUsage


@dataclass
class FeedbackOutcome:
    usage: CodeUsage
    replaced: bool
    new_code: Optional[InviteCode] = None
    new_usage: Optional[CodeUsage] = None
    message: Optional[str] = None
    already_recorded: bool = False


def derive_status(usage_count: int, max_uses: int) -> str:
    """Status implied by consumption alone (ignores an admin-forced invalid)."""
    if usage_count >= max_uses:
        return CODE_EXHAUSTED
    if usage_count > 0:
        return CODE_ACTIVE
    return CODE_AVAILABLE


class AllocationEngine:
    """
    Hands out codes fairly (oldest first) and processes claimer feedback.
    Every public method is one transaction on the injected session.
    """

    def __init__(self, db: Session):
        self.db = db
        self.codes = CodeRepository(db)
        self.ledger = UsageLedger(db)

    def claim(self, ip_hash: str, user_agent: Optional[str]) -> ClaimResult:
        with atomic(self.db, "claim"):
            result = self._claim(ip_hash, user_agent)
        logger.info(
            f"Claimed code {result.code.id} ({result.code.usage_count}/{result.code.max_uses}, "
            f"{result.code.status}) usage={result.usage.id} ip={ip_hash[:8]}"
        )
        return result

    def _select_candidate(self, exclude_ids: Iterable[int]) -> Optional[InviteCode]:
        q = self.db.query(InviteCode).filter(
            InviteCode.status.in_(CLAIMABLE_STATUSES),
            InviteCode.usage_count < InviteCode.max_uses,
        )
        exclude_ids = list(exclude_ids)
        if exclude_ids:
            q = q.filter(InviteCode.id.notin_(exclude_ids))
        return (
            q.order_by(InviteCode.created_at.asc(), InviteCode.id.asc())
            .with_for_update()
            .populate_existing()
            .first()
        )

    def _claim(self, ip_hash: str, user_agent: Optional[str], exclude_ids: Iterable[int] = ()) -> ClaimResult:
        """Claim inside the caller's transaction; does not commit."""
        exclude_ids = list(exclude_ids)
        for attempt in range(1, CLAIM_MAX_ATTEMPTS + 1):
            code = self._select_candidate(exclude_ids)
            if code is None:
                raise NoCodesAvailable()

            now = datetime.now(timezone.utc)
            new_count = code.usage_count + 1
            # Guard on the values we read; a miss means another claim got there first
            res = self.db.execute(
                update(InviteCode)
                .where(
                    InviteCode.id == code.id,
                    InviteCode.usage_count == code.usage_count,
                    InviteCode.status == code.status,
                )
                .values(
                    usage_count=new_count,
                    status=derive_status(new_count, code.max_uses),
                    last_claimed_at=now,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if res.rowcount == 1:
                self.db.refresh(code)
                usage = self.ledger.record_claim(code.id, ip_hash, user_agent)
                return ClaimResult(code=code, usage=usage)

            logger.warning(f"Claim on code {code.id} lost a race (attempt {attempt}/{CLAIM_MAX_ATTEMPTS})")

        raise TransactionFailure("Could not claim a code after repeated conflicts")

    def submit_feedback(
        self,
        usage_id: int,
        working: bool,
        ip_hash: str,
        user_agent: Optional[str],
        note: Optional[str] = None,
    ) -> FeedbackOutcome:
        """
        Record whether a claimed code worked. A non-working report allocates a
        replacement for the same caller, skipping the reported code.
        Only the first report for a usage counts.
        """
        with atomic(self.db, "feedback"):
            usage = self.ledger.get(usage_id, for_update=True)
            # Usage ids are sequential; only the claimer may report on one
            if not usage or usage.ip_hash != ip_hash:
                raise NotFound("Usage", usage_id)

            # Guarded on feedback IS NULL so only one concurrent report wins
            values = {
                "feedback": FEEDBACK_WORKING if working else FEEDBACK_NOT_WORKING,
                "feedback_at": datetime.now(timezone.utc),
            }
            if note:
                values["note"] = note
            res = self.db.execute(
                update(CodeUsage)
                .where(CodeUsage.id == usage.id, CodeUsage.feedback.is_(None))
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self.db.refresh(usage)

            if res.rowcount != 1:
                outcome = FeedbackOutcome(usage=usage, replaced=False, message=MSG_ALREADY_RECORDED, already_recorded=True)
            elif working:
                outcome = FeedbackOutcome(usage=usage, replaced=False, message=MSG_WORKING)
            else:
                try:
                    result = self._claim(usage.ip_hash, user_agent, exclude_ids=[usage.code_id])
                except NoCodesAvailable:
                    outcome = FeedbackOutcome(usage=usage, replaced=False, message=MSG_NO_REPLACEMENT)
                else:
                    outcome = FeedbackOutcome(
                        usage=usage,
                        replaced=True,
                        new_code=result.code,
                        new_usage=result.usage,
                    )

        if outcome.replaced:
            logger.info(
                f"Code {usage.code_id} reported not working via usage {usage.id}; "
                f"replaced with code {outcome.new_code.id} usage={outcome.new_usage.id}"
            )
        elif not outcome.already_recorded:
            logger.info(f"Feedback on usage {usage.id}: {usage.feedback}")
        return outcome

    def mark_used(self, usage_id: int) -> CodeUsage:
        with atomic(self.db, "mark_used"):
            usage = self.ledger.get(usage_id)
            if not usage:
                raise NotFound("Usage", usage_id)
            if usage.status != USAGE_USED:
                self.ledger.set_status(usage.id, USAGE_USED)
        return usage

    def set_code_status(self, code_id: int, status: str) -> InviteCode:
        """
        Admin status edit. Forcing invalid always works; any other status must
        match what the usage count implies, so this can only restore a code.
        """
        with atomic(self.db, "set_code_status"):
            code = self.codes.get_by_id(code_id)
            if not code:
                raise NotFound("Code", code_id)
            if status != CODE_INVALID:
                expected = derive_status(code.usage_count, code.max_uses)
                if status != expected:
                    raise ValidationError(
                        f"Status '{status}' conflicts with usage {code.usage_count}/{code.max_uses}; "
                        f"use '{expected}' or '{CODE_INVALID}'"
                    )
            self.codes.update_status(code.id, status)
        logger.info(f"Code {code.id} status set to {status}")
        return code
