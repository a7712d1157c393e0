# invitepool/routes/codes.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from invitepool.services.deps import get_db, get_caller_identity, CallerIdentity
from invitepool.services.allocation import AllocationEngine
from invitepool.services.contribution import ContributionEngine
from invitepool.models.invite_code import InviteCode
from invitepool.models.code_usage import CodeUsage
from invitepool.schemas.codes import (
    ClaimedCodeOut,
    ContributeRequest,
    ContributeResponse,
    ContributedCodeOut,
    FeedbackRequest,
    FeedbackResponse,
    MarkUsedRequest,
    SuccessResponse,
    StatsOut,
)

router = APIRouter(prefix="/api/codes", tags=["codes"])


def _to_claimed_out(code: InviteCode, usage: CodeUsage) -> ClaimedCodeOut:
    return ClaimedCodeOut(
        code=code.code,
        codeId=code.id,
        usageId=usage.id,
        remainingUses=code.remaining_uses,
        status=code.status,
    )


@router.get("/stats", response_model=StatsOut)
def get_stats(db: Session = Depends(get_db)):
    return StatsOut(**ContributionEngine(db).get_statistics())


@router.post("/request", response_model=ClaimedCodeOut)
def request_code(
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_caller_identity),
):
    """
    Hand out one use of the oldest code that still has capacity.
    404 with a "check back later" message when the pool is empty.
    """
    result = AllocationEngine(db).claim(caller.ip_hash, caller.user_agent)
    return _to_claimed_out(result.code, result.usage)


@router.post("/contribute", response_model=ContributeResponse)
def contribute_code(
    payload: ContributeRequest,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_caller_identity),
):
    code = ContributionEngine(db).contribute(payload.code, caller.ip_hash)
    return ContributeResponse(
        success=True,
        code=ContributedCodeOut(id=code.id, code=code.code, status=code.status, maxUses=code.max_uses),
    )


@router.post("/feedback", response_model=FeedbackResponse)
def submit_feedback(
    payload: FeedbackRequest,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_caller_identity),
):
    outcome = AllocationEngine(db).submit_feedback(
        payload.usageId,
        payload.working,
        caller.ip_hash,
        caller.user_agent,
        note=payload.note,
    )
    new_code = None
    if outcome.replaced:
        new_code = _to_claimed_out(outcome.new_code, outcome.new_usage)
    return FeedbackResponse(
        success=True,
        replaced=outcome.replaced,
        newCode=new_code,
        message=outcome.message,
    )


@router.post("/mark-used", response_model=SuccessResponse)
def mark_used(payload: MarkUsedRequest, db: Session = Depends(get_db)):
    AllocationEngine(db).mark_used(payload.usageId)
    return SuccessResponse(success=True)
