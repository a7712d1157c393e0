# invitepool/routes/admin.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from invitepool.core.exceptions import NotFound, Unauthorized
from invitepool.core.security import create_admin_token, verify_password
from invitepool.services.deps import get_db, get_current_admin, get_optional_admin
from invitepool.services.allocation import AllocationEngine
from invitepool.services.code_repository import CodeRepository
from invitepool.services.contribution import ContributionEngine
from invitepool.services.usage_ledger import UsageLedger
from invitepool.models.admin import Admin
from invitepool.models.invite_code import InviteCode
from invitepool.models.code_usage import CodeUsage
from invitepool.schemas.admin import AdminLoginRequest, AdminLoginResponse, AdminCheckResponse
from invitepool.schemas.codes import (
    AddCodesRequest,
    AddCodesResponse,
    CodeUsageOut,
    InviteCodeOut,
    SuccessResponse,
    UpdateCodeStatusRequest,
)

logger = logging.getLogger("invitepool.admin")
logger.setLevel(logging.INFO)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _to_code_out(c: InviteCode) -> InviteCodeOut:
    return InviteCodeOut(
        id=c.id,
        code=c.code,
        status=c.status,
        usageCount=c.usage_count,
        maxUses=c.max_uses,
        remainingUses=c.remaining_uses,
        createdAt=c.created_at,
        lastClaimedAt=c.last_claimed_at,
        updatedAt=c.updated_at,
    )


def _to_usage_out(u: CodeUsage) -> CodeUsageOut:
    return CodeUsageOut(
        id=u.id,
        codeId=u.code_id,
        ipHash=u.ip_hash,
        userAgent=u.user_agent,
        claimedAt=u.claimed_at,
        status=u.status,
        feedback=u.feedback,
        feedbackAt=u.feedback_at,
        contributedCodeId=u.contributed_code_id,
        note=u.note,
    )


@router.post("/login", response_model=AdminLoginResponse)
def login(payload: AdminLoginRequest, db: Session = Depends(get_db)):
    admin = db.query(Admin).filter(Admin.username == payload.username).first()
    # Same answer for unknown user and wrong password
    if not admin or not verify_password(payload.password, admin.hashed_password):
        logger.info(f"Failed admin login for '{payload.username}'")
        raise Unauthorized("Invalid credentials")
    logger.info(f"Admin '{admin.username}' logged in")
    return AdminLoginResponse(
        access_token=create_admin_token(admin.id, admin.username),
        username=admin.username,
    )


@router.get("/check", response_model=AdminCheckResponse)
def check(admin: Optional[Admin] = Depends(get_optional_admin)):
    return AdminCheckResponse(authenticated=admin is not None)


@router.get("/codes", response_model=List[InviteCodeOut])
def list_codes(
    status: Optional[str] = Query(None, description="Only codes with this status"),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    repo = CodeRepository(db)
    codes = repo.list_by_status(status) if status else repo.list_all()
    return [_to_code_out(c) for c in codes]


@router.post("/codes", response_model=AddCodesResponse)
def add_codes(
    payload: AddCodesRequest,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    created = ContributionEngine(db).add_codes(payload.codes, max_uses=payload.maxUses)
    return AddCodesResponse(success=True, codes=[_to_code_out(c) for c in created])


@router.patch("/codes/{code_id}", response_model=InviteCodeOut)
def update_code_status(
    code_id: int,
    payload: UpdateCodeStatusRequest,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    code = AllocationEngine(db).set_code_status(code_id, payload.status)
    return _to_code_out(code)


@router.delete("/codes/{code_id}", response_model=SuccessResponse)
def delete_code(
    code_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    ContributionEngine(db).delete_code(code_id)
    return SuccessResponse(success=True)


@router.get("/codes/{code_id}/usages", response_model=List[CodeUsageOut])
def list_code_usages(
    code_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    if not CodeRepository(db).get_by_id(code_id):
        raise NotFound("Code", code_id)
    return [_to_usage_out(u) for u in UsageLedger(db).list_for_code(code_id)]
