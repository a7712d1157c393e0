# invitepool/schemas/codes.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class ClaimedCodeOut(BaseModel):
    code: str
    codeId: int
    usageId: int
    remainingUses: int
    status: str


class ContributeRequest(BaseModel):
    code: str = Field(..., description="Invite code to donate")


class ContributedCodeOut(BaseModel):
    id: int
    code: str
    status: str
    maxUses: int


class ContributeResponse(BaseModel):
    success: bool
    code: ContributedCodeOut


class FeedbackRequest(BaseModel):
    usageId: int
    working: bool
    note: Optional[str] = Field(None, max_length=1000)


class FeedbackResponse(BaseModel):
    success: bool
    replaced: bool
    newCode: Optional[ClaimedCodeOut] = None
    message: Optional[str] = None


class MarkUsedRequest(BaseModel):
    usageId: int


class SuccessResponse(BaseModel):
    success: bool


class StatsOut(BaseModel):
    total: int
    available: int
    active: int
    exhausted: int
    invalid: int
    totalClaims: int


class InviteCodeOut(BaseModel):
    id: int
    code: str
    status: str
    usageCount: int
    maxUses: int
    remainingUses: int
    createdAt: datetime
    lastClaimedAt: Optional[datetime] = None
    updatedAt: datetime


class AddCodesRequest(BaseModel):
    codes: List[str] = Field(..., description="Code values; blank entries are ignored")
    maxUses: Optional[int] = Field(None, ge=1, description="Max uses per code (default 6)")


class AddCodesResponse(BaseModel):
    success: bool
    codes: List[InviteCodeOut]


class UpdateCodeStatusRequest(BaseModel):
    status: str = Field(..., description="available, active, exhausted or invalid")


class CodeUsageOut(BaseModel):
    id: int
    codeId: int
    ipHash: str
    userAgent: Optional[str] = None
    claimedAt: datetime
    status: str
    feedback: Optional[str] = None
    feedbackAt: Optional[datetime] = None
    contributedCodeId: Optional[int] = None
    note: Optional[str] = None
