from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship
from invitepool.core.database import Base

USAGE_CLAIMED = "claimed"
USAGE_CONFIRMED = "confirmed"  # linked to a code the claimer contributed back
USAGE_USED = "used"  # claimer reported redeeming the code
USAGE_STATUSES = (USAGE_CLAIMED, USAGE_CONFIRMED, USAGE_USED)

FEEDBACK_WORKING = "working"
FEEDBACK_NOT_WORKING = "not_working"


class CodeUsage(Base):
    __tablename__ = "code_usages"
    __table_args__ = (
        CheckConstraint("status IN ('claimed', 'confirmed', 'used')", name="ck_code_usages_status"),
        CheckConstraint(
            "feedback IS NULL OR feedback IN ('working', 'not_working')",
            name="ck_code_usages_feedback",
        ),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code_id = Column(Integer, ForeignKey("invite_codes.id", ondelete="CASCADE"), nullable=False, index=True)
    ip_hash = Column(String(64), nullable=False, index=True)
    user_agent = Column(Text, nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    status = Column(String(20), nullable=False, server_default=USAGE_CLAIMED)
    feedback = Column(String(20), nullable=True)  # NULL until the claimer reports back
    feedback_at = Column(DateTime(timezone=True), nullable=True)
    contributed_code_id = Column(Integer, ForeignKey("invite_codes.id", ondelete="SET NULL"), nullable=True)
    note = Column(Text, nullable=True)

    # Relationships
    code = relationship("InviteCode", back_populates="usages", foreign_keys=[code_id])
    contributed_code = relationship("InviteCode", foreign_keys=[contributed_code_id])

    def __repr__(self):
        return f"<CodeUsage(id={self.id}, code_id={self.code_id}, status={self.status}, feedback={self.feedback})>"
