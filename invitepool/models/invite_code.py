from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint, func
from sqlalchemy.orm import relationship
from invitepool.core.database import Base

# Code lifecycle, driven by usage_count vs max_uses; "invalid" is admin-forced
CODE_AVAILABLE = "available"
CODE_ACTIVE = "active"
CODE_EXHAUSTED = "exhausted"
CODE_INVALID = "invalid"
CODE_STATUSES = (CODE_AVAILABLE, CODE_ACTIVE, CODE_EXHAUSTED, CODE_INVALID)

MAX_CODE_LENGTH = 255

# Statuses the allocator may hand out
CLAIMABLE_STATUSES = (CODE_AVAILABLE, CODE_ACTIVE)


class InviteCode(Base):
    __tablename__ = "invite_codes"
    __table_args__ = (
        CheckConstraint("usage_count >= 0", name="ck_invite_codes_usage_nonneg"),
        CheckConstraint("max_uses > 0", name="ck_invite_codes_max_uses_pos"),
        CheckConstraint("usage_count <= max_uses", name="ck_invite_codes_usage_le_max"),
        CheckConstraint(
            "status IN ('available', 'active', 'exhausted', 'invalid')",
            name="ck_invite_codes_status",
        ),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code = Column(String(MAX_CODE_LENGTH), unique=True, nullable=False, index=True)
    status = Column(String(20), nullable=False, server_default=CODE_AVAILABLE, index=True)
    usage_count = Column(Integer, nullable=False, server_default="0", default=0)
    max_uses = Column(Integer, nullable=False, server_default="6")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    last_claimed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    usages = relationship(
        "CodeUsage",
        back_populates="code",
        foreign_keys="CodeUsage.code_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def remaining_uses(self) -> int:
        return max(self.max_uses - self.usage_count, 0)

    def __repr__(self):
        return f"<InviteCode(id={self.id}, code={self.code!r}, status={self.status}, {self.usage_count}/{self.max_uses})>"
