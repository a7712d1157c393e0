"""Initial invite pool schema

Revision ID: 5c1e2a7d9b40
Revises:
Create Date: 2026-10-19 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e2a7d9b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ----- Admins -----
    op.create_table(
        "admins",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_admins_username", "admins", ["username"], unique=True)

    # ----- Invite codes -----
    op.create_table(
        "invite_codes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="available"),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_uses", sa.Integer(), nullable=False, server_default="6"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("usage_count >= 0", name="ck_invite_codes_usage_nonneg"),
        sa.CheckConstraint("max_uses > 0", name="ck_invite_codes_max_uses_pos"),
        sa.CheckConstraint("usage_count <= max_uses", name="ck_invite_codes_usage_le_max"),
        sa.CheckConstraint(
            "status IN ('available', 'active', 'exhausted', 'invalid')",
            name="ck_invite_codes_status",
        ),
    )
    op.create_index("ix_invite_codes_code", "invite_codes", ["code"], unique=True)
    op.create_index("ix_invite_codes_status", "invite_codes", ["status"])
    op.create_index("ix_invite_codes_created_at", "invite_codes", ["created_at"])

    # ----- Code usages -----
    op.create_table(
        "code_usages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code_id", sa.Integer(), sa.ForeignKey("invite_codes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ip_hash", sa.String(length=64), nullable=False),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="claimed"),
        sa.Column("feedback", sa.String(length=20), nullable=True),
        sa.Column("feedback_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "contributed_code_id",
            sa.Integer(),
            sa.ForeignKey("invite_codes.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("note", sa.Text(), nullable=True),
        sa.CheckConstraint("status IN ('claimed', 'confirmed', 'used')", name="ck_code_usages_status"),
        sa.CheckConstraint(
            "feedback IS NULL OR feedback IN ('working', 'not_working')",
            name="ck_code_usages_feedback",
        ),
    )
    op.create_index("ix_code_usages_code_id", "code_usages", ["code_id"])
    op.create_index("ix_code_usages_ip_hash", "code_usages", ["ip_hash"])
    op.create_index("ix_code_usages_claimed_at", "code_usages", ["claimed_at"])


def downgrade() -> None:
    op.drop_index("ix_code_usages_claimed_at", table_name="code_usages")
    op.drop_index("ix_code_usages_ip_hash", table_name="code_usages")
    op.drop_index("ix_code_usages_code_id", table_name="code_usages")
    op.drop_table("code_usages")

    op.drop_index("ix_invite_codes_created_at", table_name="invite_codes")
    op.drop_index("ix_invite_codes_status", table_name="invite_codes")
    op.drop_index("ix_invite_codes_code", table_name="invite_codes")
    op.drop_table("invite_codes")

    op.drop_index("ix_admins_username", table_name="admins")
    op.drop_table("admins")
