# invitepool/models/__init__.py
from invitepool.core.database import Base  # re-export for convenience

# Import all model modules so their tables attach to Base.metadata
from invitepool.models.admin import Admin
from invitepool.models.invite_code import InviteCode
from invitepool.models.code_usage import CodeUsage

__all__ = [
    "Base",
    "Admin",
    "InviteCode",
    "CodeUsage",
]
