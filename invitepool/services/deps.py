import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session

from invitepool.core.database import SessionLocal
from invitepool.core.exceptions import Unauthorized
from invitepool.core.security import decode_admin_token, hash_ip
from invitepool.models.admin import Admin

logger = logging.getLogger("invitepool.deps")
logger.setLevel(logging.INFO)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CallerIdentity:
    ip_hash: str
    user_agent: Optional[str]


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_caller_identity(request: Request) -> CallerIdentity:
    # Prefer the first proxy hop when behind a load balancer
    ip_address = request.client.host if request.client else "unknown"
    if "x-forwarded-for" in request.headers:
        ip_address = request.headers["x-forwarded-for"].split(",")[0].strip() or ip_address
    return CallerIdentity(
        ip_hash=hash_ip(ip_address),
        user_agent=request.headers.get("user-agent"),
    )


def _resolve_admin(token: Optional[HTTPAuthorizationCredentials], db: Session) -> Optional[Admin]:
    if token is None:
        return None
    try:
        admin_id = decode_admin_token(token.credentials)
    except JWTError as e:
        logger.info(f"Rejected admin token: {e}")
        return None
    return db.get(Admin, admin_id)


def get_current_admin(
    token: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Admin:
    admin = _resolve_admin(token, db)
    if admin is None:
        raise Unauthorized()
    return admin


def get_optional_admin(
    token: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[Admin]:
    return _resolve_admin(token, db)
