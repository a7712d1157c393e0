# invitepool/core/security.py
from datetime import datetime, timedelta, timezone
from hashlib import sha256

from jose import jwt, JWTError
from passlib.context import CryptContext

from invitepool.core.config import (
    JWT_SECRET,
    JWT_ALGORITHM,
    ADMIN_TOKEN_EXPIRE_MINUTES,
    IP_HASH_SALT,
)

pwd_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")

ADMIN_TOKEN_KIND = "admin"


def hash_password(p: str) -> str:
    return pwd_ctx.hash(p)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_ctx.verify(plain, hashed)


def create_admin_token(admin_id: int, username: str, expires_minutes: int = ADMIN_TOKEN_EXPIRE_MINUTES) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode = {"sub": str(admin_id), "username": username, "kind": ADMIN_TOKEN_KIND, "exp": expire}
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_admin_token(token: str) -> int:
    """
    Decode and validate an admin JWT, returning the admin id.
    Raises JWTError if the token is invalid, expired or not an admin token.
    """
    payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    if payload.get("kind") != ADMIN_TOKEN_KIND or payload.get("sub") is None:
        raise JWTError("Not an admin token")
    try:
        return int(payload["sub"])
    except ValueError:
        raise JWTError("Malformed subject")


def hash_ip(ip: str) -> str:
    """
    One-way fingerprint of a caller address.
    Not unique across NATs or shared networks; only good for best-effort attribution.
    """
    return sha256(f"{IP_HASH_SALT}:{ip}".encode("utf-8")).hexdigest()
