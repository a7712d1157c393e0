# invitepool/core/config.py
import os


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./invite_pool.db")

JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ADMIN_TOKEN_EXPIRE_MINUTES = int(os.getenv("ADMIN_TOKEN_EXPIRE_MINUTES", "1440"))

# Salt mixed into caller IPs before hashing; rotating it breaks contribution attribution
IP_HASH_SALT = os.getenv("IP_HASH_SALT", "invite-pool-ip-salt")

DEFAULT_MAX_USES = int(os.getenv("DEFAULT_MAX_USES", "6"))
CLAIM_MAX_ATTEMPTS = int(os.getenv("CLAIM_MAX_ATTEMPTS", "5"))

SEED_ON_STARTUP = _as_bool(os.getenv("SEED_ON_STARTUP", "true"))
SEED_ADMIN_USERNAME = os.getenv("SEED_ADMIN_USERNAME", "admin")
SEED_ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "admin123")

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if o.strip()
]
