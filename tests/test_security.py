import pytest
from jose import JWTError, jwt

from invitepool.core.config import JWT_SECRET, JWT_ALGORITHM
from invitepool.core.security import create_admin_token, decode_admin_token, hash_ip


def test_hash_ip_is_stable_and_opaque():
    assert hash_ip("10.0.0.1") == hash_ip("10.0.0.1")
    assert hash_ip("10.0.0.1") != hash_ip("10.0.0.2")
    assert len(hash_ip("10.0.0.1")) == 64


def test_admin_token_round_trip():
    token = create_admin_token(7, "root")
    assert decode_admin_token(token) == 7


def test_expired_admin_token_rejected():
    token = create_admin_token(7, "root", expires_minutes=-1)
    with pytest.raises(JWTError):
        decode_admin_token(token)


def test_non_admin_token_rejected():
    token = jwt.encode({"sub": "7"}, JWT_SECRET, algorithm=JWT_ALGORITHM)
    with pytest.raises(JWTError):
        decode_admin_token(token)
