import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from invitepool.core.database import Base, make_engine
from invitepool.main import app
from invitepool.models.invite_code import InviteCode
from invitepool.services.deps import get_db
from invitepool.services.seed import seed_admin
import invitepool.models  # noqa: F401

ADMIN_USERNAME = "root-admin"
ADMIN_PASSWORD = "s3cret-Pass"


@pytest.fixture
def engine(tmp_path):
    # File-backed so separate threads share one database
    eng = make_engine(f"sqlite:///{tmp_path / 'pool.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_code(db):
    """Insert a code directly, bypassing the engines, in any lifecycle state."""
    def _make(value, usage_count=0, max_uses=6, status=None):
        if status is None:
            if usage_count >= max_uses:
                status = "exhausted"
            elif usage_count > 0:
                status = "active"
            else:
                status = "available"
        row = InviteCode(code=value, usage_count=usage_count, max_uses=max_uses, status=status)
        db.add(row)
        db.commit()
        return row
    return _make


@pytest.fixture
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(client, db):
    seed_admin(db, ADMIN_USERNAME, ADMIN_PASSWORD)
    res = client.post("/api/admin/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert res.status_code == 200
    return {"Authorization": f"Bearer {res.json()['access_token']}"}
