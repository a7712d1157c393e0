# invitepool/core/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from invitepool.core.config import DATABASE_URL

Base = declarative_base()


def make_engine(url: str) -> Engine:
    """
    Build an engine for the given URL.
    SQLite needs cross-thread connections (FastAPI threadpool), a busy timeout
    so concurrent writers wait instead of failing, and foreign keys switched on
    for the code -> usage cascade.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    eng = create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})

    @event.listens_for(eng, "connect")
    def _sqlite_pragmas(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    return eng


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = engine) -> None:
    # Import models so their tables attach to Base.metadata
    import invitepool.models  # noqa: F401
    Base.metadata.create_all(bind=bind)
