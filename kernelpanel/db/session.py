from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from kernelpanel.core.config import get_settings

settings = get_settings()


def build_engine(database_url: str) -> Engine:
    kwargs = {"pool_pre_ping": True}
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, **kwargs)

    kwargs["connect_args"] = {"check_same_thread": False}
    if ":memory:" in database_url:
        kwargs["poolclass"] = StaticPool
    sqlite_engine = create_engine(database_url, **kwargs)

    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for code running outside a request (startup, GraphQL resolvers)."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
