import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import Column, DateTime, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..core.config import settings

Base = declarative_base()

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Naive UTC timestamp; the single clock for patient IDs and audit columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    created_at = Column(DateTime, nullable=False, default=utc_now)


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request, always closed."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(bind: Optional[Engine] = None, isolation_level: Optional[str] = None) -> Iterator[Session]:
    """
    Run a block in its own session and transaction, independent of any
    session the caller already holds.

    The session checks out a fresh connection, so the caller's transaction is
    neither joined nor affected; it commits when the block exits cleanly and
    rolls back otherwise. ``isolation_level`` is applied to that connection
    only (e.g. "SERIALIZABLE").
    """
    target = bind if bind is not None else engine
    if isolation_level:
        target = target.execution_options(isolation_level=isolation_level)
    session = Session(bind=target, autoflush=False)
    try:
        with session.begin():
            yield session
    finally:
        session.close()
