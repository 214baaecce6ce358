"""
Central SQLAlchemy models and session utilities.

These definitions power both Alembic migrations and runtime ORM queries.
"""

import logging
import time
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Index,
    Integer,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.sql import func

from .config import config

logger = logging.getLogger(__name__)

Base = declarative_base()

_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None

# Monotonic clock used for statement deadlines.
deadline_clock = time.monotonic

# SQLite VM instructions between deadline checks.
DEADLINE_CHECK_OPS = 100

# Canonical tags are at most this long (column width of hashtags.tag).
TAG_MAX_LENGTH = 50


class Hashtag(Base):
    """
    Per-user hashtag vocabulary with usage and recency counters.

    One row per (user_id, tag); rows are upserted, never duplicated.
    """
    __tablename__ = "hashtags"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False)
    tag = Column(String(TAG_MAX_LENGTH), nullable=False)

    first_used = Column(TIMESTAMP, nullable=False, server_default=func.now())
    last_used = Column(TIMESTAMP, nullable=False, server_default=func.now())
    usage_count = Column(Integer, nullable=False, default=1, server_default="1")

    __table_args__ = (
        UniqueConstraint("user_id", "tag", name="uq_hashtags_user_tag"),
        CheckConstraint("usage_count >= 1", name="ck_hashtags_usage_count_positive"),
        CheckConstraint("last_used >= first_used", name="ck_hashtags_last_used_after_first"),
        Index("idx_hashtags_user_id", "user_id"),
        Index("idx_hashtags_user_last_used", "user_id", "last_used"),
    )


class Item(Base):
    """
    Items carrying free-text notes, with user isolation.

    The tag engine reads note text from here for search-by-tag and for
    orphan reconciliation.
    """
    __tablename__ = "items"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False)
    title = Column(Text, nullable=False)
    notes = Column(Text, nullable=False, default="", server_default="")

    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_items_user_id", "user_id"),
        Index("idx_items_user_updated", "user_id", "updated_at"),
    )


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation stored in TIMESTAMP columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def get_database_url() -> str:
    """
    Get database URL from environment, defaulting to SQLite.

    Returns:
        Database connection string
    """
    if config.DATABASE_URL:
        # PostgreSQL
        return config.DATABASE_URL

    if config.FLASK_ENV == "production":
        # In production, we must have DATABASE_URL. Do not fallback to SQLite.
        raise ValueError("DATABASE_URL environment variable is not set in production environment!")

    # SQLite (development)
    logger.warning("Using SQLite database at %s", config.SQLITE_PATH)
    return f"sqlite:///{config.SQLITE_PATH}"


def init_engine(database_url: Optional[str] = None) -> Engine:
    """Create the process-wide engine and session factory (idempotent)."""
    global _engine, _SessionFactory
    if _engine is None:
        _engine = create_engine_for_url(database_url)
        _SessionFactory = make_session_factory(_engine)
    return _engine


def dispose_engine() -> None:
    """Release the process-wide pool; the next init_engine() builds a fresh one."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


def get_engine() -> Engine:
    """Get (and lazily create) the shared SQLAlchemy engine."""
    return init_engine()


def get_session_factory() -> sessionmaker:
    """Return the configured session factory."""
    init_engine()
    return _SessionFactory


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        future=True,
    )


def create_engine_for_url(database_url: Optional[str] = None) -> Engine:
    """Build a SQLAlchemy engine for the given URL (or default environment)."""
    url = database_url or get_database_url()
    connect_args = {}
    if url.startswith("sqlite"):
        # Writers wait on the database lock instead of failing immediately.
        connect_args = {"check_same_thread": False, "timeout": 30}

    engine = create_engine(
        url,
        future=True,
        echo=False,
        pool_pre_ping=True,
        connect_args=connect_args,
    )

    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _set_sqlite_pragmas)

    return engine


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    """
    Apply SQLite pragmas for better consistency (WAL, foreign keys).
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def open_database(
    db_path: Optional[Path] = None,
    database_url: Optional[str] = None,
) -> tuple[Engine, sessionmaker]:
    """
    Resolve an engine + session factory for a store.

    An explicit URL or SQLite path gets its own engine (tests); otherwise the
    process-wide pool is shared. SQLite schemas are created on first use,
    PostgreSQL schemas come from Alembic.
    """
    if database_url:
        engine = create_engine_for_url(database_url)
        factory = make_session_factory(engine)
    elif db_path:
        resolved = Path(db_path).resolve()
        engine = create_engine_for_url(f"sqlite:///{resolved}")
        factory = make_session_factory(engine)
    else:
        engine, factory = get_engine(), get_session_factory()

    if engine.dialect.name == "sqlite":
        Base.metadata.create_all(bind=engine)

    return engine, factory


class SessionScoped:
    """Shared session plumbing for the SQLAlchemy-backed stores."""

    def __init__(self, engine: Engine, session_factory: sessionmaker):
        self.engine = engine
        self.session_factory = session_factory
        self.dialect = engine.dialect.name

    @contextmanager
    def _session_scope(self, timeout: Optional[float] = None) -> Generator[Session, None, None]:
        session = self.session_factory()
        try:
            with statement_deadline(session, timeout):
                yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


@contextmanager
def statement_deadline(session: Session, timeout: Optional[float]) -> Generator[None, None, None]:
    """
    Abort statements issued inside the block once ``timeout`` seconds elapse.

    PostgreSQL gets a transaction-local ``statement_timeout``; SQLite gets a
    progress handler that interrupts the running statement. Either way the
    surrounding transaction is rolled back by the session scope.
    """
    if not timeout:
        yield
        return

    connection = session.connection()
    dialect = connection.dialect.name

    if dialect == "postgresql":
        connection.exec_driver_sql(f"SET LOCAL statement_timeout = {max(1, int(timeout * 1000))}")
        yield
        return

    if dialect == "sqlite":
        expires_at = deadline_clock() + timeout
        raw = connection.connection.driver_connection
        # The progress handler never runs while waiting on a lock, so cap the wait too.
        (busy_ms,) = raw.execute("PRAGMA busy_timeout").fetchone()
        raw.execute(f"PRAGMA busy_timeout = {max(1, int(timeout * 1000))}")
        raw.set_progress_handler(lambda: int(deadline_clock() > expires_at), DEADLINE_CHECK_OPS)
        try:
            yield
        finally:
            raw.set_progress_handler(None, 0)
            raw.execute(f"PRAGMA busy_timeout = {int(busy_ms)}")
        return

    yield
