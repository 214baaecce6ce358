"""
SQLAlchemy-backed store for the per-user hashtag vocabulary.

Every tag observation is a single INSERT ... ON CONFLICT DO UPDATE with an
in-database increment, so concurrent saves of the same (user, tag) never
lose an update. Each tag is its own transaction: a failure (or an expired
deadline) on one tag leaves the others recorded.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set
from uuid import uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from ..database import Hashtag as HashtagORM
from ..database import SessionScoped, open_database, utcnow
from .hashtags import is_canonical_tag, normalize_tag
from .models import TagRecord

logger = logging.getLogger(__name__)


class TagQueryError(RuntimeError):
    """A tag read failed; the caller may retry."""

    retryable = True


def require_user_id(user_id: str) -> str:
    """Reject blank user ids so no query can run without a tenant filter."""
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValueError("user_id is required")
    return user_id


def _record_to_dto(row: HashtagORM) -> TagRecord:
    return TagRecord(
        user_id=row.user_id,
        tag=row.tag,
        first_used=row.first_used,
        last_used=row.last_used,
        usage_count=row.usage_count,
    )


class TagStore(SessionScoped):
    """
    Durable per-user tag vocabulary with atomic usage counters.
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        database_url: Optional[str] = None,
        *,
        engine: Optional[Engine] = None,
        session_factory: Optional[sessionmaker] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if engine is None or session_factory is None:
            engine, session_factory = open_database(db_path, database_url)
        super().__init__(engine, session_factory)
        self.clock = clock

    def record_usage(
        self,
        user_id: str,
        tags: Iterable[str],
        *,
        timeout: Optional[float] = None,
    ) -> Set[str]:
        """
        Count one usage event for each distinct tag.

        Args:
            user_id: Owner of the vocabulary
            tags: Tag spellings; normalized here, non-canonical ones skipped
            timeout: Per-tag statement deadline in seconds

        Returns:
            The canonical tags that were actually recorded. Never raises.
        """
        try:
            require_user_id(user_id)
        except ValueError:
            logger.warning("record_usage called without a user_id; nothing recorded")
            return set()

        canonical: List[str] = []
        for raw in tags or ():
            tag = normalize_tag(raw)
            if not is_canonical_tag(tag):
                logger.debug("Skipping non-canonical tag %r for user %s", raw, user_id)
                continue
            if tag not in canonical:
                canonical.append(tag)

        recorded: Set[str] = set()
        for tag in canonical:
            try:
                with self._session_scope(timeout) as session:
                    session.execute(self._upsert_statement(user_id, tag, self.clock()))
                recorded.add(tag)
            except Exception:
                logger.exception("Failed to record tag %r for user %s", tag, user_id)

        return recorded

    def _upsert_statement(self, user_id: str, tag: str, now: datetime):
        if self.dialect == "postgresql":
            stmt = postgresql.insert(HashtagORM)
            later = func.greatest
        else:
            stmt = sqlite.insert(HashtagORM)
            later = func.max

        stmt = stmt.values(
            id=str(uuid4()),
            user_id=user_id,
            tag=tag,
            first_used=now,
            last_used=now,
            usage_count=1,
        )
        # last_used only moves forward even if clocks disagree between writers.
        return stmt.on_conflict_do_update(
            index_elements=[HashtagORM.user_id, HashtagORM.tag],
            set_={
                "usage_count": HashtagORM.usage_count + 1,
                "last_used": later(HashtagORM.last_used, stmt.excluded.last_used),
            },
        )

    def get(self, user_id: str, tag: str) -> Optional[TagRecord]:
        require_user_id(user_id)
        with self._session_scope() as session:
            row = session.execute(
                select(HashtagORM).where(
                    HashtagORM.user_id == user_id,
                    HashtagORM.tag == normalize_tag(tag),
                )
            ).scalar_one_or_none()
            return _record_to_dto(row) if row else None

    def list_tags(self, user_id: str, *, timeout: Optional[float] = None) -> List[str]:
        require_user_id(user_id)
        with self._session_scope(timeout) as session:
            rows = session.execute(
                select(HashtagORM.tag)
                .where(HashtagORM.user_id == user_id)
                .order_by(HashtagORM.tag)
            ).scalars().all()
        return list(rows)

    def delete_tags(
        self,
        user_id: str,
        tags: Iterable[str],
        *,
        timeout: Optional[float] = None,
    ) -> int:
        require_user_id(user_id)
        tags = sorted({normalize_tag(t) for t in tags or ()} - {""})
        if not tags:
            return 0
        with self._session_scope(timeout) as session:
            result = session.execute(
                delete(HashtagORM).where(
                    HashtagORM.user_id == user_id,
                    HashtagORM.tag.in_(tags),
                )
            )
            return result.rowcount or 0

    def delete_user(self, user_id: str, *, timeout: Optional[float] = None) -> int:
        """Remove every tag record owned by ``user_id`` (user deletion cascade)."""
        require_user_id(user_id)
        with self._session_scope(timeout) as session:
            result = session.execute(delete(HashtagORM).where(HashtagORM.user_id == user_id))
            return result.rowcount or 0

    def close(self) -> None:
        self.engine.dispose()
