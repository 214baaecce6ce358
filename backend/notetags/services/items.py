"""
SQLAlchemy-backed storage for items and their free-text notes.

The tag engine treats this as the source of truth for which items carry a
tag: search-by-tag and orphan reconciliation both read note text from here.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, List, Optional
from uuid import uuid4

from sqlalchemy import desc, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from ..database import Item as ItemORM
from ..database import SessionScoped, open_database, utcnow
from .hashtags import format_tag, normalize_tag
from .models import Item as ItemDTO
from .tag_store import require_user_id


def _item_to_dto(item: ItemORM) -> ItemDTO:
    return ItemDTO(
        id=item.id,
        user_id=item.user_id,
        title=item.title,
        notes=item.notes or "",
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ItemStore(SessionScoped):
    """
    User-scoped CRUD for items plus the note-text reads the tag engine needs.
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

    def create_item(self, user_id: str, title: str, notes: str = "") -> ItemDTO:
        require_user_id(user_id)
        now = self.clock()
        db_item = ItemORM(
            id=str(uuid4()),
            user_id=user_id,
            title=title,
            notes=notes or "",
            created_at=now,
            updated_at=now,
        )
        with self._session_scope() as session:
            session.add(db_item)
        return _item_to_dto(db_item)

    def get_item(self, user_id: str, item_id: str) -> Optional[ItemDTO]:
        require_user_id(user_id)
        with self._session_scope() as session:
            item = session.execute(
                select(ItemORM).where(ItemORM.id == item_id, ItemORM.user_id == user_id)
            ).scalar_one_or_none()
            return _item_to_dto(item) if item else None

    def list_items(self, user_id: str, limit: int = 50, offset: int = 0) -> List[ItemDTO]:
        require_user_id(user_id)
        with self._session_scope() as session:
            items = session.execute(
                select(ItemORM)
                .where(ItemORM.user_id == user_id)
                .order_by(desc(ItemORM.updated_at), ItemORM.id)
                .offset(max(offset, 0))
                .limit(max(limit, 1))
            ).scalars().all()
            return [_item_to_dto(item) for item in items]

    def update_notes(self, user_id: str, item_id: str, notes: str) -> Optional[ItemDTO]:
        """Replace an item's notes. Returns None when the item is not the user's."""
        require_user_id(user_id)
        with self._session_scope() as session:
            item = session.execute(
                select(ItemORM).where(ItemORM.id == item_id, ItemORM.user_id == user_id)
            ).scalar_one_or_none()
            if not item:
                return None
            item.notes = notes or ""
            item.updated_at = self.clock()
            session.add(item)
            session.flush()
            return _item_to_dto(item)

    def delete_item(self, user_id: str, item_id: str) -> bool:
        require_user_id(user_id)
        with self._session_scope() as session:
            result = (
                session.query(ItemORM)
                .filter(ItemORM.id == item_id, ItemORM.user_id == user_id)
                .delete(synchronize_session=False)
            )
            return result > 0

    def iter_note_texts(self, user_id: str, *, timeout: Optional[float] = None) -> Iterator[str]:
        """Yield the non-empty note text of every surviving item of the user."""
        require_user_id(user_id)
        with self._session_scope(timeout) as session:
            rows = session.execute(
                select(ItemORM.notes).where(ItemORM.user_id == user_id, ItemORM.notes != "")
            ).scalars().all()
        for notes in rows:
            if notes:
                yield notes

    def search_by_tags(
        self,
        user_id: str,
        tags: List[str],
        limit: int = 50,
        *,
        timeout: Optional[float] = None,
    ) -> List[ItemDTO]:
        """
        Items whose notes mention any of ``tags`` (OR-matched, case-insensitive).

        Matching is a substring test on "#tag" against the raw note text.
        """
        require_user_id(user_id)
        needles = []
        for tag in tags or []:
            canonical = normalize_tag(tag)
            if canonical and canonical not in needles:
                needles.append(canonical)
        if not needles:
            return []

        clauses = [
            func.lower(ItemORM.notes).like(f"%{_escape_like(format_tag(tag))}%", escape="\\")
            for tag in needles
        ]
        with self._session_scope(timeout) as session:
            items = session.execute(
                select(ItemORM)
                .where(ItemORM.user_id == user_id, or_(*clauses))
                .order_by(desc(ItemORM.updated_at), ItemORM.id)
                .limit(max(limit, 1))
            ).scalars().all()
            return [_item_to_dto(item) for item in items]
