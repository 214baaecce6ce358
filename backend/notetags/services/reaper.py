"""
Garbage collection for tags that no surviving note mentions any more.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Protocol, Set

from .hashtags import format_tag
from .tag_store import TagStore, require_user_id

logger = logging.getLogger(__name__)


class NoteSource(Protocol):
    def iter_note_texts(self, user_id: str, *, timeout: Optional[float] = None) -> Iterable[str]:
        ...


class OrphanReaper:
    """
    Reconciles a user's tag vocabulary against their surviving notes.

    Runs after item deletion. Cost is O(tags x notes) for one user, which
    stays small because vocabularies are per user.
    """

    def __init__(self, store: TagStore, notes: NoteSource):
        self.store = store
        self.notes = notes

    def reconcile(self, user_id: str, *, timeout: Optional[float] = None) -> Set[str]:
        """
        Delete the user's tags that no surviving note contains.

        A tag survives when some note contains "#tag" as a case-insensitive
        substring.

        Returns:
            The removed tags. Store errors propagate.
        """
        require_user_id(user_id)

        tags = self.store.list_tags(user_id, timeout=timeout)
        if not tags:
            return set()

        texts = [text.lower() for text in self.notes.iter_note_texts(user_id, timeout=timeout)]
        orphaned = {
            tag for tag in tags
            if not any(format_tag(tag) in text for text in texts)
        }
        if not orphaned:
            return set()

        removed = self.store.delete_tags(user_id, orphaned, timeout=timeout)
        logger.info("Removed %d orphaned tag(s) for user %s", removed, user_id)
        return orphaned
