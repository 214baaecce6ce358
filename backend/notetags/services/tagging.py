"""
Tagging service: the operations the rest of the application calls.

Write-side operations (recording usage, reconciling, deleting a user's tags)
never raise, because saving or deleting an item must not depend on tag
bookkeeping. Read-side operations raise TagQueryError so the caller can show
a "try again" state instead of a misleading empty list.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError

from ..config import config
from .hashtags import extract_hashtags
from .items import ItemStore
from .models import Item, TagStatistics, TagSuggestion
from .reaper import OrphanReaper
from .suggestions import SuggestionIndex
from .tag_store import TagQueryError, TagStore

logger = logging.getLogger(__name__)


class TaggingService:
    def __init__(
        self,
        store: TagStore,
        items: ItemStore,
        *,
        suggestions: Optional[SuggestionIndex] = None,
        reaper: Optional[OrphanReaper] = None,
        timeout: Optional[float] = config.TAG_STORE_TIMEOUT_SECONDS,
    ):
        self.store = store
        self.items = items
        self.suggestions = suggestions or SuggestionIndex(store)
        self.reaper = reaper or OrphanReaper(store, items)
        self.timeout = timeout

    def _deadline(self, timeout: Optional[float]) -> Optional[float]:
        return timeout if timeout is not None else self.timeout

    def record_usage(
        self,
        user_id: str,
        note_text: Optional[str],
        *,
        timeout: Optional[float] = None,
    ) -> Set[str]:
        """Extract hashtags from a saved note and count one usage of each."""
        if not isinstance(note_text, str) or not note_text.strip():
            return set()
        try:
            tags = extract_hashtags(note_text)
            if not tags:
                return set()
            return self.store.record_usage(user_id, tags, timeout=self._deadline(timeout))
        except Exception:
            logger.exception("Failed to extract and store tags for user %s", user_id)
            return set()

    def suggest(
        self,
        user_id: str,
        prefix: Optional[str] = None,
        limit: Optional[int] = None,
        *,
        timeout: Optional[float] = None,
    ) -> List[TagSuggestion]:
        return self.suggestions.suggest(user_id, prefix, limit, timeout=self._deadline(timeout))

    def list_all(
        self,
        user_id: str,
        sort_by: str = "usage",
        *,
        timeout: Optional[float] = None,
    ) -> List[TagStatistics]:
        return self.suggestions.list_all(user_id, sort_by, timeout=self._deadline(timeout))

    def search_items_by_tags(
        self,
        user_id: str,
        tags: List[str],
        limit: int = 50,
        *,
        timeout: Optional[float] = None,
    ) -> List[Item]:
        try:
            return self.items.search_by_tags(user_id, tags, limit, timeout=self._deadline(timeout))
        except SQLAlchemyError as exc:
            logger.error("Failed to search items by tags for user %s: %s", user_id, exc)
            raise TagQueryError("Failed to search items. Please try again.") from exc

    def reconcile(self, user_id: str, *, timeout: Optional[float] = None) -> Set[str]:
        """Drop tags no surviving note mentions. Never raises."""
        try:
            return self.reaper.reconcile(user_id, timeout=self._deadline(timeout))
        except Exception:
            logger.exception("Failed to clean up orphaned tags for user %s", user_id)
            return set()

    def delete_user_tags(self, user_id: str, *, timeout: Optional[float] = None) -> int:
        """Remove all of a user's tags (user deletion cascade). Never raises."""
        try:
            return self.store.delete_user(user_id, timeout=self._deadline(timeout))
        except Exception:
            logger.exception("Failed to delete tags for user %s", user_id)
            return 0
