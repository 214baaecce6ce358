"""
Read path over the tag store: autocomplete suggestions and the per-user
statistics listing.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import asc, desc, select
from sqlalchemy.exc import SQLAlchemyError

from ..config import config
from ..database import Hashtag as HashtagORM
from .hashtags import normalize_tag
from .models import TagStatistics, TagSuggestion
from .tag_store import TagQueryError, TagStore, require_user_id

logger = logging.getLogger(__name__)

# Ties are broken by tag so that paging and tests see a stable order.
SORT_ORDERS = {
    "usage": (desc(HashtagORM.usage_count), asc(HashtagORM.tag)),
    "alphabetical": (asc(HashtagORM.tag),),
    "recent": (desc(HashtagORM.last_used), asc(HashtagORM.tag)),
}


class SuggestionIndex:
    """Prefix-filtered, recency-ranked queries over one user's tags."""

    def __init__(
        self,
        store: TagStore,
        *,
        default_limit: int = config.TAG_SUGGESTION_LIMIT,
        max_limit: int = config.TAG_SUGGESTION_MAX_LIMIT,
        inactive_after: timedelta = timedelta(days=config.TAG_INACTIVE_DAYS),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.inactive_after = inactive_after
        self.clock = clock or store.clock

    def suggest(
        self,
        user_id: str,
        prefix: Optional[str] = None,
        limit: Optional[int] = None,
        *,
        timeout: Optional[float] = None,
    ) -> List[TagSuggestion]:
        """
        Most recently used tags for autocomplete.

        Args:
            user_id: Owner of the vocabulary
            prefix: Optional partial tag; compared in canonical form
            limit: Max results (default 10, clamped to the configured max)
            timeout: Statement deadline in seconds

        Raises:
            TagQueryError: the store could not be read
        """
        require_user_id(user_id)
        limit = self._clamp_limit(limit)
        needle = normalize_tag(prefix) if prefix else ""

        query = select(
            HashtagORM.tag, HashtagORM.usage_count, HashtagORM.last_used
        ).where(HashtagORM.user_id == user_id)
        if needle:
            query = query.where(HashtagORM.tag.startswith(needle, autoescape=True))
        query = query.order_by(*SORT_ORDERS["recent"]).limit(limit)

        try:
            with self.store._session_scope(timeout) as session:
                rows = session.execute(query).all()
        except SQLAlchemyError as exc:
            logger.error("Failed to get tag suggestions for user %s: %s", user_id, exc)
            raise TagQueryError("Failed to retrieve tag suggestions. Please try again.") from exc

        return [
            TagSuggestion(tag=tag, usage_count=usage_count, last_used=last_used)
            for tag, usage_count, last_used in rows
        ]

    def list_all(
        self,
        user_id: str,
        sort_by: str = "usage",
        *,
        timeout: Optional[float] = None,
    ) -> List[TagStatistics]:
        """
        Every tag of the user with counters and an inactivity flag.

        sort_by is one of "usage", "alphabetical" or "recent"; anything else
        sorts by usage.
        """
        require_user_id(user_id)
        order = SORT_ORDERS.get(sort_by, SORT_ORDERS["usage"])

        query = (
            select(
                HashtagORM.tag,
                HashtagORM.usage_count,
                HashtagORM.first_used,
                HashtagORM.last_used,
            )
            .where(HashtagORM.user_id == user_id)
            .order_by(*order)
        )

        try:
            with self.store._session_scope(timeout) as session:
                rows = session.execute(query).all()
        except SQLAlchemyError as exc:
            logger.error("Failed to list tags for user %s: %s", user_id, exc)
            raise TagQueryError("Failed to retrieve tags. Please try again.") from exc

        cutoff = self.clock() - self.inactive_after
        return [
            TagStatistics(
                tag=tag,
                usage_count=usage_count,
                first_used=first_used,
                last_used=last_used,
                is_inactive=last_used < cutoff,
            )
            for tag, usage_count, first_used, last_used in rows
        ]

    def _clamp_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.default_limit
        return max(1, min(int(limit), self.max_limit))
