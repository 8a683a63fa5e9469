"""Global search history: recording search events and reading popular searches."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from ..schemas import PopularSearch, SearchHistoryEntry
from .exceptions import UpstreamQueryError
from .supabase import SupabaseClient

logger = logging.getLogger(__name__)

_SEARCH_TYPES = ("text", "architect", "prefecture")
_FALLBACK_POPULAR_TERMS = [
    PopularSearch(query="安藤忠雄", count=45),
    PopularSearch(query="美術館", count=38),
    PopularSearch(query="東京", count=32),
    PopularSearch(query="現代建築", count=28),
]


class SessionContext(Protocol):
    """Per-request session capability supplied by the caller."""

    @property
    def session_id(self) -> str:
        """Identifier stored alongside recorded searches."""

    def can_search(self, query: str, search_type: str) -> bool:
        """Return ``False`` when the search should not be recorded (duplicate or rate limited)."""


@dataclass
class HeaderSessionContext:
    """Session context built from request headers; duplicate suppression happens client side."""

    session_id: str = field(default_factory=lambda: f"anon-{uuid.uuid4().hex}")

    def can_search(self, query: str, search_type: str) -> bool:
        return bool(query.strip())


class SearchHistoryService:
    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def record(
        self,
        *,
        query: str,
        search_type: str,
        session: SessionContext,
        filters: Optional[Dict[str, Any]] = None,
        user_id: Optional[int] = None,
    ) -> bool:
        """Insert a search event into ``global_search_history`` unless the session vetoes it."""
        if not session.can_search(query, search_type):
            logger.info("Skipping duplicate search query=%r type=%s", query, search_type)
            return False

        try:
            await (
                self._client.table("global_search_history")
                .insert(
                    {
                        "query": query,
                        "search_type": search_type,
                        "user_id": user_id,
                        "user_session_id": session.session_id,
                        "filters": filters,
                    }
                )
                .execute()
            )
        except UpstreamQueryError as exc:
            logger.warning("Failed to record search query=%r: %s", query, exc)
            return False

        logger.info("Recorded search query=%r type=%s", query, search_type)
        return True

    async def popular(self, days: int = 7) -> List[SearchHistoryEntry]:
        try:
            result = await self._client.rpc("get_popular_searches", {"days": days}).execute()
        except UpstreamQueryError as exc:
            logger.warning("Failed to load popular searches days=%s: %s", days, exc)
            return []

        entries = []
        for item in result.data or []:
            search_type = item.get("search_type")
            if search_type not in _SEARCH_TYPES:
                search_type = "text"
            filters = None
            if search_type == "architect":
                filters = {"architects": [item.get("query")]}
            elif search_type == "prefecture":
                filters = {"prefectures": [item.get("query")]}
            entries.append(
                SearchHistoryEntry(
                    query=item.get("query") or "",
                    searched_at=item.get("last_searched"),
                    count=item.get("total_searches") or 0,
                    type=search_type,
                    filters=filters,
                )
            )
        return entries

    async def popular_terms(self) -> List[PopularSearch]:
        """Most frequent search terms from ``search_logs`` with a fixed list when unavailable."""
        try:
            result = await (
                self._client.table("search_logs")
                .select("query, count")
                .order("count", desc=True)
                .limit(10)
                .execute()
            )
        except UpstreamQueryError as exc:
            logger.warning("search_logs unavailable, using fixed popular searches: %s", exc)
            return list(_FALLBACK_POPULAR_TERMS)
        return [PopularSearch(query=row["query"], count=row.get("count") or 0) for row in result.data or []]


__all__ = ["HeaderSessionContext", "SearchHistoryService", "SessionContext"]
