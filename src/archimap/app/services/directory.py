"""Public building directory operations composed from the search and normalization services."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends

from ..schemas import (
    Architect,
    ArchitectWebsite,
    ArchitectWorks,
    Building,
    BuildingList,
    CurrentLocation,
    HealthStatus,
    MigrationStatus,
    PopularSearch,
    SearchFilters,
    SearchHistoryEntry,
)
from ..schemas.search import Language
from ..settings import AppSettings, get_app_settings
from .architect_catalog import ArchitectCatalog
from .architects import ArchitectResolver, SchemaGeneration, get_architect_resolver
from .exceptions import (
    ArchitectNotFoundError,
    BuildingNotFoundError,
    DirectoryServiceError,
    InvalidGeometryError,
    RecordNormalizationError,
    UpstreamQueryError,
)
from .normalizers import BuildingNormalizer, RawJoinRow, ViewRow
from .search import BuildingSearchQueries, SearchOrchestrator
from .search_history import SearchHistoryService, SessionContext
from .supabase import SupabaseClient, condition, get_supabase_client, ilike_pattern

logger = logging.getLogger(__name__)

BUILDING_COLUMNS = """
    *,
    building_architects(
        architect_id,
        architect_order
    )
"""

_SUGGESTION_LIMIT = 10


class BuildingDirectory:
    """Facade over buildings, architects and search for the HTTP layer."""

    def __init__(
        self,
        *,
        client: SupabaseClient,
        normalizer: BuildingNormalizer,
        orchestrator: SearchOrchestrator,
        architects: ArchitectCatalog,
        history: SearchHistoryService,
        buildings_table: str,
    ) -> None:
        self._client = client
        self._normalizer = normalizer
        self._orchestrator = orchestrator
        self._architects = architects
        self._history = history
        self._buildings_table = buildings_table

    async def list_buildings(self, page: int = 1, limit: int = 10) -> BuildingList:
        """Newest buildings with coordinates; falls back to the search cascade on failure."""
        start = (max(page, 1) - 1) * limit
        try:
            result = await (
                self._client.table(self._buildings_table)
                .select(BUILDING_COLUMNS, count="exact")
                .not_("lat", "is", None)
                .not_("lng", "is", None)
                .order("building_id", desc=True)
                .range(start, start + limit - 1)
                .execute()
            )
        except UpstreamQueryError as exc:
            logger.warning("Building list query failed, using search fallback page=%s: %s", page, exc)
            return await self._orchestrator.search(SearchFilters(), page, limit)

        rows = result.data or []
        buildings = await self._normalizer.normalize_many(RawJoinRow(row) for row in rows)
        logger.info("Listed %s buildings page=%s total=%s", len(buildings), page, result.count)
        return BuildingList(buildings=buildings, total=result.count or 0)

    async def get_building_by_id(self, building_id: int) -> Building:
        return await self._get_building("building_id", building_id)

    async def get_building_by_slug(self, slug: str) -> Building:
        return await self._get_building("slug", slug)

    async def _get_building(self, column: str, value: Any) -> Building:
        # slugs are not unique in legacy data; the newest match wins
        try:
            result = await (
                self._client.table(self._buildings_table)
                .select(BUILDING_COLUMNS)
                .eq(column, value)
                .order("building_id", desc=True)
                .limit(1)
                .execute()
            )
        except UpstreamQueryError as exc:
            if exc.is_not_found:
                raise BuildingNotFoundError(f"Building {column}={value} not found") from exc
            logger.exception("Building lookup failed %s=%r", column, value)
            raise

        rows = result.data or []
        if not rows:
            raise BuildingNotFoundError(f"Building {column}={value} not found")

        try:
            return await self._normalizer.normalize(RawJoinRow(rows[0]))
        except InvalidGeometryError as exc:
            logger.warning("Building %s=%r has no usable location: %s", column, value, exc)
            raise BuildingNotFoundError(f"Building {column}={value} has no valid location") from exc
        except RecordNormalizationError as exc:
            logger.error("Building %s=%r could not be normalized: %s", column, value, exc)
            raise DirectoryServiceError(str(exc), status_code=500) from exc

    async def search_buildings(
        self,
        filters: SearchFilters,
        page: int = 1,
        limit: int = 10,
        language: Language = "ja",
    ) -> BuildingList:
        return await self._orchestrator.search(filters, page, limit, language)

    async def get_nearby_buildings(self, lat: float, lng: float, radius: float) -> List[Building]:
        try:
            result = await self._client.rpc(
                "nearby_buildings",
                {"lat": lat, "lng": lng, "radius_km": radius},
            ).execute()
        except UpstreamQueryError as exc:
            logger.warning("nearby_buildings RPC failed, searching instead lat=%s lng=%s: %s", lat, lng, exc)
            filters = SearchFilters(current_location=CurrentLocation(lat=lat, lng=lng), radius=radius)
            fallback = await self._orchestrator.search(filters)
            return fallback.buildings

        return await self._normalizer.normalize_many(
            ViewRow(row, require_coordinates=True) for row in result.data or []
        )

    async def like_building(self, building_id: int) -> int:
        return await self._increment("increment_building_likes", {"building_id": building_id})

    async def like_photo(self, photo_id: int) -> int:
        return await self._increment("increment_photo_likes", {"photo_id": photo_id})

    async def _increment(self, function: str, arguments: Dict[str, int]) -> int:
        try:
            result = await self._client.rpc(function, arguments).execute()
        except UpstreamQueryError as exc:
            logger.exception("Like increment failed function=%s arguments=%s", function, arguments)
            raise DirectoryServiceError(exc.detail, status_code=500) from exc
        try:
            return int(result.data)
        except (TypeError, ValueError) as exc:
            raise DirectoryServiceError(f"{function} returned an unexpected payload", status_code=500) from exc

    async def get_search_suggestions(self, query: str) -> List[str]:
        term = query.strip()
        if not term:
            return []
        try:
            result = await (
                self._client.table(self._buildings_table)
                .select("title, titleEn")
                .or_([condition("title", "ilike", ilike_pattern(term)), condition("titleEn", "ilike", ilike_pattern(term))])
                .limit(_SUGGESTION_LIMIT)
                .execute()
            )
        except UpstreamQueryError as exc:
            logger.warning("Suggestion query failed query=%r: %s", term, exc)
            return []

        needle = term.lower()
        suggestions: List[str] = []
        for row in result.data or []:
            for candidate in (row.get("title"), row.get("titleEn")):
                if candidate and needle in candidate.lower() and candidate not in suggestions:
                    suggestions.append(candidate)
        return suggestions

    async def list_architects(self) -> List[Architect]:
        return await self._architects.list_architects()

    async def get_architect(self, architect_id: int) -> Architect:
        architect = await self._architects.get_architect(architect_id)
        if architect is None:
            raise ArchitectNotFoundError(f"Architect {architect_id} not found")
        return architect

    async def get_architect_by_slug(self, slug: str) -> Architect:
        architect = await self._architects.get_architect_by_slug(slug)
        if architect is None:
            raise ArchitectNotFoundError(f"Architect slug={slug} not found")
        return architect

    async def search_architects(self, query: str, language: Language = "ja") -> List[Architect]:
        return await self._architects.search_architects(query, language)

    async def get_architect_websites(self, architect_id: int) -> List[ArchitectWebsite]:
        return await self._architects.get_websites(architect_id)

    async def get_building_architects(self, building_id: int) -> List[Architect]:
        return await self._architects.get_building_architects(building_id)

    async def get_architect_works(self, slug: str) -> ArchitectWorks:
        return await self._architects.get_works(slug)

    async def get_migration_status(self) -> MigrationStatus:
        return await self._architects.migration_status()

    async def record_search(
        self,
        *,
        query: str,
        search_type: str,
        session: SessionContext,
        filters: Optional[Dict[str, Any]] = None,
        user_id: Optional[int] = None,
    ) -> bool:
        return await self._history.record(
            query=query,
            search_type=search_type,
            session=session,
            filters=filters,
            user_id=user_id,
        )

    async def get_popular_searches(self, days: int = 7) -> List[SearchHistoryEntry]:
        return await self._history.popular(days)

    async def get_popular_terms(self) -> List[PopularSearch]:
        return await self._history.popular_terms()

    async def health_check(self) -> HealthStatus:
        try:
            await self._client.table(self._buildings_table).select("building_id").limit(1).execute()
        except UpstreamQueryError as exc:
            raise DirectoryServiceError("Database connection failed", status_code=500) from exc
        return HealthStatus(status="ok", database="supabase")


def build_directory(client: SupabaseClient, settings: AppSettings) -> BuildingDirectory:
    """Wire the directory services for one Supabase client."""
    resolver = get_architect_resolver(client, settings.architect_resolution)
    normalizer = BuildingNormalizer(resolver)
    queries = BuildingSearchQueries(
        client,
        normalizer,
        search_view=settings.search_view,
        buildings_table=settings.buildings_table,
        default_radius_km=settings.default_radius_km,
    )
    # architect pages only exist for the composition tables
    composition_resolver = ArchitectResolver(client, generation=SchemaGeneration.COMPOSITION)
    return BuildingDirectory(
        client=client,
        normalizer=normalizer,
        orchestrator=SearchOrchestrator(queries.run),
        architects=ArchitectCatalog(
            client,
            resolver=composition_resolver,
            normalizer=BuildingNormalizer(composition_resolver),
            buildings_table=settings.buildings_table,
        ),
        history=SearchHistoryService(client),
        buildings_table=settings.buildings_table,
    )


def get_building_directory(client: SupabaseClient = Depends(get_supabase_client)) -> BuildingDirectory:
    """Factory for FastAPI dependency injection."""
    return build_directory(client, get_app_settings())


__all__ = ["BuildingDirectory", "build_directory", "get_building_directory"]
