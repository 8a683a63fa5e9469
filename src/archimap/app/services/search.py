"""Search strategy selection, upstream search queries and the fallback cascade."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from ..schemas import Building, BuildingList, CurrentLocation, SearchFilters
from ..schemas.search import Language
from .geo import bounding_box, distance_km
from .normalizers import BuildingNormalizer, LegacyRow, RawJoinRow, ViewRow
from .supabase import RpcQuery, SupabaseClient, TableQuery, condition, ilike_pattern

logger = logging.getLogger(__name__)

_WORD_SPLIT = re.compile(r"\s+")

RAW_JOIN_COLUMNS = """
    *,
    building_architects{inner}(
        architect_id,
        architect_order
    )
"""

FULL_TEXT_COLUMNS = """
    *,
    building_architects{inner}(
        architect_id,
        architect_order,
        architect_compositions(
            order_index,
            individual_architects(
                individual_architect_id,
                name_ja,
                name_en,
                slug
            )
        )
    )
"""


class SearchStrategy(str, Enum):
    SPATIAL = "spatial"
    FULL_TEXT = "full_text"
    VIEW = "view"
    LEGACY_FALLBACK = "legacy_fallback"
    LEGACY_FALLBACK_NO_GEO = "legacy_fallback_no_geo"


def select_strategy(filters: SearchFilters) -> SearchStrategy:
    """Pick the primary strategy: location beats free text, free text beats filter browsing."""
    if filters.current_location is not None:
        return SearchStrategy.SPATIAL
    if filters.query and filters.query.strip():
        return SearchStrategy.FULL_TEXT
    return SearchStrategy.VIEW


def plan_strategies(filters: SearchFilters) -> List[SearchStrategy]:
    """Return the ordered cascade tried for a request."""
    primary = select_strategy(filters)
    plan = [primary]
    if primary is SearchStrategy.FULL_TEXT:
        plan.append(SearchStrategy.VIEW)
    plan.append(SearchStrategy.LEGACY_FALLBACK)
    # the no-geo retry only differs from the legacy query when a location is set
    if filters.current_location is not None:
        plan.append(SearchStrategy.LEGACY_FALLBACK_NO_GEO)
    return plan


def apply_distance(
    buildings: List[Building],
    total: int,
    location: CurrentLocation,
    radius: Optional[float],
) -> BuildingList:
    """Attach haversine distances, then radius-filter or just sort by them.

    Rows that already carry a distance were measured upstream and keep it; the radius still applies.
    """
    trusted = bool(buildings) and all(building.distance is not None for building in buildings)
    if trusted:
        measured = list(buildings)
    else:
        measured = [
            building.model_copy(
                update={
                    "distance": distance_km(location.lat, location.lng, building.lat or 0.0, building.lng or 0.0)
                }
            )
            for building in buildings
        ]
    if radius:
        within = [building for building in measured if building.distance <= radius]
        within.sort(key=lambda building: building.distance)
        logger.info(
            "Radius filter kept %s of %s buildings radius_km=%s",
            len(within),
            len(measured),
            radius,
        )
        if not trusted or len(within) < len(measured):
            total = len(within)
        return BuildingList(buildings=within, total=total)

    measured.sort(key=lambda building: building.distance)
    return BuildingList(buildings=measured, total=total)


@dataclass(frozen=True)
class _FilterColumns:
    text: Tuple[str, ...]
    building_types: str
    prefectures: str
    areas: str


_VIEW_COLUMNS: Dict[str, _FilterColumns] = {
    "ja": _FilterColumns(("title", "location", "architect_names_ja"), "buildingTypes", "prefectures", "areas"),
    "en": _FilterColumns(
        ("titleEn", "locationEn_from_datasheetChunkEn", "architect_names_en"),
        "buildingTypesEn",
        "prefecturesEn",
        "areasEn",
    ),
}

_TABLE_COLUMNS: Dict[str, _FilterColumns] = {
    "ja": _FilterColumns(("title", "location", "architectDetails"), "buildingTypes", "prefectures", "areas"),
    "en": _FilterColumns(
        ("titleEn", "locationEn_from_datasheetChunkEn", "architectDetails"),
        "buildingTypesEn",
        "prefecturesEn",
        "areasEn",
    ),
}


def _apply_filters(
    query: TableQuery | RpcQuery,
    filters: SearchFilters,
    columns: _FilterColumns,
) -> None:
    groups: List[List[str]] = []
    for word in _WORD_SPLIT.split(filters.query.strip()):
        if word:
            groups.append([condition(column, "ilike", ilike_pattern(word)) for column in columns.text])
    if filters.building_types:
        groups.append(
            [condition(columns.building_types, "ilike", ilike_pattern(tag)) for tag in filters.building_types]
        )

    if len(groups) == 1:
        query.or_(groups[0])
    elif groups:
        query.and_([f"or({','.join(group)})" for group in groups])

    if filters.prefectures:
        query.in_(columns.prefectures, filters.prefectures)
    if filters.areas:
        query.in_(columns.areas, filters.areas)
    if filters.has_photos:
        query.not_("thumbnailUrl", "is", None)
    if filters.has_videos:
        query.not_("youtubeUrl", "is", None)


def _page_bounds(page: int, limit: int) -> Tuple[int, int]:
    start = (max(page, 1) - 1) * limit
    return start, start + limit - 1


def _embed(columns: str, filters: SearchFilters) -> str:
    # inner join turns the architect filter into a filter on buildings
    return columns.format(inner="!inner" if filters.architects else "")


class BuildingSearchQueries:
    """Upstream query and row normalization for every search strategy."""

    def __init__(
        self,
        client: SupabaseClient,
        normalizer: BuildingNormalizer,
        *,
        search_view: str,
        buildings_table: str,
        default_radius_km: float,
    ) -> None:
        self._client = client
        self._normalizer = normalizer
        self._search_view = search_view
        self._buildings_table = buildings_table
        self._default_radius_km = default_radius_km

    async def run(
        self,
        strategy: SearchStrategy,
        filters: SearchFilters,
        page: int,
        limit: int,
        language: Language,
    ) -> BuildingList:
        handlers: Dict[SearchStrategy, Callable[..., Awaitable[BuildingList]]] = {
            SearchStrategy.SPATIAL: self.spatial,
            SearchStrategy.FULL_TEXT: self.full_text,
            SearchStrategy.VIEW: self.view,
            SearchStrategy.LEGACY_FALLBACK: self.legacy,
            SearchStrategy.LEGACY_FALLBACK_NO_GEO: self.legacy_without_geo,
        }
        return await handlers[strategy](filters, page, limit, language)

    async def spatial(self, filters: SearchFilters, page: int, limit: int, language: Language) -> BuildingList:
        location = filters.current_location
        if location is None:
            raise ValueError("Spatial search requires a current location")

        query = self._client.rpc(
            "nearby_buildings",
            {
                "lat": location.lat,
                "lng": location.lng,
                "radius_km": filters.radius or self._default_radius_km,
            },
        ).select("*", count="exact")
        _apply_filters(query, filters, _VIEW_COLUMNS[language])
        if filters.architects:
            query.overlaps("architect_ids", filters.architects)
        start, end = _page_bounds(page, limit)
        result = await query.order("distance").range(start, end).execute()

        rows = result.data or []
        buildings = await self._normalizer.normalize_many(ViewRow(row, require_coordinates=True) for row in rows)
        return BuildingList(buildings=buildings, total=_total(result.count, rows))

    async def full_text(self, filters: SearchFilters, page: int, limit: int, language: Language) -> BuildingList:
        query = self._client.table(self._buildings_table).select(
            _embed(FULL_TEXT_COLUMNS, filters), count="exact"
        )
        _apply_filters(query, filters, _TABLE_COLUMNS[language])
        if filters.architects:
            query.in_("building_architects.architect_id", filters.architects)
        start, end = _page_bounds(page, limit)
        result = await query.order("building_id", desc=True).range(start, end).execute()

        rows = result.data or []
        buildings = await self._normalizer.normalize_many(LegacyRow(row) for row in rows)
        return BuildingList(buildings=buildings, total=_total(result.count, rows))

    async def view(self, filters: SearchFilters, page: int, limit: int, language: Language) -> BuildingList:
        query = self._client.table(self._search_view).select("*", count="exact")
        _apply_filters(query, filters, _VIEW_COLUMNS[language])
        if filters.architects:
            query.overlaps("architect_ids", filters.architects)
        start, end = _page_bounds(page, limit)
        result = await query.order("building_id", desc=True).range(start, end).execute()

        rows = result.data or []
        buildings = await self._normalizer.normalize_many(ViewRow(row) for row in rows)
        return BuildingList(buildings=buildings, total=_total(result.count, rows))

    async def legacy(self, filters: SearchFilters, page: int, limit: int, language: Language) -> BuildingList:
        return await self._legacy(filters, page, limit, language, use_geo=True)

    async def legacy_without_geo(
        self, filters: SearchFilters, page: int, limit: int, language: Language
    ) -> BuildingList:
        return await self._legacy(filters, page, limit, language, use_geo=False)

    async def _legacy(
        self,
        filters: SearchFilters,
        page: int,
        limit: int,
        language: Language,
        *,
        use_geo: bool,
    ) -> BuildingList:
        query = (
            self._client.table(self._buildings_table)
            .select(_embed(RAW_JOIN_COLUMNS, filters), count="exact")
            .not_("lat", "is", None)
            .not_("lng", "is", None)
        )
        _apply_filters(query, filters, _TABLE_COLUMNS[language])
        if filters.architects:
            query.in_("building_architects.architect_id", filters.architects)

        location = filters.current_location
        if use_geo and location is not None and filters.radius:
            lat_min, lat_max, lng_min, lng_max = bounding_box(location.lat, location.lng, filters.radius)
            query.gte("lat", lat_min).lte("lat", lat_max).gte("lng", lng_min).lte("lng", lng_max)

        start, end = _page_bounds(page, limit)
        result = await query.order("building_id", desc=True).range(start, end).execute()

        rows = result.data or []
        buildings = await self._normalizer.normalize_many(RawJoinRow(row) for row in rows)
        return BuildingList(buildings=buildings, total=_total(result.count, rows))


def _total(count: Optional[int], rows: Sequence[object]) -> int:
    return count if count is not None else len(rows)


@dataclass(frozen=True)
class StrategyOutcome:
    """Result of one strategy attempt: either a result or the error that demoted it."""

    strategy: SearchStrategy
    result: Optional[BuildingList] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.result is not None


StrategyRunner = Callable[[SearchStrategy, SearchFilters, int, int, Language], Awaitable[BuildingList]]


class SearchOrchestrator:
    """Try the planned strategies in order until one succeeds; never raises to the caller."""

    def __init__(self, runner: StrategyRunner) -> None:
        self._runner = runner

    async def search(
        self,
        filters: SearchFilters,
        page: int = 1,
        limit: int = 10,
        language: Language = "ja",
    ) -> BuildingList:
        plan = plan_strategies(filters)
        logger.info(
            "Search request strategies=%s page=%s limit=%s language=%s",
            [strategy.value for strategy in plan],
            page,
            limit,
            language,
        )

        for strategy in plan:
            outcome = await self.attempt(strategy, filters, page, limit, language)
            if outcome.succeeded:
                return self._finish(outcome, filters)
            logger.warning("Search strategy %s failed, demoting: %s", strategy.value, outcome.error)

        logger.error("All search strategies failed; returning an empty result")
        return BuildingList(buildings=[], total=0)

    async def attempt(
        self,
        strategy: SearchStrategy,
        filters: SearchFilters,
        page: int,
        limit: int,
        language: Language,
    ) -> StrategyOutcome:
        query_filters = filters
        if strategy is SearchStrategy.LEGACY_FALLBACK_NO_GEO:
            query_filters = filters.model_copy(update={"current_location": None})
        try:
            result = await self._runner(strategy, query_filters, page, limit, language)
        except Exception as exc:  # every strategy failure demotes to the next one
            return StrategyOutcome(strategy=strategy, error=exc)
        return StrategyOutcome(strategy=strategy, result=result)

    @staticmethod
    def _finish(outcome: StrategyOutcome, filters: SearchFilters) -> BuildingList:
        result = outcome.result
        logger.info(
            "Search strategy %s returned %s buildings total=%s",
            outcome.strategy.value,
            len(result.buildings),
            result.total,
        )
        if filters.current_location is None or not result.buildings:
            return result
        return apply_distance(result.buildings, result.total, filters.current_location, filters.radius)


__all__ = [
    "BuildingSearchQueries",
    "SearchOrchestrator",
    "SearchStrategy",
    "StrategyOutcome",
    "apply_distance",
    "plan_strategies",
    "select_strategy",
]
