"""Architect lookups backed by the individual/composition architect tables."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from ..schemas import Architect, ArchitectName, ArchitectWebsite, ArchitectWorks, MigrationStatus
from ..schemas.search import Language
from .architects import COMPOSITION_COLUMNS, ArchitectResolver, architect_from_composition
from .exceptions import UpstreamQueryError
from .normalizers import BuildingNormalizer, RawJoinRow
from .supabase import SupabaseClient, condition, ilike_pattern

logger = logging.getLogger(__name__)

INDIVIDUAL_COLUMNS = """
    individual_architect_id,
    name_ja,
    name_en,
    slug,
    architect_compositions!inner(
        architect_id,
        order_index
    )
"""

_EXCLUDED_BUILDING_TYPES = (("buildingTypes", "住宅"), ("buildingTypesEn", "housing"))


def architect_from_individual(item: Mapping[str, Any]) -> Architect:
    """Map an ``individual_architects`` row onto its lowest-ordered composition."""
    compositions = sorted(
        item.get("architect_compositions") or [],
        key=lambda composition: composition.get("order_index") or 0,
    )
    composition = compositions[0] if compositions else {}
    name_ja = item.get("name_ja") or ""
    return Architect(
        architect_id=composition.get("architect_id") or 0,
        individual_architect_id=item.get("individual_architect_id"),
        architect_ja=name_ja,
        architect_en=item.get("name_en") or name_ja,
        slug=item.get("slug") or "",
        order_index=composition.get("order_index"),
    )


class ArchitectCatalog:
    """Read architects, their websites and their works."""

    def __init__(
        self,
        client: SupabaseClient,
        *,
        resolver: ArchitectResolver,
        normalizer: BuildingNormalizer,
        buildings_table: str,
    ) -> None:
        self._client = client
        self._resolver = resolver
        self._normalizer = normalizer
        self._buildings_table = buildings_table

    async def list_architects(self) -> List[Architect]:
        result = await (
            self._client.table("individual_architects")
            .select(INDIVIDUAL_COLUMNS)
            .order("name_ja")
            .execute()
        )
        return [architect_from_individual(item) for item in result.data or []]

    async def get_architect(self, architect_id: int) -> Optional[Architect]:
        try:
            result = await (
                self._client.table("architect_compositions")
                .select(COMPOSITION_COLUMNS)
                .eq("architect_id", architect_id)
                .order("order_index")
                .limit(1)
                .execute()
            )
        except UpstreamQueryError as exc:
            logger.warning("Architect lookup failed architect_id=%s: %s", architect_id, exc)
            return None

        rows = result.data or []
        if not rows:
            return None
        return architect_from_composition(rows[0].get("architect_id"), rows[0])

    async def get_architect_by_slug(self, slug: str) -> Optional[Architect]:
        try:
            result = await (
                self._client.table("individual_architects")
                .select(INDIVIDUAL_COLUMNS)
                .eq("slug", slug)
                .limit(1)
                .execute()
            )
        except UpstreamQueryError as exc:
            logger.warning("Architect lookup failed slug=%r: %s", slug, exc)
            return None

        rows = result.data or []
        return architect_from_individual(rows[0]) if rows else None

    async def search_architects(self, query: str, language: Language = "ja") -> List[Architect]:
        term = query.strip()
        if not term:
            return []
        try:
            result = await (
                self._client.table("individual_architects")
                .select(INDIVIDUAL_COLUMNS)
                .or_(
                    [
                        condition("name_ja", "ilike", ilike_pattern(term)),
                        condition("name_en", "ilike", ilike_pattern(term)),
                    ]
                )
                .order("name_en" if language == "en" else "name_ja")
                .execute()
            )
        except UpstreamQueryError as exc:
            logger.warning("Architect search failed query=%r: %s", term, exc)
            return []
        return [architect_from_individual(item) for item in result.data or []]

    async def get_websites(self, architect_id: int) -> List[ArchitectWebsite]:
        try:
            result = await (
                self._client.table("architect_websites_3")
                .select("*")
                .eq("architect_id", architect_id)
                .execute()
            )
        except UpstreamQueryError as exc:
            logger.warning("Architect websites lookup failed architect_id=%s: %s", architect_id, exc)
            return []

        websites = []
        for site in result.data or []:
            websites.append(
                ArchitectWebsite(
                    website_id=site.get("website_id"),
                    url=site.get("url") or "",
                    title=site.get("title"),
                    invalid=bool(site.get("invalid")),
                    architect_ja=site.get("architectJa"),
                    architect_en=site.get("architectEn"),
                )
            )
        return websites

    async def get_building_architects(self, building_id: int) -> List[Architect]:
        return await self._resolver.resolve(building_id)

    async def get_works(self, slug: str) -> ArchitectWorks:
        """Return the buildings of the architect identified by ``slug``.

        Houses and buildings without coordinates are left out, newest first.
        """
        try:
            individual_result = await (
                self._client.table("individual_architects")
                .select("individual_architect_id, name_ja, name_en")
                .eq("slug", slug)
                .limit(1)
                .execute()
            )
        except UpstreamQueryError as exc:
            logger.warning("Architect works lookup failed slug=%r: %s", slug, exc)
            return ArchitectWorks()

        individuals = individual_result.data or []
        if not individuals:
            logger.info("No individual architect for slug=%r", slug)
            return ArchitectWorks()
        individual = individuals[0]
        name = ArchitectName(ja=individual.get("name_ja") or "", en=individual.get("name_en") or "")

        try:
            compositions = await (
                self._client.table("architect_compositions")
                .select("architect_id")
                .eq("individual_architect_id", individual["individual_architect_id"])
                .execute()
            )
            architect_ids = sorted({row["architect_id"] for row in compositions.data or []})
            if not architect_ids:
                return ArchitectWorks(buildings=[], architect_name=name)

            links = await (
                self._client.table("building_architects")
                .select("building_id")
                .in_("architect_id", architect_ids)
                .execute()
            )
            building_ids = sorted({row["building_id"] for row in links.data or []})
            if not building_ids:
                return ArchitectWorks(buildings=[], architect_name=name)

            query = (
                self._client.table(self._buildings_table)
                .select("*, building_architects(architect_id, architect_order)")
                .in_("building_id", building_ids)
                .not_("lat", "is", None)
                .not_("lng", "is", None)
            )
            for column, value in _EXCLUDED_BUILDING_TYPES:
                query.not_(column, "eq", value)
            buildings_result = await query.order("completionYears", desc=True).execute()
        except UpstreamQueryError as exc:
            logger.warning("Architect works lookup failed slug=%r: %s", slug, exc)
            return ArchitectWorks(buildings=[], architect_name=name)

        buildings = await self._normalizer.normalize_many(
            RawJoinRow(row) for row in buildings_result.data or []
        )
        logger.info("Loaded %s works for architect slug=%r", len(buildings), slug)
        return ArchitectWorks(buildings=buildings, architect_name=name)

    async def migration_status(self) -> MigrationStatus:
        """Report whether the composition tables are populated."""
        available = True
        for table, column in (
            ("individual_architects", "individual_architect_id"),
            ("architect_compositions", "architect_id"),
        ):
            try:
                result = await self._client.table(table).select(column, count="exact").limit(1).execute()
            except UpstreamQueryError as exc:
                logger.warning("Migration check failed for %s: %s", table, exc)
                available = False
                break
            if not result.count:
                available = False
                break

        return MigrationStatus(
            new_structure_available=available,
            fallback_used=False,
            last_migration_check=datetime.now(timezone.utc).isoformat(),
        )


__all__ = ["ArchitectCatalog", "architect_from_individual"]
