"""Architect resolution across the grouped and composition schema generations."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from ..schemas import Architect
from .exceptions import UpstreamQueryError
from .supabase import SupabaseClient

logger = logging.getLogger(__name__)

COMPOSITION_COLUMNS = """
    architect_id,
    order_index,
    individual_architects!inner(
        individual_architect_id,
        name_ja,
        name_en,
        slug
    )
"""

BUILDING_ARCHITECT_JOIN_COLUMNS = """
    architect_id,
    architect_order,
    architect_compositions!inner(
        order_index,
        individual_architects!inner(
            individual_architect_id,
            name_ja,
            name_en,
            slug
        )
    )
"""


class SchemaGeneration(str, Enum):
    """Which architect tables are used to expand a building's architect links."""

    LEGACY = "legacy"
    COMPOSITION = "composition"


def architect_from_composition(architect_id: Any, composition: Mapping[str, Any]) -> Optional[Architect]:
    """Build an ``Architect`` from one ``architect_compositions`` row with its embedded individual."""
    individual = composition.get("individual_architects")
    if isinstance(individual, list):
        individual = individual[0] if individual else None
    if not isinstance(individual, Mapping):
        return None

    name_ja = individual.get("name_ja") or ""
    try:
        return Architect(
            architect_id=architect_id or 0,
            individual_architect_id=(
                individual.get("individual_architect_id") or composition.get("individual_architect_id")
            ),
            architect_ja=name_ja,
            architect_en=individual.get("name_en") or name_ja,
            slug=individual.get("slug") or "",
            order_index=composition.get("order_index"),
        )
    except ValidationError as exc:
        logger.warning("Skipping malformed architect composition architect_id=%r: %s", architect_id, exc)
        return None


def order_architects(architects: Iterable[Architect]) -> List[Architect]:
    """Sort ascending by ``order_index``; ties keep fetch order and missing indices go last."""
    return sorted(
        architects,
        key=lambda architect: (architect.order_index is None, architect.order_index or 0),
    )


def dedupe_individuals(architects: Iterable[Architect]) -> List[Architect]:
    """Keep the first occurrence of every ``individual_architect_id``."""
    seen: set[int] = set()
    unique: List[Architect] = []
    for architect in architects:
        individual_id = architect.individual_architect_id
        if individual_id is not None:
            if individual_id in seen:
                continue
            seen.add(individual_id)
        unique.append(architect)
    return unique


def sort_links(links: Sequence[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Order building→architect links by ``architect_order`` (stable, missing values last)."""
    return sorted(
        (link for link in links if isinstance(link, Mapping)),
        key=lambda link: (link.get("architect_order") is None, link.get("architect_order") or 0),
    )


def flatten_building_links(links: Sequence[Mapping[str, Any]]) -> List[Architect]:
    """Expand joined ``building_architects`` rows into a deduplicated, ordered architect list."""
    architects: List[Architect] = []
    for link in sort_links(links):
        compositions = link.get("architect_compositions") or []
        if isinstance(compositions, Mapping):
            compositions = [compositions]
        for composition in compositions:
            architect = architect_from_composition(link.get("architect_id"), composition)
            if architect is not None:
                architects.append(architect)
    return order_architects(dedupe_individuals(architects))


class ArchitectResolver:
    """Resolve the ordered architects of a building for the configured schema generation."""

    def __init__(self, client: SupabaseClient, *, generation: SchemaGeneration = SchemaGeneration.LEGACY) -> None:
        self._client = client
        self._generation = generation

    @property
    def generation(self) -> SchemaGeneration:
        return self._generation

    async def resolve(
        self,
        building_id: int,
        links: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> List[Architect]:
        """Return the building's architects ordered by ``order_index``.

        ``links`` are the ``building_architects`` rows already embedded in a
        building row; the legacy generation fetches them when omitted while the
        composition generation always issues its own single join.
        """
        if self._generation is SchemaGeneration.COMPOSITION:
            return await self._resolve_by_composition(building_id)
        return await self._resolve_by_groups(building_id, links)

    async def _resolve_by_groups(
        self,
        building_id: int,
        links: Optional[Sequence[Mapping[str, Any]]],
    ) -> List[Architect]:
        if links is None:
            links = await self._fetch_links(building_id)

        architect_ids = [link.get("architect_id") for link in sort_links(links)]
        architect_ids = [architect_id for architect_id in architect_ids if architect_id]
        if not architect_ids:
            return []

        groups = await asyncio.gather(
            *(self._fetch_group(building_id, architect_id) for architect_id in architect_ids)
        )
        architects = [architect for group in groups for architect in group]
        logger.debug(
            "Resolved %s architects from %s groups building_id=%s",
            len(architects),
            len(architect_ids),
            building_id,
        )
        return order_architects(architects)

    async def _fetch_links(self, building_id: int) -> List[Mapping[str, Any]]:
        try:
            result = await (
                self._client.table("building_architects")
                .select("architect_id, architect_order")
                .eq("building_id", building_id)
                .order("architect_order")
                .execute()
            )
        except UpstreamQueryError as exc:
            logger.warning("Failed to load architect links building_id=%s: %s", building_id, exc)
            return []
        return list(result.data or [])

    async def _fetch_group(self, building_id: int, architect_id: int) -> List[Architect]:
        try:
            result = await (
                self._client.table("architect_compositions")
                .select(COMPOSITION_COLUMNS)
                .eq("architect_id", architect_id)
                .order("order_index")
                .execute()
            )
        except UpstreamQueryError as exc:
            logger.warning(
                "Skipping architect group architect_id=%s building_id=%s: %s",
                architect_id,
                building_id,
                exc,
            )
            return []

        architects = []
        for composition in result.data or []:
            architect = architect_from_composition(architect_id, composition)
            if architect is not None:
                architects.append(architect)
        return architects

    async def _resolve_by_composition(self, building_id: int) -> List[Architect]:
        try:
            result = await (
                self._client.table("building_architects")
                .select(BUILDING_ARCHITECT_JOIN_COLUMNS)
                .eq("building_id", building_id)
                .order("architect_order")
                .execute()
            )
        except UpstreamQueryError as exc:
            logger.warning("Failed to join architect compositions building_id=%s: %s", building_id, exc)
            return []
        return flatten_building_links(result.data or [])


def get_architect_resolver(
    client: SupabaseClient,
    generation: SchemaGeneration | str = SchemaGeneration.LEGACY,
) -> ArchitectResolver:
    try:
        selected = SchemaGeneration(generation)
    except ValueError:
        logger.warning("Unknown architect resolution %r; using legacy tables", generation)
        selected = SchemaGeneration.LEGACY
    return ArchitectResolver(client, generation=selected)


__all__ = [
    "ArchitectResolver",
    "SchemaGeneration",
    "architect_from_composition",
    "dedupe_individuals",
    "flatten_building_links",
    "get_architect_resolver",
    "order_architects",
    "sort_links",
]
