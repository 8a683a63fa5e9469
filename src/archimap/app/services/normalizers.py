"""Conversion of the three upstream building row shapes into the canonical ``Building``."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from ..schemas import Architect, Building
from .architects import ArchitectResolver, flatten_building_links, order_architects
from .exceptions import InvalidGeometryError, RecordNormalizationError

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class Delimiter(str, Enum):
    COMMA = ","
    SLASH = "/"
    FULL_WIDTH_SPACE = "\u3000"


def split_delimited(value: Any, delimiter: Delimiter) -> List[str]:
    """Split a delimiter-joined column into trimmed, non-empty segments."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = value
    elif isinstance(value, str):
        items = value.split(delimiter.value)
    else:
        return []

    segments = []
    for item in items:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            segments.append(text)
    return segments


def parse_completion_year(value: Any) -> int:
    """Return the leading integer of ``value``; the current year stands in when there is none.

    A year of 0 is an unset placeholder and is treated as missing.
    """
    year: Optional[int] = None
    if isinstance(value, bool):
        year = None
    elif isinstance(value, int):
        year = value
    elif isinstance(value, float) and math.isfinite(value):
        year = int(value)
    elif isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            year = int(match.group(1))
    if not year:
        return datetime.now().year
    return year


def timestamp_or_now(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return datetime.now(timezone.utc).isoformat()


def _strict_coordinate(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _float_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _localized(english: Any, japanese: Any) -> Optional[str]:
    """Prefer the English value and fall back to the Japanese one."""
    return _optional_text(english) or _optional_text(japanese)


def _int_or_zero(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _int_sequence(value: Any) -> List[Optional[int]]:
    items = split_delimited(value, Delimiter.COMMA)
    parsed: List[Optional[int]] = []
    for item in items:
        try:
            parsed.append(int(item))
        except ValueError:
            parsed.append(None)
    return parsed


def _at(items: List[Any], index: int) -> Any:
    return items[index] if index < len(items) else None


def _require_id(data: Mapping[str, Any]) -> int:
    raw = data.get("building_id", data.get("id"))
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise RecordNormalizationError(f"Building row without a usable id: {raw!r}") from exc


@dataclass(frozen=True)
class RawJoinRow:
    """``buildings_table_2`` row with embedded ``building_architects`` links."""

    data: Mapping[str, Any]


@dataclass(frozen=True)
class ViewRow:
    """Search view row carrying architects as parallel delimiter-joined columns."""

    data: Mapping[str, Any]
    require_coordinates: bool = False


@dataclass(frozen=True)
class LegacyRow:
    """Full-text projection row with structured architects or slash-joined names."""

    data: Mapping[str, Any]


UpstreamRow = Union[RawJoinRow, ViewRow, LegacyRow]


class BuildingNormalizer:
    """Turn upstream rows into canonical buildings, one conversion per row shape."""

    def __init__(self, resolver: ArchitectResolver) -> None:
        self._resolver = resolver

    async def normalize(self, row: UpstreamRow) -> Building:
        try:
            if isinstance(row, RawJoinRow):
                return await self.from_raw_join(row.data)
            if isinstance(row, ViewRow):
                return self.from_view(row.data, require_coordinates=row.require_coordinates)
            if isinstance(row, LegacyRow):
                return self.from_legacy(row.data)
        except ValidationError as exc:
            raise RecordNormalizationError(f"Malformed {type(row).__name__} record: {exc}") from exc
        raise TypeError(f"Unsupported row type: {type(row).__name__}")

    async def normalize_many(self, rows: Iterable[UpstreamRow]) -> List[Building]:
        """Normalize every row, skipping (and logging) the ones that cannot be converted."""
        buildings: List[Building] = []
        for row in rows:
            try:
                buildings.append(await self.normalize(row))
            except RecordNormalizationError as exc:
                logger.warning("Skipping %s record: %s", type(row).__name__, exc)
        return buildings

    async def from_raw_join(self, data: Mapping[str, Any]) -> Building:
        building_id = _require_id(data)
        lat = _strict_coordinate(data.get("lat"))
        lng = _strict_coordinate(data.get("lng"))
        if lat is None or lng is None:
            raise InvalidGeometryError(building_id, data.get("lat"), data.get("lng"))

        links = data.get("building_architects")
        if links is not None and not isinstance(links, list):
            links = [links]
        architects = await self._resolver.resolve(building_id, links=links)

        title = _text(data.get("title"))
        return self._build(
            id=building_id,
            uid=_text(data.get("uid")),
            slug=_text(data.get("slug")),
            title=title,
            title_en=_localized(data.get("titleEn"), title) or "",
            thumbnail_url=_text(data.get("thumbnailUrl")),
            youtube_url=_text(data.get("youtubeUrl")),
            completion_years=parse_completion_year(data.get("completionYears")),
            parent_building_types=split_delimited(data.get("parentBuildingTypes"), Delimiter.COMMA),
            building_types=split_delimited(data.get("buildingTypes"), Delimiter.SLASH),
            building_types_en=split_delimited(data.get("buildingTypesEn"), Delimiter.SLASH),
            parent_structures=split_delimited(data.get("parentStructures"), Delimiter.COMMA),
            structures=split_delimited(data.get("structures"), Delimiter.COMMA),
            architect_details=_text(data.get("architectDetails")),
            lat=lat,
            lng=lng,
            architects=architects,
            likes=_int_or_zero(data.get("likes")),
            **self._places(data),
            **self._timestamps(data),
        )

    def from_view(self, data: Mapping[str, Any], *, require_coordinates: bool = False) -> Building:
        building_id = _require_id(data)
        if require_coordinates:
            lat = _strict_coordinate(data.get("lat"))
            lng = _strict_coordinate(data.get("lng"))
            if lat is None or lng is None:
                raise InvalidGeometryError(building_id, data.get("lat"), data.get("lng"))
        else:
            # search view rows are not validated; missing coordinates stay missing
            lat = _float_or_none(data.get("lat"))
            lng = _float_or_none(data.get("lng"))
        title = _text(data.get("title"))
        distance = _float_or_none(data.get("distance"))
        return self._build(
            id=building_id,
            uid=_text(data.get("uid")),
            slug=_text(data.get("slug")),
            title=title,
            title_en=_localized(data.get("titleEn"), title) or "",
            thumbnail_url=_text(data.get("thumbnailUrl")),
            youtube_url=_text(data.get("youtubeUrl")),
            completion_years=parse_completion_year(data.get("completionYears")),
            building_types=split_delimited(data.get("buildingTypes"), Delimiter.SLASH),
            building_types_en=split_delimited(data.get("buildingTypesEn"), Delimiter.SLASH),
            architect_details=_text(data.get("architectDetails") or data.get("architect_names_ja")),
            lat=lat,
            lng=lng,
            distance=distance,
            architects=self._view_architects(data),
            likes=_int_or_zero(data.get("likes")),
            **self._places(data),
            **self._timestamps(data),
        )

    def from_legacy(self, data: Mapping[str, Any]) -> Building:
        building_id = _require_id(data)
        title = _text(data.get("title"))
        lat = _float_or_none(data.get("lat"))
        lng = _float_or_none(data.get("lng"))
        architect_names = data.get("architectJa") or data.get("architectDetails")
        return self._build(
            id=building_id,
            uid=_text(data.get("uid")),
            slug=_text(data.get("slug")) or _text(data.get("uid")) or str(building_id),
            title=title,
            title_en=_localized(data.get("titleEn"), title) or "",
            thumbnail_url=_text(data.get("thumbnailUrl")),
            youtube_url=_text(data.get("youtubeUrl")),
            completion_years=parse_completion_year(data.get("completionYears")),
            building_types=split_delimited(data.get("buildingTypes"), Delimiter.SLASH),
            building_types_en=split_delimited(data.get("buildingTypesEn"), Delimiter.SLASH),
            architect_details=_text(architect_names),
            lat=lat if lat is not None and math.isfinite(lat) else 0.0,
            lng=lng if lng is not None and math.isfinite(lng) else 0.0,
            architects=self._legacy_architects(data),
            likes=_int_or_zero(data.get("likes")),
            **self._places(data),
            **self._timestamps(data),
        )

    @staticmethod
    def _view_architects(data: Mapping[str, Any]) -> List[Architect]:
        names_ja = split_delimited(data.get("architect_names_ja"), Delimiter.COMMA)
        if not names_ja:
            return []
        names_en = split_delimited(data.get("architect_names_en"), Delimiter.COMMA)
        architect_ids = _int_sequence(data.get("architect_ids"))
        slugs = split_delimited(data.get("architect_slugs"), Delimiter.COMMA)
        order_indices = _int_sequence(data.get("architect_order_indices"))
        ordered = bool(order_indices) and len(order_indices) == len(names_ja)

        architects = [
            Architect(
                architect_id=_at(architect_ids, index) or 0,
                architect_ja=name_ja,
                architect_en=_at(names_en, index) or name_ja,
                slug=_at(slugs, index) or "",
                order_index=(_at(order_indices, index) if ordered else None),
            )
            for index, name_ja in enumerate(names_ja)
        ]
        if ordered:
            return order_architects(architects)
        return architects

    @staticmethod
    def _legacy_architects(data: Mapping[str, Any]) -> List[Architect]:
        structured = data.get("architects")
        if not isinstance(structured, list):
            structured = data.get("building_architects")
        if isinstance(structured, list) and structured:
            if any(isinstance(item, Mapping) and "architect_compositions" in item for item in structured):
                return flatten_building_links(structured)
            try:
                return order_architects(Architect.model_validate(item) for item in structured)
            except ValidationError as exc:
                raise RecordNormalizationError(f"Malformed architects list: {exc}") from exc

        if data.get("architectJa"):
            names_ja = split_delimited(data.get("architectJa"), Delimiter.SLASH)
            names_en = split_delimited(data.get("architectEn"), Delimiter.SLASH)
        else:
            names_ja = split_delimited(data.get("architectDetails"), Delimiter.FULL_WIDTH_SPACE)
            names_en = []
        return [
            Architect(architect_ja=name_ja, architect_en=_at(names_en, index) or name_ja)
            for index, name_ja in enumerate(names_ja)
        ]

    @staticmethod
    def _places(data: Mapping[str, Any]) -> dict:
        prefectures = _optional_text(data.get("prefectures"))
        areas = _optional_text(data.get("areas"))
        location = _optional_text(data.get("location"))
        location_en = data.get("locationEn_from_datasheetChunkEn") or data.get("locationEn")
        return {
            "prefectures": prefectures,
            "prefectures_en": _localized(data.get("prefecturesEn"), prefectures),
            "areas": areas,
            "areas_en": _localized(data.get("areasEn"), areas),
            "location": location,
            "location_en": _localized(location_en, location),
        }

    @staticmethod
    def _timestamps(data: Mapping[str, Any]) -> dict:
        return {
            "created_at": timestamp_or_now(data.get("created_at")),
            "updated_at": timestamp_or_now(data.get("updated_at")),
        }

    @staticmethod
    def _build(**fields: Any) -> Building:
        try:
            return Building(**fields)
        except ValidationError as exc:
            raise RecordNormalizationError(f"Building {fields.get('id')} failed validation: {exc}") from exc


__all__ = [
    "BuildingNormalizer",
    "Delimiter",
    "LegacyRow",
    "RawJoinRow",
    "UpstreamRow",
    "ViewRow",
    "parse_completion_year",
    "split_delimited",
    "timestamp_or_now",
]
