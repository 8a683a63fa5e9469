"""Pydantic models for the canonical building and architect entities."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ArchitectWebsite(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    website_id: int
    url: str
    title: Optional[str] = None
    invalid: bool = False
    architect_ja: Optional[str] = Field(None, alias="architectJa")
    architect_en: Optional[str] = Field(None, alias="architectEn")


class Architect(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    architect_id: int = 0
    individual_architect_id: Optional[int] = None
    architect_ja: str = Field("", alias="architectJa")
    architect_en: str = Field("", alias="architectEn")
    slug: str = ""
    websites: List[ArchitectWebsite] = Field(default_factory=list)
    order_index: Optional[int] = None


class Photo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    building_id: int
    url: str
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    likes: int = 0


class Building(BaseModel):
    """Canonical building returned by every list and search operation."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    uid: str = ""
    slug: str = ""
    title: str = ""
    title_en: str = Field("", alias="titleEn")
    thumbnail_url: str = Field("", alias="thumbnailUrl")
    youtube_url: str = Field("", alias="youtubeUrl")
    completion_years: int = Field(..., alias="completionYears")
    parent_building_types: List[str] = Field(default_factory=list, alias="parentBuildingTypes")
    building_types: List[str] = Field(default_factory=list, alias="buildingTypes")
    building_types_en: List[str] = Field(default_factory=list, alias="buildingTypesEn")
    parent_structures: List[str] = Field(default_factory=list, alias="parentStructures")
    structures: List[str] = Field(default_factory=list)
    prefectures: Optional[str] = None
    prefectures_en: Optional[str] = Field(None, alias="prefecturesEn")
    areas: Optional[str] = None
    areas_en: Optional[str] = Field(None, alias="areasEn")
    location: Optional[str] = None
    location_en: Optional[str] = Field(None, alias="locationEn")
    architect_details: str = Field("", alias="architectDetails")
    lat: Optional[float] = None
    lng: Optional[float] = None
    distance: Optional[float] = None
    architects: List[Architect] = Field(default_factory=list)
    photos: List[Photo] = Field(default_factory=list)
    likes: int = 0
    created_at: str
    updated_at: str


class BuildingList(BaseModel):
    buildings: List[Building] = Field(default_factory=list)
    total: int = 0


class ArchitectName(BaseModel):
    ja: str = ""
    en: str = ""


class ArchitectWorks(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    buildings: List[Building] = Field(default_factory=list)
    architect_name: ArchitectName = Field(default_factory=ArchitectName, alias="architectName")


class LikeResponse(BaseModel):
    likes: int


class HealthStatus(BaseModel):
    status: str
    database: str


class MigrationStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_structure_available: bool = Field(..., alias="newStructureAvailable")
    fallback_used: bool = Field(False, alias="fallbackUsed")
    last_migration_check: str = Field(..., alias="lastMigrationCheck")

