"""Pydantic models describing search requests and search history."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Language = Literal["ja", "en"]
SearchType = Literal["text", "architect", "prefecture"]


class CurrentLocation(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class SearchFilters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str = ""
    architects: List[int] = Field(default_factory=list)
    building_types: List[str] = Field(default_factory=list, alias="buildingTypes")
    prefectures: List[str] = Field(default_factory=list)
    areas: List[str] = Field(default_factory=list)
    has_photos: bool = Field(False, alias="hasPhotos")
    has_videos: bool = Field(False, alias="hasVideos")
    current_location: Optional[CurrentLocation] = Field(None, alias="currentLocation")
    radius: Optional[float] = Field(None, gt=0)


class SearchRequest(BaseModel):
    filters: SearchFilters = Field(default_factory=SearchFilters)
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    language: Language = "ja"


class SearchHistoryEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str
    searched_at: Optional[str] = Field(None, alias="searchedAt")
    count: int = 0
    type: SearchType = "text"
    filters: Optional[Dict[str, Any]] = None


class PopularSearch(BaseModel):
    query: str
    count: int


class SearchHistoryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., min_length=1)
    search_type: SearchType = Field("text", alias="searchType")
    filters: Optional[Dict[str, Any]] = None
    user_id: Optional[int] = Field(None, alias="userId")
