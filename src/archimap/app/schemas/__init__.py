"""Pydantic schemas exposed by the archimap application."""

from .building import (
    Architect,
    ArchitectName,
    ArchitectWebsite,
    ArchitectWorks,
    Building,
    BuildingList,
    HealthStatus,
    LikeResponse,
    MigrationStatus,
    Photo,
)
from .search import (
    CurrentLocation,
    PopularSearch,
    SearchFilters,
    SearchHistoryEntry,
    SearchHistoryRequest,
    SearchRequest,
)

__all__ = [
    "Architect",
    "ArchitectName",
    "ArchitectWebsite",
    "ArchitectWorks",
    "Building",
    "BuildingList",
    "CurrentLocation",
    "HealthStatus",
    "LikeResponse",
    "MigrationStatus",
    "Photo",
    "PopularSearch",
    "SearchFilters",
    "SearchHistoryEntry",
    "SearchHistoryRequest",
    "SearchRequest",
]
