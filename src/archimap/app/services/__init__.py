"""Service layer for building directory data access."""

from .architect_catalog import ArchitectCatalog
from .architects import ArchitectResolver, SchemaGeneration, get_architect_resolver
from .directory import BuildingDirectory, build_directory, get_building_directory
from .exceptions import (
    ArchitectNotFoundError,
    BuildingNotFoundError,
    DirectoryServiceError,
    InvalidGeometryError,
    RecordNormalizationError,
    StorageNotConfiguredError,
    UpstreamQueryError,
)
from .normalizers import BuildingNormalizer, LegacyRow, RawJoinRow, ViewRow
from .search import BuildingSearchQueries, SearchOrchestrator, SearchStrategy
from .search_history import HeaderSessionContext, SearchHistoryService, SessionContext
from .supabase import SupabaseClient, get_supabase_client, reset_supabase_client_cache

__all__ = [
    "ArchitectCatalog",
    "ArchitectNotFoundError",
    "ArchitectResolver",
    "BuildingDirectory",
    "BuildingNormalizer",
    "BuildingNotFoundError",
    "BuildingSearchQueries",
    "DirectoryServiceError",
    "HeaderSessionContext",
    "InvalidGeometryError",
    "LegacyRow",
    "RawJoinRow",
    "RecordNormalizationError",
    "SchemaGeneration",
    "SearchHistoryService",
    "SearchOrchestrator",
    "SearchStrategy",
    "SessionContext",
    "StorageNotConfiguredError",
    "SupabaseClient",
    "UpstreamQueryError",
    "ViewRow",
    "build_directory",
    "get_architect_resolver",
    "get_building_directory",
    "get_supabase_client",
    "reset_supabase_client_cache",
]
