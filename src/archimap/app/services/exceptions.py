"""Exceptions used across the directory services."""

from __future__ import annotations


class DirectoryServiceError(RuntimeError):
    """Base error for facade operations that maps to an HTTP response."""

    def __init__(self, message: str, *, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = message


class BuildingNotFoundError(DirectoryServiceError):
    """Raised when the requested building cannot be located."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)


class ArchitectNotFoundError(DirectoryServiceError):
    """Raised when the requested architect cannot be located."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)


class UpstreamQueryError(DirectoryServiceError):
    """Raised when the Supabase REST API rejects or fails a query."""

    def __init__(self, message: str, *, upstream_status: int | None = None) -> None:
        super().__init__(message, status_code=500)
        self.upstream_status = upstream_status

    @property
    def is_not_found(self) -> bool:
        # PostgREST answers 406 when a single-object request matches no row.
        return self.upstream_status in (404, 406)


class StorageNotConfiguredError(RuntimeError):
    """Raised when the Supabase URL or key is missing from the environment."""


class RecordNormalizationError(ValueError):
    """Raised when a single upstream row cannot become a canonical building."""


class InvalidGeometryError(RecordNormalizationError):
    """Raised when a row lacks usable latitude/longitude values."""

    def __init__(self, building_id, lat, lng) -> None:
        super().__init__(f"Invalid coordinates for building {building_id}: lat={lat!r}, lng={lng!r}")
        self.building_id = building_id
        self.lat = lat
        self.lng = lng


__all__ = [
    "DirectoryServiceError",
    "BuildingNotFoundError",
    "ArchitectNotFoundError",
    "UpstreamQueryError",
    "StorageNotConfiguredError",
    "RecordNormalizationError",
    "InvalidGeometryError",
]
