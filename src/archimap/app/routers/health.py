"""Health check endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..schemas import HealthStatus, MigrationStatus
from ..services.directory import BuildingDirectory, get_building_directory
from ..services.exceptions import DirectoryServiceError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health", response_model=HealthStatus, summary="Health check")
async def health(directory: BuildingDirectory = Depends(get_building_directory)) -> HealthStatus:
    """Return service status after a one-row probe of the buildings table."""
    try:
        return await directory.health_check()
    except DirectoryServiceError as exc:
        logger.warning("Health check failed: %s", exc)
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get("/health/migration", response_model=MigrationStatus, summary="Architect schema migration status")
async def migration_status(directory: BuildingDirectory = Depends(get_building_directory)) -> MigrationStatus:
    return await directory.get_migration_status()
