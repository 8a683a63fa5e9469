"""Architect endpoints."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ..schemas import Architect, ArchitectWebsite, ArchitectWorks
from ..schemas.search import Language
from ..services.directory import BuildingDirectory, get_building_directory
from ..services.exceptions import DirectoryServiceError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["architects"])


@router.get("/architects", response_model=List[Architect], summary="List architects")
async def list_architects(directory: BuildingDirectory = Depends(get_building_directory)) -> List[Architect]:
    try:
        return await directory.list_architects()
    except DirectoryServiceError as exc:
        logger.warning("Architect list failed: %s", exc)
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get("/architects/search", response_model=List[Architect], summary="Search architects by name")
async def search_architects(
    q: str = Query(""),
    language: Language = Query("ja"),
    directory: BuildingDirectory = Depends(get_building_directory),
) -> List[Architect]:
    return await directory.search_architects(q, language)


@router.get("/architects/slug/{slug}", response_model=Architect, summary="Architect by slug")
async def architect_by_slug(
    slug: str,
    directory: BuildingDirectory = Depends(get_building_directory),
) -> Architect:
    try:
        return await directory.get_architect_by_slug(slug)
    except DirectoryServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get("/architects/slug/{slug}/works", response_model=ArchitectWorks, summary="Buildings by an architect")
async def architect_works(
    slug: str,
    directory: BuildingDirectory = Depends(get_building_directory),
) -> ArchitectWorks:
    """Return the architect's buildings (houses excluded), newest completion first."""
    return await directory.get_architect_works(slug)


@router.get("/architects/{architect_id}", response_model=Architect, summary="Architect by id")
async def architect_by_id(
    architect_id: int,
    directory: BuildingDirectory = Depends(get_building_directory),
) -> Architect:
    try:
        return await directory.get_architect(architect_id)
    except DirectoryServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get("/architects/{architect_id}/websites", response_model=List[ArchitectWebsite], summary="Architect websites")
async def architect_websites(
    architect_id: int,
    directory: BuildingDirectory = Depends(get_building_directory),
) -> List[ArchitectWebsite]:
    return await directory.get_architect_websites(architect_id)
