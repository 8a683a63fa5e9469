"""Building directory endpoints."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ..schemas import Architect, Building, BuildingList, LikeResponse
from ..services.directory import BuildingDirectory, get_building_directory
from ..services.exceptions import DirectoryServiceError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["buildings"])


@router.get("/buildings", response_model=BuildingList, summary="List buildings")
async def list_buildings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    directory: BuildingDirectory = Depends(get_building_directory),
) -> BuildingList:
    """Return the newest buildings that have a location, one page at a time."""
    return await directory.list_buildings(page, limit)


@router.get("/buildings/nearby", response_model=List[Building], summary="Buildings around a point")
async def nearby_buildings(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(...),
    radius: float = Query(5.0, gt=0),
    directory: BuildingDirectory = Depends(get_building_directory),
) -> List[Building]:
    return await directory.get_nearby_buildings(lat, lng, radius)


@router.get("/buildings/slug/{slug}", response_model=Building, summary="Building by slug")
async def building_by_slug(
    slug: str,
    directory: BuildingDirectory = Depends(get_building_directory),
) -> Building:
    try:
        return await directory.get_building_by_slug(slug)
    except DirectoryServiceError as exc:
        logger.warning("Building lookup failed slug=%r: %s", slug, exc)
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get("/buildings/{building_id}", response_model=Building, summary="Building by id")
async def building_by_id(
    building_id: int,
    directory: BuildingDirectory = Depends(get_building_directory),
) -> Building:
    try:
        return await directory.get_building_by_id(building_id)
    except DirectoryServiceError as exc:
        logger.warning("Building lookup failed building_id=%s: %s", building_id, exc)
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get("/buildings/{building_id}/architects", response_model=List[Architect], summary="Architects of a building")
async def building_architects(
    building_id: int,
    directory: BuildingDirectory = Depends(get_building_directory),
) -> List[Architect]:
    return await directory.get_building_architects(building_id)


@router.post("/buildings/{building_id}/like", response_model=LikeResponse, summary="Like a building")
async def like_building(
    building_id: int,
    directory: BuildingDirectory = Depends(get_building_directory),
) -> LikeResponse:
    try:
        return LikeResponse(likes=await directory.like_building(building_id))
    except DirectoryServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post("/photos/{photo_id}/like", response_model=LikeResponse, summary="Like a photo")
async def like_photo(
    photo_id: int,
    directory: BuildingDirectory = Depends(get_building_directory),
) -> LikeResponse:
    try:
        return LikeResponse(likes=await directory.like_photo(photo_id))
    except DirectoryServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
