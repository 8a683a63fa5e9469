"""Search endpoints."""

from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_session_context
from ..schemas import (
    BuildingList,
    PopularSearch,
    SearchHistoryEntry,
    SearchHistoryRequest,
    SearchRequest,
)
from ..services.directory import BuildingDirectory, get_building_directory
from ..services.search_history import HeaderSessionContext

router = APIRouter(prefix="/api/v1", tags=["search"])


@router.post("/search", response_model=BuildingList, summary="Search buildings")
async def search_buildings(
    payload: SearchRequest,
    directory: BuildingDirectory = Depends(get_building_directory),
) -> BuildingList:
    """Run the search cascade; upstream failures degrade to an empty page instead of an error."""
    return await directory.search_buildings(payload.filters, payload.page, payload.limit, payload.language)


@router.get("/search/suggestions", response_model=List[str], summary="Title suggestions")
async def search_suggestions(
    q: str = Query(""),
    directory: BuildingDirectory = Depends(get_building_directory),
) -> List[str]:
    return await directory.get_search_suggestions(q)


@router.post("/search/history", summary="Record a search")
async def record_search(
    payload: SearchHistoryRequest,
    session: HeaderSessionContext = Depends(get_session_context),
    directory: BuildingDirectory = Depends(get_building_directory),
) -> Dict[str, bool]:
    recorded = await directory.record_search(
        query=payload.query,
        search_type=payload.search_type,
        session=session,
        filters=payload.filters,
        user_id=payload.user_id,
    )
    return {"recorded": recorded}


@router.get("/search/popular", response_model=List[SearchHistoryEntry], summary="Popular searches")
async def popular_searches(
    days: int = Query(7, ge=1, le=365),
    directory: BuildingDirectory = Depends(get_building_directory),
) -> List[SearchHistoryEntry]:
    return await directory.get_popular_searches(days)


@router.get("/search/popular-terms", response_model=List[PopularSearch], summary="Most frequent search terms")
async def popular_terms(directory: BuildingDirectory = Depends(get_building_directory)) -> List[PopularSearch]:
    return await directory.get_popular_terms()
