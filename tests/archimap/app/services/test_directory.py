import math

import pytest

from archimap.app.services.directory import build_directory
from archimap.app.services.exceptions import (
    ArchitectNotFoundError,
    BuildingNotFoundError,
    DirectoryServiceError,
    UpstreamQueryError,
)
from archimap.app.services.supabase import QueryResult
from archimap.app.settings import AppSettings

SETTINGS = AppSettings(supabase_url="https://project.supabase.co", supabase_key="anon-key")

TOKYO_TOWER = {
    "building_id": 1,
    "slug": "tokyo-tower",
    "title": "東京タワー",
    "titleEn": "Tokyo Tower",
    "completionYears": "1958",
    "lat": 35.6586,
    "lng": 139.7454,
    "building_architects": [],
}

UMEDA_SKY = {
    "building_id": 2,
    "slug": "umeda-sky-building",
    "title": "梅田スカイビル",
    "completionYears": "1993",
    "lat": 34.7053,
    "lng": 135.4906,
    "building_architects": [],
}


def _directory(client):
    return build_directory(client, SETTINGS)


@pytest.mark.asyncio
async def test_list_buildings_returns_newest_page_with_exact_total(fake_supabase):
    client = fake_supabase({"buildings_table_2": QueryResult(data=[UMEDA_SKY, TOKYO_TOWER], count=811)})

    result = await _directory(client).list_buildings(page=3, limit=2)

    assert [building.id for building in result.buildings] == [2, 1]
    assert result.total == 811
    query = client.queries[0]
    assert ("offset", "4") in query.params
    assert ("lat", "not.is.null") in query.params


@pytest.mark.asyncio
async def test_list_buildings_falls_back_to_search(fake_supabase):
    client = fake_supabase(
        {
            "buildings_table_2": UpstreamQueryError("timeout"),
            "building_search_view": QueryResult(data=[{"building_id": 9, "title": "国立西洋美術館"}], count=1),
        }
    )

    result = await _directory(client).list_buildings()

    assert [building.title for building in result.buildings] == ["国立西洋美術館"]
    assert result.total == 1


@pytest.mark.asyncio
async def test_list_buildings_survives_a_malformed_architect_group(fake_supabase):
    client = fake_supabase(
        {
            "buildings_table_2": QueryResult(
                data=[UMEDA_SKY, dict(TOKYO_TOWER, building_architects=[{"architect_id": 40, "architect_order": 1}])],
                count=2,
            ),
            "architect_compositions": QueryResult(
                data=[{"order_index": 1, "individual_architects": {"individual_architect_id": "not-an-id"}}]
            ),
        }
    )

    result = await _directory(client).list_buildings()

    assert [building.id for building in result.buildings] == [2, 1]
    assert result.buildings[1].architects == []
    assert all(math.isfinite(building.lat) and math.isfinite(building.lng) for building in result.buildings)


@pytest.mark.asyncio
async def test_get_building_by_slug(fake_supabase):
    client = fake_supabase({"buildings_table_2": QueryResult(data=[TOKYO_TOWER])})

    building = await _directory(client).get_building_by_slug("tokyo-tower")

    assert building.title_en == "Tokyo Tower"
    assert client.queries[0].filter_value("slug") == "eq.tokyo-tower"


@pytest.mark.asyncio
async def test_missing_building_is_not_found(fake_supabase):
    client = fake_supabase({"buildings_table_2": QueryResult(data=[])})

    with pytest.raises(BuildingNotFoundError) as exc_info:
        await _directory(client).get_building_by_id(404)

    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_building_without_location_is_not_found(fake_supabase):
    client = fake_supabase({"buildings_table_2": QueryResult(data=[dict(TOKYO_TOWER, lat=None)])})

    with pytest.raises(BuildingNotFoundError):
        await _directory(client).get_building_by_id(1)


@pytest.mark.asyncio
async def test_upstream_failure_on_detail_lookup_propagates(fake_supabase):
    client = fake_supabase({"buildings_table_2": UpstreamQueryError("boom", upstream_status=500)})

    with pytest.raises(UpstreamQueryError) as exc_info:
        await _directory(client).get_building_by_id(1)

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_nearby_buildings_use_rpc_rows(fake_supabase):
    client = fake_supabase(
        {"nearby_buildings": QueryResult(data=[dict(TOKYO_TOWER, distance=0.8, building_architects=None)])}
    )

    buildings = await _directory(client).get_nearby_buildings(35.66, 139.74, 2.0)

    assert [building.distance for building in buildings] == [0.8]
    assert client.queries[0].body == {"lat": 35.66, "lng": 139.74, "radius_km": 2.0}


@pytest.mark.asyncio
async def test_nearby_buildings_drop_rows_without_coordinates(fake_supabase):
    client = fake_supabase(
        {
            "nearby_buildings": QueryResult(
                data=[
                    {"building_id": 3, "lat": None, "lng": None, "distance": 0.1},
                    dict(TOKYO_TOWER, distance=0.8, building_architects=None),
                    {"building_id": 4, "lat": "35.1", "lng": 139.1, "distance": 1.2},
                ]
            )
        }
    )

    buildings = await _directory(client).get_nearby_buildings(35.0, 139.0, 5.0)

    assert [building.id for building in buildings] == [1]
    assert all(math.isfinite(building.lat) and math.isfinite(building.lng) for building in buildings)


@pytest.mark.asyncio
async def test_nearby_buildings_cascade_into_search_when_rpc_fails(fake_supabase):
    client = fake_supabase(
        {
            "nearby_buildings": UpstreamQueryError("function does not exist", upstream_status=404),
            "buildings_table_2": QueryResult(data=[UMEDA_SKY, TOKYO_TOWER], count=2),
        }
    )

    buildings = await _directory(client).get_nearby_buildings(35.6580, 139.7016, 10.0)

    assert [building.id for building in buildings] == [1]
    assert buildings[0].distance < 10.0


@pytest.mark.asyncio
async def test_like_building_returns_new_count(fake_supabase):
    client = fake_supabase({"increment_building_likes": QueryResult(data=13)})

    assert await _directory(client).like_building(1) == 13


@pytest.mark.asyncio
async def test_like_photo_failure_is_a_server_error(fake_supabase):
    client = fake_supabase({"increment_photo_likes": UpstreamQueryError("permission denied", upstream_status=401)})

    with pytest.raises(DirectoryServiceError) as exc_info:
        await _directory(client).like_photo(3)

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_search_suggestions_match_either_title(fake_supabase):
    client = fake_supabase(
        {
            "buildings_table_2": QueryResult(
                data=[
                    {"title": "東京タワー", "titleEn": "Tokyo Tower"},
                    {"title": "東京タワー", "titleEn": "Tokyo Tower"},
                    {"title": "東京都庁", "titleEn": None},
                ]
            )
        }
    )

    suggestions = await _directory(client).get_search_suggestions("tokyo")

    assert suggestions == ["Tokyo Tower"]
    assert await _directory(client).get_search_suggestions("  ") == []


@pytest.mark.asyncio
async def test_unknown_architect_is_not_found(fake_supabase):
    client = fake_supabase({"architect_compositions": QueryResult(data=[])})

    with pytest.raises(ArchitectNotFoundError):
        await _directory(client).get_architect(77)


@pytest.mark.asyncio
async def test_health_check(fake_supabase):
    healthy = await _directory(fake_supabase()).health_check()
    assert healthy.status == "ok"

    with pytest.raises(DirectoryServiceError):
        await _directory(fake_supabase({"buildings_table_2": UpstreamQueryError("down")})).health_check()
