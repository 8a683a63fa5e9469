import pytest

from archimap.app.schemas import Architect
from archimap.app.services.architects import (
    ArchitectResolver,
    SchemaGeneration,
    dedupe_individuals,
    flatten_building_links,
    get_architect_resolver,
    order_architects,
)
from archimap.app.services.exceptions import UpstreamQueryError
from archimap.app.services.supabase import QueryResult


def _composition(order_index, individual_id, name_ja, name_en=None, slug=""):
    return {
        "architect_id": None,
        "order_index": order_index,
        "individual_architects": {
            "individual_architect_id": individual_id,
            "name_ja": name_ja,
            "name_en": name_en,
            "slug": slug,
        },
    }


def test_order_architects_is_stable_and_puts_missing_indices_last():
    architects = [
        Architect(architect_ja="C", order_index=None),
        Architect(architect_ja="B", order_index=2),
        Architect(architect_ja="A1", order_index=1),
        Architect(architect_ja="A2", order_index=1),
    ]

    ordered = order_architects(architects)

    assert [architect.architect_ja for architect in ordered] == ["A1", "A2", "B", "C"]
    indices = [architect.order_index for architect in ordered if architect.order_index is not None]
    assert indices == sorted(indices)


def test_dedupe_individuals_keeps_first_occurrence():
    architects = [
        Architect(architect_ja="丹下健三", individual_architect_id=1, order_index=3),
        Architect(architect_ja="丹下健三 (group)", individual_architect_id=1, order_index=1),
        Architect(architect_ja="unnamed"),
        Architect(architect_ja="unnamed again"),
    ]

    unique = dedupe_individuals(architects)

    assert [architect.architect_ja for architect in unique] == ["丹下健三", "unnamed", "unnamed again"]


def test_flatten_building_links_orders_by_link_then_index_and_dedupes():
    links = [
        {
            "architect_id": 20,
            "architect_order": 2,
            "architect_compositions": [_composition(1, 7, "磯崎新", "Arata Isozaki")],
        },
        {
            "architect_id": 10,
            "architect_order": 1,
            "architect_compositions": [
                _composition(1, 5, "丹下健三", "Kenzo Tange"),
                _composition(2, 7, "磯崎新", "Arata Isozaki"),
            ],
        },
    ]

    architects = flatten_building_links(links)

    assert [(a.architect_id, a.architect_en) for a in architects] == [
        (10, "Kenzo Tange"),
        (10, "Arata Isozaki"),
    ]
    assert len({a.individual_architect_id for a in architects}) == len(architects)


@pytest.mark.asyncio
async def test_legacy_resolver_fetches_every_group_and_orders_the_union(fake_supabase):
    groups = {
        "eq.10": [_composition(2, 5, "丹下健三", "Kenzo Tange", "kenzo-tange")],
        "eq.20": [_composition(1, 6, "坪井善勝", None, "yoshikatsu-tsuboi")],
    }
    client = fake_supabase(
        {"architect_compositions": lambda query: QueryResult(data=groups[query.filter_value("architect_id")])}
    )
    resolver = ArchitectResolver(client)

    architects = await resolver.resolve(
        1, links=[{"architect_id": 20, "architect_order": 2}, {"architect_id": 10, "architect_order": 1}]
    )

    assert [architect.slug for architect in architects] == ["yoshikatsu-tsuboi", "kenzo-tange"]
    assert architects[0].architect_id == 20
    assert architects[0].architect_en == "坪井善勝"
    assert len(client.queries_for("architect_compositions")) == 2


@pytest.mark.asyncio
async def test_legacy_resolver_skips_a_failing_group(fake_supabase):
    def respond(query):
        if query.filter_value("architect_id") == "eq.10":
            return UpstreamQueryError("boom", upstream_status=500)
        return QueryResult(data=[_composition(1, 6, "坪井善勝", "Yoshikatsu Tsuboi")])

    client = fake_supabase({"architect_compositions": respond})
    resolver = ArchitectResolver(client)

    architects = await resolver.resolve(
        1, links=[{"architect_id": 10, "architect_order": 1}, {"architect_id": 20, "architect_order": 2}]
    )

    assert [architect.architect_en for architect in architects] == ["Yoshikatsu Tsuboi"]


@pytest.mark.asyncio
async def test_legacy_resolver_skips_a_malformed_composition(fake_supabase):
    client = fake_supabase(
        {
            "architect_compositions": QueryResult(
                data=[
                    _composition(1, "not-an-id", "丹下健三", "Kenzo Tange"),
                    _composition(2, 6, "坪井善勝", "Yoshikatsu Tsuboi"),
                ]
            )
        }
    )
    resolver = ArchitectResolver(client)

    architects = await resolver.resolve(1, links=[{"architect_id": 10, "architect_order": 1}])

    assert [architect.individual_architect_id for architect in architects] == [6]


def test_flatten_building_links_skips_a_malformed_composition():
    links = [
        {
            "architect_id": 10,
            "architect_order": 1,
            "architect_compositions": [
                _composition(1, "not-an-id", "丹下健三"),
                _composition(2, 6, "坪井善勝", slug="yoshikatsu-tsuboi"),
            ],
        }
    ]

    architects = flatten_building_links(links)

    assert [architect.slug for architect in architects] == ["yoshikatsu-tsuboi"]


@pytest.mark.asyncio
async def test_legacy_resolver_loads_links_when_not_embedded(fake_supabase):
    client = fake_supabase(
        {
            "building_architects": QueryResult(data=[{"architect_id": 10, "architect_order": 1}]),
            "architect_compositions": QueryResult(data=[_composition(1, 5, "丹下健三")]),
        }
    )
    resolver = ArchitectResolver(client)

    architects = await resolver.resolve(42)

    assert [architect.architect_ja for architect in architects] == ["丹下健三"]
    assert client.queries_for("building_architects")[0].filter_value("building_id") == "eq.42"


@pytest.mark.asyncio
async def test_composition_resolver_uses_a_single_join(fake_supabase):
    client = fake_supabase(
        {
            "building_architects": QueryResult(
                data=[
                    {
                        "architect_id": 10,
                        "architect_order": 1,
                        "architect_compositions": [_composition(1, 5, "丹下健三", "Kenzo Tange")],
                    }
                ]
            )
        }
    )
    resolver = ArchitectResolver(client, generation=SchemaGeneration.COMPOSITION)

    architects = await resolver.resolve(42, links=[{"architect_id": 99, "architect_order": 1}])

    assert [architect.architect_id for architect in architects] == [10]
    assert [query.table for query in client.queries] == ["building_architects"]


@pytest.mark.asyncio
async def test_composition_resolver_returns_empty_on_upstream_failure(fake_supabase):
    client = fake_supabase({"building_architects": UpstreamQueryError("down")})
    resolver = ArchitectResolver(client, generation=SchemaGeneration.COMPOSITION)

    assert await resolver.resolve(42) == []


def test_unknown_resolution_falls_back_to_legacy(fake_supabase):
    resolver = get_architect_resolver(fake_supabase(), "v3")

    assert resolver.generation is SchemaGeneration.LEGACY
    assert get_architect_resolver(fake_supabase(), "composition").generation is SchemaGeneration.COMPOSITION
