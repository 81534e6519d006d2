import pytest

from cashdesk.domain.errors import NotFound, ValidationFailure
from cashdesk.domain.models.catalog import CatalogCategory
from cashdesk.domain.models.movement import CostType
from cashdesk.domain.services.catalog_service import (
    archive_catalog_entry,
    create_catalog_entry,
)
from cashdesk.domain.services.sync_service import (
    compute_synchronization_statistics,
    get_cost_type_mapping,
    search_entries_by_text,
    suggest_cost_type_for_entry,
    suggest_entries_for_cost_type,
)


async def add(db, user, name, category, tags=(), amount=None, expense_type="variable"):
    payload = {
        "name": name,
        "spend_category": category,
        "expense_type": expense_type,
        "tags": list(tags),
    }
    if amount is not None:
        payload["estimated_amount"] = amount
    return await create_catalog_entry(db, payload, user.id)


@pytest.fixture
async def catalog(db, user):
    return {
        "diesel": await add(
            db, user, "diesel", "other_expense", ["fuel", "transport"], "120"
        ),
        "cement": await add(db, user, "cement", "raw_material", ["materials"], "900"),
        "welder": await add(
            db, user, "welder", "labor", ["specialists", "overtime"], "300"
        ),
        "helper": await add(db, user, "helper", "labor", [], None),
        "payroll": await add(db, user, "payroll", "labor", ["salaries"], "2500"),
    }


async def test_search_scenario(db, catalog):
    results = await search_entries_by_text(db, "fuel")

    assert [r.entry_id for r in results] == [catalog["diesel"].id]
    assert results[0].suggested_cost_type == CostType.OTHER_EXPENSE
    assert results[0].relevance >= 85


async def test_search_matches_name_and_filters_cost_type(db, catalog):
    # "el" hits the names Diesel, Welder and Helper and the tag "fuel"
    results = await search_entries_by_text(db, "  EL ")
    assert [(r.name, r.relevance) for r in results] == [
        ("Diesel", 90),
        ("Welder", 90),
        ("Helper", 80),
    ]

    labor_only = await search_entries_by_text(db, "el", cost_type="labor")
    assert {r.name for r in labor_only} == {"Welder", "Helper"}


async def test_search_skips_archived_entries(db, catalog):
    await archive_catalog_entry(db, catalog["diesel"].id)
    assert await search_entries_by_text(db, "fuel") == []


@pytest.mark.parametrize("text", [None, "", " x ", "x" * 101])
async def test_search_text_bounds(db, text):
    with pytest.raises(ValidationFailure) as exc:
        await search_entries_by_text(db, text)
    assert exc.value.fields() == ["text"]


async def test_search_result_count_is_capped(db, user):
    for i in range(12):
        await add(db, user, f"fuel batch {i:02d}", "other_expense", ["fuel"])
    results = await search_entries_by_text(db, "fuel batch")
    assert len(results) == 10


async def test_entries_for_labor(db, catalog):
    suggestions = await suggest_entries_for_cost_type(db, CostType.LABOR)

    assert [s.name for s in suggestions] == ["Welder", "Payroll", "Helper"]
    scores = [s.relevance for s in suggestions]
    assert all(80 <= score <= 100 for score in scores)
    assert scores == sorted(scores, reverse=True)
    for s in suggestions:
        assert s.spend_category == CatalogCategory.LABOR
        assert s.suggested_cost_type == CostType.LABOR


async def test_entries_for_cost_type_options(db, catalog):
    await archive_catalog_entry(db, catalog["payroll"].id)

    active = await suggest_entries_for_cost_type(db, "labor")
    assert {s.name for s in active} == {"Welder", "Helper"}

    every = await suggest_entries_for_cost_type(db, "labor", active_only=False)
    assert {s.name for s in every} == {"Welder", "Helper", "Payroll"}

    priced = await suggest_entries_for_cost_type(
        db, "labor", require_estimated_amount=True
    )
    assert [s.name for s in priced] == ["Welder"]

    limited = await suggest_entries_for_cost_type(db, "labor", limit=1)
    assert [s.name for s in limited] == ["Welder"]


async def test_unknown_cost_type_is_rejected(db):
    with pytest.raises(ValidationFailure) as exc:
        await suggest_entries_for_cost_type(db, "marketing")
    assert exc.value.fields() == ["cost_type"]

    with pytest.raises(ValidationFailure):
        await search_entries_by_text(db, "fuel", cost_type="marketing")


async def test_cost_type_for_entry(db, catalog):
    suggestion = await suggest_cost_type_for_entry(db, catalog["cement"].id)
    assert suggestion.cost_type == CostType.RAW_MATERIAL
    assert suggestion.confidence == 85
    assert suggestion.matching_tags == ["materials"]

    with pytest.raises(NotFound):
        await suggest_cost_type_for_entry(db, 999)


async def test_statistics(db, catalog):
    await archive_catalog_entry(db, catalog["cement"].id)

    stats = await compute_synchronization_statistics(db)
    assert stats.total_entries == 5
    assert stats.total_active_entries == 4
    assert stats.active_by_cost_type == {
        CostType.LABOR: 3,
        CostType.RAW_MATERIAL: 0,
        CostType.OTHER_EXPENSE: 1,
    }
    assert stats.orphan_categories == []


def test_mapping_lists_both_enumerations():
    mapping = get_cost_type_mapping()
    assert mapping["mapping"] == {
        "labor": "labor",
        "raw_material": "raw_material",
        "other_expense": "other_expense",
    }
    assert set(mapping["catalog_categories"]) == set(mapping["cost_types"])
