from decimal import Decimal

import pytest

from cashdesk.domain.helpers.suggestions import (
    CATEGORY_FOR_COST_TYPE,
    COST_TYPE_FOR_CATEGORY,
    lookup_score,
    matching_tags,
    rank_by_inference,
    rank_for_cost_type,
    suggest_cost_type,
)
from cashdesk.domain.models.catalog import CatalogCategory, CatalogEntry, ExpenseType
from cashdesk.domain.models.movement import CostType


def make_entry(entry_id, name, category, tags=()):
    return CatalogEntry(
        id=entry_id,
        name=name,
        spend_category=category,
        expense_type=ExpenseType.VARIABLE,
        estimated_amount=Decimal("10"),
        tags=list(tags),
    )


def test_mapping_is_one_to_one():
    assert len(COST_TYPE_FOR_CATEGORY) == len(CatalogCategory) == len(CostType)
    for category, cost_type in COST_TYPE_FOR_CATEGORY.items():
        assert CATEGORY_FOR_COST_TYPE[cost_type] == category


def test_matching_is_substring_both_ways_and_ignores_case():
    tags = ["Fuel", "transport-costs", "gas", "office chairs", "books"]
    assert matching_tags(tags, CostType.OTHER_EXPENSE) == [
        "Fuel",
        "transport-costs",
        "gas",
        "office chairs",
    ]


def test_lookup_score_is_capped_at_100():
    tags = ["salaries", "bonuses", "overtime", "consulting", "commissions"]
    assert lookup_score(tags, CostType.LABOR) == 100
    assert lookup_score(tags + ["incentives"], CostType.LABOR) == 100
    assert lookup_score([], CostType.LABOR) == 80


@pytest.mark.parametrize(
    "tags, confidence",
    [
        ([], 80),
        (["materials"], 85),
        (["materials", "tools", "packaging"], 95),
        (["materials", "tools", "packaging", "supplies", "equipment"], 95),
        (["unrelated"], 80),
    ],
)
def test_raw_material_confidence_stays_in_range(tags, confidence):
    entry = make_entry(1, "Cement", CatalogCategory.RAW_MATERIAL, tags)
    suggestion = suggest_cost_type(entry)
    assert suggestion.cost_type == CostType.RAW_MATERIAL
    assert suggestion.confidence == confidence
    assert 80 <= suggestion.confidence <= 95


def test_reason_names_mapping_and_tags():
    entry = make_entry(1, "Diesel", CatalogCategory.OTHER_EXPENSE, ["fuel", "misc"])
    suggestion = suggest_cost_type(entry)
    assert "'other_expense'" in suggestion.reason
    assert "fuel" in suggestion.reason
    assert suggestion.matching_tags == ["fuel"]

    plain = suggest_cost_type(make_entry(2, "Misc", CatalogCategory.OTHER_EXPENSE))
    assert "tags" not in plain.reason


def test_ranking_orders_by_score_then_name():
    entries = [
        make_entry(1, "Zeta crew", CatalogCategory.LABOR, ["salaries"]),
        make_entry(2, "Alpha crew", CatalogCategory.LABOR, ["salaries"]),
        make_entry(3, "Bonus pool", CatalogCategory.LABOR, ["bonuses", "incentives"]),
        make_entry(4, "Helpers", CatalogCategory.LABOR),
    ]
    ranked = rank_for_cost_type(entries, CostType.LABOR)
    assert [s.name for s in ranked] == ["Bonus pool", "Alpha crew", "Zeta crew", "Helpers"]
    assert [s.relevance for s in ranked] == [90, 85, 85, 80]

    assert [s.entry_id for s in rank_for_cost_type(entries, CostType.LABOR, 2)] == [3, 2]


def test_inference_ranking_uses_each_entry_mapping():
    entries = [
        make_entry(1, "Diesel", CatalogCategory.OTHER_EXPENSE, ["fuel", "transport"]),
        make_entry(2, "Cement", CatalogCategory.RAW_MATERIAL),
    ]
    ranked = rank_by_inference(entries)
    assert [(s.name, s.suggested_cost_type, s.relevance) for s in ranked] == [
        ("Diesel", CostType.OTHER_EXPENSE, 90),
        ("Cement", CostType.RAW_MATERIAL, 80),
    ]
