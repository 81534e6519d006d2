from typing import Iterable, List

from cashdesk.domain.models.catalog import (
    CatalogCategory,
    CatalogEntry,
    CostTypeSuggestion,
    EntrySuggestion,
)
from cashdesk.domain.models.movement import CostType

COST_TYPE_FOR_CATEGORY = {
    CatalogCategory.LABOR: CostType.LABOR,
    CatalogCategory.RAW_MATERIAL: CostType.RAW_MATERIAL,
    CatalogCategory.OTHER_EXPENSE: CostType.OTHER_EXPENSE,
}

CATEGORY_FOR_COST_TYPE = {
    cost_type: category for category, cost_type in COST_TYPE_FOR_CATEGORY.items()
}

# Keywords judged typical for each cost type (lower case)
REFERENCE_TAGS = {
    CostType.LABOR: (
        "personnel",
        "salaries",
        "bonuses",
        "overtime",
        "consulting",
        "external_services",
        "specialists",
        "incentives",
        "commissions",
    ),
    CostType.RAW_MATERIAL: (
        "materials",
        "construction",
        "supplies",
        "chemicals",
        "tools",
        "spare_parts",
        "machinery",
        "equipment",
        "basic_materials",
        "packaging",
        "packing",
    ),
    CostType.OTHER_EXPENSE: (
        "fuel",
        "transport",
        "utilities",
        "electricity",
        "water",
        "gas",
        "internet",
        "telephony",
        "maintenance",
        "repairs",
        "office",
        "stationery",
        "insurance",
        "training",
        "coaching",
    ),
}

BASE_SCORE = 80
TAG_BONUS = 5
LOOKUP_CAP = 100
INFERENCE_CAP = 95


def matching_tags(tags: Iterable[str], cost_type: CostType) -> List[str]:
    """
    Entry tags that contain, or are contained in, one of the reference tags
    of the cost type. Comparison ignores case.
    """
    references = REFERENCE_TAGS[cost_type]
    result = []
    for tag in tags:
        lowered = tag.lower()
        if not lowered:
            continue
        if any(ref in lowered or lowered in ref for ref in references):
            result.append(tag)
    return result


def lookup_score(tags: Iterable[str], cost_type: CostType) -> int:
    return min(LOOKUP_CAP, BASE_SCORE + TAG_BONUS * len(matching_tags(tags, cost_type)))


def suggest_cost_type(entry: CatalogEntry) -> CostTypeSuggestion:
    """Infer the cost type of a catalog entry from its category and tags."""
    cost_type = COST_TYPE_FOR_CATEGORY[entry.spend_category]
    matches = matching_tags(entry.tags or [], cost_type)
    confidence = min(INFERENCE_CAP, BASE_SCORE + TAG_BONUS * len(matches))
    reason = (
        f"Category '{entry.spend_category.value}' maps directly "
        f"to cost type '{cost_type.value}'"
    )
    if matches:
        reason += f" and relevant tags: {', '.join(matches)}"
    return CostTypeSuggestion(
        cost_type=cost_type,
        confidence=confidence,
        reason=reason,
        matching_tags=matches,
    )


def to_suggestion(
    entry: CatalogEntry, cost_type: CostType, relevance: int
) -> EntrySuggestion:
    return EntrySuggestion(
        entry_id=entry.id,
        name=entry.name,
        spend_category=entry.spend_category,
        expense_type=entry.expense_type,
        estimated_amount=entry.estimated_amount,
        suggested_cost_type=cost_type,
        relevance=relevance,
    )


def rank_for_cost_type(
    entries: Iterable[CatalogEntry], cost_type: CostType, limit: int | None = None
) -> List[EntrySuggestion]:
    suggestions = [
        to_suggestion(entry, cost_type, lookup_score(entry.tags or [], cost_type))
        for entry in entries
    ]
    suggestions.sort(key=lambda s: (-s.relevance, s.name))
    return suggestions[:limit] if limit is not None else suggestions


def rank_by_inference(
    entries: Iterable[CatalogEntry], limit: int | None = None
) -> List[EntrySuggestion]:
    suggestions = []
    for entry in entries:
        suggestion = suggest_cost_type(entry)
        suggestions.append(
            to_suggestion(entry, suggestion.cost_type, suggestion.confidence)
        )
    suggestions.sort(key=lambda s: (-s.relevance, s.name))
    return suggestions[:limit] if limit is not None else suggestions
