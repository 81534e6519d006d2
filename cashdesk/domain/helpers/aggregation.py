from decimal import Decimal
from typing import Iterable, List, Tuple

from cashdesk.domain.models.movement import BreakdownRow, Direction, Summary

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """
    Normalize a SUM() result to a two-decimal Decimal. Some drivers hand
    back floats or None for empty groups.
    """
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT)


def build_summary(rows: Iterable[Tuple[Direction, object]]) -> Summary:
    """rows: (direction, sum of amounts) as grouped by the store."""
    summary = Summary(total_income=to_money(0), total_expense=to_money(0))
    for direction, total in rows:
        if direction == Direction.INCOME:
            summary.total_income += to_money(total)
        elif direction == Direction.EXPENSE:
            summary.total_expense += to_money(total)
    return summary


def build_breakdown(rows: Iterable[Tuple[object, object, object, int]]) -> List[BreakdownRow]:
    """
    rows: (key, income sum, expense sum, count) grouped by key. Each key
    appears once; a None key collects movements without that field.
    """
    breakdown = []
    for key, income, expense, count in rows:
        breakdown.append(
            BreakdownRow(
                key=key,
                income=to_money(income),
                expense=to_money(expense),
                count=int(count or 0),
            )
        )
    return breakdown
