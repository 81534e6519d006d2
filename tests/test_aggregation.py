from decimal import Decimal

from cashdesk.domain.helpers.aggregation import build_breakdown, build_summary, to_money
from cashdesk.domain.models.movement import CostType, Direction


def test_to_money():
    assert to_money(None) == Decimal("0.00")
    assert to_money(0.1 + 0.2) == Decimal("0.30")
    assert to_money(Decimal("12.5")) == Decimal("12.50")


def test_summary_balance():
    summary = build_summary([(Direction.INCOME, 500), (Direction.EXPENSE, 200.0)])
    assert summary.total_income == Decimal("500.00")
    assert summary.total_expense == Decimal("200.00")
    assert summary.balance == summary.total_income - summary.total_expense


def test_summary_without_rows():
    summary = build_summary([])
    assert summary.balance == Decimal("0.00")


def test_breakdown_keeps_none_key():
    rows = build_breakdown(
        [(CostType.LABOR, 0, 75.25, 1), (None, 540, 0, 2)]
    )
    assert [(r.key, r.income, r.expense, r.count) for r in rows] == [
        (CostType.LABOR, Decimal("0.00"), Decimal("75.25"), 1),
        (None, Decimal("540.00"), Decimal("0.00"), 2),
    ]
