from datetime import date
from decimal import Decimal

import pytest

from cashdesk.domain.errors import ValidationFailure
from cashdesk.domain.helpers.movement_validator import (
    normalize_description,
    shift_years,
    validate_and_normalize_movement,
    validate_movement_update,
)
from cashdesk.domain.models.movement import (
    CostType,
    Direction,
    ExpenseCategory,
    ExpenseMovement,
    IncomeCategory,
    IncomeMovement,
)
from factories import TODAY, expense_payload, income_payload


def test_expense_is_accepted_and_normalized():
    movement = validate_and_normalize_movement(expense_payload(), today=TODAY)

    assert isinstance(movement, ExpenseMovement)
    assert movement.direction == Direction.EXPENSE
    assert movement.description == "Office paper"
    assert movement.amount == Decimal("100.00")
    assert movement.category == ExpenseCategory.ADMINISTRATIVE
    assert movement.cost_type == CostType.OTHER_EXPENSE
    assert not hasattr(movement, "income_category")


def test_expense_drops_income_category():
    movement = validate_and_normalize_movement(
        expense_payload(income_category="direct_sale"), today=TODAY
    )
    assert not hasattr(movement, "income_category")


def test_income_drops_expense_classification():
    movement = validate_and_normalize_movement(
        income_payload(category="sales", cost_type="labor"), today=TODAY
    )
    assert isinstance(movement, IncomeMovement)
    assert movement.income_category == IncomeCategory.DIRECT_SALE
    assert not hasattr(movement, "category")
    assert not hasattr(movement, "cost_type")


def test_expense_with_income_fields_lists_missing_classification():
    payload = expense_payload(income_category="direct_sale")
    del payload["category"]
    del payload["cost_type"]

    with pytest.raises(ValidationFailure) as exc:
        validate_and_normalize_movement(payload, today=TODAY)

    messages = [v.message for v in exc.value.violations]
    assert "category is required" in messages
    assert "cost_type is required" in messages


def test_every_violation_is_reported():
    payload = {
        "event_date": "2019-01-01",
        "amount": "-5",
        "direction": "expense",
        "description": "abc",
        "payment_method": "bitcoin",
    }
    with pytest.raises(ValidationFailure) as exc:
        validate_and_normalize_movement(payload, today=TODAY)

    assert set(exc.value.fields()) >= {
        "event_date",
        "amount",
        "description",
        "payment_method",
        "category",
        "cost_type",
    }


def test_missing_direction_is_a_violation():
    payload = expense_payload()
    del payload["direction"]
    with pytest.raises(ValidationFailure) as exc:
        validate_and_normalize_movement(payload, today=TODAY)
    assert exc.value.fields() == ["direction"]


@pytest.mark.parametrize("amount", ["0.01", "1", "999999999"])
def test_amount_within_bounds_is_accepted(amount):
    movement = validate_and_normalize_movement(
        expense_payload(amount=amount), today=TODAY
    )
    assert movement.amount == Decimal(amount)


@pytest.mark.parametrize("amount", ["0", "-1", "999999999.01"])
def test_amount_out_of_bounds_is_rejected(amount):
    with pytest.raises(ValidationFailure) as exc:
        validate_and_normalize_movement(expense_payload(amount=amount), today=TODAY)
    assert exc.value.fields() == ["amount"]


def test_event_date_window():
    validate_and_normalize_movement(
        expense_payload(event_date="2022-10-01"), today=TODAY
    )
    validate_and_normalize_movement(
        expense_payload(event_date="2025-10-01"), today=TODAY
    )
    for day in ("2022-09-30", "2025-10-02"):
        with pytest.raises(ValidationFailure) as exc:
            validate_and_normalize_movement(expense_payload(event_date=day), today=TODAY)
        assert exc.value.fields() == ["event_date"]


def test_shift_years_handles_leap_day():
    assert shift_years(date(2024, 2, 29), -2) == date(2022, 2, 28)
    assert shift_years(date(2024, 3, 1), 1) == date(2025, 3, 1)


@pytest.mark.parametrize(
    "text", ["office paper", "OFFICE PAPER", "Office paper", "x", ""]
)
def test_description_normalization_is_idempotent(text):
    once = normalize_description(text)
    assert normalize_description(once) == once


def test_blank_optional_text_becomes_none():
    movement = validate_and_normalize_movement(
        expense_payload(voucher="   ", notes=""), today=TODAY
    )
    assert movement.voucher is None
    assert movement.notes is None


def test_non_object_payload_is_rejected():
    with pytest.raises(ValidationFailure) as exc:
        validate_and_normalize_movement(["not", "a", "dict"], today=TODAY)
    assert exc.value.fields() == ["payload"]


def _stored_expense():
    movement = validate_and_normalize_movement(expense_payload(), today=TODAY)
    movement.id = 7
    movement.user_id = 1
    return movement


def test_update_merges_changes():
    updated = validate_movement_update(
        _stored_expense(), {"amount": "250.50", "notes": "second quote"}, today=TODAY
    )
    assert updated.id == 7
    assert updated.user_id == 1
    assert updated.amount == Decimal("250.50")
    assert updated.notes == "second quote"
    assert updated.description == "Office paper"


def test_update_skips_window_check_when_date_unchanged():
    later = date(2030, 1, 1)
    updated = validate_movement_update(_stored_expense(), {"amount": "1"}, today=later)
    assert updated.event_date == date(2024, 9, 15)

    with pytest.raises(ValidationFailure):
        validate_movement_update(
            _stored_expense(), {"event_date": "2024-09-16"}, today=later
        )


def test_update_rejects_other_side_fields():
    with pytest.raises(ValidationFailure) as exc:
        validate_movement_update(
            _stored_expense(), {"income_category": "direct_sale"}, today=TODAY
        )
    assert exc.value.violations[0].code == "not_allowed"


def test_update_switching_direction_clears_previous_side():
    updated = validate_movement_update(
        _stored_expense(),
        {"direction": "income", "income_category": "other_income"},
        today=TODAY,
    )
    assert isinstance(updated, IncomeMovement)
    assert updated.income_category == IncomeCategory.OTHER_INCOME
    assert not hasattr(updated, "category")


def test_update_switching_to_expense_requires_classification():
    income = validate_and_normalize_movement(income_payload(), today=TODAY)
    with pytest.raises(ValidationFailure) as exc:
        validate_movement_update(income, {"direction": "expense"}, today=TODAY)
    assert set(exc.value.fields()) == {"category", "cost_type"}


@pytest.mark.parametrize("amount", ["100.005", "0.001", "12.3456"])
def test_amount_with_more_than_two_decimals_is_rejected(amount):
    with pytest.raises(ValidationFailure) as exc:
        validate_and_normalize_movement(expense_payload(amount=amount), today=TODAY)
    assert set(exc.value.fields()) == {"amount"}


def test_update_with_null_required_fields_keeps_stored_values():
    updated = validate_movement_update(
        _stored_expense(),
        {"direction": None, "category": None, "amount": "5.50", "voucher": "F-001"},
        today=TODAY,
    )
    assert isinstance(updated, ExpenseMovement)
    assert updated.category == ExpenseCategory.ADMINISTRATIVE
    assert updated.amount == Decimal("5.50")
    assert updated.voucher == "F-001"


def test_update_with_null_optional_field_clears_it():
    stored = validate_and_normalize_movement(
        expense_payload(notes="first quote"), today=TODAY
    )
    updated = validate_movement_update(stored, {"notes": None}, today=TODAY)
    assert updated.notes is None
