import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo
from pydantic import field_validator

from cashdesk import config
from cashdesk.domain.errors import ValidationFailure, Violation, violations_from_error
from cashdesk.domain.models.movement import (
    MAX_AMOUNT,
    MIN_AMOUNT,
    CostType,
    Direction,
    ExpenseCategory,
    ExpenseMovement,
    IncomeCategory,
    IncomeMovement,
    Movement,
    PaymentMethod,
    classification_fields,
)

logger = logging.getLogger(__name__)

YEARS_BACK = 2
YEARS_AHEAD = 1

REQUIRED_FIELDS = frozenset(
    {
        "event_date",
        "amount",
        "direction",
        "description",
        "payment_method",
        "category",
        "cost_type",
        "income_category",
    }
)


def normalize_description(text: str) -> str:
    """Leading capital, rest lower-cased: "office PAPER" -> "Office paper"."""
    return text[:1].upper() + text[1:].lower()


def shift_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # Feb 29 in a year without one
        return day.replace(year=day.year + years, day=28)


class MovementFields(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    event_date: date
    amount: Decimal = Field(ge=MIN_AMOUNT, le=MAX_AMOUNT, decimal_places=2)
    direction: Direction
    description: str = Field(min_length=5, max_length=200)
    payment_method: PaymentMethod
    voucher: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=500)
    catalog_entry_id: Optional[int] = Field(None, ge=1)

    @field_validator("event_date")
    @classmethod
    def _within_window(cls, value: date, info: ValidationInfo) -> date:
        context = info.context or {}
        if not context.get("check_event_window", True):
            return value
        reference = context.get("today") or config.today()
        earliest = shift_years(reference, -YEARS_BACK)
        latest = shift_years(reference, YEARS_AHEAD)
        if not earliest <= value <= latest:
            raise ValueError(
                f"event_date must lie between {earliest.isoformat()} "
                f"and {latest.isoformat()}"
            )
        return value

    @field_validator("description")
    @classmethod
    def _leading_capital(cls, value: str) -> str:
        return normalize_description(value)

    @field_validator("voucher", "notes")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class ExpenseClassification(BaseModel):
    model_config = ConfigDict(extra="ignore")

    category: ExpenseCategory
    cost_type: CostType


class IncomeClassification(BaseModel):
    model_config = ConfigDict(extra="ignore")

    income_category: IncomeCategory


CLASSIFICATION_MODELS = {
    Direction.EXPENSE: ExpenseClassification,
    Direction.INCOME: IncomeClassification,
}

MOVEMENT_CLASSES = {
    Direction.EXPENSE: ExpenseMovement,
    Direction.INCOME: IncomeMovement,
}


def _coerce_direction(value: Any) -> Optional[Direction]:
    if isinstance(value, Direction):
        return value
    try:
        return Direction(value)
    except ValueError:
        return None


def _other_direction(direction: Direction) -> Direction:
    if direction == Direction.INCOME:
        return Direction.EXPENSE
    return Direction.INCOME


def _collect(
    payload: Any, context: Dict[str, Any]
) -> Tuple[Optional[Movement], List[Violation]]:
    if not isinstance(payload, Mapping):
        return None, [
            Violation("payload", "dict_type", "payload must be a JSON object")
        ]

    # null is treated like an absent field
    data = {k: v for k, v in payload.items() if v is not None}
    violations: List[Violation] = []

    fields = None
    try:
        fields = MovementFields.model_validate(data, context=context)
    except ValidationError as e:
        violations.extend(violations_from_error(e))

    direction = fields.direction if fields else _coerce_direction(data.get("direction"))
    classification = None
    if direction is not None:
        try:
            classification = CLASSIFICATION_MODELS[direction].model_validate(data)
        except ValidationError as e:
            violations.extend(violations_from_error(e))

    if violations:
        return None, violations

    values = fields.model_dump(exclude={"direction"})
    values.update(classification.model_dump())
    return MOVEMENT_CLASSES[direction](**values), []


def validate_and_normalize_movement(
    payload: Mapping[str, Any], today: Optional[date] = None
) -> Movement:
    """
    Validate a candidate movement and return it normalized.

    Every violated constraint is reported in one ValidationFailure. On success
    the description is rewritten with a leading capital and the
    classification fields of the other direction are dropped, even when the
    caller sent them.
    """
    movement, violations = _collect(payload, {"today": today})
    if violations:
        logger.info(
            "Rejected movement payload: %s", ", ".join(v.field for v in violations)
        )
        raise ValidationFailure(violations)
    return movement


def movement_to_payload(movement: Movement) -> Dict[str, Any]:
    payload = {
        "event_date": movement.event_date,
        "amount": movement.amount,
        "direction": movement.direction,
        "description": movement.description,
        "payment_method": movement.payment_method,
        "voucher": movement.voucher,
        "notes": movement.notes,
        "catalog_entry_id": movement.catalog_entry_id,
    }
    for name in classification_fields(movement.direction):
        payload[name] = getattr(movement, name)
    return payload


def validate_movement_update(
    current: Movement, changes: Mapping[str, Any], today: Optional[date] = None
) -> Movement:
    """
    Merge a partial update over a stored movement and re-validate the result.

    Classification fields supplied for the other direction of the merged
    record are rejected. Fields of the previous direction that were not
    supplied are cleared when the direction changes. The event date window
    is only checked when the event date itself changes.
    """
    if not isinstance(changes, Mapping):
        raise ValidationFailure(
            [Violation("payload", "dict_type", "payload must be a JSON object")]
        )

    # null on a required field leaves the stored value unchanged
    changes = {
        k: v for k, v in changes.items() if v is not None or k not in REQUIRED_FIELDS
    }

    violations: List[Violation] = []
    direction = current.direction
    if "direction" in changes:
        direction = _coerce_direction(changes["direction"])

    if direction is not None:
        other = _other_direction(direction)
        for name in classification_fields(other):
            if changes.get(name) is not None:
                violations.append(
                    Violation(
                        name,
                        "not_allowed",
                        f"{name} is not allowed for {direction.value} movements",
                    )
                )

    merged = movement_to_payload(current)
    merged.update(changes)
    context = {"today": today, "check_event_window": "event_date" in changes}
    movement, merge_violations = _collect(merged, context)
    violations.extend(merge_violations)
    if violations:
        logger.info(
            "Rejected update of movement %s: %s",
            current.id,
            ", ".join(v.field for v in violations),
        )
        raise ValidationFailure(violations)

    movement.id = current.id
    movement.user_id = current.user_id
    movement.owner_username = current.owner_username
    movement.created_at = current.created_at
    return movement
