from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cashdesk.domain.errors import ValidationFailure, Violation, violations_from_error
from cashdesk.domain.models.catalog import CatalogCategory, EntryStatus, ExpenseType

MAX_TAGS = 10
MAX_TAG_LENGTH = 50
MAX_ESTIMATED_AMOUNT = Decimal("999999999")


def normalize_name(name: str) -> str:
    return name[:1].upper() + name[1:].lower()


def normalize_tags(tags: Iterable[str]) -> List[str]:
    """
    Strip tags, drop blank ones and remove exact duplicates while keeping the
    first occurrence. Case is preserved; matching elsewhere ignores it.
    """
    seen = set()
    result = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


class CatalogEntryChanges(BaseModel):
    """All fields optional; used as-is for partial updates."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    spend_category: Optional[CatalogCategory] = None
    expense_type: Optional[ExpenseType] = None
    estimated_amount: Optional[Decimal] = Field(
        None, ge=0, le=MAX_ESTIMATED_AMOUNT, decimal_places=2
    )
    status: Optional[EntryStatus] = None
    notes: Optional[str] = Field(None, max_length=1000)
    tags: Optional[List[str]] = Field(None, max_length=MAX_TAGS)

    @field_validator("name")
    @classmethod
    def _leading_capital(cls, value: Optional[str]) -> Optional[str]:
        return normalize_name(value) if value is not None else None

    @field_validator("description", "notes")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        tags = normalize_tags(value)
        too_long = [tag for tag in tags if len(tag) > MAX_TAG_LENGTH]
        if too_long:
            raise ValueError(
                f"tags must be at most {MAX_TAG_LENGTH} characters: "
                + ", ".join(too_long)
            )
        return tags


class CatalogEntryPayload(CatalogEntryChanges):
    name: str = Field(min_length=3, max_length=100)
    spend_category: CatalogCategory
    expense_type: ExpenseType
    status: EntryStatus = EntryStatus.ACTIVE
    tags: List[str] = Field(default_factory=list, max_length=MAX_TAGS)


def _parse(model, payload: Any):
    if not isinstance(payload, Mapping):
        raise ValidationFailure(
            [Violation("payload", "dict_type", "payload must be a JSON object")]
        )
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailure(violations_from_error(e))


def validate_catalog_entry(payload: Mapping[str, Any]) -> CatalogEntryPayload:
    if isinstance(payload, Mapping):
        payload = {k: v for k, v in payload.items() if v is not None}
    return _parse(CatalogEntryPayload, payload)


def validate_catalog_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Return only the fields the caller supplied. An explicit null clears an
    optional field; required fields cannot be cleared.
    """
    parsed = _parse(CatalogEntryChanges, changes)
    values = parsed.model_dump(exclude_unset=True)
    violations = [
        Violation(name, "missing", f"{name} is required")
        for name in ("name", "spend_category", "expense_type", "status")
        if name in values and values[name] is None
    ]
    if violations:
        raise ValidationFailure(violations)
    if "tags" in values and values["tags"] is None:
        values["tags"] = []
    return values
