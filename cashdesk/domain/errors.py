# cashdesk/domain/errors.py
from dataclasses import asdict, dataclass
from typing import Iterable, List, Optional

from pydantic import ValidationError


@dataclass(frozen=True)
class Violation:
    field: str
    code: str
    message: str


class CashdeskError(ValueError):
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"error": self.kind, "message": self.message}


class ValidationFailure(CashdeskError):
    """Raised with every violated constraint of a payload, never only the first."""

    kind = "validation_failed"

    def __init__(self, violations: Iterable[Violation], message: str = "Invalid data"):
        super().__init__(message)
        self.violations: List[Violation] = list(violations)

    def fields(self) -> List[str]:
        return [v.field for v in self.violations]

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["violations"] = [asdict(v) for v in self.violations]
        return payload


class DuplicateFailure(CashdeskError):
    kind = "duplicate"

    def __init__(self, message: str, existing_id: Optional[int] = None):
        super().__init__(message)
        self.existing_id = existing_id

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["existing_id"] = self.existing_id
        return payload


class NotFound(CashdeskError):
    kind = "not_found"


class InvalidReference(CashdeskError):
    kind = "invalid_reference"


class InternalFailure(CashdeskError):
    kind = "internal_failure"


def violations_from_error(error: ValidationError, prefix: str = "") -> List[Violation]:
    """
    Flatten a pydantic ValidationError into violations. Missing fields get a
    "<field> is required" message so callers can show them as-is.
    """
    violations = []
    for err in error.errors():
        loc = [str(part) for part in err["loc"]]
        field = ".".join(loc) or prefix or "payload"
        if prefix and loc:
            field = f"{prefix}.{field}"
        if err["type"] == "missing":
            message = f"{field} is required"
        else:
            message = err["msg"]
            # pydantic prefixes messages raised from validators
            if message.startswith("Value error, "):
                message = message[len("Value error, ") :]
        violations.append(Violation(field=field, code=err["type"], message=message))
    return violations
