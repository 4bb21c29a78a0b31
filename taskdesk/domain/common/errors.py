from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


class DomainError(Exception):
    """Base for every failure a core operation can report to its caller."""

    code = "domain_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True)
class FieldError:
    field: str
    reason: str


class InvalidField(DomainError):
    code = "invalid_field"

    def __init__(self, errors: Iterable[FieldError]) -> None:
        self.errors = list(errors)
        summary = "; ".join(f"{e.field}: {e.reason}" for e in self.errors)
        super().__init__(f"Validation failed ({summary})")

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["errors"] = [{"field": e.field, "reason": e.reason} for e in self.errors]
        return data


class InvalidParameter(DomainError):
    code = "invalid_parameter"


class NotFound(DomainError):
    code = "not_found"


class Forbidden(DomainError):
    code = "forbidden"


class Conflict(DomainError):
    code = "conflict"
