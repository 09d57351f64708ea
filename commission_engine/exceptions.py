"""
Engine error types.

Every error derives from ValueError; API layers that catch ValueError
report them as client errors.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """A single structural validation problem, addressed to one input field."""

    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


class EngineError(ValueError):
    """Base class for all engine errors."""


class StructuralValidationError(EngineError):
    """Malformed or out-of-range input. Carries every failing field."""

    def __init__(self, errors: list[FieldError], message: str = "Invalid request body"):
        super().__init__(message)
        self.message = message
        self.errors = list(errors)

    def to_list(self) -> list[dict]:
        return [e.to_dict() for e in self.errors]


class DomainValidationError(EngineError):
    """Structurally valid input that breaks a business rule."""


class ConsistencyError(EngineError):
    """Derived plan fields could not be recalculated; the mutation is rejected."""


class InvalidTransitionError(EngineError):
    """An installment status change not allowed by the lifecycle."""

    def __init__(self, from_status, to_status, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        message = f"Cannot transition installment from '{from_status}' to '{to_status}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NotFoundError(EngineError):
    """Referenced payment plan or installment does not exist."""
