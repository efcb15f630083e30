# This project was developed with assistance from AI tools.
"""Shared schema components."""

import enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Immutable value model exchanged on the wire with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Severity(str, enum.Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"


class ValidationIssue(CamelModel):
    """A single field-scoped validation finding."""

    field: str
    code: str
    message: str
    severity: Severity = Severity.ERROR


class ValidationResult(CamelModel):
    """Outcome of validating one modification request."""

    is_valid: bool
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
