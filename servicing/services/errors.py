# This project was developed with assistance from AI tools.
"""Servicing error taxonomy.

Every error raised by the calculation cores derives from ServicingError so the
HTTP layer can render it as Problem Details with a stable status code.
"""

from ..schemas import ValidationIssue


class ServicingError(Exception):
    """Base class for loan servicing failures."""

    status_code = 500
    title = "Servicing Error"


class ValidationError(ServicingError, ValueError):
    """Field-scoped, user-correctable input problem."""

    status_code = 422
    title = "Validation Failed"

    def __init__(self, message: str, errors: list[ValidationIssue] | None = None):
        super().__init__(message)
        self.errors = list(errors or [])


class UnknownTypeError(ServicingError, LookupError):
    """Modification type is not registered in the catalog."""

    status_code = 404
    title = "Unknown Modification Type"


class CalculationError(ServicingError, ArithmeticError):
    """A calculation precondition was violated (negative balance, non-amortizing payment)."""

    status_code = 422
    title = "Calculation Failed"


class CommitError(ServicingError):
    """Persisting a modification package failed."""

    status_code = 503
    title = "Commit Failed"
