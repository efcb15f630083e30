# This project was developed with assistance from AI tools.
"""Modification validation.

Static rules (required, ranges, options) come from the catalog field specs.
Rules that depend on the loan or on the current position are held in a
per-type table. Every issue is scoped to the camelCase field it concerns;
only ERROR issues make a request invalid.
"""

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from decimal import Decimal
from functools import cached_property

from db.enums import ModificationType
from pydantic.alias_generators import to_camel

from ..core.config import settings
from ..schemas import Severity, ValidationIssue, ValidationResult
from ..schemas.loan import LoanTerms
from ..schemas.modification import FieldSpec, ModificationCalculationParams
from .amortization import compute_payment, months_between, months_per_period, number_of_payments
from .catalog import get_schema
from .errors import ValidationError

logger = logging.getLogger(__name__)

RATE_WARNING_THRESHOLD = Decimal("25")

# First term of the reamortized schedule for the fixed balloon start options.
_BALLOON_START_TERMS = {"CURRENT_TERM": 1, "NEXT_TERM": 2, "BEGINNING": 1}


def _error(attr: str, code: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=to_camel(attr), code=code, message=message)


def _warning(attr: str, code: str, message: str) -> ValidationIssue:
    return ValidationIssue(
        field=to_camel(attr), code=code, message=message, severity=Severity.WARNING
    )


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _check_field(spec: FieldSpec, modification) -> Iterator[ValidationIssue]:
    value = getattr(modification, spec.attr, None)
    required = spec.required
    if spec.required_when is not None:
        option_attr, values = spec.required_when
        required = getattr(modification, option_attr, None) in values

    if _is_blank(value):
        if required:
            yield _error(spec.attr, "REQUIRED", f"{spec.label} is required")
        return

    if spec.kind == "option" and value not in spec.options:
        yield _error(
            spec.attr,
            "INVALID_OPTION",
            f"{spec.label} must be one of {', '.join(spec.options)}",
        )
        return

    if spec.kind in ("decimal", "integer"):
        if spec.minimum is not None:
            if spec.min_exclusive and value <= spec.minimum:
                yield _error(spec.attr, "OUT_OF_RANGE", f"{spec.label} must be greater than {spec.minimum}")
            elif not spec.min_exclusive and value < spec.minimum:
                yield _error(spec.attr, "OUT_OF_RANGE", f"{spec.label} must be at least {spec.minimum}")
        if spec.maximum is not None and value > spec.maximum:
            yield _error(spec.attr, "OUT_OF_RANGE", f"{spec.label} must be at most {spec.maximum}")


@dataclass
class _Position:
    """Loan terms and current position shared by the dynamic rules."""

    loan: LoanTerms
    params: ModificationCalculationParams

    @cached_property
    def original_payment(self) -> Decimal:
        return compute_payment(self.loan).monthly_payment

    @property
    def remaining(self) -> int:
        return self.params.current_terms_remaining

    @property
    def elapsed(self) -> int:
        total = number_of_payments(self.loan.term_months, self.loan.payment_frequency)
        return max(total - self.remaining, 0)


def _leaves_remaining_term(pos: _Position, attr: str, window: int | None) -> Iterator[ValidationIssue]:
    if window is not None and window >= pos.remaining:
        yield _error(
            attr,
            "WINDOW_TOO_LONG",
            f"Must end before maturity; only {pos.remaining} terms remain",
        )


def _covers_elapsed(pos: _Position, attr: str, term: int | None) -> Iterator[ValidationIssue]:
    if term is not None and term <= pos.elapsed:
        yield _error(
            attr,
            "TERM_TOO_SHORT",
            f"New term must exceed the {pos.elapsed} payments already made",
        )


def _lowers_payment(pos: _Position, attr: str, amount: Decimal | None) -> Iterator[ValidationIssue]:
    if amount is not None and amount >= pos.original_payment:
        yield _warning(
            attr,
            "NOT_A_REDUCTION",
            f"Payment {amount} is not below the current payment {pos.original_payment}",
        )


def _rate_change_rules(pos: _Position, mod) -> Iterator[ValidationIssue]:
    rate = mod.new_annual_interest_rate
    if rate is None:
        return
    current = mod.previous_rate if mod.previous_rate is not None else pos.loan.annual_rate
    if rate == current:
        yield _warning("new_annual_interest_rate", "RATE_UNCHANGED", "New rate equals the current rate")
    if rate > RATE_WARNING_THRESHOLD:
        yield _warning(
            "new_annual_interest_rate",
            "RATE_UNUSUALLY_HIGH",
            f"Rate above {RATE_WARNING_THRESHOLD}% is unusually high",
        )


def _term_extension_rules(pos: _Position, mod) -> Iterator[ValidationIssue]:
    if mod.additional_months is None:
        return
    if pos.loan.term_months + mod.additional_months > settings.MAX_LOAN_TERM_MONTHS:
        yield _error(
            "additional_months",
            "EXCEEDS_MAX_TERM",
            f"Extended term may not exceed {settings.MAX_LOAN_TERM_MONTHS} months",
        )


def _temporary_reduction_rules(pos: _Position, mod) -> Iterator[ValidationIssue]:
    yield from _leaves_remaining_term(pos, "number_of_terms", mod.number_of_terms)
    yield from _lowers_payment(pos, "new_payment_amount", mod.new_payment_amount)


def _permanent_reduction_rules(pos: _Position, mod) -> Iterator[ValidationIssue]:
    if mod.principal_reduction is not None and mod.principal_reduction >= pos.params.current_balance:
        yield _error(
            "principal_reduction",
            "EXCEEDS_BALANCE",
            "Principal reduction must be less than the current balance",
        )
    yield from _covers_elapsed(pos, "new_term_months", mod.new_term_months)
    yield from _lowers_payment(pos, "new_payment_amount", mod.new_payment_amount)


def _principal_reduction_rules(pos: _Position, mod) -> Iterator[ValidationIssue]:
    if mod.reduction_amount is not None and mod.reduction_amount > pos.params.current_balance:
        yield _error(
            "reduction_amount",
            "EXCEEDS_BALANCE",
            f"Reduction may not exceed the current balance of {pos.params.current_balance}",
        )
    if mod.payment_recalculation == "CUSTOM":
        yield from _covers_elapsed(pos, "new_term_months", mod.new_term_months)


def _balloon_assignment_rules(pos: _Position, mod) -> Iterator[ValidationIssue]:
    if mod.balloon_amount is not None and mod.balloon_amount > pos.params.current_balance:
        yield _error(
            "balloon_amount",
            "EXCEEDS_BALANCE",
            f"Balloon may not exceed the current balance of {pos.params.current_balance}",
        )
    if mod.balloon_due_date is None:
        return
    if mod.balloon_due_date <= mod.effective_date:
        yield _error(
            "balloon_due_date",
            "DATE_NOT_AFTER_EFFECTIVE",
            "Balloon due date must be after the effective date",
        )
        return

    # Payments left before the balloon falls due.
    mpp = months_per_period(pos.loan.payment_frequency)
    horizon = min(pos.remaining, months_between(mod.effective_date, mod.balloon_due_date) // mpp)
    if horizon < 1:
        yield _error(
            "balloon_due_date",
            "DUE_BEFORE_NEXT_PAYMENT",
            "Balloon must fall due at least one payment period after the effective date",
        )
        return

    start = _BALLOON_START_TERMS.get(mod.reamortization_start_type, mod.custom_start_term)
    if start is not None and start > horizon:
        attr = "custom_start_term" if mod.reamortization_start_type == "CUSTOM" else "reamortization_start_type"
        yield _error(
            attr,
            "OUT_OF_RANGE",
            f"Reamortization must start between term 1 and {horizon}, before the balloon falls due",
        )


def _balloon_removal_rules(pos: _Position, mod) -> Iterator[ValidationIssue]:
    if not pos.loan.has_balloon:
        yield _error("type", "NO_BALLOON", "Loan has no balloon payment to remove")
    if mod.reamortization_type == "CUSTOM":
        yield from _covers_elapsed(pos, "new_term_months", mod.new_term_months)


def _forbearance_rules(pos: _Position, mod) -> Iterator[ValidationIssue]:
    yield from _leaves_remaining_term(pos, "duration_months", mod.duration_months)
    if mod.forbearance_type == "PARTIAL_REDUCTION":
        yield from _lowers_payment(pos, "reduced_payment_amount", mod.reduced_payment_amount)


def _deferment_rules(pos: _Position, mod) -> Iterator[ValidationIssue]:
    yield from _leaves_remaining_term(pos, "duration_months", mod.duration_months)


def _reamortization_rules(pos: _Position, mod) -> Iterator[ValidationIssue]:
    if mod.reamortization_type != "RESET_SCHEDULE":
        yield from _covers_elapsed(pos, "new_term_months", mod.new_term_months)


_DYNAMIC_RULES: dict[ModificationType, Callable[[_Position, object], Iterator[ValidationIssue]]] = {
    ModificationType.RATE_CHANGE: _rate_change_rules,
    ModificationType.TERM_EXTENSION: _term_extension_rules,
    ModificationType.PAYMENT_REDUCTION_TEMPORARY: _temporary_reduction_rules,
    ModificationType.PAYMENT_REDUCTION_PERMANENT: _permanent_reduction_rules,
    ModificationType.PRINCIPAL_REDUCTION: _principal_reduction_rules,
    ModificationType.BALLOON_PAYMENT_ASSIGNMENT: _balloon_assignment_rules,
    ModificationType.BALLOON_PAYMENT_REMOVAL: _balloon_removal_rules,
    ModificationType.FORBEARANCE: _forbearance_rules,
    ModificationType.DEFERMENT: _deferment_rules,
    ModificationType.REAMORTIZATION: _reamortization_rules,
}

_missing = set(ModificationType) - set(_DYNAMIC_RULES)
if _missing:
    raise RuntimeError(f"Validation rules missing for: {sorted(t.value for t in _missing)}")


def _position_rules(pos: _Position, mod) -> Iterator[ValidationIssue]:
    if mod.effective_date < pos.loan.start_date:
        yield _error("effective_date", "BEFORE_LOAN_START", "Effective date is before the loan start date")
    total = number_of_payments(pos.loan.term_months, pos.loan.payment_frequency)
    if pos.remaining > total:
        yield _error(
            "current_terms_remaining",
            "OUT_OF_RANGE",
            f"Remaining terms exceed the {total}-payment loan term",
        )
    elif pos.params.current_payment_number != pos.elapsed + 1:
        yield _error(
            "current_payment_number",
            "POSITION_MISMATCH",
            f"With {pos.remaining} terms remaining the next payment is number {pos.elapsed + 1}",
        )


def validate_modification(
    loan_terms: LoanTerms,
    modification,
    params: ModificationCalculationParams,
) -> ValidationResult:
    """Check one modification request against its catalog rules and the loan position."""
    issues: list[ValidationIssue] = []
    for spec in get_schema(modification.type):
        issues.extend(_check_field(spec, modification))

    pos = _Position(loan=loan_terms, params=params)
    issues.extend(_position_rules(pos, modification))
    # Range rules only make sense once the static shape is sound.
    if not any(i.severity == Severity.ERROR for i in issues):
        issues.extend(_DYNAMIC_RULES[modification.modification_type](pos, modification))

    errors = [i for i in issues if i.severity == Severity.ERROR]
    warnings = [i for i in issues if i.severity == Severity.WARNING]
    if errors:
        logger.debug(
            "Modification %s (%s) invalid: %s",
            modification.id,
            modification.type,
            [f"{e.field}:{e.code}" for e in errors],
        )
    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def ensure_valid(
    loan_terms: LoanTerms,
    modification,
    params: ModificationCalculationParams,
) -> ValidationResult:
    """Validate and raise ValidationError when any ERROR issue is found."""
    result = validate_modification(loan_terms, modification, params)
    if not result.is_valid:
        raise ValidationError(
            f"{modification.type} modification is invalid",
            errors=result.errors,
        )
    return result
