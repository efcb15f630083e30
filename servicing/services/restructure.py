# This project was developed with assistance from AI tools.
"""Restructure pipeline.

Projects a package of modifications in two phases. First each modification
mutates a working snapshot of the loan (principal, rate, term, balloon and an
optionally pinned payment) in order. Then one schedule is computed on the
final snapshot. Mutations that set a term pin the payment at the rate in
effect at that step, so the order of modifications changes the outcome.

Committing builds the whole record in memory and appends it with a single
store call.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Protocol

from db.enums import RESTRUCTURE_RECORD_TYPE, ModificationStatus, ModificationType

from ..schemas import ValidationIssue
from ..schemas.loan import LoanTerms, PaymentSummary
from ..schemas.modification import ModificationCalculationParams
from ..schemas.restructure import (
    CalculationSummary,
    ImpactSummary,
    LoanSnapshot,
    ModificationRecord,
    ProjectedLoan,
)
from .amortization import (
    compute_payment,
    months_per_period,
    number_of_payments,
    payment_with_balloon,
    period_rate,
    solve_term,
)
from .errors import CalculationError, CommitError, ValidationError
from .money import ZERO, round_money, to_decimal
from .validator import validate_modification

logger = logging.getLogger(__name__)


class ModificationStore(Protocol):
    """Append-only persistence for committed modification packages."""

    async def add_modification(self, record: ModificationRecord) -> int | None: ...


def snapshot_of(loan: LoanTerms) -> LoanSnapshot:
    return LoanSnapshot(
        principal=loan.principal,
        annual_rate=loan.annual_rate,
        term_months=loan.term_months,
        balloon_payment=loan.balloon_payment if loan.has_balloon else None,
    )


def _amortized_payment(snap: LoanSnapshot, loan: LoanTerms) -> Decimal:
    """Payment the snapshot would carry if nothing were pinned."""
    periods = number_of_payments(snap.term_months, loan.payment_frequency)
    rate = period_rate(snap.annual_rate, loan.payment_frequency)
    payment = payment_with_balloon(snap.principal, rate, periods, snap.balloon_payment or ZERO)
    return round_money(payment, loan.rounding_method, loan.decimal_places)


def _current_payment(snap: LoanSnapshot, loan: LoanTerms) -> Decimal:
    if snap.monthly_payment is not None:
        return snap.monthly_payment
    return _amortized_payment(snap, loan)


def _reduce_principal(snap: LoanSnapshot, amount) -> Decimal:
    principal = snap.principal - to_decimal(amount)
    if principal < 0:
        raise CalculationError(f"Principal reduction of {amount} exceeds the balance {snap.principal}")
    return principal


def _capitalized_interest(snap: LoanSnapshot, loan: LoanTerms, months: int, payment: Decimal) -> Decimal:
    """Simple-interest estimate of the shortfall a relief window capitalizes."""
    monthly_interest = snap.principal * period_rate(snap.annual_rate)
    shortfall = max(monthly_interest - payment, ZERO) * months
    return round_money(shortfall, loan.rounding_method, loan.decimal_places)


# -- Mutations --


def _rate_change(snap: LoanSnapshot, mod, loan: LoanTerms) -> LoanSnapshot:
    """Swap the rate. A pinned payment absorbs a rate rise.

    On a rise the pinned payment grows by the added periodic interest on the
    principal, so its principal portion is unchanged and the balance still
    amortizes within the term. A cut leaves the pinned payment as is.
    """
    rate = mod.new_annual_interest_rate
    if rate is None:
        return snap
    update: dict = {"annual_rate": rate}
    rise = period_rate(rate, loan.payment_frequency) - period_rate(snap.annual_rate, loan.payment_frequency)
    if snap.monthly_payment is not None and rise > 0:
        update["monthly_payment"] = round_money(
            snap.monthly_payment + snap.principal * rise, loan.rounding_method, loan.decimal_places
        )
    return snap.model_copy(update=update)


def _term_extension(snap: LoanSnapshot, mod, loan: LoanTerms) -> LoanSnapshot:
    current = _current_payment(snap, loan)
    extended = snap.model_copy(update={"term_months": snap.term_months + (mod.additional_months or 0)})
    pinned = current if mod.keep_same_payment else _amortized_payment(extended, loan)
    return extended.model_copy(update={"monthly_payment": pinned})


def _temporary_reduction(snap: LoanSnapshot, mod, loan: LoanTerms) -> LoanSnapshot:
    # Reverts automatically; the permanent terms are untouched.
    return snap


def _permanent_reduction(snap: LoanSnapshot, mod, loan: LoanTerms) -> LoanSnapshot:
    update: dict = {"monthly_payment": mod.new_payment_amount}
    if mod.term_adjustment in ("EXTEND_TERM", "COMBINATION") and mod.new_term_months:
        update["term_months"] = mod.new_term_months
    if mod.term_adjustment in ("REDUCE_PRINCIPAL", "COMBINATION") and mod.principal_reduction:
        update["principal"] = _reduce_principal(snap, mod.principal_reduction)
    return snap.model_copy(update=update)


def _principal_reduction(snap: LoanSnapshot, mod, loan: LoanTerms) -> LoanSnapshot:
    current = _current_payment(snap, loan)
    update: dict = {"principal": _reduce_principal(snap, mod.reduction_amount or 0)}
    if mod.payment_recalculation == "KEEP_PAYMENT":
        update["monthly_payment"] = current
    elif mod.payment_recalculation == "CUSTOM":
        update["monthly_payment"] = mod.new_payment_amount
        if mod.new_term_months:
            update["term_months"] = mod.new_term_months
    else:
        update["monthly_payment"] = None
    return snap.model_copy(update=update)


def _balloon_assignment(snap: LoanSnapshot, mod, loan: LoanTerms) -> LoanSnapshot:
    return snap.model_copy(update={"balloon_payment": mod.balloon_amount, "monthly_payment": None})


def _balloon_removal(snap: LoanSnapshot, mod, loan: LoanTerms) -> LoanSnapshot:
    current = _current_payment(snap, loan)
    update: dict = {"balloon_payment": None, "monthly_payment": None}
    if mod.reamortization_type == "EXTEND_TERM":
        periods = solve_term(snap.principal, period_rate(snap.annual_rate, loan.payment_frequency), current)
        update["term_months"] = max(periods, 1) * months_per_period(loan.payment_frequency)
        update["monthly_payment"] = current
    elif mod.reamortization_type == "CUSTOM":
        update["monthly_payment"] = mod.new_payment_amount
        if mod.new_term_months:
            update["term_months"] = mod.new_term_months
    return snap.model_copy(update=update)


def _forbearance(snap: LoanSnapshot, mod, loan: LoanTerms) -> LoanSnapshot:
    payment = ZERO
    if mod.forbearance_type == "PARTIAL_REDUCTION":
        payment = to_decimal(mod.reduced_payment_amount)
    added = _capitalized_interest(snap, loan, mod.duration_months or 0, payment)
    return snap.model_copy(update={"principal": snap.principal + added})


def _deferment(snap: LoanSnapshot, mod, loan: LoanTerms) -> LoanSnapshot:
    if mod.interest_subsidy:
        return snap
    added = _capitalized_interest(snap, loan, mod.duration_months or 0, ZERO)
    return snap.model_copy(update={"principal": snap.principal + added})


def _reamortization(snap: LoanSnapshot, mod, loan: LoanTerms) -> LoanSnapshot:
    update: dict = {"monthly_payment": None}
    if mod.new_principal_amount is not None:
        update["principal"] = mod.new_principal_amount
    if mod.new_interest_rate is not None:
        update["annual_rate"] = mod.new_interest_rate
    if mod.new_term_months:
        update["term_months"] = mod.new_term_months
    return snap.model_copy(update=update)


_MUTATIONS: dict[ModificationType, Callable[[LoanSnapshot, object, LoanTerms], LoanSnapshot]] = {
    ModificationType.RATE_CHANGE: _rate_change,
    ModificationType.TERM_EXTENSION: _term_extension,
    ModificationType.PAYMENT_REDUCTION_TEMPORARY: _temporary_reduction,
    ModificationType.PAYMENT_REDUCTION_PERMANENT: _permanent_reduction,
    ModificationType.PRINCIPAL_REDUCTION: _principal_reduction,
    ModificationType.BALLOON_PAYMENT_ASSIGNMENT: _balloon_assignment,
    ModificationType.BALLOON_PAYMENT_REMOVAL: _balloon_removal,
    ModificationType.FORBEARANCE: _forbearance,
    ModificationType.DEFERMENT: _deferment,
    ModificationType.REAMORTIZATION: _reamortization,
}

_missing = set(ModificationType) - set(_MUTATIONS)
if _missing:
    raise RuntimeError(f"Restructure mutations missing for: {sorted(t.value for t in _missing)}")


def _summarize(summary: PaymentSummary) -> CalculationSummary:
    return CalculationSummary(
        monthly_payment=summary.monthly_payment,
        total_interest=summary.total_interest,
        total_payment=summary.total_payments,
    )


def _terms_for(snap: LoanSnapshot, loan: LoanTerms) -> LoanTerms:
    return loan.model_copy(
        update={
            "principal": snap.principal,
            "annual_rate": snap.annual_rate,
            "term_months": snap.term_months,
            "balloon_payment": snap.balloon_payment,
            "fixed_payment": snap.monthly_payment,
        }
    )


def project_restructure(loan: LoanTerms, modifications: Sequence) -> ProjectedLoan:
    """Fold ``modifications`` into the loan in order and recompute once."""
    snap = snapshot_of(loan)
    for mod in modifications:
        snap = _MUTATIONS[mod.modification_type](snap, mod, loan)

    original = _summarize(compute_payment(loan))
    calculation = _summarize(compute_payment(_terms_for(snap, loan))) if modifications else original
    changes = CalculationSummary(
        monthly_payment=calculation.monthly_payment - original.monthly_payment,
        total_interest=calculation.total_interest - original.total_interest,
        total_payment=calculation.total_payment - original.total_payment,
    )
    logger.info(
        "Projected restructure of %d modification(s): payment %s -> %s",
        len(modifications),
        original.monthly_payment,
        calculation.monthly_payment,
    )
    return ProjectedLoan(parameters=snap, original=original, calculation=calculation, changes=changes)


def _commit_issues(
    loan: LoanTerms,
    modifications: Sequence,
    reason: str,
    params: ModificationCalculationParams | None,
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if not reason or not reason.strip():
        issues.append(ValidationIssue(field="reason", code="REQUIRED", message="A reason is required"))
    if not modifications:
        issues.append(
            ValidationIssue(
                field="modifications",
                code="REQUIRED",
                message="At least one modification is required",
            )
        )
    allowed = ModificationStatus.valid_transitions()
    for index, mod in enumerate(modifications):
        if ModificationStatus.APPLIED not in allowed[mod.status]:
            issues.append(
                ValidationIssue(
                    field=f"modifications[{index}].status",
                    code="INVALID_STATUS",
                    message=f"Cannot apply a modification that is {mod.status.value}",
                )
            )
        if params is None:
            continue
        result = validate_modification(loan, mod, params)
        issues.extend(
            e.model_copy(update={"field": f"modifications[{index}].{e.field}"}) for e in result.errors
        )
    return issues


async def commit_modifications(
    store: ModificationStore,
    *,
    loan_id: str,
    loan: LoanTerms,
    modifications: Sequence,
    reason: str,
    approved_by: str,
    effective_date: date | None = None,
    params: ModificationCalculationParams | None = None,
    reverses_record_id: int | None = None,
) -> ModificationRecord:
    """Record a package of modifications against a loan.

    Editing a committed package is a new record carrying
    ``reverses_record_id``; nothing already stored is changed.

    Raises:
        ValidationError: Missing reason, empty package, or an invalid modification.
        CommitError: The store call failed.
    """
    issues = _commit_issues(loan, modifications, reason, params)
    if issues:
        logger.warning(
            "Rejected modification commit for loan %s: %s",
            loan_id,
            [f"{i.field}:{i.code}" for i in issues],
        )
        raise ValidationError(f"Modification package for loan {loan_id} is invalid", errors=issues)

    projection = project_restructure(loan, modifications)
    record_type = modifications[0].type if len(modifications) == 1 else RESTRUCTURE_RECORD_TYPE
    record = ModificationRecord(
        loan_id=loan_id,
        record_type=record_type,
        date=datetime.now(UTC),
        effective_date=effective_date or min(m.effective_date for m in modifications),
        changes=projection.changes,
        impact_summary=ImpactSummary(
            payment_change=projection.changes.monthly_payment,
            term_change=projection.parameters.term_months - loan.term_months,
            interest_change=projection.changes.total_interest,
            principal_change=projection.parameters.principal - loan.principal,
        ),
        reason=reason.strip(),
        approved_by=approved_by,
        reverses_record_id=reverses_record_id,
        modifications=[m.model_copy(update={"status": ModificationStatus.APPLIED}) for m in modifications],
    )

    try:
        record_id = await store.add_modification(record)
    except Exception as exc:
        logger.exception("Failed to record %s for loan %s", record_type, loan_id)
        raise CommitError(f"Could not record modifications for loan {loan_id}") from exc

    if record_id is not None:
        record = record.model_copy(update={"id": record_id})
    logger.info(
        "Committed %s for loan %s (%d modification(s), payment change %s)",
        record_type,
        loan_id,
        len(modifications),
        projection.changes.monthly_payment,
    )
    return record
