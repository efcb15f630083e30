# This project was developed with assistance from AI tools.
"""Modification impact calculation.

Projects the payment, term and lifetime interest of a loan after one
modification and compares them with the unmodified schedule. Pure math, no
I/O. Terms are counted in payment periods; ``new_term_months`` is reported
from origination so it compares directly with the original term.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_UP, Decimal

from db.enums import ModificationType

from ..core.config import settings
from ..schemas.loan import LoanTerms, PaymentSummary, ScheduleEntry
from ..schemas.modification import (
    ModificationCalculationParams,
    ModificationCalculationResult,
    ScheduleImpact,
)
from .amortization import (
    add_periods,
    compute_payment,
    create_loan_terms,
    generate_schedule,
    months_between,
    months_per_period,
    number_of_payments,
    period_rate,
    present_value,
    solve_term,
)
from .errors import CalculationError
from .money import ZERO, quantum, round_money, to_decimal
from .validator import ensure_valid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Context:
    """Baseline figures every transform starts from."""

    loan: LoanTerms
    params: ModificationCalculationParams
    modification: object
    baseline: PaymentSummary
    schedule: list[ScheduleEntry]
    paid_interest: Decimal

    @property
    def balance(self) -> Decimal:
        return self.params.current_balance

    @property
    def remaining(self) -> int:
        return self.params.current_terms_remaining

    @property
    def elapsed(self) -> int:
        total = number_of_payments(self.loan.term_months, self.loan.payment_frequency)
        return max(total - self.remaining, 0)

    @property
    def rate(self) -> Decimal:
        return period_rate(self.loan.annual_rate, self.loan.payment_frequency)

    @property
    def balloon(self) -> Decimal | None:
        return self.loan.balloon_payment if self.loan.has_balloon else None

    def rnd(self, value) -> Decimal:
        return round_money(value, self.loan.rounding_method, self.loan.decimal_places)

    def periods(self, months: int) -> int:
        return number_of_payments(months, self.loan.payment_frequency)

    def remaining_periods(self, term_months: int) -> int:
        """Periods left under a new total term counted from origination."""
        return self.periods(term_months) - self.elapsed

    def term_for(self, periods: int) -> int:
        """Total term in months when ``periods`` payments remain."""
        return self.loan.term_months + (periods - self.remaining) * months_per_period(
            self.loan.payment_frequency
        )


@dataclass
class _Outcome:
    new_payment: Decimal
    new_term_months: int
    future_interest: Decimal
    new_principal_balance: Decimal
    balloon_amount: Decimal | None = None
    automatic_reversion_date: date | None = None
    payment_after_reversion: Decimal | None = None
    deferred_balance: Decimal | None = None
    schedule_impact: ScheduleImpact = field(default_factory=ScheduleImpact)


@dataclass
class _Window:
    """Balance and interest movement across a relief window."""

    balance: Decimal
    accrued: Decimal = ZERO
    waived: Decimal = ZERO
    deferred: Decimal = ZERO


def _tail(
    ctx: _Context,
    principal,
    annual_rate,
    periods: int,
    *,
    balloon=None,
    fixed_payment=None,
) -> PaymentSummary:
    """Amortize ``principal`` over ``periods`` payments from the effective date."""
    principal = to_decimal(principal)
    if principal < 0:
        raise CalculationError(f"Modification would leave a negative balance ({principal})")
    if periods < 1:
        raise CalculationError("Modification leaves no remaining term to amortize over")
    if principal == 0:
        balloon = fixed_payment = None
    return compute_payment(_tail_terms(ctx, principal, annual_rate, periods, balloon, fixed_payment))


def _tail_terms(ctx: _Context, principal, annual_rate, periods, balloon, fixed_payment) -> LoanTerms:
    mpp = months_per_period(ctx.loan.payment_frequency)
    return create_loan_terms(
        principal,
        annual_rate,
        periods * mpp,
        ctx.modification.effective_date,
        payment_frequency=ctx.loan.payment_frequency,
        day_count=ctx.loan.day_count,
        accrual_timing=ctx.loan.accrual_timing,
        rounding_method=ctx.loan.rounding_method,
        decimal_places=ctx.loan.decimal_places,
        balloon_payment=balloon,
        fixed_payment=fixed_payment,
    )


def _relief_window(
    ctx: _Context,
    periods: int,
    payment: Decimal,
    handling: str = "CAPITALIZE",
    *,
    accrue: bool = True,
) -> _Window:
    """Run ``periods`` payments of ``payment`` and settle any interest shortfall."""
    window = _Window(balance=ctx.balance)
    for _ in range(periods):
        interest = ctx.rnd(window.balance * ctx.rate) if accrue else ZERO
        paid = min(payment, interest + window.balance)
        window.accrued += interest
        if paid >= interest:
            window.balance -= paid - interest
            continue
        shortfall = interest - paid
        if handling == "CAPITALIZE":
            window.balance += shortfall
        elif handling == "DEFER":
            window.deferred += shortfall
        else:
            window.waived += shortfall
    return window


def _relief_outcome(
    ctx: _Context,
    periods: int,
    payment: Decimal,
    handling: str = "CAPITALIZE",
    *,
    accrue: bool = True,
) -> _Outcome:
    """Relief window followed by standard amortization over what remains of the term."""
    window = _relief_window(ctx, periods, payment, handling, accrue=accrue)
    tail = _tail(ctx, window.balance, ctx.loan.annual_rate, ctx.remaining - periods, balloon=ctx.balloon)
    return _Outcome(
        new_payment=ctx.rnd(payment),
        new_term_months=ctx.loan.term_months,
        future_interest=window.accrued - window.waived + tail.total_interest,
        new_principal_balance=ctx.rnd(window.balance),
        automatic_reversion_date=add_periods(
            ctx.modification.effective_date, periods, ctx.loan.payment_frequency
        ),
        payment_after_reversion=tail.monthly_payment,
        deferred_balance=ctx.rnd(window.deferred) if handling == "DEFER" else None,
    )


def _standard_outcome(ctx: _Context, tail: PaymentSummary, periods: int, balance) -> _Outcome:
    return _Outcome(
        new_payment=tail.monthly_payment,
        new_term_months=ctx.term_for(periods),
        future_interest=tail.total_interest,
        new_principal_balance=ctx.rnd(balance),
        balloon_amount=ctx.balloon,
    )


def _from_origination(ctx: _Context, terms: LoanTerms) -> _Outcome:
    """Recompute the whole loan from origination and keep the unpaid portion."""
    schedule = generate_schedule(terms)
    elapsed = min(ctx.elapsed, len(schedule))
    future = schedule[elapsed:]
    if not future:
        raise CalculationError("Recalculated schedule ends before the current payment")
    balance = schedule[elapsed - 1].remaining_balance if elapsed else terms.principal
    return _Outcome(
        new_payment=compute_payment(terms).monthly_payment,
        new_term_months=terms.term_months,
        future_interest=sum((e.interest for e in future), ZERO),
        new_principal_balance=ctx.rnd(balance),
        balloon_amount=terms.balloon_payment if terms.has_balloon else None,
    )


def _check_term_limit(ctx: _Context, periods: int) -> None:
    if ctx.term_for(periods) > settings.MAX_LOAN_TERM_MONTHS:
        raise CalculationError(
            f"Resulting term of {ctx.term_for(periods)} months exceeds the "
            f"{settings.MAX_LOAN_TERM_MONTHS}-month limit"
        )


# -- Transforms --


def _rate_change(ctx: _Context) -> _Outcome:
    rate = ctx.modification.new_annual_interest_rate
    tail = _tail(ctx, ctx.balance, rate, ctx.remaining, balloon=ctx.balloon)
    return _standard_outcome(ctx, tail, ctx.remaining, ctx.balance)


def _term_extension(ctx: _Context) -> _Outcome:
    mod = ctx.modification
    periods = ctx.remaining + ctx.periods(mod.additional_months)
    fixed = ctx.baseline.monthly_payment if mod.keep_same_payment else None
    tail = _tail(ctx, ctx.balance, ctx.loan.annual_rate, periods, balloon=ctx.balloon, fixed_payment=fixed)
    outcome = _standard_outcome(ctx, tail, periods, ctx.balance)
    if mod.keep_same_payment:
        outcome.new_payment = ctx.baseline.monthly_payment
    return outcome


def _temporary_reduction(ctx: _Context) -> _Outcome:
    mod = ctx.modification
    return _relief_outcome(ctx, mod.number_of_terms, mod.new_payment_amount, mod.interest_handling)


def _annuity_principal(ctx: _Context, payment: Decimal, periods: int) -> Decimal:
    """Balance that ``payment`` fully amortizes over ``periods`` at the loan rate."""
    rate = ctx.rate
    if rate == 0:
        carried = payment * periods
    else:
        carried = payment * (1 - present_value(1, rate, periods)) / rate
    if ctx.balloon is not None:
        carried += present_value(ctx.balloon, rate, periods)
    return carried


def _permanent_reduction(ctx: _Context) -> _Outcome:
    mod = ctx.modification
    payment = mod.new_payment_amount
    balance = ctx.balance

    if mod.term_adjustment == "EXTEND_TERM":
        periods = solve_term(balance, ctx.rate, payment)
        limit = ctx.remaining_periods(mod.new_term_months)
        if periods > limit:
            raise CalculationError(
                f"Payment {payment} needs {ctx.term_for(periods)} months, beyond the "
                f"requested {mod.new_term_months}-month term"
            )
    elif mod.term_adjustment == "REDUCE_PRINCIPAL":
        periods = ctx.remaining
        cut = balance - _annuity_principal(ctx, payment, periods)
        cut = max(cut, ZERO).quantize(quantum(ctx.loan.decimal_places), rounding=ROUND_UP)
        if cut > mod.principal_reduction:
            raise CalculationError(
                f"Payment {payment} needs a principal reduction of {cut}, above the "
                f"approved {mod.principal_reduction}"
            )
        balance -= cut
    else:
        periods = ctx.remaining_periods(mod.new_term_months)
        balance -= mod.principal_reduction

    _check_term_limit(ctx, periods)
    tail = _tail(ctx, balance, ctx.loan.annual_rate, periods, balloon=ctx.balloon, fixed_payment=payment)
    outcome = _standard_outcome(ctx, tail, periods, balance)
    outcome.new_payment = ctx.rnd(payment)
    return outcome


def _principal_reduction(ctx: _Context) -> _Outcome:
    mod = ctx.modification
    balance = ctx.balance - mod.reduction_amount
    if balance == 0:
        return _Outcome(
            new_payment=ZERO,
            new_term_months=ctx.term_for(0),
            future_interest=ZERO,
            new_principal_balance=ZERO,
        )

    fixed = None
    if mod.payment_recalculation == "KEEP_PAYMENT":
        fixed = ctx.baseline.monthly_payment
        periods = solve_term(balance, ctx.rate, fixed)
    elif mod.payment_recalculation == "CUSTOM":
        fixed = mod.new_payment_amount
        periods = ctx.remaining_periods(mod.new_term_months)
    else:
        periods = ctx.remaining

    tail = _tail(ctx, balance, ctx.loan.annual_rate, periods, balloon=ctx.balloon, fixed_payment=fixed)
    outcome = _standard_outcome(ctx, tail, periods, balance)
    if fixed is not None:
        outcome.new_payment = ctx.rnd(fixed)
    return outcome


def _balloon_assignment(ctx: _Context) -> _Outcome:
    mod = ctx.modification
    balloon = ctx.rnd(mod.balloon_amount)
    mpp = months_per_period(ctx.loan.payment_frequency)
    horizon = min(ctx.remaining, months_between(mod.effective_date, mod.balloon_due_date) // mpp)
    if horizon < 1:
        raise CalculationError("Balloon due date falls before the next scheduled payment")

    impact = ScheduleImpact(
        balloon_payment_added=not ctx.loan.has_balloon,
        balloon_amount_changed=ctx.loan.has_balloon and balloon != ctx.loan.balloon_payment,
    )

    if mod.reamortization_start_type == "BEGINNING":
        terms = ctx.loan.model_copy(
            update={
                "term_months": (ctx.elapsed + horizon) * mpp,
                "balloon_payment": balloon,
                "balloon_payment_date": mod.balloon_due_date,
                "fixed_payment": None,
            }
        )
        outcome = _from_origination(ctx, terms)
        outcome.schedule_impact = impact
        return outcome

    start = {"CURRENT_TERM": 1, "NEXT_TERM": 2}.get(mod.reamortization_start_type, mod.custom_start_term)
    held = start - 1
    window = _relief_window(ctx, held, ctx.baseline.monthly_payment)
    tail = _tail(ctx, window.balance, ctx.loan.annual_rate, horizon - held, balloon=balloon)
    return _Outcome(
        new_payment=tail.monthly_payment,
        new_term_months=ctx.term_for(horizon),
        future_interest=window.accrued + tail.total_interest,
        new_principal_balance=ctx.rnd(ctx.balance),
        balloon_amount=balloon,
        schedule_impact=impact,
    )


def _balloon_removal(ctx: _Context) -> _Outcome:
    mod = ctx.modification
    fixed = None
    if mod.reamortization_type == "EXTEND_TERM":
        fixed = ctx.baseline.monthly_payment
        periods = solve_term(ctx.balance, ctx.rate, fixed)
        _check_term_limit(ctx, periods)
    elif mod.reamortization_type == "CUSTOM":
        fixed = mod.new_payment_amount
        periods = ctx.remaining_periods(mod.new_term_months)
    else:
        periods = ctx.remaining

    tail = _tail(ctx, ctx.balance, ctx.loan.annual_rate, periods, fixed_payment=fixed)
    outcome = _standard_outcome(ctx, tail, periods, ctx.balance)
    if fixed is not None:
        outcome.new_payment = ctx.rnd(fixed)
    outcome.balloon_amount = None
    outcome.schedule_impact = ScheduleImpact(balloon_payment_removed=True)
    return outcome


def _forbearance(ctx: _Context) -> _Outcome:
    mod = ctx.modification
    payment = ZERO if mod.forbearance_type == "FULL_PAUSE" else mod.reduced_payment_amount
    return _relief_outcome(ctx, mod.duration_months, payment)


def _deferment(ctx: _Context) -> _Outcome:
    mod = ctx.modification
    return _relief_outcome(ctx, mod.duration_months, ZERO, accrue=not mod.interest_subsidy)


def _reamortization(ctx: _Context) -> _Outcome:
    mod = ctx.modification
    rate = mod.new_interest_rate if mod.new_interest_rate is not None else ctx.loan.annual_rate

    if mod.reamortization_type == "FULL_RECALC":
        terms = ctx.loan.model_copy(
            update={
                "principal": mod.new_principal_amount or ctx.loan.principal,
                "annual_rate": rate,
                "term_months": mod.new_term_months or ctx.loan.term_months,
                "fixed_payment": None,
            }
        )
        return _from_origination(ctx, terms)

    balance = mod.new_principal_amount if mod.new_principal_amount is not None else ctx.balance
    if mod.reamortization_type == "RESET_SCHEDULE":
        term_months = mod.new_term_months or ctx.loan.term_months
        tail = _tail(ctx, balance, rate, ctx.periods(term_months))
        return _Outcome(
            new_payment=tail.monthly_payment,
            new_term_months=term_months,
            future_interest=tail.total_interest,
            new_principal_balance=ctx.rnd(balance),
            schedule_impact=ScheduleImpact(balloon_payment_removed=ctx.loan.has_balloon),
        )

    periods = ctx.remaining_periods(mod.new_term_months) if mod.new_term_months else ctx.remaining
    tail = _tail(ctx, balance, rate, periods, balloon=ctx.balloon)
    return _standard_outcome(ctx, tail, periods, balance)


_TRANSFORMS: dict[ModificationType, Callable[[_Context], _Outcome]] = {
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

_missing = set(ModificationType) - set(_TRANSFORMS)
if _missing:
    raise RuntimeError(f"Impact transforms missing for: {sorted(t.value for t in _missing)}")


def _next_payment_date(schedule: list[ScheduleEntry], effective: date) -> date | None:
    return next((e.due_date for e in schedule if e.due_date >= effective), None)


def calculate_modification_impact(
    loan_terms: LoanTerms,
    modification,
    params: ModificationCalculationParams,
) -> ModificationCalculationResult:
    """Project one modification against the loan's unmodified schedule.

    Raises:
        ValidationError: The request fails its catalog or position rules.
        CalculationError: The modified path cannot amortize the balance.
    """
    ensure_valid(loan_terms, modification, params)

    baseline = compute_payment(loan_terms)
    schedule = generate_schedule(loan_terms)
    paid = schedule[: params.current_payment_number - 1]
    ctx = _Context(
        loan=loan_terms,
        params=params,
        modification=modification,
        baseline=baseline,
        schedule=schedule,
        paid_interest=sum((e.interest for e in paid), ZERO),
    )

    try:
        outcome = _TRANSFORMS[modification.modification_type](ctx)
    except CalculationError as exc:
        logger.warning("Impact of %s (%s) not computable: %s", modification.id, modification.type, exc)
        raise

    new_total_interest = ctx.rnd(ctx.paid_interest + outcome.future_interest)
    result = ModificationCalculationResult(
        modification_type=modification.modification_type,
        original_payment=baseline.monthly_payment,
        new_payment=outcome.new_payment,
        monthly_payment_change_amount=outcome.new_payment - baseline.monthly_payment,
        original_term_months=loan_terms.term_months,
        new_term_months=outcome.new_term_months,
        original_total_interest=baseline.total_interest,
        new_total_interest=new_total_interest,
        total_interest_change_amount=new_total_interest - baseline.total_interest,
        new_principal_balance=outcome.new_principal_balance,
        effective_date=modification.effective_date,
        next_payment_date=_next_payment_date(schedule, modification.effective_date),
        schedule_impact=outcome.schedule_impact,
        balloon_amount=outcome.balloon_amount,
        automatic_reversion_date=outcome.automatic_reversion_date,
        payment_after_reversion=outcome.payment_after_reversion,
        deferred_balance=outcome.deferred_balance,
    )
    logger.debug(
        "Impact of %s: payment %s -> %s, term %s -> %s",
        modification.type,
        result.original_payment,
        result.new_payment,
        result.original_term_months,
        result.new_term_months,
    )
    return result
