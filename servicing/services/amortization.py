# This project was developed with assistance from AI tools.
"""Amortization primitives.

Pure math, no I/O. The modification cores consume loans only through
``create_loan_terms``, ``compute_payment`` and ``generate_schedule`` plus the
closed-form helpers below; rates passed to the helpers are periodic fractions
(0.005 for 6% monthly), while LoanTerms carries the annual percentage.
"""

import decimal
import logging
from datetime import date
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from ..core.config import settings
from ..schemas.loan import (
    AccrualTiming,
    DayCountConvention,
    LoanTerms,
    PaymentFrequency,
    PaymentSummary,
    ScheduleEntry,
)
from .errors import CalculationError
from .money import HUNDRED, ZERO, money_context, round_money, to_decimal

logger = logging.getLogger(__name__)

_MONTHS_PER_PERIOD: dict[PaymentFrequency, int] = {
    PaymentFrequency.MONTHLY: 1,
    PaymentFrequency.QUARTERLY: 3,
    PaymentFrequency.SEMI_ANNUALLY: 6,
    PaymentFrequency.ANNUALLY: 12,
}

# Solved terms are snapped to this precision before taking the ceiling. A
# payment rounded to cents leaves a residual the final period absorbs.
_TERM_SNAP = Decimal("0.01")


def periods_per_year(frequency: PaymentFrequency | str = PaymentFrequency.MONTHLY) -> int:
    return 12 // _MONTHS_PER_PERIOD[PaymentFrequency(frequency)]


def period_rate(annual_rate, frequency: PaymentFrequency | str = PaymentFrequency.MONTHLY) -> Decimal:
    """Convert an annual percentage rate to the periodic fractional rate."""
    return to_decimal(annual_rate) / HUNDRED / periods_per_year(frequency)


def months_per_period(frequency: PaymentFrequency | str = PaymentFrequency.MONTHLY) -> int:
    return _MONTHS_PER_PERIOD[PaymentFrequency(frequency)]


def number_of_payments(
    term_months: int, frequency: PaymentFrequency | str = PaymentFrequency.MONTHLY
) -> int:
    months = _MONTHS_PER_PERIOD[PaymentFrequency(frequency)]
    return -(-term_months // months)


def amortizing_payment(principal, rate, periods: int) -> Decimal:
    """Level payment that retires ``principal`` over ``periods`` at periodic ``rate``."""
    if periods < 1:
        raise CalculationError("Cannot amortize over an empty term")
    principal = to_decimal(principal)
    rate = to_decimal(rate)
    if principal <= 0:
        return ZERO
    with decimal.localcontext(money_context()):
        if rate == 0:
            return principal / periods
        factor = (1 + rate) ** periods
        return principal * rate * factor / (factor - 1)


def present_value(amount, rate, periods: int) -> Decimal:
    """Discount a single future ``amount`` back ``periods`` periods."""
    with decimal.localcontext(money_context()):
        return to_decimal(amount) / (1 + to_decimal(rate)) ** periods


def payment_with_balloon(principal, rate, periods: int, balloon) -> Decimal:
    """Level payment that leaves ``balloon`` outstanding after ``periods`` payments."""
    balloon = to_decimal(balloon)
    if balloon <= 0:
        return amortizing_payment(principal, rate, periods)
    if periods < 1:
        raise CalculationError("Cannot amortize over an empty term")
    adjusted = to_decimal(principal) - present_value(balloon, rate, periods)
    if adjusted < 0:
        raise CalculationError("Balloon amount exceeds the value of the loan")
    return amortizing_payment(adjusted, rate, periods)


def solve_term(principal, rate, payment) -> int:
    """Number of level payments of ``payment`` needed to retire ``principal``."""
    principal = to_decimal(principal)
    rate = to_decimal(rate)
    payment = to_decimal(payment)
    if principal <= 0:
        return 0
    if payment <= 0:
        raise CalculationError("Payment must be positive to amortize a balance")
    with decimal.localcontext(money_context()):
        if rate == 0:
            periods = principal / payment
        else:
            if payment <= principal * rate:
                raise CalculationError(
                    f"Payment {payment} does not cover periodic interest on {principal}"
                )
            periods = -(1 - principal * rate / payment).ln() / (1 + rate).ln()
        periods = periods.quantize(_TERM_SNAP).to_integral_value(rounding=decimal.ROUND_CEILING)
    return int(periods)


def add_periods(
    start: date, count: int, frequency: PaymentFrequency | str = PaymentFrequency.MONTHLY
) -> date:
    return start + relativedelta(months=count * _MONTHS_PER_PERIOD[PaymentFrequency(frequency)])


def months_between(start: date, end: date) -> int:
    """Whole calendar months from ``start`` to ``end`` (negative when end is earlier)."""
    delta = relativedelta(end, start)
    return delta.years * 12 + delta.months


def create_loan_terms(principal, annual_rate, term_months: int, start_date: date, **options) -> LoanTerms:
    """Build LoanTerms, filling rounding defaults from settings."""
    options.setdefault("rounding_method", settings.DEFAULT_ROUNDING_METHOD)
    options.setdefault("decimal_places", settings.MONEY_DECIMAL_PLACES)
    return LoanTerms(
        principal=to_decimal(principal),
        annual_rate=to_decimal(annual_rate),
        term_months=term_months,
        start_date=start_date,
        **options,
    )


def _accrual_days(start: date, end: date, convention: DayCountConvention) -> int:
    if convention == DayCountConvention.THIRTY_360:
        return (
            360 * (end.year - start.year)
            + 30 * (end.month - start.month)
            + min(end.day, 30)
            - min(start.day, 30)
        )
    return (end - start).days


def day_count_interest(balance, annual_rate, start: date, end: date, terms: LoanTerms) -> Decimal:
    """Simple interest on ``balance`` between two dates under the loan's day count."""
    days = _accrual_days(start, end, terms.day_count)
    if terms.accrual_timing == AccrualTiming.DAY_1:
        days -= 1
    days = max(days, 0)
    basis = 365 if terms.day_count == DayCountConvention.ACTUAL_365 else 360
    with decimal.localcontext(money_context()):
        return to_decimal(balance) * to_decimal(annual_rate) / HUNDRED * days / basis


def _regular_payment(terms: LoanTerms) -> Decimal:
    if terms.fixed_payment is not None:
        return round_money(terms.fixed_payment, terms.rounding_method, terms.decimal_places)
    periods = number_of_payments(terms.term_months, terms.payment_frequency)
    rate = period_rate(terms.annual_rate, terms.payment_frequency)
    if terms.has_balloon:
        payment = payment_with_balloon(terms.principal, rate, periods, terms.balloon_payment)
    else:
        payment = amortizing_payment(terms.principal, rate, periods)
    return round_money(payment, terms.rounding_method, terms.decimal_places)


def generate_schedule(terms: LoanTerms) -> list[ScheduleEntry]:
    """Period-by-period schedule for ``terms``.

    Interest is rounded each period. The final period retires whatever balance
    remains, including any balloon. A pinned ``fixed_payment`` that retires the
    loan early ends the schedule at payoff. An irregular first period whose
    day-count interest exceeds the payment collects that interest in full and
    retires no principal.
    """
    balance = to_decimal(terms.principal)
    if balance <= 0:
        return []

    def rnd(value) -> Decimal:
        return round_money(value, terms.rounding_method, terms.decimal_places)

    frequency = terms.payment_frequency
    periods = number_of_payments(terms.term_months, frequency)
    rate = period_rate(terms.annual_rate, frequency)
    payment = _regular_payment(terms)
    regular_first_due = add_periods(terms.start_date, 1, frequency)
    first_due = terms.first_payment_date or regular_first_due
    irregular_first = first_due != regular_first_due
    balloon_due = terms.has_balloon

    entries: list[ScheduleEntry] = []
    for number in range(1, periods + 1):
        due = add_periods(first_due, number - 1, frequency)
        if number == 1 and irregular_first:
            interest = rnd(day_count_interest(balance, terms.annual_rate, terms.start_date, due, terms))
        else:
            interest = rnd(balance * rate)

        if number == periods:
            principal = balance
        else:
            principal = payment - interest
            if principal < 0 and number == 1 and irregular_first:
                principal = ZERO
            elif principal < 0:
                raise CalculationError(
                    f"Payment {payment} does not cover interest {interest} in period {number}"
                )
            principal = min(principal, balance)
        balance -= principal

        entries.append(
            ScheduleEntry(
                payment_number=number,
                due_date=due,
                principal=principal,
                interest=interest,
                total_payment=principal + interest,
                remaining_balance=balance,
                is_balloon=balloon_due and number == periods,
            )
        )
        if balance == 0:
            break

    logger.debug(
        "Generated %d-period schedule (principal=%s, rate=%s%%, payment=%s)",
        len(entries),
        terms.principal,
        terms.annual_rate,
        payment,
    )
    return entries


def compute_payment(terms: LoanTerms) -> PaymentSummary:
    """Regular payment and lifetime totals for ``terms``."""
    schedule = generate_schedule(terms)
    if not schedule:
        return PaymentSummary(
            monthly_payment=ZERO,
            total_interest=ZERO,
            total_payments=ZERO,
            number_of_payments=0,
            final_payment=ZERO,
        )
    return PaymentSummary(
        monthly_payment=_regular_payment(terms),
        total_interest=sum((e.interest for e in schedule), ZERO),
        total_payments=sum((e.total_payment for e in schedule), ZERO),
        number_of_payments=len(schedule),
        final_payment=schedule[-1].total_payment,
    )
