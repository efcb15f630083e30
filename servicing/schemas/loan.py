# This project was developed with assistance from AI tools.
"""Loan terms and amortization schedule schemas."""

import enum
from datetime import date
from decimal import Decimal

from pydantic import Field

from . import CamelModel


class PaymentFrequency(str, enum.Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    SEMI_ANNUALLY = "SEMI_ANNUALLY"
    ANNUALLY = "ANNUALLY"


class DayCountConvention(str, enum.Enum):
    THIRTY_360 = "30/360"
    ACTUAL_365 = "ACTUAL/365"
    ACTUAL_360 = "ACTUAL/360"


class AccrualTiming(str, enum.Enum):
    """Whether interest accrues from the disbursement day (DAY_0) or the day after."""

    DAY_0 = "DAY_0"
    DAY_1 = "DAY_1"


class RoundingMethod(str, enum.Enum):
    BANKERS = "BANKERS"
    HALF_UP = "HALF_UP"
    HALF_DOWN = "HALF_DOWN"
    UP = "UP"
    DOWN = "DOWN"
    HALF_AWAY = "HALF_AWAY"
    HALF_TOWARD = "HALF_TOWARD"


class LoanTerms(CamelModel):
    """Immutable snapshot of the terms a schedule is generated from."""

    principal: Decimal = Field(ge=0)
    annual_rate: Decimal = Field(ge=0, description="Annual percentage rate, e.g. 6.5")
    term_months: int = Field(ge=1)
    start_date: date
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    day_count: DayCountConvention = DayCountConvention.THIRTY_360
    accrual_timing: AccrualTiming = AccrualTiming.DAY_0
    rounding_method: RoundingMethod = RoundingMethod.HALF_UP
    decimal_places: int = Field(default=2, ge=0, le=8)
    first_payment_date: date | None = None
    balloon_payment: Decimal | None = Field(default=None, ge=0)
    balloon_payment_date: date | None = None
    fixed_payment: Decimal | None = Field(
        default=None,
        ge=0,
        description="Pinned regular payment. The final period settles any residual.",
    )

    @property
    def has_balloon(self) -> bool:
        return self.balloon_payment is not None and self.balloon_payment > 0


class ScheduleEntry(CamelModel):
    """One period of an amortization schedule."""

    payment_number: int
    due_date: date
    principal: Decimal
    interest: Decimal
    total_payment: Decimal
    remaining_balance: Decimal
    is_balloon: bool = False


class PaymentSummary(CamelModel):
    """Regular payment and lifetime totals of a schedule."""

    monthly_payment: Decimal
    total_interest: Decimal
    total_payments: Decimal
    number_of_payments: int
    final_payment: Decimal
