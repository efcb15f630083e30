# This project was developed with assistance from AI tools.
"""Loan modification request, parameter and result schemas.

Requests form a closed union discriminated by ``type``. Option fields are
carried as plain strings so an unsupported option reaches the validator and
is reported against its field instead of failing request parsing.
"""

import uuid
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from db.enums import ModificationStatus, ModificationType
from pydantic import Field

from . import CamelModel


def _new_modification_id() -> str:
    return f"mod-{uuid.uuid4().hex}"


class ModificationBase(CamelModel):
    """Fields shared by every modification variant."""

    id: str = Field(default_factory=_new_modification_id)
    effective_date: date
    reason: str = ""
    created_by: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    status: ModificationStatus = ModificationStatus.PENDING

    @property
    def modification_type(self) -> ModificationType:
        return ModificationType(self.type)


class RateChangeModification(ModificationBase):
    type: Literal["RATE_CHANGE"] = "RATE_CHANGE"
    new_annual_interest_rate: Decimal | None = None
    previous_rate: Decimal | None = None


class TermExtensionModification(ModificationBase):
    type: Literal["TERM_EXTENSION"] = "TERM_EXTENSION"
    additional_months: int | None = None
    keep_same_payment: bool = False


class TemporaryPaymentReductionModification(ModificationBase):
    type: Literal["PAYMENT_REDUCTION_TEMPORARY"] = "PAYMENT_REDUCTION_TEMPORARY"
    new_payment_amount: Decimal | None = None
    number_of_terms: int | None = None
    interest_handling: str = "CAPITALIZE"


class PermanentPaymentReductionModification(ModificationBase):
    type: Literal["PAYMENT_REDUCTION_PERMANENT"] = "PAYMENT_REDUCTION_PERMANENT"
    new_payment_amount: Decimal | None = None
    term_adjustment: str = "EXTEND_TERM"
    new_term_months: int | None = None
    principal_reduction: Decimal | None = None


class PrincipalReductionModification(ModificationBase):
    type: Literal["PRINCIPAL_REDUCTION"] = "PRINCIPAL_REDUCTION"
    reduction_amount: Decimal | None = None
    payment_recalculation: str = "KEEP_TERM"
    new_term_months: int | None = None
    new_payment_amount: Decimal | None = None


class BalloonAssignmentModification(ModificationBase):
    type: Literal["BALLOON_PAYMENT_ASSIGNMENT"] = "BALLOON_PAYMENT_ASSIGNMENT"
    balloon_amount: Decimal | None = None
    balloon_due_date: date | None = None
    reamortization_start_type: str = "CURRENT_TERM"
    custom_start_term: int | None = None


class BalloonRemovalModification(ModificationBase):
    type: Literal["BALLOON_PAYMENT_REMOVAL"] = "BALLOON_PAYMENT_REMOVAL"
    reamortization_type: str = "EXTEND_TERM"
    new_term_months: int | None = None
    new_payment_amount: Decimal | None = None


class ForbearanceModification(ModificationBase):
    type: Literal["FORBEARANCE"] = "FORBEARANCE"
    duration_months: int | None = None
    forbearance_type: str = "FULL_PAUSE"
    reduced_payment_amount: Decimal | None = None


class DefermentModification(ModificationBase):
    type: Literal["DEFERMENT"] = "DEFERMENT"
    duration_months: int | None = None
    interest_subsidy: bool = False
    eligibility_reason: str = ""


class ReamortizationModification(ModificationBase):
    type: Literal["REAMORTIZATION"] = "REAMORTIZATION"
    reamortization_type: str = "ADJUST_REMAINING"
    new_term_months: int | None = None
    new_interest_rate: Decimal | None = None
    new_principal_amount: Decimal | None = None


ModificationRequest = Annotated[
    Union[
        RateChangeModification,
        TermExtensionModification,
        TemporaryPaymentReductionModification,
        PermanentPaymentReductionModification,
        PrincipalReductionModification,
        BalloonAssignmentModification,
        BalloonRemovalModification,
        ForbearanceModification,
        DefermentModification,
        ReamortizationModification,
    ],
    Field(discriminator="type"),
]


class ModificationCalculationParams(CamelModel):
    """Where the loan stands on the day the modification is evaluated."""

    current_balance: Decimal = Field(ge=0)
    current_terms_remaining: int = Field(ge=1)
    current_payment_number: int = Field(ge=1)
    as_of_date: date | None = None


class ScheduleImpact(CamelModel):
    balloon_payment_added: bool = False
    balloon_payment_removed: bool = False
    balloon_amount_changed: bool = False


class ModificationCalculationResult(CamelModel):
    """Projected effect of one modification against the baseline schedule."""

    modification_type: ModificationType
    original_payment: Decimal
    new_payment: Decimal
    monthly_payment_change_amount: Decimal
    original_term_months: int
    new_term_months: int
    original_total_interest: Decimal
    new_total_interest: Decimal
    total_interest_change_amount: Decimal
    new_principal_balance: Decimal
    effective_date: date
    next_payment_date: date | None = None
    schedule_impact: ScheduleImpact = Field(default_factory=ScheduleImpact)
    balloon_amount: Decimal | None = None
    automatic_reversion_date: date | None = None
    payment_after_reversion: Decimal | None = None
    deferred_balance: Decimal | None = None


# -- Catalog --


class FieldSpec(CamelModel):
    """Static rule set for one modification field.

    ``name`` is the wire (camelCase) name, ``attr`` the model attribute.
    ``required_when`` names another option attribute and the values that make
    this field mandatory.
    """

    name: str
    attr: str
    label: str
    kind: Literal["decimal", "integer", "date", "option", "boolean", "text"]
    required: bool = False
    minimum: Decimal | None = None
    maximum: Decimal | None = None
    min_exclusive: bool = False
    options: tuple[str, ...] = ()
    required_when: tuple[str, tuple[str, ...]] | None = None
    unit: str | None = None


class CatalogEntry(CamelModel):
    type: ModificationType
    label: str
    description: str
    category: str
    fields: tuple[FieldSpec, ...]
