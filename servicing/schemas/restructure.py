# This project was developed with assistance from AI tools.
"""Restructure projection and commit schemas."""

import datetime
from decimal import Decimal

from db.enums import ModificationStatus
from pydantic import ConfigDict, Field

from . import CamelModel
from .loan import LoanTerms
from .modification import ModificationCalculationParams, ModificationRequest


class LoanSnapshot(CamelModel):
    """Working parameters a restructure folds modifications into.

    ``monthly_payment`` is set only when a modification pins the payment.
    """

    principal: Decimal
    annual_rate: Decimal
    term_months: int
    balloon_payment: Decimal | None = None
    monthly_payment: Decimal | None = None


class CalculationSummary(CamelModel):
    monthly_payment: Decimal
    total_interest: Decimal
    total_payment: Decimal


class ProjectedLoan(CamelModel):
    """Recalculated loan after a package of modifications."""

    parameters: LoanSnapshot
    original: CalculationSummary
    calculation: CalculationSummary
    changes: CalculationSummary


class ImpactSummary(CamelModel):
    payment_change: Decimal
    term_change: int
    interest_change: Decimal
    principal_change: Decimal


class ModificationRecord(CamelModel):
    """Durable payload for one committed modification package."""

    id: int | None = None
    loan_id: str
    record_type: str
    date: datetime.datetime
    effective_date: datetime.date
    changes: CalculationSummary
    impact_summary: ImpactSummary
    reason: str
    approved_by: str
    reverses_record_id: int | None = None
    modifications: list[ModificationRequest]


# -- Requests --


class ModificationEvaluationRequest(CamelModel):
    """Body for validating or projecting a single modification."""

    loan_terms: LoanTerms
    modification: ModificationRequest
    params: ModificationCalculationParams


class RestructurePreviewRequest(CamelModel):
    loan_terms: LoanTerms
    modifications: list[ModificationRequest] = Field(default_factory=list)


class CommitModificationsRequest(RestructurePreviewRequest):
    reason: str
    approved_by: str
    effective_date: datetime.date | None = None
    params: ModificationCalculationParams | None = None
    reverses_record_id: int | None = None


class ModificationLogEntry(CamelModel):
    """Stored modification record as returned by the history endpoint."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    loan_id: str
    record_type: str
    status: ModificationStatus
    effective_date: datetime.date | None = None
    recorded_at: datetime.datetime
    changes: dict
    impact_summary: dict | None = None
    modifications: list[dict]
    reason: str
    approved_by: str
    reverses_record_id: int | None = None
