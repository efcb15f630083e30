# This project was developed with assistance from AI tools.
"""Modification catalog.

Static description of every modification type: its label, UI category and the
field rules the validator enforces. Read-only; no side effects.
"""

from decimal import Decimal

from db.enums import ModificationType
from pydantic.alias_generators import to_camel

from ..core.config import settings
from ..schemas.modification import CatalogEntry, FieldSpec
from .errors import UnknownTypeError

RATE_AND_TERMS = "Rate & Terms"
PAYMENT_RELIEF = "Payment Relief"
PRINCIPAL_CHANGES = "Principal Changes"
BALLOON_OPTIONS = "Balloon Options"
HARDSHIP_OPTIONS = "Hardship Options"
RESTRUCTURING = "Restructuring"

MAX_INTEREST_RATE = Decimal("50")


def _field(attr: str, label: str, kind: str, **rules) -> FieldSpec:
    for bound in ("minimum", "maximum"):
        if rules.get(bound) is not None:
            rules[bound] = Decimal(rules[bound])
    return FieldSpec(name=to_camel(attr), attr=attr, label=label, kind=kind, **rules)


def _amount(attr: str, label: str, **rules) -> FieldSpec:
    rules.setdefault("minimum", 0)
    rules.setdefault("unit", "USD")
    return _field(attr, label, "decimal", **rules)


def _term(attr: str, label: str, **rules) -> FieldSpec:
    rules.setdefault("minimum", 1)
    rules.setdefault("unit", "months")
    return _field(attr, label, "integer", **rules)


def _rate(attr: str, label: str, **rules) -> FieldSpec:
    return _field(
        attr, label, "decimal", minimum=0, min_exclusive=True, maximum=MAX_INTEREST_RATE, unit="%", **rules
    )


MODIFICATION_CATALOG: dict[ModificationType, CatalogEntry] = {
    ModificationType.RATE_CHANGE: CatalogEntry(
        type=ModificationType.RATE_CHANGE,
        label="Interest Rate Change",
        description="Modify the loan interest rate",
        category=RATE_AND_TERMS,
        fields=(
            _rate("new_annual_interest_rate", "New Interest Rate", required=True),
            _field("previous_rate", "Previous Rate", "decimal", minimum=0, unit="%"),
        ),
    ),
    ModificationType.TERM_EXTENSION: CatalogEntry(
        type=ModificationType.TERM_EXTENSION,
        label="Term Extension",
        description="Extend the loan term to reduce payments",
        category=RATE_AND_TERMS,
        fields=(
            _term("additional_months", "Additional Months", required=True, maximum=360),
            _field("keep_same_payment", "Keep Same Payment", "boolean"),
        ),
    ),
    ModificationType.PAYMENT_REDUCTION_TEMPORARY: CatalogEntry(
        type=ModificationType.PAYMENT_REDUCTION_TEMPORARY,
        label="Temporary Payment Reduction",
        description="Reduce payments for a specified period",
        category=PAYMENT_RELIEF,
        fields=(
            _amount("new_payment_amount", "Reduced Payment", required=True),
            _term("number_of_terms", "Number of Terms", required=True, maximum=60),
            _field(
                "interest_handling",
                "Interest Handling",
                "option",
                required=True,
                options=("CAPITALIZE", "DEFER", "WAIVE"),
            ),
        ),
    ),
    ModificationType.PAYMENT_REDUCTION_PERMANENT: CatalogEntry(
        type=ModificationType.PAYMENT_REDUCTION_PERMANENT,
        label="Permanent Payment Reduction",
        description="Permanently reduce monthly payment amount",
        category=PAYMENT_RELIEF,
        fields=(
            _amount("new_payment_amount", "New Payment", required=True, min_exclusive=True),
            _field(
                "term_adjustment",
                "Term Adjustment",
                "option",
                required=True,
                options=("EXTEND_TERM", "REDUCE_PRINCIPAL", "COMBINATION"),
            ),
            _term(
                "new_term_months",
                "New Term",
                maximum=settings.MAX_LOAN_TERM_MONTHS,
                required_when=("term_adjustment", ("EXTEND_TERM", "COMBINATION")),
            ),
            _amount(
                "principal_reduction",
                "Principal Reduction",
                min_exclusive=True,
                required_when=("term_adjustment", ("REDUCE_PRINCIPAL", "COMBINATION")),
            ),
        ),
    ),
    ModificationType.PRINCIPAL_REDUCTION: CatalogEntry(
        type=ModificationType.PRINCIPAL_REDUCTION,
        label="Principal Reduction",
        description="Reduce the outstanding principal balance",
        category=PRINCIPAL_CHANGES,
        fields=(
            _amount("reduction_amount", "Reduction Amount", required=True, min_exclusive=True),
            _field(
                "payment_recalculation",
                "Payment Recalculation",
                "option",
                required=True,
                options=("KEEP_TERM", "KEEP_PAYMENT", "CUSTOM"),
            ),
            _term(
                "new_term_months",
                "New Term",
                maximum=settings.MAX_LOAN_TERM_MONTHS,
                required_when=("payment_recalculation", ("CUSTOM",)),
            ),
            _amount(
                "new_payment_amount",
                "New Payment",
                min_exclusive=True,
                required_when=("payment_recalculation", ("CUSTOM",)),
            ),
        ),
    ),
    ModificationType.BALLOON_PAYMENT_ASSIGNMENT: CatalogEntry(
        type=ModificationType.BALLOON_PAYMENT_ASSIGNMENT,
        label="Balloon Payment Assignment",
        description="Add balloon payment with EMI reamortization",
        category=BALLOON_OPTIONS,
        fields=(
            _amount("balloon_amount", "Balloon Amount", required=True, min_exclusive=True),
            _field("balloon_due_date", "Balloon Due Date", "date", required=True),
            _field(
                "reamortization_start_type",
                "Reamortization Start",
                "option",
                required=True,
                options=("CURRENT_TERM", "NEXT_TERM", "BEGINNING", "CUSTOM"),
            ),
            _term(
                "custom_start_term",
                "Custom Start Term",
                required_when=("reamortization_start_type", ("CUSTOM",)),
            ),
        ),
    ),
    ModificationType.BALLOON_PAYMENT_REMOVAL: CatalogEntry(
        type=ModificationType.BALLOON_PAYMENT_REMOVAL,
        label="Balloon Payment Removal",
        description="Remove existing balloon payment",
        category=BALLOON_OPTIONS,
        fields=(
            _field(
                "reamortization_type",
                "Reamortization Type",
                "option",
                required=True,
                options=("EXTEND_TERM", "INCREASE_PAYMENT", "CUSTOM"),
            ),
            _term(
                "new_term_months",
                "New Term",
                maximum=settings.MAX_LOAN_TERM_MONTHS,
                required_when=("reamortization_type", ("CUSTOM",)),
            ),
            _amount(
                "new_payment_amount",
                "New Payment",
                min_exclusive=True,
                required_when=("reamortization_type", ("CUSTOM",)),
            ),
        ),
    ),
    ModificationType.FORBEARANCE: CatalogEntry(
        type=ModificationType.FORBEARANCE,
        label="Forbearance",
        description="Temporary payment pause or reduction",
        category=HARDSHIP_OPTIONS,
        fields=(
            _term("duration_months", "Duration", required=True, maximum=12),
            _field(
                "forbearance_type",
                "Forbearance Type",
                "option",
                required=True,
                options=("FULL_PAUSE", "PARTIAL_REDUCTION"),
            ),
            _amount(
                "reduced_payment_amount",
                "Reduced Payment",
                required_when=("forbearance_type", ("PARTIAL_REDUCTION",)),
            ),
        ),
    ),
    ModificationType.DEFERMENT: CatalogEntry(
        type=ModificationType.DEFERMENT,
        label="Deferment",
        description="Formal postponement of payments",
        category=HARDSHIP_OPTIONS,
        fields=(
            _term("duration_months", "Duration", required=True, maximum=24),
            _field("interest_subsidy", "Interest Subsidy", "boolean"),
            _field("eligibility_reason", "Eligibility Reason", "text", required=True),
        ),
    ),
    ModificationType.REAMORTIZATION: CatalogEntry(
        type=ModificationType.REAMORTIZATION,
        label="Loan Reamortization",
        description="Complete recalculation of payment schedule",
        category=RESTRUCTURING,
        fields=(
            _field(
                "reamortization_type",
                "Reamortization Type",
                "option",
                required=True,
                options=("RESET_SCHEDULE", "ADJUST_REMAINING", "FULL_RECALC"),
            ),
            _term("new_term_months", "New Term", maximum=settings.MAX_LOAN_TERM_MONTHS),
            _rate("new_interest_rate", "New Interest Rate"),
            _amount("new_principal_amount", "New Principal", min_exclusive=True),
        ),
    ),
}


def _lookup(modification_type: ModificationType | str) -> CatalogEntry:
    try:
        key = ModificationType(modification_type)
    except ValueError:
        raise UnknownTypeError(f"Unknown modification type: {modification_type}") from None
    entry = MODIFICATION_CATALOG.get(key)
    if entry is None:
        raise UnknownTypeError(f"Modification type not registered: {key.value}")
    return entry


def get_entry(modification_type: ModificationType | str) -> CatalogEntry:
    """Label, description, category and field rules for one type."""
    return _lookup(modification_type)


def get_schema(modification_type: ModificationType | str) -> tuple[FieldSpec, ...]:
    """Field rules for one type."""
    return _lookup(modification_type).fields


def list_entries() -> list[CatalogEntry]:
    return [MODIFICATION_CATALOG[t] for t in ModificationType]


def entries_by_category() -> dict[str, list[CatalogEntry]]:
    """Entries grouped by UI category, in catalog order."""
    grouped: dict[str, list[CatalogEntry]] = {}
    for entry in list_entries():
        grouped.setdefault(entry.category, []).append(entry)
    return grouped
