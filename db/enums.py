# This project was developed with assistance from AI tools.
"""
Domain enums for the loan modification lifecycle.

Shared domain types used by both SQLAlchemy models (db package)
and Pydantic schemas (servicing package).
"""

import enum


class ModificationType(str, enum.Enum):
    RATE_CHANGE = "RATE_CHANGE"
    TERM_EXTENSION = "TERM_EXTENSION"
    PAYMENT_REDUCTION_TEMPORARY = "PAYMENT_REDUCTION_TEMPORARY"
    PAYMENT_REDUCTION_PERMANENT = "PAYMENT_REDUCTION_PERMANENT"
    PRINCIPAL_REDUCTION = "PRINCIPAL_REDUCTION"
    BALLOON_PAYMENT_ASSIGNMENT = "BALLOON_PAYMENT_ASSIGNMENT"
    BALLOON_PAYMENT_REMOVAL = "BALLOON_PAYMENT_REMOVAL"
    FORBEARANCE = "FORBEARANCE"
    DEFERMENT = "DEFERMENT"
    REAMORTIZATION = "REAMORTIZATION"


class ModificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPLIED = "APPLIED"
    REJECTED = "REJECTED"

    @classmethod
    def valid_transitions(cls) -> dict["ModificationStatus", frozenset["ModificationStatus"]]:
        """Allowed status transitions. Only a commit moves a request to APPLIED."""
        return {
            cls.PENDING: frozenset({cls.APPLIED, cls.REJECTED}),
            cls.APPLIED: frozenset(),
            cls.REJECTED: frozenset(),
        }


# Record type for a committed package holding more than one modification.
RESTRUCTURE_RECORD_TYPE = "RESTRUCTURE"
