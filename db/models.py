# This project was developed with assistance from AI tools.
"""
Loan servicing -- persistence models

Committed loan modifications form an append-only audit log: one row per
commit, INSERT + SELECT only.
"""

from sqlalchemy import JSON, Column, Date, DateTime, Enum, Integer, String, Text, func

from .database import Base
from .enums import ModificationStatus


class LoanModification(Base):
    """Append-only record of a committed modification package."""

    __tablename__ = "loan_modifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_id = Column(String(64), nullable=False, index=True)
    record_type = Column(String(50), nullable=False, index=True)
    status = Column(
        Enum(ModificationStatus, name="modification_status", native_enum=False),
        nullable=False,
        default=ModificationStatus.APPLIED,
    )
    effective_date = Column(Date, nullable=True)
    recorded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    changes = Column(JSON, nullable=False)
    impact_summary = Column(JSON, nullable=True)
    modifications = Column(JSON, nullable=False)
    reason = Column(Text, nullable=False)
    approved_by = Column(String(255), nullable=False)
    reverses_record_id = Column(Integer, nullable=True)
    prev_hash = Column(String(64), nullable=True)

    def __repr__(self):
        return f"<LoanModification(id={self.id}, loan='{self.loan_id}', type='{self.record_type}')>"
