# This project was developed with assistance from AI tools.
"""Modification log service.

Committed modification packages are appended to ``loan_modifications`` with a
SHA-256 hash chain for tamper evidence. A PostgreSQL advisory lock serializes
hash computation across concurrent writers. Rows are never updated or
deleted; an edit is a new row that names the record it reverses.
"""

import hashlib
import json
import logging

from db import LoanModification, ModificationStatus
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.restructure import ModificationRecord

logger = logging.getLogger(__name__)

# Fixed advisory lock key for modification log serialization.
MODIFICATION_LOCK_KEY = 900_101


def _compute_hash(record_id: int, recorded_at: str, payload: dict | None) -> str:
    """Compute SHA-256 hash of a modification row's key fields."""
    body = f"{record_id}|{recorded_at}|{json.dumps(payload, sort_keys=True, default=str)}"
    return hashlib.sha256(body.encode()).hexdigest()


def _hash_payload(row: LoanModification) -> dict:
    return {
        "loan_id": row.loan_id,
        "record_type": row.record_type,
        "changes": row.changes,
        "modifications": row.modifications,
        "reverses_record_id": row.reverses_record_id,
    }


async def add_modification(session: AsyncSession, record: ModificationRecord) -> LoanModification:
    """Append one committed package with hash chain linkage.

    Args:
        session: Database session. The caller commits.
        record: Fully built record for the package.

    Returns:
        The flushed LoanModification row (id and prev_hash set).
    """
    await session.execute(text(f"SELECT pg_advisory_xact_lock({MODIFICATION_LOCK_KEY})"))

    latest_stmt = select(LoanModification).order_by(LoanModification.id.desc()).limit(1)
    result = await session.execute(latest_stmt)
    prev_row = result.scalar_one_or_none()

    if prev_row is not None:
        prev_hash = _compute_hash(prev_row.id, str(prev_row.recorded_at), _hash_payload(prev_row))
    else:
        prev_hash = "genesis"

    data = record.model_dump(mode="json", by_alias=True)
    row = LoanModification(
        loan_id=record.loan_id,
        record_type=record.record_type,
        status=ModificationStatus.APPLIED,
        effective_date=record.effective_date,
        recorded_at=record.date,
        changes=data["changes"],
        impact_summary=data["impactSummary"],
        modifications=data["modifications"],
        reason=record.reason,
        approved_by=record.approved_by,
        reverses_record_id=record.reverses_record_id,
        prev_hash=prev_hash,
    )
    session.add(row)
    await session.flush()
    return row


async def verify_modification_chain(session: AsyncSession) -> dict:
    """Walk the log in id order and recompute every prev_hash.

    Returns:
        {"status": "OK", "records_checked": N} on success, or
        {"status": "TAMPERED", "first_break_id": id, "records_checked": N}.
    """
    result = await session.execute(select(LoanModification).order_by(LoanModification.id.asc()))
    rows = list(result.scalars().all())

    for i, row in enumerate(rows):
        if i == 0:
            expected = "genesis"
        else:
            prev = rows[i - 1]
            expected = _compute_hash(prev.id, str(prev.recorded_at), _hash_payload(prev))
        if row.prev_hash != expected:
            logger.warning("Modification log hash chain broken at id=%s", row.id)
            return {"status": "TAMPERED", "first_break_id": row.id, "records_checked": i + 1}

    return {"status": "OK", "records_checked": len(rows)}


async def get_loan_modifications(session: AsyncSession, loan_id: str) -> list[LoanModification]:
    """Committed records for one loan, oldest first."""
    stmt = (
        select(LoanModification)
        .where(LoanModification.loan_id == loan_id)
        .order_by(LoanModification.id.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


class SqlModificationStore:
    """ModificationStore backed by the loan_modifications table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add_modification(self, record: ModificationRecord) -> int:
        row = await add_modification(self._session, record)
        await self._session.commit()
        return row.id
