# This project was developed with assistance from AI tools.
"""Loan restructure preview, commit and history endpoints."""

from db import get_db
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.restructure import (
    CommitModificationsRequest,
    ModificationLogEntry,
    ModificationRecord,
    ProjectedLoan,
    RestructurePreviewRequest,
)
from ..services.modification_log import SqlModificationStore, get_loan_modifications
from ..services.restructure import commit_modifications, project_restructure

router = APIRouter()


@router.post("/{loan_id}/restructure/preview", response_model=ProjectedLoan)
async def preview_restructure(loan_id: str, req: RestructurePreviewRequest) -> ProjectedLoan:
    """Project a modification package without recording it."""
    return project_restructure(req.loan_terms, req.modifications)


@router.post("/{loan_id}/modifications", response_model=ModificationRecord, status_code=201)
async def commit(
    loan_id: str,
    req: CommitModificationsRequest,
    session: AsyncSession = Depends(get_db),
) -> ModificationRecord:
    """Commit a modification package to the loan's modification log."""
    return await commit_modifications(
        SqlModificationStore(session),
        loan_id=loan_id,
        loan=req.loan_terms,
        modifications=req.modifications,
        reason=req.reason,
        approved_by=req.approved_by,
        effective_date=req.effective_date,
        params=req.params,
        reverses_record_id=req.reverses_record_id,
    )


@router.get("/{loan_id}/modifications", response_model=list[ModificationLogEntry])
async def history(
    loan_id: str,
    session: AsyncSession = Depends(get_db),
) -> list[ModificationLogEntry]:
    """Committed modification records for a loan, oldest first."""
    rows = await get_loan_modifications(session, loan_id)
    return [ModificationLogEntry.model_validate(row) for row in rows]
