# This project was developed with assistance from AI tools.
"""Modification catalog, validation and impact endpoints."""

from fastapi import APIRouter

from ..schemas import ValidationResult
from ..schemas.modification import CatalogEntry, ModificationCalculationResult
from ..schemas.restructure import ModificationEvaluationRequest
from ..services.catalog import get_entry, list_entries
from ..services.impact import calculate_modification_impact
from ..services.validator import validate_modification

router = APIRouter()


@router.get("/catalog", response_model=list[CatalogEntry])
async def catalog() -> list[CatalogEntry]:
    """All modification types with their field rules."""
    return list_entries()


@router.get("/catalog/{modification_type}", response_model=CatalogEntry)
async def catalog_entry(modification_type: str) -> CatalogEntry:
    return get_entry(modification_type.upper())


@router.post("/validate", response_model=ValidationResult)
async def validate(req: ModificationEvaluationRequest) -> ValidationResult:
    """Validate one modification against the loan's current position.

    Always 200; the body carries field-scoped errors and warnings.
    """
    return validate_modification(req.loan_terms, req.modification, req.params)


@router.post("/impact", response_model=ModificationCalculationResult)
async def impact(req: ModificationEvaluationRequest) -> ModificationCalculationResult:
    """Project the payment, term and interest effect of one modification."""
    return calculate_modification_impact(req.loan_terms, req.modification, req.params)
