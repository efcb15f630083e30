# This project was developed with assistance from AI tools.
"""Payment waterfall endpoints."""

from fastapi import APIRouter

from ..schemas.waterfall import WaterfallPreset, WaterfallRequest, WaterfallResponse
from ..services.waterfall import PREDEFINED_WATERFALLS, apply_waterfall, resolve_config

router = APIRouter()


@router.post("/apply", response_model=WaterfallResponse)
async def apply(req: WaterfallRequest) -> WaterfallResponse:
    """Allocate one payment across the configured categories."""
    name, steps = resolve_config(req.waterfall_config)
    result = apply_waterfall(req.payment, req.outstanding_amounts, steps)
    return WaterfallResponse(
        applied_amounts=result.applied_amounts,
        remaining_payment=result.remaining_payment,
        steps=result.steps,
        waterfall=name,
    )


@router.get("/presets", response_model=list[WaterfallPreset])
async def presets() -> list[WaterfallPreset]:
    return list(PREDEFINED_WATERFALLS.values())
