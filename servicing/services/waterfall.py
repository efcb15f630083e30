# This project was developed with assistance from AI tools.
"""Payment waterfall allocation.

Distributes one payment across ordered, optionally capped categories. Pure
and deterministic. A capped share is truncated to the scale of the payment,
never coarser than the money quantum, so every amount keeps the scale of its
inputs and the allocations plus the remainder add back to the payment exactly.
"""

import logging
from collections.abc import Mapping, Sequence
from decimal import ROUND_DOWN, Decimal

from ..core.config import settings
from ..schemas import ValidationIssue
from ..schemas.waterfall import (
    AllocationResult,
    CategoryAmounts,
    PaymentCategory,
    StepAllocation,
    WaterfallConfig,
    WaterfallPreset,
    WaterfallStep,
)
from .errors import UnknownTypeError, ValidationError
from .money import HUNDRED, ZERO, quantum, to_decimal

logger = logging.getLogger(__name__)

DEFAULT_PRESET = "Standard"


def _preset(name: str, description: str, *order: PaymentCategory) -> WaterfallPreset:
    return WaterfallPreset(
        name=name,
        description=description,
        steps=[WaterfallStep(category=c, percentage_cap=HUNDRED) for c in order],
    )


PREDEFINED_WATERFALLS: dict[str, WaterfallPreset] = {
    p.name: p
    for p in (
        _preset(
            "Standard",
            "Fees → Penalties → Interest → Principal → Escrow",
            PaymentCategory.FEES,
            PaymentCategory.PENALTIES,
            PaymentCategory.INTEREST,
            PaymentCategory.PRINCIPAL,
            PaymentCategory.ESCROW,
        ),
        _preset(
            "Interest First",
            "Interest → Fees → Penalties → Principal → Escrow",
            PaymentCategory.INTEREST,
            PaymentCategory.FEES,
            PaymentCategory.PENALTIES,
            PaymentCategory.PRINCIPAL,
            PaymentCategory.ESCROW,
        ),
        _preset(
            "Principal First",
            "Principal → Interest → Fees → Penalties → Escrow",
            PaymentCategory.PRINCIPAL,
            PaymentCategory.INTEREST,
            PaymentCategory.FEES,
            PaymentCategory.PENALTIES,
            PaymentCategory.ESCROW,
        ),
    )
}


def get_preset(name: str) -> WaterfallPreset:
    """Look up a predefined waterfall by name (case-insensitive)."""
    for preset_name, preset in PREDEFINED_WATERFALLS.items():
        if preset_name.lower() == name.strip().lower():
            return preset
    raise UnknownTypeError(f"Unknown waterfall preset: {name}")


def resolve_config(
    config: str | Sequence[WaterfallStep] | WaterfallConfig | None,
) -> tuple[str, list[WaterfallStep]]:
    """Turn a preset name, step list or named config into (name, steps)."""
    if config is None:
        config = DEFAULT_PRESET
    if isinstance(config, str):
        preset = get_preset(config)
        return preset.name, list(preset.steps)
    if isinstance(config, WaterfallConfig):
        return config.name, list(config.steps)
    return "Custom", list(config)


def apply_waterfall(
    payment,
    outstanding: CategoryAmounts | Mapping[str, object] | None,
    steps: Sequence[WaterfallStep],
) -> AllocationResult:
    """Allocate ``payment`` across ``steps`` in order.

    Each step takes the least of what is left of the payment, what is still
    outstanding in its category, and its percentage cap of what is left.
    Steps reached after the payment is exhausted are recorded with zero.

    Raises:
        ValidationError: The payment is negative.
    """
    payment = to_decimal(payment)
    if payment < 0:
        raise ValidationError(
            "Payment must not be negative",
            errors=[ValidationIssue(field="payment", code="OUT_OF_RANGE", message="Payment must not be negative")],
        )
    if not isinstance(outstanding, CategoryAmounts):
        outstanding = CategoryAmounts.model_validate(outstanding or {})

    owed: dict[PaymentCategory, Decimal] = {c: outstanding.get(c) for c in PaymentCategory}
    applied: dict[PaymentCategory, Decimal] = {c: ZERO for c in PaymentCategory}
    remaining = payment
    step_quantum = min(quantum(settings.MONEY_DECIMAL_PLACES), quantum(-payment.as_tuple().exponent))
    trace: list[StepAllocation] = []

    for step in steps:
        category = step.category
        allocated = min(remaining, owed[category])
        if step.percentage_cap < HUNDRED:
            share = (remaining * step.percentage_cap / HUNDRED).quantize(step_quantum, rounding=ROUND_DOWN)
            allocated = min(allocated, share)
        remaining -= allocated
        owed[category] -= allocated
        applied[category] += allocated
        trace.append(
            StepAllocation(
                category=category,
                percentage_cap=step.percentage_cap,
                allocated=allocated,
                remaining_after=remaining,
            )
        )

    logger.debug("Allocated %s across %d steps, %s remaining", payment, len(trace), remaining)
    return AllocationResult(
        applied_amounts=CategoryAmounts(**{c.value: amount for c, amount in applied.items()}),
        remaining_payment=remaining,
        steps=trace,
    )
