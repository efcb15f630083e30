# This project was developed with assistance from AI tools.
"""Payment waterfall schemas."""

import enum
from decimal import Decimal

from pydantic import AliasChoices, Field, field_validator

from . import CamelModel


class PaymentCategory(str, enum.Enum):
    FEES = "fees"
    PENALTIES = "penalties"
    INTEREST = "interest"
    PRINCIPAL = "principal"
    ESCROW = "escrow"


class CategoryAmounts(CamelModel):
    """One nonnegative amount per payment category; missing categories are zero."""

    interest: Decimal = Field(default=Decimal("0"), ge=0)
    principal: Decimal = Field(default=Decimal("0"), ge=0)
    fees: Decimal = Field(default=Decimal("0"), ge=0)
    penalties: Decimal = Field(default=Decimal("0"), ge=0)
    escrow: Decimal = Field(default=Decimal("0"), ge=0)

    def get(self, category: PaymentCategory) -> Decimal:
        return getattr(self, PaymentCategory(category).value)


class WaterfallStep(CamelModel):
    category: PaymentCategory = Field(validation_alias=AliasChoices("category", "type"))
    percentage_cap: Decimal = Field(
        default=Decimal("100"),
        ge=0,
        le=100,
        validation_alias=AliasChoices("percentageCap", "percentage_cap", "percentage"),
    )

    @field_validator("category", mode="before")
    @classmethod
    def _lowercase_category(cls, value):
        return value.lower() if isinstance(value, str) else value


class WaterfallConfig(CamelModel):
    name: str = "Custom"
    steps: list[WaterfallStep]


class StepAllocation(CamelModel):
    category: PaymentCategory
    percentage_cap: Decimal
    allocated: Decimal
    remaining_after: Decimal


class AllocationResult(CamelModel):
    applied_amounts: CategoryAmounts
    remaining_payment: Decimal
    steps: list[StepAllocation] = Field(default_factory=list)


class WaterfallRequest(CamelModel):
    """Body of the waterfall endpoint.

    ``waterfall_config`` may be a preset name, a bare list of steps or a named
    config; omitted means the Standard preset.
    """

    payment: Decimal
    outstanding_amounts: CategoryAmounts = Field(default_factory=CategoryAmounts)
    waterfall_config: str | list[WaterfallStep] | WaterfallConfig | None = None


class WaterfallResponse(CamelModel):
    applied_amounts: CategoryAmounts
    remaining_payment: Decimal
    steps: list[StepAllocation] = Field(default_factory=list)
    waterfall: str


class WaterfallPreset(CamelModel):
    name: str
    description: str
    steps: list[WaterfallStep]
