# This project was developed with assistance from AI tools.
"""Tests for modification impact calculation.

All scenarios start from the 100,000 / 6% / 360-month loan at origination
unless a test builds its own position.
"""

from datetime import date
from decimal import Decimal

import pytest
from db.enums import ModificationType

from servicing.schemas.modification import (
    BalloonAssignmentModification,
    BalloonRemovalModification,
    DefermentModification,
    ForbearanceModification,
    ModificationCalculationParams,
    PermanentPaymentReductionModification,
    PrincipalReductionModification,
    RateChangeModification,
    ReamortizationModification,
    TemporaryPaymentReductionModification,
    TermExtensionModification,
)
from servicing.services.amortization import compute_payment, create_loan_terms
from servicing.services.errors import CalculationError, ValidationError
from servicing.services.impact import _TRANSFORMS, calculate_modification_impact

EFFECTIVE = date(2024, 1, 1)
ORIGINAL_PAYMENT = Decimal("599.55")


def test_transforms_cover_every_type():
    assert set(_TRANSFORMS) == set(ModificationType)


def test_invalid_request_never_calculated(loan_terms, params):
    mod = RateChangeModification(effective_date=EFFECTIVE, new_annual_interest_rate=Decimal("0"))
    with pytest.raises(ValidationError):
        calculate_modification_impact(loan_terms, mod, params)


# ---------------------------------------------------------------------------
# Rate & terms
# ---------------------------------------------------------------------------


class TestRateChange:
    def test_lower_rate_lowers_payment_and_holds_term(self, loan_terms, params):
        mod = RateChangeModification(effective_date=EFFECTIVE, new_annual_interest_rate=Decimal("5"))
        result = calculate_modification_impact(loan_terms, mod, params)

        assert result.modification_type == ModificationType.RATE_CHANGE
        assert result.original_payment == ORIGINAL_PAYMENT
        assert result.new_payment == Decimal("536.82")
        assert result.new_term_months == result.original_term_months == 360
        assert result.monthly_payment_change_amount == result.new_payment - result.original_payment
        assert result.new_total_interest < result.original_total_interest
        assert result.total_interest_change_amount < 0

    def test_next_payment_date_is_first_due_on_or_after_effective(self, loan_terms, params):
        mod = RateChangeModification(effective_date=EFFECTIVE, new_annual_interest_rate=Decimal("5"))
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.next_payment_date == date(2024, 2, 1)

    def test_money_fields_keep_two_places(self, loan_terms, params):
        mod = RateChangeModification(effective_date=EFFECTIVE, new_annual_interest_rate=Decimal("4.875"))
        result = calculate_modification_impact(loan_terms, mod, params)
        for amount in (result.new_payment, result.new_total_interest, result.new_principal_balance):
            assert amount.as_tuple().exponent == -2

    def test_mid_life_counts_interest_already_paid(self, loan_terms):
        params = ModificationCalculationParams(
            current_balance=Decimal("93054.36"), current_terms_remaining=300, current_payment_number=61
        )
        mod = RateChangeModification(effective_date=date(2029, 1, 1), new_annual_interest_rate=Decimal("6"))
        result = calculate_modification_impact(loan_terms, mod, params)
        # Same rate on the scheduled balance reproduces the original figures closely.
        assert abs(result.new_payment - ORIGINAL_PAYMENT) <= Decimal("0.05")
        assert abs(result.total_interest_change_amount) < Decimal("15")

    def test_loan_with_long_first_period(self, params):
        loan = create_loan_terms(
            Decimal("100000"),
            Decimal("6"),
            360,
            date(2024, 1, 1),
            first_payment_date=date(2024, 2, 15),
        )
        mod = RateChangeModification(effective_date=EFFECTIVE, new_annual_interest_rate=Decimal("5"))
        result = calculate_modification_impact(loan, mod, params)
        assert result.original_payment == ORIGINAL_PAYMENT
        assert result.new_payment == Decimal("536.82")
        assert result.next_payment_date == date(2024, 2, 15)


class TestTermExtension:
    def test_extension_lowers_payment(self, loan_terms, params):
        mod = TermExtensionModification(effective_date=EFFECTIVE, additional_months=12)
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.new_term_months == 372
        assert result.new_payment < ORIGINAL_PAYMENT
        assert result.new_total_interest > result.original_total_interest

    def test_keep_same_payment(self, loan_terms, params):
        mod = TermExtensionModification(
            effective_date=EFFECTIVE, additional_months=12, keep_same_payment=True
        )
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.new_payment == ORIGINAL_PAYMENT
        assert result.new_term_months == 372
        assert result.monthly_payment_change_amount == 0


# ---------------------------------------------------------------------------
# Payment relief
# ---------------------------------------------------------------------------


class TestTemporaryReduction:
    def _mod(self, handling):
        return TemporaryPaymentReductionModification(
            effective_date=EFFECTIVE,
            new_payment_amount=Decimal("300"),
            number_of_terms=6,
            interest_handling=handling,
        )

    def test_capitalize_grows_balance(self, loan_terms, params):
        result = calculate_modification_impact(loan_terms, self._mod("CAPITALIZE"), params)
        assert result.new_payment == Decimal("300.00")
        assert result.automatic_reversion_date == date(2024, 7, 1)
        assert result.new_principal_balance > Decimal("100000")
        assert result.payment_after_reversion > ORIGINAL_PAYMENT
        assert result.deferred_balance is None
        assert result.new_term_months == 360

    def test_defer_keeps_shortfall_aside(self, loan_terms, params):
        result = calculate_modification_impact(loan_terms, self._mod("DEFER"), params)
        # 500.00 interest against 300.00 paid, six times.
        assert result.deferred_balance == Decimal("1200.00")
        assert result.new_principal_balance == Decimal("100000.00")

    def test_waive_charges_least_interest(self, loan_terms, params):
        capitalized = calculate_modification_impact(loan_terms, self._mod("CAPITALIZE"), params)
        deferred = calculate_modification_impact(loan_terms, self._mod("DEFER"), params)
        waived = calculate_modification_impact(loan_terms, self._mod("WAIVE"), params)
        assert waived.new_total_interest < deferred.new_total_interest < capitalized.new_total_interest


class TestPermanentReduction:
    def test_extend_term_solves_term(self, loan_terms, params):
        mod = PermanentPaymentReductionModification(
            effective_date=EFFECTIVE,
            new_payment_amount=Decimal("560"),
            term_adjustment="EXTEND_TERM",
            new_term_months=480,
        )
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.new_payment == Decimal("560.00")
        assert 360 < result.new_term_months <= 480

    def test_extend_term_beyond_ceiling_fails(self, loan_terms, params):
        mod = PermanentPaymentReductionModification(
            effective_date=EFFECTIVE,
            new_payment_amount=Decimal("560"),
            term_adjustment="EXTEND_TERM",
            new_term_months=400,
        )
        with pytest.raises(CalculationError):
            calculate_modification_impact(loan_terms, mod, params)

    def test_reduce_principal_solves_cut(self, loan_terms, params):
        mod = PermanentPaymentReductionModification(
            effective_date=EFFECTIVE,
            new_payment_amount=Decimal("550"),
            term_adjustment="REDUCE_PRINCIPAL",
            principal_reduction=Decimal("10000"),
        )
        result = calculate_modification_impact(loan_terms, mod, params)
        assert Decimal("90000") < result.new_principal_balance < Decimal("100000")
        assert result.new_term_months == 360
        assert result.new_payment == Decimal("550.00")

    def test_reduce_principal_above_approval_fails(self, loan_terms, params):
        mod = PermanentPaymentReductionModification(
            effective_date=EFFECTIVE,
            new_payment_amount=Decimal("550"),
            term_adjustment="REDUCE_PRINCIPAL",
            principal_reduction=Decimal("5000"),
        )
        with pytest.raises(CalculationError):
            calculate_modification_impact(loan_terms, mod, params)

    def test_combination_uses_both_values(self, loan_terms, params):
        mod = PermanentPaymentReductionModification(
            effective_date=EFFECTIVE,
            new_payment_amount=Decimal("500"),
            term_adjustment="COMBINATION",
            new_term_months=420,
            principal_reduction=Decimal("15000"),
        )
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.new_principal_balance == Decimal("85000.00")
        assert result.new_payment == Decimal("500.00")


# ---------------------------------------------------------------------------
# Principal and balloon changes
# ---------------------------------------------------------------------------


class TestPrincipalReduction:
    def _mod(self, amount, recalculation="KEEP_TERM", **extra):
        return PrincipalReductionModification(
            effective_date=EFFECTIVE,
            reduction_amount=Decimal(amount),
            payment_recalculation=recalculation,
            **extra,
        )

    def test_keep_term_lowers_payment(self, loan_terms, params):
        result = calculate_modification_impact(loan_terms, self._mod("20000"), params)
        assert result.new_principal_balance == Decimal("80000.00")
        assert result.new_payment == Decimal("479.64")
        assert result.new_term_months == 360

    def test_keep_payment_shortens_term(self, loan_terms, params):
        result = calculate_modification_impact(loan_terms, self._mod("20000", "KEEP_PAYMENT"), params)
        assert result.new_payment == ORIGINAL_PAYMENT
        assert result.new_term_months < 360

    def test_custom_overrides(self, loan_terms, params):
        mod = self._mod(
            "20000", "CUSTOM", new_term_months=300, new_payment_amount=Decimal("520")
        )
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.new_term_months == 300
        assert result.new_payment == Decimal("520.00")

    def test_full_reduction_pays_off(self, loan_terms, params):
        result = calculate_modification_impact(loan_terms, self._mod("100000"), params)
        assert result.new_payment == 0
        assert result.new_principal_balance == 0
        assert result.new_total_interest == 0


class TestBalloonAssignment:
    def test_adds_balloon_and_lowers_payment(self, loan_terms, params):
        mod = BalloonAssignmentModification(
            effective_date=EFFECTIVE,
            balloon_amount=Decimal("20000"),
            balloon_due_date=date(2054, 1, 1),
        )
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.schedule_impact.balloon_payment_added
        assert not result.schedule_impact.balloon_payment_removed
        assert result.balloon_amount == Decimal("20000.00")
        assert result.new_payment < ORIGINAL_PAYMENT

    def test_start_after_balloon_due_is_rejected_before_calculation(self, loan_terms, params):
        mod = BalloonAssignmentModification(
            effective_date=EFFECTIVE,
            balloon_amount=Decimal("20000"),
            balloon_due_date=date(2024, 2, 15),
            reamortization_start_type="NEXT_TERM",
        )
        with pytest.raises(ValidationError) as exc_info:
            calculate_modification_impact(loan_terms, mod, params)
        assert exc_info.value.errors[0].field == "reamortizationStartType"

    def test_earlier_due_date_shortens_term(self, loan_terms, params):
        mod = BalloonAssignmentModification(
            effective_date=EFFECTIVE,
            balloon_amount=Decimal("20000"),
            balloon_due_date=date(2044, 1, 1),
        )
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.new_term_months == 240
        no_balloon = compute_payment(create_loan_terms(Decimal("100000"), Decimal("6"), 240, EFFECTIVE))
        assert result.new_payment < no_balloon.monthly_payment

    def test_later_start_keeps_original_payment_first(self, loan_terms, params):
        current = calculate_modification_impact(
            loan_terms,
            BalloonAssignmentModification(
                effective_date=EFFECTIVE,
                balloon_amount=Decimal("20000"),
                balloon_due_date=date(2054, 1, 1),
            ),
            params,
        )
        custom = calculate_modification_impact(
            loan_terms,
            BalloonAssignmentModification(
                effective_date=EFFECTIVE,
                balloon_amount=Decimal("20000"),
                balloon_due_date=date(2054, 1, 1),
                reamortization_start_type="CUSTOM",
                custom_start_term=13,
            ),
            params,
        )
        # A year at the full payment leaves less to spread before the balloon.
        assert custom.new_payment < current.new_payment

    def test_changing_existing_balloon(self, balloon_loan_terms, params):
        mod = BalloonAssignmentModification(
            effective_date=EFFECTIVE,
            balloon_amount=Decimal("30000"),
            balloon_due_date=date(2054, 1, 1),
        )
        result = calculate_modification_impact(balloon_loan_terms, mod, params)
        assert not result.schedule_impact.balloon_payment_added
        assert result.schedule_impact.balloon_amount_changed

    def test_beginning_reamortizes_from_origination(self, loan_terms, params):
        mod = BalloonAssignmentModification(
            effective_date=EFFECTIVE,
            balloon_amount=Decimal("20000"),
            balloon_due_date=date(2054, 1, 1),
            reamortization_start_type="BEGINNING",
        )
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.new_payment < ORIGINAL_PAYMENT
        assert result.new_term_months == 360


class TestBalloonRemoval:
    def test_increase_payment_keeps_term(self, balloon_loan_terms, params):
        mod = BalloonRemovalModification(effective_date=EFFECTIVE, reamortization_type="INCREASE_PAYMENT")
        result = calculate_modification_impact(balloon_loan_terms, mod, params)
        assert result.schedule_impact.balloon_payment_removed
        assert result.balloon_amount is None
        assert result.new_payment > result.original_payment
        assert result.new_term_months == 360

    def test_extend_term_keeps_payment(self, balloon_loan_terms, params):
        mod = BalloonRemovalModification(effective_date=EFFECTIVE, reamortization_type="EXTEND_TERM")
        result = calculate_modification_impact(balloon_loan_terms, mod, params)
        assert result.new_payment == result.original_payment
        assert result.new_term_months > 360


# ---------------------------------------------------------------------------
# Hardship and restructuring
# ---------------------------------------------------------------------------


class TestHardship:
    def test_full_pause_capitalizes(self, loan_terms, params):
        mod = ForbearanceModification(effective_date=EFFECTIVE, duration_months=3)
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.new_payment == 0
        assert result.new_principal_balance > Decimal("101500")
        assert result.new_term_months == 360
        assert result.payment_after_reversion > ORIGINAL_PAYMENT
        assert result.automatic_reversion_date == date(2024, 4, 1)

    def test_partial_reduction(self, loan_terms, params):
        mod = ForbearanceModification(
            effective_date=EFFECTIVE,
            duration_months=3,
            forbearance_type="PARTIAL_REDUCTION",
            reduced_payment_amount=Decimal("200"),
        )
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.new_payment == Decimal("200.00")
        assert Decimal("100000") < result.new_principal_balance < Decimal("101000")

    def test_subsidized_deferment_accrues_nothing(self, loan_terms, params):
        mod = DefermentModification(
            effective_date=EFFECTIVE,
            duration_months=6,
            interest_subsidy=True,
            eligibility_reason="Military service",
        )
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.new_principal_balance == Decimal("100000.00")
        assert result.payment_after_reversion > ORIGINAL_PAYMENT

    def test_unsubsidized_deferment_capitalizes(self, loan_terms, params):
        mod = DefermentModification(
            effective_date=EFFECTIVE, duration_months=6, eligibility_reason="Unemployment"
        )
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.new_principal_balance > Decimal("103000")


class TestReamortization:
    def test_reset_schedule_counts_from_effective_date(self, loan_terms):
        params = ModificationCalculationParams(
            current_balance=Decimal("80000"), current_terms_remaining=240, current_payment_number=121
        )
        mod = ReamortizationModification(
            effective_date=date(2034, 1, 1), reamortization_type="RESET_SCHEDULE", new_term_months=360
        )
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.new_term_months == 360
        assert result.new_payment == Decimal("479.64")

    def test_adjust_remaining_with_new_rate(self, loan_terms, params):
        mod = ReamortizationModification(
            effective_date=EFFECTIVE, reamortization_type="ADJUST_REMAINING", new_interest_rate=Decimal("4")
        )
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.new_payment < ORIGINAL_PAYMENT
        assert result.new_term_months == 360

    def test_full_recalc_from_origination(self, loan_terms, params):
        mod = ReamortizationModification(
            effective_date=EFFECTIVE,
            reamortization_type="FULL_RECALC",
            new_principal_amount=Decimal("90000"),
        )
        result = calculate_modification_impact(loan_terms, mod, params)
        assert result.new_payment == Decimal("539.60")
        assert result.new_principal_balance == Decimal("90000.00")
