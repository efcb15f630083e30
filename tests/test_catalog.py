# This project was developed with assistance from AI tools.
"""Tests for the modification catalog."""

from decimal import Decimal
from typing import get_args

import pytest
from db.enums import ModificationType

from servicing.schemas.modification import ModificationRequest
from servicing.services.catalog import (
    MODIFICATION_CATALOG,
    entries_by_category,
    get_entry,
    get_schema,
    list_entries,
)
from servicing.services.errors import UnknownTypeError

VARIANT_MODELS = {
    model.model_fields["type"].default: model for model in get_args(get_args(ModificationRequest)[0])
}


def test_every_type_registered():
    assert set(MODIFICATION_CATALOG) == set(ModificationType)
    assert [e.type for e in list_entries()] == list(ModificationType)


def test_every_variant_model_matches_a_type():
    assert set(VARIANT_MODELS) == {t.value for t in ModificationType}


@pytest.mark.parametrize("modification_type", list(ModificationType))
def test_field_specs_name_real_attributes(modification_type):
    """Every catalog field exists on its variant model under its camelCase name."""
    model = VARIANT_MODELS[modification_type.value]
    for spec in get_schema(modification_type):
        assert spec.attr in model.model_fields
        assert model.model_fields[spec.attr].alias == spec.name


def test_rate_change_rules():
    (rate, _previous) = get_schema("RATE_CHANGE")
    assert rate.name == "newAnnualInterestRate"
    assert rate.required
    assert rate.minimum == Decimal("0")
    assert rate.min_exclusive
    assert rate.maximum == Decimal("50")
    assert rate.unit == "%"


def test_conditional_requirements():
    specs = {s.attr: s for s in get_schema(ModificationType.PAYMENT_REDUCTION_PERMANENT)}
    assert specs["new_term_months"].required_when == ("term_adjustment", ("EXTEND_TERM", "COMBINATION"))
    assert specs["principal_reduction"].required_when == (
        "term_adjustment",
        ("REDUCE_PRINCIPAL", "COMBINATION"),
    )


def test_static_ranges():
    def bounds(type_, attr):
        spec = next(s for s in get_schema(type_) if s.attr == attr)
        return spec.minimum, spec.maximum

    assert bounds("TERM_EXTENSION", "additional_months") == (1, 360)
    assert bounds("PAYMENT_REDUCTION_TEMPORARY", "number_of_terms") == (1, 60)
    assert bounds("FORBEARANCE", "duration_months") == (1, 12)
    assert bounds("DEFERMENT", "duration_months") == (1, 24)


def test_get_entry_labels():
    entry = get_entry(ModificationType.BALLOON_PAYMENT_ASSIGNMENT)
    assert entry.label == "Balloon Payment Assignment"
    assert entry.category == "Balloon Options"


def test_entries_by_category():
    grouped = entries_by_category()
    assert list(grouped) == [
        "Rate & Terms",
        "Payment Relief",
        "Principal Changes",
        "Balloon Options",
        "Hardship Options",
        "Restructuring",
    ]
    assert [e.type for e in grouped["Hardship Options"]] == [
        ModificationType.FORBEARANCE,
        ModificationType.DEFERMENT,
    ]


def test_unknown_type_raises():
    with pytest.raises(UnknownTypeError):
        get_schema("INTEREST_HOLIDAY")


def test_unknown_type_is_lookup_error():
    with pytest.raises(LookupError):
        get_entry("")
