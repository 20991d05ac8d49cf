import math

import pytest
from hypothesis import given, strategies as st

from goldestimate.domain.estimation_models import (
    LossType,
    MakingChargeType,
    Metal,
    WastageType,
)
from goldestimate.services import pricing_calculator as pricing
from tests.factories import pricing_inputs, product, rate_sheet


def test_scenario_chain_with_percentage_wastage():
    breakdown = pricing.price_item(
        net_weight=5.5,
        rate=6000,
        making_charge=500,
        making_charge_type=MakingChargeType.FIXED,
        wastage=10,
        wastage_type=WastageType.PERCENTAGE,
        tax_percent=3,
    )

    assert breakdown.metal_value == pytest.approx(33000)
    assert breakdown.wastage_value == pytest.approx(3300)
    assert breakdown.making_charge_value == pytest.approx(500)
    assert breakdown.subtotal == pytest.approx(36800)
    assert breakdown.tax_value == pytest.approx(1104)
    assert breakdown.total == pytest.approx(37904)


def test_per_gram_making_and_weight_wastage():
    breakdown = pricing.price_item(
        net_weight=10,
        rate=5000,
        making_charge=300,
        making_charge_type="perGram",
        wastage=0.5,
        wastage_type="weight",
        tax_percent=3,
    )

    assert breakdown.metal_value == pytest.approx(50000)
    assert breakdown.making_charge_value == pytest.approx(3000)
    assert breakdown.wastage_value == pytest.approx(2500)
    assert breakdown.subtotal == pytest.approx(55500)
    assert breakdown.tax_value == pytest.approx(1665)
    assert breakdown.total == pytest.approx(57165)


def test_percentage_making_charge_uses_metal_value():
    assert pricing.compute_making_charge(4, 20000, 12, MakingChargeType.PERCENTAGE) == pytest.approx(2400)


def test_fixed_making_charge_ignores_weight():
    assert pricing.compute_making_charge(100, 1_000_000, 750, "fixed") == 750


def test_tax_is_levied_on_subtotal_not_metal_value():
    breakdown = pricing.price_item(2, 1000, 500, "fixed", 0, "percentage", tax_percent=10)
    assert breakdown.tax_value == pytest.approx(250)


def test_unknown_making_charge_type_rejected():
    with pytest.raises(ValueError):
        pricing.compute_making_charge(1, 1, 1, "per-piece")


def test_net_weight_in_grams_is_floored():
    assert pricing.compute_net_weight(2.0, 3.5, LossType.GRAMS) == 0.0
    assert pricing.compute_net_weight(10.0, 1.25) == pytest.approx(8.75)


def test_net_weight_amount_treated_as_grams():
    assert pricing.compute_net_weight(10.0, 2.0, LossType.AMOUNT) == pytest.approx(8.0)


def test_net_weight_percentage_not_floored():
    assert pricing.compute_net_weight(10.0, 5, "percentage") == pytest.approx(9.5)
    assert pricing.compute_net_weight(10.0, 150, "percentage") == pytest.approx(-5.0)


def test_percentage_deduction_of_a_fifth():
    assert pricing.compute_net_weight(10, 20, "percentage") == 8


@pytest.mark.parametrize(
    "purity, expected",
    [(24, 6550.0), (22, 6000.0), (20, 5450.0), (18, 4900.0), (26, 6000.0), (14, 6000.0), (22.5, 6000.0)],
)
def test_resolve_default_rate_for_gold(purity, expected):
    assert pricing.resolve_default_rate(rate_sheet(), Metal.GOLD, purity) == expected


def test_resolve_default_rate_for_silver_ignores_purity():
    assert pricing.resolve_default_rate(rate_sheet(), "SILVER", 92.5) == 78.0


def test_build_line_item_resolves_rate_from_sheet():
    item = pricing.build_line_item(product(purity=26), item_id="a", rate_sheet=rate_sheet(), tax_percent=3)

    assert item.rate == 6000.0
    assert item.total_value == pytest.approx(37904)
    assert item.net_weight == pytest.approx(5.5)


def test_build_line_item_prefers_explicit_rate():
    item = pricing.build_line_item(
        product(stone_weight=0.5), item_id="a", rate=6550.0, rate_sheet=rate_sheet(), tax_percent=0
    )

    assert item.rate == 6550.0
    assert item.net_weight == pytest.approx(5.0)
    assert item.gross_weight == pytest.approx(5.5)
    assert item.metal_value == pytest.approx(32750)


def test_build_line_item_requires_a_rate_source():
    with pytest.raises(ValueError):
        pricing.build_line_item(product(), item_id="a")


def test_build_purchase_item_values_net_weight():
    item = pricing.build_purchase_item(
        item_id="p1",
        category="Old Gold",
        metal="GOLD",
        purity=22,
        gross_weight=10,
        deduction=5,
        deduction_type="percentage",
        rate=5800,
    )

    assert item.net_weight == pytest.approx(9.5)
    assert item.amount == pytest.approx(55100)
    assert item.deduction_type is LossType.PERCENTAGE


@given(pricing_inputs())
def test_breakdown_components_add_up(inputs):
    breakdown = pricing.price_item(**inputs)

    assert breakdown.subtotal == pytest.approx(
        breakdown.metal_value + breakdown.making_charge_value + breakdown.wastage_value
    )
    assert breakdown.tax_value == pytest.approx(breakdown.subtotal * inputs["tax_percent"] / 100)
    assert breakdown.total == pytest.approx(breakdown.subtotal + breakdown.tax_value)
    assert breakdown.total >= 0


@given(
    st.floats(min_value=0, max_value=1000, allow_nan=False),
    st.floats(min_value=0, max_value=1000, allow_nan=False),
)
def test_gram_deduction_never_negative(gross, loss):
    net = pricing.compute_net_weight(gross, loss, LossType.GRAMS)
    assert net >= 0
    assert net <= gross
    if loss <= gross:
        assert net == gross - loss
    else:
        assert net == 0.0


@given(pricing_inputs())
def test_pricing_is_deterministic(inputs):
    first = pricing.price_item(**inputs)
    second = pricing.price_item(**inputs)
    assert first == second
    assert all(math.isfinite(value) for value in vars(first).values())
