import itertools
from datetime import date, timedelta
from decimal import Decimal

import pytest

from cinemates.domain.pricing.calculator import (
    AddonLine,
    CakeLine,
    CouponTerms,
    compute_total,
    scale_cake_price,
    to_minor_units,
)

TODAY = date(2025, 6, 15)


def coupon(kind="percentage", value="10", start=TODAY, end=TODAY, code="TEST"):
    return CouponTerms(code=code, kind=kind, value=Decimal(value), start_date=start, end_date=end)


CAKES = [
    CakeLine(name="Chocolate Truffle", reference_price=Decimal("500"), weight_grams=1000, quantity=1),
    CakeLine(name="Black Forest", reference_price=Decimal("450"), weight_grams=1500, quantity=2),
    CakeLine(name="Red Velvet", reference_price=Decimal("333.33"), weight_grams=500, quantity=3),
]
ADDONS = [
    AddonLine(name="Fog Entry", unit_price=Decimal("400"), quantity=2),
    AddonLine(name="Rose Bouquet", unit_price=Decimal("349.99"), quantity=1),
]


def test_subtotal_adds_every_component():
    result = compute_total(Decimal("1500"), Decimal("500"), CAKES, ADDONS)
    # 1500 + 500 + 1000 + 2700 + 999.99 + 800 + 349.99
    assert result.subtotal == Decimal("7849.98")
    assert result.discount == Decimal("0.00")
    assert result.total == Decimal("7849.98")
    assert result.coupon_status == "none"


def test_total_does_not_depend_on_line_item_order():
    expected = compute_total(1500, 500, CAKES, ADDONS, coupon("percentage", "12.5"), TODAY)
    for cakes in itertools.permutations(CAKES):
        for addons in itertools.permutations(ADDONS):
            result = compute_total(1500, 500, list(cakes), list(addons), coupon("percentage", "12.5"), TODAY)
            assert result == expected
            assert result.model_dump_json() == expected.model_dump_json()


def test_replaying_mutations_in_any_order_gives_same_total():
    """Mutations on distinct line items commute; the final set always prices the same"""
    initial = {"Red Velvet": CAKES[2]}
    mutations = [
        ("Chocolate Truffle", CAKES[0].model_copy(update={"quantity": 2})),
        ("Black Forest", CAKES[1]),
        ("Red Velvet", CAKES[2].model_copy(update={"quantity": 0})),
    ]

    totals = set()
    for order in itertools.permutations(mutations):
        state = dict(initial)
        for name, line in order:
            if line.quantity == 0:
                state.pop(name, None)
            else:
                state[name] = line
        totals.add(compute_total(1500, 0, list(state.values()), ADDONS).total)

    # 1500 + 2000 + 2700 + 800 + 349.99
    assert totals == {Decimal("7349.99")}


@pytest.mark.parametrize("multiple", [1, 2, 3, 4, 10])
def test_cake_price_scales_linearly_with_weight(multiple):
    assert scale_cake_price(Decimal("500"), 500 * multiple) == Decimal(500 * multiple)


def test_cake_at_one_kilo_costs_double_the_reference():
    line = CakeLine(name="Chocolate Truffle", reference_price=Decimal("500"), weight_grams=1000)
    assert line.unit_price == Decimal("1000.00")
    result = compute_total(0, 0, [line], [])
    assert result.total == Decimal("1000.00")


def test_scale_rejects_non_positive_weight():
    with pytest.raises(ValueError):
        scale_cake_price(Decimal("500"), 0)


def test_coupon_valid_on_single_day_window():
    result = compute_total(1000, 0, [], [], coupon(start=TODAY, end=TODAY), TODAY)
    assert result.coupon_status == "applied"
    assert result.discount == Decimal("100.00")
    assert result.total == Decimal("900.00")


def test_coupon_expired_yesterday_is_not_applied():
    yesterday = TODAY - timedelta(days=1)
    result = compute_total(1000, 0, [], [], coupon(start=yesterday - timedelta(days=5), end=yesterday), TODAY)
    assert result.coupon_status == "expired"
    assert result.discount == Decimal("0.00")
    assert result.total == Decimal("1000.00")
    assert "expired" in result.coupon_message


def test_coupon_not_yet_valid_is_reported():
    tomorrow = TODAY + timedelta(days=1)
    result = compute_total(1000, 0, [], [], coupon(start=tomorrow, end=tomorrow), TODAY)
    assert result.coupon_status == "not_yet_valid"
    assert result.total == Decimal("1000.00")


def test_flat_coupon_is_clamped_to_subtotal():
    result = compute_total(300, 0, [], [], coupon("flat_amount", "500"), TODAY)
    assert result.discount == Decimal("300.00")
    assert result.total == Decimal("0.00")


def test_percentage_is_clamped_to_one_hundred():
    result = compute_total(800, 0, [], [], coupon("percentage", "150"), TODAY)
    assert result.discount == Decimal("800.00")
    assert result.total == Decimal("0.00")


def test_percentage_discount_rounds_half_up():
    # 333.33 * 15% = 49.9995 -> 50.00
    result = compute_total(Decimal("333.33"), 0, [], [], coupon("percentage", "15"), TODAY)
    assert result.discount == Decimal("50.00")
    assert result.total == Decimal("283.33")


def test_identical_inputs_give_identical_output():
    a = compute_total(1500, 500, CAKES, ADDONS, coupon("flat_amount", "250"), TODAY)
    b = compute_total(1500, 500, CAKES, ADDONS, coupon("flat_amount", "250"), TODAY)
    assert a.model_dump_json() == b.model_dump_json()


def test_to_minor_units():
    assert to_minor_units(Decimal("3420.00")) == 342000
    assert to_minor_units("0.1") == 10
    assert to_minor_units(0.1) == 10
    assert to_minor_units(Decimal("10.005")) == 1001
