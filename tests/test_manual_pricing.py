from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.services.expense_classifier import ScalingRule
from app.services.manual_pricing import (
    PAX_BRACKETS,
    PricingBreakdown,
    breakdown_for_total_cost,
    expense_cost_for_bracket,
    generate_pricing_table,
    pricing_table_from_json,
    pricing_table_to_json,
)


def _quote(expenses_by_day, pax=2, markup="15", tax="8", mode="VEHICLE"):
    days = [
        SimpleNamespace(
            expenses=[SimpleNamespace(category=category, price=Decimal(price)) for category, price in expenses]
        )
        for expenses in expenses_by_day
    ]
    return SimpleNamespace(
        pax=pax,
        markup=Decimal(markup),
        tax=Decimal(tax),
        transport_pricing_mode=mode,
        days=days,
    )


class TestPricingTable:

    def test_private_tour_with_vehicle(self):
        quote = _quote([[("hotelAccommodation", "100"), ("transportation", "50")]])

        table = generate_pricing_table(quote)

        assert list(table) == list(PAX_BRACKETS)
        # 100 * 4 / 2 + 50 = 250; +15% = 287.5; +8% = 310.5; / 4 = 77.625
        assert table[4] == PricingBreakdown(
            total_cost=Decimal("250.00"),
            markup=Decimal("37.50"),
            tax=Decimal("23.00"),
            total_price=Decimal("310.50"),
            price_per_person=Decimal("77.63"),
        )

    def test_no_expenses_gives_zeros(self):
        table = generate_pricing_table(_quote([[]]))

        for bracket in PAX_BRACKETS:
            assert table[bracket] == PricingBreakdown(*(Decimal("0.00"),) * 5)

    def test_per_person_scaling(self):
        quote = _quote([[("meals", "90")]], pax=3, markup="0", tax="0")

        table = generate_pricing_table(quote)

        for bracket in PAX_BRACKETS:
            assert table[bracket].total_cost == Decimal("30.00") * bracket
            assert table[bracket].price_per_person == Decimal("30.00")

    def test_fixed_cost_is_flat(self):
        quote = _quote([[("parking", "20"), ("guideDriverAccommodation", "45")]], markup="0", tax="0")

        table = generate_pricing_table(quote)

        for bracket in PAX_BRACKETS:
            assert table[bracket].total_cost == Decimal("65.00")

    def test_transportation_in_total_mode_scales(self):
        quote = _quote([[("transportation", "100")]], pax=2, markup="0", tax="0", mode="TOTAL")

        table = generate_pricing_table(quote)

        assert table[2].total_cost == Decimal("100.00")
        assert table[10].total_cost == Decimal("500.00")

    def test_total_grows_with_bracket(self):
        quote = _quote(
            [[("hotelAccommodation", "120"), ("meals", "35")], [("entranceFees", "12.5")]],
            pax=4,
            mode="TOTAL",
        )

        table = generate_pricing_table(quote)

        totals = [table[bracket].total_price for bracket in PAX_BRACKETS]
        assert totals == sorted(totals)
        assert len(set(totals)) == len(totals)

    def test_rounding_happens_once(self):
        # Three lines of 0.333... per person would drift if rounded line by line
        quote = _quote([[("tips", "1"), ("tips", "1"), ("tips", "1")]], pax=3, markup="0", tax="0")

        table = generate_pricing_table(quote)

        assert table[2].total_cost == Decimal("2.00")

    def test_same_input_same_table(self):
        quote = _quote([[("hotelAccommodation", "100"), ("transportation", "50")]])

        assert generate_pricing_table(quote) == generate_pricing_table(quote)


class TestPricingHelpers:

    @pytest.mark.parametrize("rule,bracket,expected", [
        (ScalingRule.PER_PERSON, 2, Decimal("100")),
        (ScalingRule.PER_PERSON, 8, Decimal("400")),
        (ScalingRule.FIXED, 2, Decimal("100")),
        (ScalingRule.FIXED, 8, Decimal("100")),
    ])
    def test_expense_cost_for_bracket(self, rule, bracket, expected):
        assert expense_cost_for_bracket(Decimal("100"), rule, 2, bracket) == expected

    def test_breakdown_half_up(self):
        breakdown = breakdown_for_total_cost(Decimal("0.125"), Decimal("0"), Decimal("0"), 1)

        assert breakdown.total_cost == Decimal("0.13")

    def test_json_keys_and_values(self):
        table = generate_pricing_table(_quote([[("hotelAccommodation", "100"), ("transportation", "50")]]))

        data = pricing_table_to_json(table)

        assert list(data) == ["pax2", "pax4", "pax6", "pax8", "pax10"]
        assert data["pax4"] == {
            "total_cost": 250.0,
            "markup": 37.5,
            "tax": 23.0,
            "total_price": 310.5,
            "price_per_person": 77.63,
        }
        assert pricing_table_from_json(data) == table

    def test_from_json_none(self):
        assert pricing_table_from_json(None) is None
