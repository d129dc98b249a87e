import pytest

from app.models.manual_quote import ExpenseCategory, TransportPricingMode
from app.services.expense_classifier import ScalingRule, scaling_rule


class TestScalingRule:

    @pytest.mark.parametrize("category", [
        ExpenseCategory.HOTEL_ACCOMMODATION,
        ExpenseCategory.MEALS,
        ExpenseCategory.ENTRANCE_FEES,
        ExpenseCategory.SIC_TOUR_COST,
        ExpenseCategory.TIPS,
        ExpenseCategory.GUIDE,
    ])
    def test_per_person_categories(self, category):
        for mode in TransportPricingMode:
            assert scaling_rule(category, mode) is ScalingRule.PER_PERSON

    @pytest.mark.parametrize("category", [
        ExpenseCategory.GUIDE_DRIVER_ACCOMMODATION,
        ExpenseCategory.PARKING,
    ])
    def test_fixed_categories(self, category):
        for mode in TransportPricingMode:
            assert scaling_rule(category, mode) is ScalingRule.FIXED

    def test_transportation_depends_on_mode(self):
        assert scaling_rule(ExpenseCategory.TRANSPORTATION, TransportPricingMode.VEHICLE) is ScalingRule.FIXED
        assert scaling_rule(ExpenseCategory.TRANSPORTATION, TransportPricingMode.TOTAL) is ScalingRule.PER_PERSON

    def test_accepts_stored_strings(self):
        assert scaling_rule("transportation", "VEHICLE") is ScalingRule.FIXED
        assert scaling_rule("meals", "TOTAL") is ScalingRule.PER_PERSON

    def test_unknown_category(self):
        with pytest.raises(ValueError):
            scaling_rule("souvenirs", TransportPricingMode.TOTAL)

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            scaling_rule(ExpenseCategory.MEALS, "PER_SEAT")
