"""
Expense classifier - how a manual quote expense scales with passenger count.

PER_PERSON lines are entered for the quote's reference pax and are
renormalized per head for each bracket. FIXED lines cost the same
whatever the group size (one vehicle, the guide's room, parking).
"""

from enum import Enum
from typing import Union

from app.models.manual_quote import ExpenseCategory, TransportPricingMode


class ScalingRule(str, Enum):
    PER_PERSON = "PER_PERSON"
    FIXED = "FIXED"


# Rules that do not depend on the transport pricing mode
_CATEGORY_RULES = {
    ExpenseCategory.HOTEL_ACCOMMODATION: ScalingRule.PER_PERSON,
    ExpenseCategory.MEALS: ScalingRule.PER_PERSON,
    ExpenseCategory.ENTRANCE_FEES: ScalingRule.PER_PERSON,
    ExpenseCategory.SIC_TOUR_COST: ScalingRule.PER_PERSON,
    ExpenseCategory.TIPS: ScalingRule.PER_PERSON,
    ExpenseCategory.GUIDE: ScalingRule.PER_PERSON,
    ExpenseCategory.GUIDE_DRIVER_ACCOMMODATION: ScalingRule.FIXED,
    ExpenseCategory.PARKING: ScalingRule.FIXED,
}


def scaling_rule(
    category: Union[ExpenseCategory, str],
    transport_mode: Union[TransportPricingMode, str],
) -> ScalingRule:
    """
    Return the scaling rule for an expense category.

    Accepts enum members or their stored string values.
    Raises ValueError for an unknown category or mode.
    """
    category = ExpenseCategory(category)
    transport_mode = TransportPricingMode(transport_mode)

    if category is ExpenseCategory.TRANSPORTATION:
        if transport_mode is TransportPricingMode.VEHICLE:
            return ScalingRule.FIXED
        return ScalingRule.PER_PERSON

    return _CATEGORY_RULES[category]
