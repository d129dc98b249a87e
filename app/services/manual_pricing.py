"""
Manual quote pricing - builds the pax-bracket price table of a manual quote.

For each bracket (2, 4, 6, 8, 10 travellers):
- total cost: FIXED lines as entered, PER_PERSON lines rescaled from
  the reference pax to the bracket
- markup on cost, then tax on (cost + markup)
- price per person = total price / bracket

All arithmetic runs on Decimal and each output is rounded once
(half-up, 2 decimals) so per-line rounding never compounds.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from app.services.expense_classifier import ScalingRule, scaling_rule

PAX_BRACKETS = (2, 4, 6, 8, 10)

_CENT = Decimal("0.01")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PricingBreakdown:
    """Rounded price breakdown for one passenger bracket."""

    total_cost: Decimal
    markup: Decimal
    tax: Decimal
    total_price: Decimal
    price_per_person: Decimal

    def to_dict(self) -> Dict[str, float]:
        return {
            "total_cost": float(self.total_cost),
            "markup": float(self.markup),
            "tax": float(self.tax),
            "total_price": float(self.total_price),
            "price_per_person": float(self.price_per_person),
        }


# bracket pax -> breakdown
PricingTable = Dict[int, PricingBreakdown]


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _round(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def expense_cost_for_bracket(
    price: Decimal,
    rule: ScalingRule,
    reference_pax: int,
    bracket: int,
) -> Decimal:
    """Unrounded contribution of one expense line to a bracket's total cost."""
    if rule is ScalingRule.FIXED:
        return price
    return price * Decimal(bracket) / Decimal(reference_pax)


def breakdown_for_total_cost(
    total_cost: Decimal,
    markup_pct: Decimal,
    tax_pct: Decimal,
    bracket: int,
) -> PricingBreakdown:
    """Apply markup then tax to an unrounded total cost and round the results."""
    markup_amount = total_cost * markup_pct / _HUNDRED
    pre_tax = total_cost + markup_amount
    tax_amount = pre_tax * tax_pct / _HUNDRED
    total_price = pre_tax + tax_amount
    price_per_person = total_price / Decimal(bracket)

    return PricingBreakdown(
        total_cost=_round(total_cost),
        markup=_round(markup_amount),
        tax=_round(tax_amount),
        total_price=_round(total_price),
        price_per_person=_round(price_per_person),
    )


def generate_pricing_table(quote: Any) -> PricingTable:
    """
    Generate the price table of a quote.

    `quote` needs pax, markup, tax, transport_pricing_mode and days with
    expenses (category, price). Works on ORM objects or plain namespaces.
    The caller guarantees quote.pax >= 1.
    """
    reference_pax = int(quote.pax)
    markup_pct = _to_decimal(quote.markup)
    tax_pct = _to_decimal(quote.tax)

    # Classify once; rules do not depend on the bracket
    lines = []
    for day in quote.days:
        for expense in day.expenses:
            rule = scaling_rule(expense.category, quote.transport_pricing_mode)
            lines.append((_to_decimal(expense.price), rule))

    table: PricingTable = {}
    for bracket in PAX_BRACKETS:
        total_cost = sum(
            (
                expense_cost_for_bracket(price, rule, reference_pax, bracket)
                for price, rule in lines
            ),
            Decimal("0"),
        )
        table[bracket] = breakdown_for_total_cost(total_cost, markup_pct, tax_pct, bracket)

    return table


def pricing_table_to_json(table: PricingTable) -> Dict[str, Dict[str, float]]:
    """Serialize a table for storage: {"pax2": {...}, ...} in bracket order."""
    return {f"pax{bracket}": table[bracket].to_dict() for bracket in sorted(table)}


def pricing_table_from_json(data: Optional[Dict[str, Dict[str, Any]]]) -> Optional[PricingTable]:
    """Inverse of pricing_table_to_json; None stays None."""
    if data is None:
        return None

    table: PricingTable = {}
    for key, values in data.items():
        bracket = int(key.replace("pax", ""))
        table[bracket] = PricingBreakdown(
            total_cost=_round(_to_decimal(values["total_cost"])),
            markup=_round(_to_decimal(values["markup"])),
            tax=_round(_to_decimal(values["tax"])),
            total_price=_round(_to_decimal(values["total_price"])),
            price_per_person=_round(_to_decimal(values["price_per_person"])),
        )
    return dict(sorted(table.items()))
