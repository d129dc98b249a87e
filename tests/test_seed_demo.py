from decimal import Decimal

import pytest

from scripts.seed_demo import demo_quote_data


@pytest.mark.asyncio
async def test_demo_quote_is_valid(service):
    quote = await service.create_quote(demo_quote_data())

    table = await service.recalculate_pricing(quote.id)

    assert [d.day_number for d in quote.days] == [1, 2, 3]
    assert sum(len(d.expenses) for d in quote.days) == 10
    # 2 pax is the reference: per-person lines are taken as entered
    assert table[2].total_cost == Decimal("597.00")
