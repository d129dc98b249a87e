"""
Seed script - Creates a demo manual quote for development.

Run with: python -m scripts.seed_demo [tenant-uuid]
"""

import asyncio
import sys
import uuid
from datetime import date
from decimal import Decimal

from jose import jwt

from app.config import get_settings
from app.database import async_session_maker
from app.services.manual_quote_service import ManualQuoteService

settings = get_settings()

DEMO_TENANT_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def demo_quote_data() -> dict:
    """Three-day private tour, priced for 2 pax with a private vehicle."""
    return {
        "quote_name": "Hanoi & Halong Bay - 3D2N",
        "category": "B2B_FIT",
        "season_name": "High season 2026",
        "valid_from": date(2026, 1, 1),
        "valid_to": date(2026, 12, 31),
        "start_date": date(2026, 3, 1),
        "end_date": date(2026, 3, 3),
        "tour_type": "PRIVATE",
        "pax": 2,
        "markup": Decimal("15"),
        "tax": Decimal("8"),
        "transport_pricing_mode": "VEHICLE",
        "days": [
            {
                "date": date(2026, 3, 1),
                "expenses": [
                    {"category": "hotelAccommodation", "hotel_category": "4*", "location": "Hanoi",
                     "price": Decimal("120"), "single_supplement": Decimal("45")},
                    {"category": "transportation", "description": "Airport transfer",
                     "price": Decimal("35"), "vehicle_count": 1, "price_per_vehicle": Decimal("35")},
                    {"category": "meals", "description": "Welcome dinner", "price": Decimal("40")},
                ],
            },
            {
                "date": date(2026, 3, 2),
                "expenses": [
                    {"category": "sicTourCost", "location": "Halong Bay", "price": Decimal("180"),
                     "child_6_to_11": Decimal("60")},
                    {"category": "transportation", "description": "Hanoi - Halong return",
                     "price": Decimal("110"), "vehicle_count": 1, "price_per_vehicle": Decimal("110")},
                    {"category": "guide", "price": Decimal("60")},
                    {"category": "guideDriverAccommodation", "price": Decimal("25")},
                ],
            },
            {
                "date": date(2026, 3, 3),
                "expenses": [
                    {"category": "entranceFees", "location": "Temple of Literature", "price": Decimal("12")},
                    {"category": "tips", "price": Decimal("10")},
                    {"category": "parking", "price": Decimal("5")},
                ],
            },
        ],
    }


async def seed_demo_data(tenant_id: uuid.UUID):
    """Main seed function."""
    print(f"🌱 Seeding demo manual quote for tenant {tenant_id}...")

    async with async_session_maker() as db:
        service = ManualQuoteService(db, tenant_id)

        _, total = await service.list_quotes(page=1, page_size=1)
        if total:
            print(f"⚠️  Tenant already has {total} manual quotes. Skipping seed.")
            return

        quote = await service.create_quote(demo_quote_data())
        table = await service.recalculate_pricing(quote.id)

    print(f"✅ Created manual quote: {quote.quote_name} (ID: {quote.id})")
    for bracket, breakdown in table.items():
        print(f"   {bracket:>2} pax: {breakdown.price_per_person} per person ({breakdown.total_price} total)")

    token = jwt.encode(
        {"sub": "seed_demo", "tenant_id": str(tenant_id)},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    print(f"\n📝 Bearer token for this tenant:\n   {token}")


if __name__ == "__main__":
    tenant = uuid.UUID(sys.argv[1]) if len(sys.argv) > 1 else DEMO_TENANT_ID
    asyncio.run(seed_demo_data(tenant))
