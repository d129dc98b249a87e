"""
Manual quote models - hand-built quotations priced day by day.
Includes ManualQuote, ManualQuoteDay and ManualQuoteExpense.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import String, Date, DateTime, Integer, Boolean, DECIMAL, JSON, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import TenantBase, BigIntId


class QuoteCategory(str, Enum):
    """Commercial channel the quote is prepared for."""
    B2C = "B2C"
    B2B = "B2B"
    B2B_FIT = "B2B_FIT"
    B2B_GROUPS = "B2B_GROUPS"
    INTERNAL = "INTERNAL"


class TourType(str, Enum):
    SIC = "SIC"            # Seat-in-coach, shared departures
    PRIVATE = "PRIVATE"


class TransportPricingMode(str, Enum):
    """How transportation lines are priced across passenger brackets."""
    TOTAL = "TOTAL"        # Aggregate cost for the reference pax
    VEHICLE = "VEHICLE"    # Fixed charge per vehicle


class ExpenseCategory(str, Enum):
    HOTEL_ACCOMMODATION = "hotelAccommodation"
    MEALS = "meals"
    ENTRANCE_FEES = "entranceFees"
    SIC_TOUR_COST = "sicTourCost"
    TIPS = "tips"
    TRANSPORTATION = "transportation"
    GUIDE = "guide"
    GUIDE_DRIVER_ACCOMMODATION = "guideDriverAccommodation"
    PARKING = "parking"


class ManualQuote(TenantBase):
    """
    A custom quotation built from dated days and priced expense lines.

    Expense prices are entered for `pax` travellers (the reference pax).
    The pricing table for the standard brackets is a cached snapshot:
    - pricing_table_json: {"pax2": {...}, ..., "pax10": {...}} or NULL
    - pricing_version: value of `version` the snapshot was computed from

    Every edit bumps `version`, which makes the snapshot stale until the
    next explicit recalculation. `version` also guards UPDATEs against
    concurrent writers (optimistic locking).
    """

    __tablename__ = "manual_quotes"

    # Identity
    quote_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[str] = mapped_column(
        String(20), nullable=False, default=QuoteCategory.B2C.value
    )

    # Season / validity
    season_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    valid_from: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    valid_to: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)

    # Trip dates
    start_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    tour_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Pricing parameters
    pax: Mapped[int] = mapped_column(Integer, nullable=False)
    markup: Mapped[Decimal] = mapped_column(DECIMAL(5, 2), nullable=False, default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(DECIMAL(5, 2), nullable=False, default=Decimal("0"))
    transport_pricing_mode: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TransportPricingMode.TOTAL.value
    )

    # Cached pricing snapshot
    pricing_table_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    pricing_version: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    pricing_calculated_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Optimistic locking counter (managed by the service, checked by the ORM)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Soft delete
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    days: Mapped[List["ManualQuoteDay"]] = relationship(
        "ManualQuoteDay",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="ManualQuoteDay.day_number",
    )

    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": False,
    }

    @property
    def pricing_stale(self) -> bool:
        """True until the cached table matches the current version."""
        return self.pricing_table_json is None or self.pricing_version != self.version

    def __repr__(self) -> str:
        return f"<ManualQuote(id={self.id}, name='{self.quote_name}', pax={self.pax}, version={self.version})>"


class ManualQuoteDay(TenantBase):
    """
    A dated day of a manual quote.
    day_number is contiguous 1..N within a quote (kept by the service).
    """

    __tablename__ = "manual_quote_days"

    quote_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("manual_quotes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    day_number: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    # Relationships
    quote: Mapped["ManualQuote"] = relationship("ManualQuote", back_populates="days")
    expenses: Mapped[List["ManualQuoteExpense"]] = relationship(
        "ManualQuoteExpense",
        back_populates="day",
        cascade="all, delete-orphan",
        order_by="ManualQuoteExpense.id",
    )

    def __repr__(self) -> str:
        return f"<ManualQuoteDay(id={self.id}, day={self.day_number}, date={self.date})>"


class ManualQuoteExpense(TenantBase):
    """
    A priced line item of a day.
    `price` is the cost for the quote's reference pax; the other amounts
    (single supplement, child rates, vehicle figures) are informational.
    """

    __tablename__ = "manual_quote_expenses"

    day_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("manual_quote_days.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    category: Mapped[str] = mapped_column(String(50), nullable=False)
    hotel_category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    price: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), nullable=False)

    single_supplement: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(12, 2), nullable=True)
    child_0_to_2: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(12, 2), nullable=True)
    child_3_to_5: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(12, 2), nullable=True)
    child_6_to_11: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(12, 2), nullable=True)
    vehicle_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    price_per_vehicle: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(12, 2), nullable=True)

    # Relationships
    day: Mapped["ManualQuoteDay"] = relationship("ManualQuoteDay", back_populates="expenses")

    def __repr__(self) -> str:
        return f"<ManualQuoteExpense(id={self.id}, category='{self.category}', price={self.price})>"
