"""
Manual Quotes API - CRUD on hand-built quotes, their days and expenses,
plus the explicit pricing recalculation.

Edits never reprice the quote: they bump its version and mark the cached
pricing table stale. POST /{quote_id}/calculate refreshes it.
"""

import datetime as dt
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel

from app.api.deps import ManualQuotes
from app.models.manual_quote import (
    ManualQuote,
    ManualQuoteDay,
    ManualQuoteExpense,
    QuoteCategory,
    TourType,
    TransportPricingMode,
    ExpenseCategory,
)
from app.services.manual_pricing import pricing_table_to_json
from app.services.manual_quote_service import (
    ManualQuoteError,
    NotFoundError,
    InvalidArgumentError,
    ConflictError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class ExpenseCreate(BaseModel):
    category: ExpenseCategory
    hotel_category: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    price: Decimal  # Cost for the quote's reference pax
    single_supplement: Optional[Decimal] = None
    child_0_to_2: Optional[Decimal] = None
    child_3_to_5: Optional[Decimal] = None
    child_6_to_11: Optional[Decimal] = None
    vehicle_count: Optional[int] = None
    price_per_vehicle: Optional[Decimal] = None


class ExpenseCreateRequest(ExpenseCreate):
    expected_version: Optional[int] = None


class ExpenseUpdate(BaseModel):
    category: Optional[ExpenseCategory] = None
    hotel_category: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    single_supplement: Optional[Decimal] = None
    child_0_to_2: Optional[Decimal] = None
    child_3_to_5: Optional[Decimal] = None
    child_6_to_11: Optional[Decimal] = None
    vehicle_count: Optional[int] = None
    price_per_vehicle: Optional[Decimal] = None
    expected_version: Optional[int] = None


class DayCreate(BaseModel):
    date: dt.date
    day_number: Optional[int] = None  # None = append at the end
    expenses: Optional[List[ExpenseCreate]] = None


class DayCreateRequest(DayCreate):
    expected_version: Optional[int] = None


class DayUpdate(BaseModel):
    date: Optional[dt.date] = None
    day_number: Optional[int] = None
    expected_version: Optional[int] = None


class QuoteCreate(BaseModel):
    quote_name: str
    category: QuoteCategory = QuoteCategory.B2C
    season_name: Optional[str] = None
    valid_from: Optional[dt.date] = None
    valid_to: Optional[dt.date] = None
    start_date: dt.date
    end_date: dt.date
    tour_type: TourType
    pax: int
    markup: Decimal
    tax: Decimal
    transport_pricing_mode: TransportPricingMode = TransportPricingMode.TOTAL
    # None = one empty day per date of the trip
    days: Optional[List[DayCreate]] = None


class QuoteUpdate(BaseModel):
    quote_name: Optional[str] = None
    category: Optional[QuoteCategory] = None
    season_name: Optional[str] = None
    valid_from: Optional[dt.date] = None
    valid_to: Optional[dt.date] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    tour_type: Optional[TourType] = None
    pax: Optional[int] = None
    markup: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    transport_pricing_mode: Optional[TransportPricingMode] = None
    expected_version: Optional[int] = None


class ExpenseResponse(BaseModel):
    id: int
    day_id: int
    category: str
    hotel_category: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    price: float
    single_supplement: Optional[float] = None
    child_0_to_2: Optional[float] = None
    child_3_to_5: Optional[float] = None
    child_6_to_11: Optional[float] = None
    vehicle_count: Optional[int] = None
    price_per_vehicle: Optional[float] = None

    class Config:
        from_attributes = True


class DayResponse(BaseModel):
    id: int
    quote_id: int
    day_number: int
    date: dt.date
    expenses: List[ExpenseResponse] = []

    class Config:
        from_attributes = True


class PricingBreakdownResponse(BaseModel):
    total_cost: float
    markup: float
    tax: float
    total_price: float
    price_per_person: float


class QuoteResponse(BaseModel):
    id: int
    quote_name: str
    category: str
    season_name: Optional[str] = None
    valid_from: Optional[dt.date] = None
    valid_to: Optional[dt.date] = None
    start_date: dt.date
    end_date: dt.date
    tour_type: str
    pax: int
    markup: float
    tax: float
    transport_pricing_mode: str
    version: int
    pricing_table: Optional[Dict[str, PricingBreakdownResponse]] = None
    pricing_stale: bool
    pricing_calculated_at: Optional[dt.datetime] = None
    days: List[DayResponse] = []
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class QuoteListResponse(BaseModel):
    items: List[QuoteResponse]
    total: int
    page: int
    page_size: int


class PricingResponse(BaseModel):
    quote_id: int
    version: int
    pricing_calculated_at: Optional[dt.datetime] = None
    pricing_table: Dict[str, PricingBreakdownResponse]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _http_error(error: ManualQuoteError) -> HTTPException:
    """Map a domain error to its HTTP status."""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
    if isinstance(error, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=error.message)
    if isinstance(error, InvalidArgumentError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error.message)


def _quote_to_response(quote: ManualQuote) -> QuoteResponse:
    """Convert a ManualQuote ORM object (days loaded) to a QuoteResponse."""
    return QuoteResponse(
        id=quote.id,
        quote_name=quote.quote_name,
        category=quote.category,
        season_name=quote.season_name,
        valid_from=quote.valid_from,
        valid_to=quote.valid_to,
        start_date=quote.start_date,
        end_date=quote.end_date,
        tour_type=quote.tour_type,
        pax=quote.pax,
        markup=float(quote.markup),
        tax=float(quote.tax),
        transport_pricing_mode=quote.transport_pricing_mode,
        version=quote.version,
        pricing_table=quote.pricing_table_json,
        pricing_stale=quote.pricing_stale,
        pricing_calculated_at=quote.pricing_calculated_at,
        days=[DayResponse.model_validate(day) for day in quote.days],
        created_at=quote.created_at,
        updated_at=quote.updated_at,
    )


def _day_to_response(day: ManualQuoteDay) -> DayResponse:
    return DayResponse.model_validate(day)


def _expense_to_response(expense: ManualQuoteExpense) -> ExpenseResponse:
    return ExpenseResponse.model_validate(expense)


# ---------------------------------------------------------------------------
# Quote endpoints
# ---------------------------------------------------------------------------

@router.post("", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
async def create_manual_quote(data: QuoteCreate, service: ManualQuotes):
    """
    Create a manual quote.
    Without `days`, one empty day is created per date of the trip.
    The pricing table stays empty until the first calculation.
    """
    try:
        quote = await service.create_quote(data.model_dump(exclude_unset=True))
    except ManualQuoteError as e:
        raise _http_error(e)
    return _quote_to_response(quote)


@router.get("", response_model=QuoteListResponse)
async def list_manual_quotes(
    service: ManualQuotes,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
):
    """List active manual quotes for the current tenant."""
    quotes, total = await service.list_quotes(page=page, page_size=page_size)
    return QuoteListResponse(
        items=[_quote_to_response(q) for q in quotes],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{quote_id}", response_model=QuoteResponse)
async def get_manual_quote(quote_id: int, service: ManualQuotes):
    try:
        quote = await service.get_quote(quote_id)
    except ManualQuoteError as e:
        raise _http_error(e)
    return _quote_to_response(quote)


@router.patch("/{quote_id}", response_model=QuoteResponse)
async def update_manual_quote(quote_id: int, data: QuoteUpdate, service: ManualQuotes):
    """Update header fields. Marks the pricing table stale."""
    try:
        quote = await service.update_quote(
            quote_id,
            data.model_dump(exclude_unset=True, exclude={"expected_version"}),
            expected_version=data.expected_version,
        )
    except ManualQuoteError as e:
        raise _http_error(e)
    return _quote_to_response(quote)


@router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_manual_quote(
    quote_id: int,
    service: ManualQuotes,
    expected_version: Optional[int] = None,
):
    """Soft delete a manual quote."""
    try:
        await service.delete_quote(quote_id, expected_version=expected_version)
    except ManualQuoteError as e:
        raise _http_error(e)


# ---------------------------------------------------------------------------
# Day endpoints
# ---------------------------------------------------------------------------

@router.post("/{quote_id}/days", response_model=DayResponse, status_code=status.HTTP_201_CREATED)
async def add_manual_quote_day(quote_id: int, data: DayCreateRequest, service: ManualQuotes):
    try:
        day = await service.add_day(
            quote_id,
            data.model_dump(exclude_unset=True, exclude={"expected_version"}),
            expected_version=data.expected_version,
        )
    except ManualQuoteError as e:
        raise _http_error(e)
    return _day_to_response(day)


@router.patch("/{quote_id}/days/{day_id}", response_model=DayResponse)
async def update_manual_quote_day(
    quote_id: int,
    day_id: int,
    data: DayUpdate,
    service: ManualQuotes,
):
    """Change a day's date or move it (days are renumbered 1..N)."""
    try:
        day = await service.update_day(
            quote_id,
            day_id,
            data.model_dump(exclude_unset=True, exclude={"expected_version"}),
            expected_version=data.expected_version,
        )
    except ManualQuoteError as e:
        raise _http_error(e)
    return _day_to_response(day)


@router.delete("/{quote_id}/days/{day_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_manual_quote_day(
    quote_id: int,
    day_id: int,
    service: ManualQuotes,
    expected_version: Optional[int] = None,
):
    """Delete a day and its expenses; later days move up one number."""
    try:
        await service.remove_day(quote_id, day_id, expected_version=expected_version)
    except ManualQuoteError as e:
        raise _http_error(e)


# ---------------------------------------------------------------------------
# Expense endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/{quote_id}/days/{day_id}/expenses",
    response_model=ExpenseResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_manual_quote_expense(
    quote_id: int,
    day_id: int,
    data: ExpenseCreateRequest,
    service: ManualQuotes,
):
    try:
        expense = await service.add_expense(
            quote_id,
            day_id,
            data.model_dump(exclude_unset=True, exclude={"expected_version"}),
            expected_version=data.expected_version,
        )
    except ManualQuoteError as e:
        raise _http_error(e)
    return _expense_to_response(expense)


@router.patch("/{quote_id}/expenses/{expense_id}", response_model=ExpenseResponse)
async def update_manual_quote_expense(
    quote_id: int,
    expense_id: int,
    data: ExpenseUpdate,
    service: ManualQuotes,
):
    try:
        expense = await service.update_expense(
            quote_id,
            expense_id,
            data.model_dump(exclude_unset=True, exclude={"expected_version"}),
            expected_version=data.expected_version,
        )
    except ManualQuoteError as e:
        raise _http_error(e)
    return _expense_to_response(expense)


@router.delete("/{quote_id}/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_manual_quote_expense(
    quote_id: int,
    expense_id: int,
    service: ManualQuotes,
    expected_version: Optional[int] = None,
):
    try:
        await service.remove_expense(quote_id, expense_id, expected_version=expected_version)
    except ManualQuoteError as e:
        raise _http_error(e)


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------

@router.post("/{quote_id}/calculate", response_model=PricingResponse)
async def recalculate_manual_quote_pricing(quote_id: int, service: ManualQuotes):
    """
    Recalculate the pricing table for pax brackets 2, 4, 6, 8 and 10.
    Idempotent: unchanged inputs give the same table.
    """
    try:
        table = await service.recalculate_pricing(quote_id)
        quote = await service.get_quote(quote_id)
    except ManualQuoteError as e:
        raise _http_error(e)

    return PricingResponse(
        quote_id=quote.id,
        version=quote.version,
        pricing_calculated_at=quote.pricing_calculated_at,
        pricing_table=pricing_table_to_json(table),
    )
