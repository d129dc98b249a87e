"""
Manual quote service - the quote aggregate and its day/expense store.

Every mutation validates its input before touching state, bumps the
quote version (which marks the cached pricing table stale) and commits
once. Pricing is only recomputed by recalculate_pricing().
"""

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from app.models.manual_quote import (
    ManualQuote,
    ManualQuoteDay,
    ManualQuoteExpense,
    QuoteCategory,
    TourType,
    TransportPricingMode,
    ExpenseCategory,
)
from app.services.manual_pricing import (
    PricingTable,
    generate_pricing_table,
    pricing_table_to_json,
)

logger = logging.getLogger(__name__)


class ManualQuoteError(Exception):
    """Base class for manual quote domain errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ManualQuoteError):
    """Quote, day or expense does not exist or does not belong together."""


class InvalidArgumentError(ManualQuoteError):
    """A numeric or date invariant would be violated."""


class ConflictError(ManualQuoteError):
    """The quote changed since the caller (or this request) read it."""


HEADER_FIELDS = (
    "quote_name",
    "category",
    "season_name",
    "valid_from",
    "valid_to",
    "start_date",
    "end_date",
    "tour_type",
    "pax",
    "markup",
    "tax",
    "transport_pricing_mode",
)

EXPENSE_FIELDS = (
    "category",
    "hotel_category",
    "location",
    "description",
    "price",
    "single_supplement",
    "child_0_to_2",
    "child_3_to_5",
    "child_6_to_11",
    "vehicle_count",
    "price_per_vehicle",
)

# Stored scale of money and percentage columns
_CENT = Decimal("0.01")

# Optional non-negative amounts carried by an expense
_EXPENSE_AMOUNTS = (
    "single_supplement",
    "child_0_to_2",
    "child_3_to_5",
    "child_6_to_11",
    "price_per_vehicle",
)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _to_decimal(value: Any, field: str) -> Decimal:
    """Parse a money or percentage input; at most 2 decimal places are accepted."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise InvalidArgumentError(f"{field} must be a number")
    if not result.is_finite():
        raise InvalidArgumentError(f"{field} must be a finite number")
    try:
        exact = result == result.quantize(_CENT)
    except InvalidOperation:
        raise InvalidArgumentError(f"{field} is out of range")
    if not exact:
        raise InvalidArgumentError(f"{field} must have at most 2 decimal places")
    return result


def _enum_value(enum_cls, value: Any, field: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidArgumentError(f"{field} must be one of: {allowed}")


def _validate_header(header: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a complete header and return it normalized
    (enum values as strings, percentages as Decimal).
    """
    quote_name = (header.get("quote_name") or "").strip()
    if not quote_name:
        raise InvalidArgumentError("quote_name is required")

    start_date = header.get("start_date")
    end_date = header.get("end_date")
    if start_date is None or end_date is None:
        raise InvalidArgumentError("start_date and end_date are required")
    if start_date >= end_date:
        raise InvalidArgumentError("end_date must be after start_date")

    valid_from = header.get("valid_from")
    valid_to = header.get("valid_to")
    if valid_from is not None and valid_to is not None and valid_from > valid_to:
        raise InvalidArgumentError("valid_to must not be before valid_from")

    pax = header.get("pax")
    if pax is None or isinstance(pax, bool) or int(pax) != pax or pax < 1:
        raise InvalidArgumentError("pax must be an integer >= 1")

    normalized = dict(header)
    normalized["quote_name"] = quote_name
    normalized["pax"] = int(pax)

    for field in ("markup", "tax"):
        if header.get(field) is None:
            raise InvalidArgumentError(f"{field} is required")
        pct = _to_decimal(header[field], field)
        if pct < 0 or pct > 100:
            raise InvalidArgumentError(f"{field} must be between 0 and 100")
        normalized[field] = pct

    normalized["category"] = _enum_value(
        QuoteCategory, header.get("category") or QuoteCategory.B2C, "category"
    )
    if header.get("tour_type") is None:
        raise InvalidArgumentError("tour_type is required")
    normalized["tour_type"] = _enum_value(TourType, header["tour_type"], "tour_type")
    normalized["transport_pricing_mode"] = _enum_value(
        TransportPricingMode,
        header.get("transport_pricing_mode") or TransportPricingMode.TOTAL,
        "transport_pricing_mode",
    )
    return normalized


def _validate_expense_fields(fields: Dict[str, Any], partial: bool) -> Dict[str, Any]:
    """Validate expense fields; with partial=True only supplied fields are checked."""
    unknown = set(fields) - set(EXPENSE_FIELDS)
    if unknown:
        raise InvalidArgumentError(f"Unknown expense fields: {', '.join(sorted(unknown))}")

    normalized = dict(fields)

    if "category" in fields or not partial:
        if fields.get("category") is None:
            raise InvalidArgumentError("category is required")
        normalized["category"] = _enum_value(ExpenseCategory, fields["category"], "category")

    if "price" in fields or not partial:
        if fields.get("price") is None:
            raise InvalidArgumentError("price is required")
        price = _to_decimal(fields["price"], "price")
        if price < 0:
            raise InvalidArgumentError("price must be >= 0")
        normalized["price"] = price

    for field in _EXPENSE_AMOUNTS:
        if fields.get(field) is not None:
            amount = _to_decimal(fields[field], field)
            if amount < 0:
                raise InvalidArgumentError(f"{field} must be >= 0")
            normalized[field] = amount

    vehicle_count = fields.get("vehicle_count")
    if vehicle_count is not None and vehicle_count < 0:
        raise InvalidArgumentError("vehicle_count must be >= 0")

    return normalized


def _validate_day_date(quote: ManualQuote, day_date: Optional[date]) -> date:
    if day_date is None:
        raise InvalidArgumentError("date is required")
    if day_date < quote.start_date or day_date > quote.end_date:
        raise InvalidArgumentError(
            f"date {day_date.isoformat()} is outside the trip "
            f"({quote.start_date.isoformat()} to {quote.end_date.isoformat()})"
        )
    return day_date


def _renumber(days: List[ManualQuoteDay]) -> None:
    """Assign day_number 1..N following the list order."""
    for number, day in enumerate(days, start=1):
        if day.day_number != number:
            day.day_number = number


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ManualQuoteService:
    """
    Operations on the manual quotes of one tenant.

    Reads always go through _load_quote(), which eager-loads days and
    expenses and refreshes objects already in the session.
    """

    def __init__(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        max_recalc_attempts: int = 3,
    ):
        self.db = db
        self.tenant_id = tenant_id
        self.max_recalc_attempts = max(1, max_recalc_attempts)

    # ---- Loading ----

    async def _load_quote(self, quote_id: int) -> ManualQuote:
        result = await self.db.execute(
            select(ManualQuote)
            .where(
                ManualQuote.id == quote_id,
                ManualQuote.tenant_id == self.tenant_id,
                ManualQuote.is_active == True,
            )
            .options(
                selectinload(ManualQuote.days).selectinload(ManualQuoteDay.expenses),
            )
            .execution_options(populate_existing=True)
        )
        quote = result.scalar_one_or_none()
        if quote is None:
            raise NotFoundError(f"Manual quote {quote_id} not found")
        return quote

    @staticmethod
    def _find_day(quote: ManualQuote, day_id: int) -> ManualQuoteDay:
        for day in quote.days:
            if day.id == day_id:
                return day
        raise NotFoundError(f"Day {day_id} not found in manual quote {quote.id}")

    @staticmethod
    def _find_expense(quote: ManualQuote, expense_id: int) -> Tuple[ManualQuoteDay, ManualQuoteExpense]:
        for day in quote.days:
            for expense in day.expenses:
                if expense.id == expense_id:
                    return day, expense
        raise NotFoundError(f"Expense {expense_id} not found in manual quote {quote.id}")

    @staticmethod
    def _ordered_days(quote: ManualQuote) -> List[ManualQuoteDay]:
        return sorted(quote.days, key=lambda d: (d.day_number, d.id or 0))

    # ---- Versioning ----

    @staticmethod
    def _check_version(quote: ManualQuote, expected_version: Optional[int]) -> None:
        if expected_version is not None and expected_version != quote.version:
            raise ConflictError(
                f"Manual quote {quote.id} is at version {quote.version}, "
                f"expected {expected_version}"
            )

    @staticmethod
    def _touch(quote: ManualQuote) -> None:
        """Bump the version; the cached pricing table becomes stale."""
        quote.version += 1

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except StaleDataError as e:
            await self.db.rollback()
            raise ConflictError("Manual quote was modified concurrently, reload and retry") from e
        except Exception:
            await self.db.rollback()
            raise

    # ---- Builders ----

    def _build_expense(self, fields: Dict[str, Any]) -> ManualQuoteExpense:
        values = _validate_expense_fields(fields, partial=False)
        return ManualQuoteExpense(tenant_id=self.tenant_id, **values)

    def _build_day(self, day_number: int, day_date: date, expenses: Optional[List[Dict[str, Any]]]) -> ManualQuoteDay:
        return ManualQuoteDay(
            tenant_id=self.tenant_id,
            day_number=day_number,
            date=day_date,
            expenses=[self._build_expense(e) for e in (expenses or [])],
        )

    # ---- Quote header ----

    async def create_quote(self, data: Dict[str, Any]) -> ManualQuote:
        """
        Create a quote.

        With `days` given, they are created as passed (day numbers, when
        supplied, must be exactly 1..N); an empty list creates no days.
        Without, one empty day is created per calendar date from
        start_date to end_date.
        """
        header = _validate_header({k: data.get(k) for k in HEADER_FIELDS})
        days_data = data.get("days")

        quote = ManualQuote(
            tenant_id=self.tenant_id,
            version=1,
            is_active=True,
            **header,
        )

        if days_data is not None:
            numbers = [d.get("day_number") for d in days_data]
            if any(n is not None for n in numbers):
                if sorted(n or 0 for n in numbers) != list(range(1, len(days_data) + 1)):
                    raise InvalidArgumentError("day_number values must be exactly 1..N")
                days_data = sorted(days_data, key=lambda d: d["day_number"])
            for number, day_data in enumerate(days_data, start=1):
                day_date = _validate_day_date(quote, day_data.get("date"))
                quote.days.append(self._build_day(number, day_date, day_data.get("expenses")))
        else:
            span = (quote.end_date - quote.start_date).days
            for offset in range(span + 1):
                quote.days.append(
                    self._build_day(offset + 1, quote.start_date + timedelta(days=offset), None)
                )

        self.db.add(quote)
        await self._commit()

        logger.info(
            f"Created manual quote '{quote.quote_name}' (id={quote.id}) "
            f"with {len(quote.days)} days"
        )
        return await self._load_quote(quote.id)

    async def list_quotes(self, page: int = 1, page_size: int = 50) -> Tuple[List[ManualQuote], int]:
        """Active quotes of the tenant, most recent first."""
        query = select(ManualQuote).where(
            ManualQuote.tenant_id == self.tenant_id,
            ManualQuote.is_active == True,
        )

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = (
            query.order_by(ManualQuote.created_at.desc(), ManualQuote.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .options(selectinload(ManualQuote.days).selectinload(ManualQuoteDay.expenses))
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_quote(self, quote_id: int) -> ManualQuote:
        return await self._load_quote(quote_id)

    async def update_quote(
        self,
        quote_id: int,
        data: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> ManualQuote:
        """Merge supplied header fields; the merged header must stay valid."""
        quote = await self._load_quote(quote_id)
        self._check_version(quote, expected_version)

        unknown = set(data) - set(HEADER_FIELDS)
        if unknown:
            raise InvalidArgumentError(f"Unknown quote fields: {', '.join(sorted(unknown))}")

        merged = {field: getattr(quote, field) for field in HEADER_FIELDS}
        merged.update(data)
        header = _validate_header(merged)

        changed = [field for field in data if getattr(quote, field) != header[field]]
        if not changed:
            return quote

        for field in changed:
            setattr(quote, field, header[field])
        self._touch(quote)
        await self._commit()

        logger.info(f"Updated manual quote {quote_id}: {changed} (version={quote.version})")
        return await self._load_quote(quote_id)

    async def delete_quote(self, quote_id: int, expected_version: Optional[int] = None) -> None:
        """Soft delete: the quote disappears from every read."""
        quote = await self._load_quote(quote_id)
        self._check_version(quote, expected_version)

        quote.is_active = False
        self._touch(quote)
        await self._commit()

        logger.info(f"Deleted manual quote {quote_id}")

    # ---- Days ----

    async def add_day(
        self,
        quote_id: int,
        data: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> ManualQuoteDay:
        """
        Add a day. Without day_number it is appended; with one (1..N+1)
        it is inserted there and later days shift up.
        """
        quote = await self._load_quote(quote_id)
        self._check_version(quote, expected_version)

        ordered = self._ordered_days(quote)
        day_number = data.get("day_number")
        if day_number is None:
            day_number = len(ordered) + 1
        if day_number < 1 or day_number > len(ordered) + 1:
            raise InvalidArgumentError(f"day_number must be between 1 and {len(ordered) + 1}")
        day_date = _validate_day_date(quote, data.get("date"))

        day = self._build_day(day_number, day_date, data.get("expenses"))
        ordered.insert(day_number - 1, day)
        quote.days.append(day)
        _renumber(ordered)

        self._touch(quote)
        await self._commit()

        logger.info(f"Added day {day_number} (id={day.id}) to manual quote {quote_id}")
        quote = await self._load_quote(quote_id)
        return self._find_day(quote, day.id)

    async def update_day(
        self,
        quote_id: int,
        day_id: int,
        data: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> ManualQuoteDay:
        """Change a day's date and/or move it to another position."""
        quote = await self._load_quote(quote_id)
        self._check_version(quote, expected_version)
        day = self._find_day(quote, day_id)

        new_date = day.date
        if "date" in data:
            new_date = _validate_day_date(quote, data["date"])

        ordered = self._ordered_days(quote)
        new_number = data.get("day_number")
        if new_number is not None and (new_number < 1 or new_number > len(ordered)):
            raise InvalidArgumentError(f"day_number must be between 1 and {len(ordered)}")

        day.date = new_date
        if new_number is not None and new_number != day.day_number:
            ordered.remove(day)
            ordered.insert(new_number - 1, day)
            _renumber(ordered)

        self._touch(quote)
        await self._commit()

        logger.info(f"Updated day {day_id} of manual quote {quote_id}: {list(data.keys())}")
        quote = await self._load_quote(quote_id)
        return self._find_day(quote, day_id)

    async def remove_day(
        self,
        quote_id: int,
        day_id: int,
        expected_version: Optional[int] = None,
    ) -> None:
        """Delete a day with its expenses and close the numbering gap."""
        quote = await self._load_quote(quote_id)
        self._check_version(quote, expected_version)
        day = self._find_day(quote, day_id)

        removed_number = day.day_number
        expense_count = len(day.expenses)
        quote.days.remove(day)
        _renumber(self._ordered_days(quote))

        self._touch(quote)
        await self._commit()

        logger.info(
            f"Removed day {removed_number} (id={day_id}, {expense_count} expenses) "
            f"from manual quote {quote_id}"
        )

    # ---- Expenses ----

    async def add_expense(
        self,
        quote_id: int,
        day_id: int,
        data: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> ManualQuoteExpense:
        quote = await self._load_quote(quote_id)
        self._check_version(quote, expected_version)
        day = self._find_day(quote, day_id)

        expense = self._build_expense(data)
        day.expenses.append(expense)

        self._touch(quote)
        await self._commit()

        logger.info(
            f"Added {expense.category} expense (id={expense.id}) to day {day.day_number} "
            f"of manual quote {quote_id}"
        )
        quote = await self._load_quote(quote_id)
        return self._find_expense(quote, expense.id)[1]

    async def update_expense(
        self,
        quote_id: int,
        expense_id: int,
        data: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> ManualQuoteExpense:
        quote = await self._load_quote(quote_id)
        self._check_version(quote, expected_version)
        _, expense = self._find_expense(quote, expense_id)

        values = _validate_expense_fields(data, partial=True)
        for field, value in values.items():
            setattr(expense, field, value)

        self._touch(quote)
        await self._commit()

        logger.info(f"Updated expense {expense_id} of manual quote {quote_id}: {list(values.keys())}")
        quote = await self._load_quote(quote_id)
        return self._find_expense(quote, expense_id)[1]

    async def remove_expense(
        self,
        quote_id: int,
        expense_id: int,
        expected_version: Optional[int] = None,
    ) -> None:
        quote = await self._load_quote(quote_id)
        self._check_version(quote, expected_version)
        day, expense = self._find_expense(quote, expense_id)

        day.expenses.remove(expense)

        self._touch(quote)
        await self._commit()

        logger.info(f"Removed expense {expense_id} from manual quote {quote_id}")

    # ---- Pricing ----

    async def recalculate_pricing(self, quote_id: int) -> PricingTable:
        """
        Recompute and store the pricing table from the current state.

        The UPDATE is guarded by the version that was read; if an edit
        lands in between, the quote is reloaded and priced again.
        """
        for attempt in range(1, self.max_recalc_attempts + 1):
            quote = await self._load_quote(quote_id)
            table = generate_pricing_table(quote)

            quote.pricing_table_json = pricing_table_to_json(table)
            quote.pricing_version = quote.version
            quote.pricing_calculated_at = datetime.now(timezone.utc)

            try:
                await self.db.commit()
            except StaleDataError:
                await self.db.rollback()
                logger.warning(
                    f"Manual quote {quote_id} changed during recalculation "
                    f"(attempt {attempt}/{self.max_recalc_attempts}), retrying"
                )
                continue

            logger.info(f"Recalculated pricing for manual quote {quote_id} (version={quote.pricing_version})")
            return table

        raise ConflictError(
            f"Manual quote {quote_id} kept changing during recalculation, retry later"
        )
