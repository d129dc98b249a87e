"""
SQLAlchemy models for the manual quotes service.
All models inherit from TenantBase for multi-tenant isolation.
"""

from app.models.base import Base, TenantBase, TimestampMixin
from app.models.manual_quote import (
    ManualQuote,
    ManualQuoteDay,
    ManualQuoteExpense,
    QuoteCategory,
    TourType,
    TransportPricingMode,
    ExpenseCategory,
)

__all__ = [
    "Base",
    "TenantBase",
    "TimestampMixin",
    "ManualQuote",
    "ManualQuoteDay",
    "ManualQuoteExpense",
    "QuoteCategory",
    "TourType",
    "TransportPricingMode",
    "ExpenseCategory",
]
