"""
Base models with common fields for all entities.
Includes multi-tenant support via TenantBase.
"""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, declared_attr


# Key type: BigInteger on PostgreSQL, INTEGER on SQLite so ids autoincrement
BigIntId = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class TimestampMixin:
    """Mixin adding created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class TenantBase(Base, TimestampMixin):
    """
    Base class for all tenant-scoped models.
    Every row belongs to a specific tenant for data isolation.
    Tenants live in the auth service, so tenant_id carries no foreign key here.
    """

    __abstract__ = True

    id: Mapped[int] = mapped_column(
        BigIntId,
        primary_key=True,
        autoincrement=True,
    )

    @declared_attr
    def tenant_id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(
            Uuid(as_uuid=True),
            nullable=False,
            index=True,
        )
