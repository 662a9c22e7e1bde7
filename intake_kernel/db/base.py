"""
Module: intake_kernel.db.base
Responsibility: Declarative base for the intake ORM models (settings entries
    and committed rows): uuid4 primary keys stored as text, client-side
    UTC timestamps, and a constraint naming convention.
Architecture position: Kernel > DB. Lowest-level import target for models;
    MUST NOT import from intake_pipeline.

Timestamps are written by Python rather than the database so that
``created_at`` keeps microseconds on every backend; row storage orders by it.
"""

from datetime import UTC, datetime
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "pk": "pk_%(table_name)s",
}


def utc_now() -> datetime:
    return datetime.now(UTC)


class UUIDString(TypeDecorator):
    """UUID kept as its 36-character text form; accepts UUID or str on bind."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> str | None:
        if value is None:
            return None
        return str(value if isinstance(value, UUID) else UUID(str(value)))

    def process_result_value(self, value: Any, dialect: Any) -> UUID | None:
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Declarative base: every table has a uuid4 ``id``."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


class TimestampedBase(Base):
    """Adds ``created_at`` and ``updated_at``."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now, nullable=False)
