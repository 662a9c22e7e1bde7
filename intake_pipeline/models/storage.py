"""
ORM models for the SQL-backed stores.

Contract:
    SettingEntryModel is one key -> JSON value row of the key-value settings
    store (the mapping store keeps all profiles under one key).
    ImportedRowModel is one committed target row: entity key, batch id,
    1-based row number within the batch and the JSON-safe payload.

Architecture: intake_pipeline/models. Imports from intake_kernel.db.base only.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from intake_kernel.db.base import TimestampedBase, UUIDString


class SettingEntryModel(TimestampedBase):
    """One settings entry."""

    __tablename__ = "intake_settings"

    key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<SettingEntryModel {self.key}>"


class ImportedRowModel(TimestampedBase):
    """One committed target row."""

    __tablename__ = "intake_rows"

    __table_args__ = (
        Index("idx_intake_rows_entity", "entity_key"),
        Index("idx_intake_rows_batch", "batch_id"),
    )

    entity_key: Mapped[str] = mapped_column(String(100), nullable=False)
    batch_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    row_number: Mapped[int] = mapped_column(nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<ImportedRowModel {self.entity_key} #{self.row_number}>"
