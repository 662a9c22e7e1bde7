"""Intake ORM models (settings entries and committed rows)."""

from intake_pipeline.models.storage import ImportedRowModel, SettingEntryModel

__all__ = ["ImportedRowModel", "SettingEntryModel"]
