"""
Tabular decoder protocol, sheet selection and probe DTO.

Contract:
    TabularDecoder.read_sheets() returns every sheet of a source file as a
    TabularSheet (header columns + rows in original order).
    load_source() picks the sheet whose name contains a keyword
    (case-insensitive), else the first sheet.

Architecture: intake_pipeline/adapters. File I/O only, no DB.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from intake_kernel.exceptions import DecodeError
from intake_kernel.logging_config import get_logger

from intake_pipeline.domain.types import TabularSheet

logger = get_logger("ingestion.adapters")

SAMPLE_SIZE = 5


@runtime_checkable
class TabularDecoder(Protocol):
    """Protocol for reading structured source files into sheets."""

    def read_sheets(self, source_path: Path) -> dict[str, TabularSheet]:
        """All sheets by name, in file order. Raises DecodeError on unreadable input."""
        ...


@dataclass(frozen=True)
class SourceProbe:
    """Quick snapshot of the sheet an import would read."""

    sheet_name: str
    sheet_names: tuple[str, ...]
    row_count: int
    columns: tuple[str, ...]
    sample_rows: tuple[dict[str, Any], ...]  # first rows; do not mutate


def select_sheet(sheets: dict[str, TabularSheet], keyword: str | None) -> TabularSheet:
    """Sheet whose name contains ``keyword`` (case-insensitive), else the first."""
    if keyword:
        needle = keyword.lower()
        for name, sheet in sheets.items():
            if needle in name.lower():
                return sheet
    return next(iter(sheets.values()))


def load_source(
    decoder: TabularDecoder,
    source_path: Path | str,
    keyword: str | None = None,
) -> TabularSheet:
    """Decode ``source_path`` and return the sheet an import should read."""
    path = Path(source_path)
    sheets = decoder.read_sheets(path)
    if not sheets:
        raise DecodeError(str(path), "source contains no sheets")
    sheet = select_sheet(sheets, keyword)
    logger.info(
        "source_loaded",
        extra={
            "source": str(path),
            "sheet": sheet.name,
            "sheet_count": len(sheets),
            "row_count": len(sheet.rows),
            "column_count": len(sheet.columns),
        },
    )
    return sheet


def probe_source(
    decoder: TabularDecoder,
    source_path: Path | str,
    keyword: str | None = None,
) -> SourceProbe:
    """Row count, columns and sample rows of the sheet ``load_source`` would pick."""
    path = Path(source_path)
    sheets = decoder.read_sheets(path)
    if not sheets:
        raise DecodeError(str(path), "source contains no sheets")
    sheet = select_sheet(sheets, keyword)
    return SourceProbe(
        sheet_name=sheet.name,
        sheet_names=tuple(sheets),
        row_count=len(sheet.rows),
        columns=sheet.columns,
        sample_rows=tuple(dict(r) for r in sheet.rows[:SAMPLE_SIZE]),
    )
