"""
CSV source adapter.

Uses csv.DictReader. Configurable: delimiter, encoding, quoting, skip_rows.
Handles BOM via utf-8-sig when encoding is utf-8. A CSV file is a single
sheet named after the file stem. Blank lines are skipped; header cells are
stripped.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any

from intake_kernel.exceptions import DecodeError

from intake_pipeline.domain.types import TabularSheet

_QUOTING = {
    "minimal": csv.QUOTE_MINIMAL,
    "all": csv.QUOTE_ALL,
    "nonnumeric": csv.QUOTE_NONNUMERIC,
    "none": csv.QUOTE_NONE,
}


def _get_encoding(encoding: str) -> str:
    if encoding.lower() in ("utf-8", "utf8"):
        return "utf-8-sig"  # Strip BOM if present
    return encoding


def _get_quoting(quoting: str | int) -> int:
    if isinstance(quoting, int):
        return quoting
    return _QUOTING.get(str(quoting).lower(), csv.QUOTE_MINIMAL)


def _is_blank_row(row: dict[str, Any]) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in row.values())


class CsvSourceAdapter:
    """Read a CSV file as one sheet of rows."""

    def __init__(
        self,
        delimiter: str = ",",
        encoding: str = "utf-8",
        quoting: str | int = "minimal",
        skip_rows: int = 0,
    ):
        self.delimiter = delimiter
        self.encoding = _get_encoding(encoding)
        self.quoting = _get_quoting(quoting)
        self.skip_rows = int(skip_rows)

    @classmethod
    def from_options(cls, options: dict[str, Any]) -> CsvSourceAdapter:
        return cls(
            delimiter=options.get("delimiter", ","),
            encoding=options.get("encoding", "utf-8"),
            quoting=options.get("quoting", "minimal"),
            skip_rows=options.get("skip_rows", 0),
        )

    def read_sheets(self, source_path: Path) -> dict[str, TabularSheet]:
        path = Path(source_path)
        try:
            with path.open("r", encoding=self.encoding, newline="") as f:
                for _ in range(self.skip_rows):
                    next(f, None)
                reader = csv.DictReader(f, delimiter=self.delimiter, quoting=self.quoting)
                raw_columns = reader.fieldnames or []
                columns = tuple(c.strip() for c in raw_columns)
                rename = dict(zip(raw_columns, columns))
                rows = tuple(
                    {rename.get(k, k): v for k, v in row.items() if k is not None}
                    for row in reader
                    if not _is_blank_row(row)
                )
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            raise DecodeError(str(path), str(exc)) from exc

        return {path.stem: TabularSheet(name=path.stem, columns=columns, rows=rows)}
