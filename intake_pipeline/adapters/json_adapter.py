"""
JSON source adapter.

Handles a JSON array of objects (one sheet named after the file stem) and
a JSON object mapping sheet names to arrays of objects (one sheet per key,
in file order). Columns are the union of object keys in first-seen order.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from intake_kernel.exceptions import DecodeError

from intake_pipeline.domain.types import TabularSheet


def _columns(rows: list[dict[str, Any]]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return tuple(seen)


def _sheet(name: str, items: Any, source: str) -> TabularSheet:
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise DecodeError(source, f"sheet {name!r} is not an array of objects")
    rows = [{str(k).strip(): v for k, v in item.items()} for item in items]
    return TabularSheet(name=name, columns=_columns(rows), rows=tuple(rows))


class JsonSourceAdapter:
    """Read JSON arrays (or sheet-name -> array objects) as sheets."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def read_sheets(self, source_path: Path) -> dict[str, TabularSheet]:
        path = Path(source_path)
        try:
            with path.open("r", encoding=self.encoding) as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DecodeError(str(path), str(exc)) from exc

        if isinstance(data, list):
            return {path.stem: _sheet(path.stem, data, str(path))}
        if isinstance(data, dict):
            return {str(name): _sheet(str(name), items, str(path)) for name, items in data.items()}
        raise DecodeError(str(path), f"unsupported top-level JSON type {type(data).__name__}")
