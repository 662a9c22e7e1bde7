"""
DTOs -- pure data carriers shared by the pipeline stages.

ValidationError is the per-row data-quality finding (it is NOT raised).
freeze_row turns an accepted target row into a read-only mapping.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID


@dataclass(frozen=True)
class ValidationError:
    """
    A single validation finding.

    Carries a machine-readable code, human-readable message, optional field
    key, and optional details (row position, offending value, rule).
    """

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


def freeze_row(row: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return a read-only copy of a target row."""
    return MappingProxyType(dict(row))


def to_json_safe(obj: Any) -> Any:
    """Convert values to JSON-serializable form (Decimal -> str, dates -> ISO)."""
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Mapping):
        return {k: to_json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_json_safe(v) for v in obj]
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    return obj
