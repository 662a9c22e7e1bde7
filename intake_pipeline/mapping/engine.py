"""
Row transformer: pure transformation from a source row to a target row draft.

For each target field with a MappingConfig:
    constant sentinel  -> constant_value
    direct             -> primary column value
    coalesce           -> primary unless empty, else secondary
    concat             -> non-empty parts, stringified, joined, trimmed
then the named transform (if any) is applied to the result.

Fields without a MappingConfig, or whose key the schema does not declare,
are omitted from the draft. ZERO I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from intake_pipeline.domain.types import (
    MappingConfig,
    MappingOperation,
    MappingSet,
    SourceRow,
    TargetSchema,
)
from intake_pipeline.mapping.catalog import DEFAULT_CATALOG, TransformCatalog


def is_empty(value: Any) -> bool:
    """None, "" or a whitespace-only string."""
    return value is None or (isinstance(value, str) and not value.strip())


def resolve_value(source_row: SourceRow, config: MappingConfig) -> Any:
    """Value produced by the mapping operation, before any transform."""
    if config.is_constant:
        return config.constant_value

    primary = source_row.get(config.source_column)
    secondary = source_row.get(config.secondary_column) if config.secondary_column else None

    if config.operation == MappingOperation.COALESCE:
        return secondary if is_empty(primary) else primary
    if config.operation == MappingOperation.CONCAT:
        parts = [str(v) for v in (primary, secondary) if not is_empty(v)]
        return config.separator.join(parts).strip()
    return primary


class RowTransformer:
    """Applies a MappingSet to source rows."""

    def __init__(self, catalog: TransformCatalog | None = None):
        self._catalog = catalog or DEFAULT_CATALOG

    def apply(
        self,
        source_row: SourceRow,
        mapping_set: MappingSet,
        schema: TargetSchema,
    ) -> dict[str, Any]:
        """Target row draft (mutable; frozen later by the validation gate)."""
        draft: dict[str, Any] = {}
        for field in schema:
            config = mapping_set.get(field.key)
            if config is None:
                continue
            value = resolve_value(source_row, config)
            if config.transform_id:
                value = self._catalog.apply(value, config.transform_id, field.key)
            draft[field.key] = value
        return draft

    def apply_all(
        self,
        rows: Iterable[SourceRow],
        mapping_set: MappingSet,
        schema: TargetSchema,
    ) -> list[dict[str, Any]]:
        """Map a batch, preserving original order."""
        return [self.apply(row, mapping_set, schema) for row in rows]
