"""
intake_pipeline.domain.types -- frozen dataclasses and enums for the import pipeline.

ZERO I/O. Imports only from intake_kernel.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any
from uuid import UUID

from intake_kernel.exceptions import SchemaError

# Reserved source-column value meaning "use constant_value".
CONSTANT_SENTINEL = "__CONSTANT__"

DEFAULT_SEPARATOR = " "

SourceRow = dict[str, Any]
TargetRow = Mapping[str, Any]


# =============================================================================
# Target schema
# =============================================================================


class FieldType(str, Enum):
    """Primitive type declared for a target field."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"

    @property
    def is_numeric(self) -> bool:
        return self in (FieldType.NUMBER, FieldType.INTEGER)


@dataclass(frozen=True)
class TargetFieldSchema:
    """One declared target field."""

    key: str
    description: str = ""
    type: FieldType = FieldType.STRING
    required: bool = False
    pattern: str | None = None
    enum: tuple[str, ...] = ()
    minimum: float | None = None
    maximum: float | None = None


@dataclass(frozen=True)
class TargetSchema:
    """
    Ordered field declarations of one target entity.

    ``required_any`` holds groups of which at least one field must be
    present (e.g. VendorId or VendorName).
    """

    entity_key: str
    fields: tuple[TargetFieldSchema, ...]
    required_any: tuple[tuple[str, ...], ...] = ()

    def __post_init__(self) -> None:
        if not self.entity_key:
            raise SchemaError("entity key is empty")
        keys = [f.key for f in self.fields]
        if len(set(keys)) != len(keys):
            raise SchemaError(f"duplicate field keys in {self.entity_key!r}")
        for group in self.required_any:
            unknown = [k for k in group if k not in keys]
            if unknown:
                raise SchemaError(f"required_any references unknown fields {unknown}")

    def __iter__(self) -> Iterator[TargetFieldSchema]:
        return iter(self.fields)

    def __contains__(self, key: object) -> bool:
        return any(f.key == key for f in self.fields)

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(f.key for f in self.fields)

    @property
    def required_keys(self) -> frozenset[str]:
        return frozenset(f.key for f in self.fields if f.required)

    def get(self, key: str) -> TargetFieldSchema | None:
        for f in self.fields:
            if f.key == key:
                return f
        return None


# =============================================================================
# Mapping configuration
# =============================================================================


class MappingOperation(str, Enum):
    """How the primary and secondary source columns are merged."""

    DIRECT = "direct"
    COALESCE = "coalesce"
    CONCAT = "concat"


@dataclass(frozen=True)
class MappingConfig:
    """Rule deriving one target field from source columns or a constant."""

    source_column: str
    transform_id: str | None = None
    constant_value: str | None = None
    operation: MappingOperation = MappingOperation.DIRECT
    secondary_column: str | None = None
    separator: str = DEFAULT_SEPARATOR

    @classmethod
    def constant(cls, value: str, transform_id: str | None = None) -> MappingConfig:
        return cls(source_column=CONSTANT_SENTINEL, constant_value=value, transform_id=transform_id)

    @property
    def is_constant(self) -> bool:
        return self.source_column == CONSTANT_SENTINEL

    def to_dict(self) -> dict[str, Any]:
        """Persisted form (camelCase keys of the stored mapping documents)."""
        data: dict[str, Any] = {
            "sourceColumn": self.source_column,
            "operation": self.operation.value,
        }
        if self.transform_id:
            data["transformId"] = self.transform_id
        if self.constant_value is not None:
            data["constantValue"] = self.constant_value
        if self.secondary_column:
            data["secondaryColumn"] = self.secondary_column
        if self.separator != DEFAULT_SEPARATOR:
            data["separator"] = self.separator
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MappingConfig:
        separator = data.get("separator")
        return cls(
            source_column=str(data.get("sourceColumn") or ""),
            transform_id=data.get("transformId") or None,
            constant_value=data.get("constantValue"),
            operation=MappingOperation(data.get("operation") or MappingOperation.DIRECT.value),
            secondary_column=data.get("secondaryColumn") or None,
            separator=DEFAULT_SEPARATOR if separator is None else str(separator),
        )


@dataclass(frozen=True)
class MappingSet:
    """Target field key -> MappingConfig. Covers a subset of the schema."""

    entries: Mapping[str, MappingConfig] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", dict(self.entries))

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def get(self, key: str) -> MappingConfig | None:
        return self.entries.get(key)

    def items(self):
        return self.entries.items()

    def with_entry(self, key: str, config: MappingConfig) -> MappingSet:
        merged = dict(self.entries)
        merged[key] = config
        return MappingSet(merged)

    def without(self, key: str) -> MappingSet:
        return MappingSet({k: v for k, v in self.entries.items() if k != key})

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {k: v.to_dict() for k, v in self.entries.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MappingSet:
        """Build from a stored document; reserved "__" keys are skipped."""
        return cls({
            k: MappingConfig.from_dict(v)
            for k, v in data.items()
            if not k.startswith("__") and isinstance(v, Mapping)
        })


# =============================================================================
# Batch and run state
# =============================================================================


class ImportMode(str, Enum):
    APPEND = "append"
    OVERWRITE = "overwrite"


class ImportState(str, Enum):
    """Coordinator lifecycle."""

    IDLE = "idle"
    MAPPING_SUGGESTED = "mapping_suggested"
    MAPPING_CONFIRMED = "mapping_confirmed"
    ENRICHING = "enriching"
    VALIDATING = "validating"
    KEY_RESOLUTION_PENDING = "key_resolution_pending"
    COMMITTING = "committing"
    DONE = "done"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ImportState.DONE, ImportState.ERROR, ImportState.CANCELLED)


@dataclass(frozen=True)
class TabularSheet:
    """Decoded sheet: header columns and rows in original order."""

    name: str
    columns: tuple[str, ...]
    rows: tuple[SourceRow, ...]


@dataclass(frozen=True)
class ImportBatch:
    """Snapshot of one import run's batch."""

    batch_id: UUID
    entity_key: str
    mode: ImportMode
    sheet_name: str
    columns: tuple[str, ...]
    source_rows: tuple[SourceRow, ...]
    mapping_signature: str
    target_rows: tuple[TargetRow, ...] = ()

    @property
    def total_rows(self) -> int:
        return len(self.source_rows)

    def with_target_rows(self, rows: tuple[TargetRow, ...]) -> ImportBatch:
        return replace(self, target_rows=rows)
