"""
Typed exception hierarchy for the intake pipeline.

Every error has a typed class (catch by type, not by message), a
machine-readable ``code`` class attribute, and structured attributes that the
structured log formatter copies into ``exc_*`` fields.

    IntakeError (base)
    |
    +-- SourceError
    |   +-- DecodeError
    |   +-- NoDataError
    |
    +-- MappingError
    |   +-- IncompleteMappingError
    |   +-- UnknownTransformError
    |   +-- InvalidMappingError
    |
    +-- SchemaError
    |
    +-- BatchValidationError
    |
    +-- RowProcessingError
    |
    +-- StorageCommitError
    |
    +-- InvalidStateTransitionError

Code            | When raised
----------------|-----------------------------------------------------------
DECODE_FAILED   | Source file cannot be read or parsed by the decoder
NO_DATA         | Chosen sheet has no data rows
MAPPING_INCOMPLETE | Required target fields unmapped (recoverable)
UNKNOWN_TRANSFORM  | Transform id not registered for the target field
INVALID_MAPPING | Mapping targets a field the schema does not declare
SCHEMA_INVALID  | Missing or structurally malformed target schema
BATCH_INVALID   | One or more rows failed validation (batch refused)
ROW_PROCESSING_FAILED | Transform or enrichment step raised on row data
STORAGE_COMMIT_FAILED | Storage engine raised during clear / bulk insert
INVALID_STATE_TRANSITION | Coordinator operation not allowed in current state

Per-row data-quality problems are NOT exceptions; they are
``intake_kernel.domain.dtos.ValidationError`` values collected by the
validation gate. ``BatchValidationError`` carries them when a batch is refused.
"""

from __future__ import annotations

from collections.abc import Sequence


class IntakeError(Exception):
    """
    Base exception for all intake errors.

    All subclasses define a ``code`` class attribute.
    """

    code: str = "INTAKE_ERROR"


# Source-related exceptions


class SourceError(IntakeError):
    """Base exception for upstream source problems."""

    code: str = "SOURCE_ERROR"


class DecodeError(SourceError):
    """The tabular decoder could not read the source file."""

    code: str = "DECODE_FAILED"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot read source {source}: {reason}")


class NoDataError(SourceError):
    """The selected sheet has a header but no data rows (or nothing at all)."""

    code: str = "NO_DATA"

    def __init__(self, sheet_name: str):
        self.sheet_name = sheet_name
        super().__init__(f"Sheet {sheet_name!r} contains no data rows")


# Mapping-related exceptions


class MappingError(IntakeError):
    """Base exception for mapping configuration errors."""

    code: str = "MAPPING_ERROR"


class IncompleteMappingError(MappingError):
    """
    Required target fields are not satisfied by the mapping.

    Recoverable: the coordinator stays in the mapping state.
    """

    code: str = "MAPPING_INCOMPLETE"

    def __init__(self, missing_fields: Sequence[str]):
        self.missing_fields = tuple(missing_fields)
        self.missing_count = len(self.missing_fields)
        super().__init__(
            f"{self.missing_count} required field(s) not mapped: "
            f"{', '.join(self.missing_fields)}"
        )


class UnknownTransformError(MappingError):
    """Transform id is not registered for the target field."""

    code: str = "UNKNOWN_TRANSFORM"

    def __init__(self, transform_id: str, field_key: str):
        self.transform_id = transform_id
        self.field_key = field_key
        super().__init__(
            f"Unknown transform {transform_id!r} for field {field_key!r}"
        )


class InvalidMappingError(MappingError):
    """Mapping entry targets a field the schema does not declare."""

    code: str = "INVALID_MAPPING"

    def __init__(self, field_key: str, entity_key: str):
        self.field_key = field_key
        self.entity_key = entity_key
        super().__init__(
            f"Mapping targets unknown field {field_key!r} of entity {entity_key!r}"
        )


# Schema / validation


class SchemaError(IntakeError):
    """Target schema missing or structurally malformed (fatal)."""

    code: str = "SCHEMA_INVALID"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid target schema: {reason}")


class BatchValidationError(IntakeError):
    """
    One or more rows failed validation; the batch is refused as a whole.

    ``errors`` holds one human-readable message per offending row/field.
    """

    code: str = "BATCH_INVALID"

    def __init__(self, errors: Sequence[str], invalid_rows: int, total_rows: int):
        self.errors = tuple(errors)
        self.invalid_rows = invalid_rows
        self.total_rows = total_rows
        super().__init__(
            f"{invalid_rows} of {total_rows} row(s) failed validation "
            f"({len(self.errors)} error(s))"
        )


class RowProcessingError(IntakeError):
    """A transform or enricher raised on row data; the batch cannot continue."""

    code: str = "ROW_PROCESSING_FAILED"

    def __init__(self, stage: str, reason: str):
        self.stage = stage
        self.reason = reason
        super().__init__(f"Row processing failed during {stage}: {reason}")


# Storage


class StorageCommitError(IntakeError):
    """The storage collaborator failed during clear or bulk insert."""

    code: str = "STORAGE_COMMIT_FAILED"

    def __init__(self, entity_key: str, operation: str, reason: str):
        self.entity_key = entity_key
        self.operation = operation
        self.reason = reason
        super().__init__(
            f"Storage {operation} failed for {entity_key!r}: {reason}"
        )


# Coordinator


class InvalidStateTransitionError(IntakeError):
    """Coordinator operation is not allowed in the current state."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, current_state: str, operation: str):
        self.current_state = current_state
        self.operation = operation
        super().__init__(
            f"Cannot {operation} while import is in state {current_state!r}"
        )
