"""
intake_pipeline.domain -- pure types, duplicate detection and validation.

ZERO I/O. Imports only from intake_kernel.
"""

from intake_pipeline.domain.duplicates import (
    DuplicateGroup,
    DuplicateReport,
    compute_key,
    find_duplicates,
    has_duplicates,
    suggest_key_fields,
)
from intake_pipeline.domain.types import (
    CONSTANT_SENTINEL,
    FieldType,
    ImportBatch,
    ImportMode,
    ImportState,
    MappingConfig,
    MappingOperation,
    MappingSet,
    TabularSheet,
    TargetFieldSchema,
    TargetSchema,
)
from intake_pipeline.domain.validators import ValidationGate, ValidationReport

__all__ = [
    "CONSTANT_SENTINEL",
    "DuplicateGroup",
    "DuplicateReport",
    "FieldType",
    "ImportBatch",
    "ImportMode",
    "ImportState",
    "MappingConfig",
    "MappingOperation",
    "MappingSet",
    "TabularSheet",
    "TargetFieldSchema",
    "TargetSchema",
    "ValidationGate",
    "ValidationReport",
    "compute_key",
    "find_duplicates",
    "has_duplicates",
    "suggest_key_fields",
]
