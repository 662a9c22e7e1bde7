"""Transform catalog, mapping resolver and row transformer (pure)."""

from intake_pipeline.mapping.catalog import (
    DEFAULT_CATALOG,
    TransformCatalog,
    TransformDef,
    build_default_catalog,
)
from intake_pipeline.mapping.engine import RowTransformer, resolve_value
from intake_pipeline.mapping.resolver import (
    check_mapping,
    is_complete,
    is_satisfied,
    mapping_signature,
    merge_suggestion,
    missing_required_count,
    missing_required_fields,
    suggest,
)

__all__ = [
    "DEFAULT_CATALOG",
    "RowTransformer",
    "TransformCatalog",
    "TransformDef",
    "build_default_catalog",
    "check_mapping",
    "is_complete",
    "is_satisfied",
    "mapping_signature",
    "merge_suggestion",
    "missing_required_count",
    "missing_required_fields",
    "resolve_value",
    "suggest",
]
