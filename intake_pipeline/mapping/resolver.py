"""
Mapping resolver: suggests a MappingSet from source columns and checks
whether a MappingSet satisfies a target schema.

``is_satisfied``, ``missing_required_count`` and ``is_complete`` share one
predicate, so a mapping is complete exactly when no required field is
missing. ZERO I/O.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from intake_kernel.exceptions import InvalidMappingError, SchemaError

from intake_pipeline.domain.types import (
    MappingConfig,
    MappingOperation,
    MappingSet,
    TargetSchema,
)
from intake_pipeline.mapping.catalog import TransformCatalog

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _loose(name: str) -> str:
    return _NON_ALNUM.sub("", name.lower())


def _match_column(field_key: str, columns: Sequence[str]) -> str | None:
    lowered = field_key.lower()
    for column in columns:
        if column.lower() == lowered:
            return column
    loose = _loose(field_key)
    if not loose:
        return None
    for column in columns:
        if _loose(column) == loose:
            return column
    return None


def suggest(source_columns: Sequence[str], schema: TargetSchema) -> MappingSet:
    """
    Propose a direct mapping for every target field with a matching column.

    A column matches case-insensitively, else after stripping everything but
    ``a-z0-9`` from both names. The first matching column in source order
    wins. Unmatched fields stay unmapped. Deterministic.
    """
    if schema is None:
        raise SchemaError("no target schema")
    columns = list(source_columns)
    entries: dict[str, MappingConfig] = {}
    for field in schema:
        column = _match_column(field.key, columns)
        if column is not None:
            entries[field.key] = MappingConfig(source_column=column, operation=MappingOperation.DIRECT)
    return MappingSet(entries)


def is_satisfied(config: MappingConfig | None) -> bool:
    """A constant needs a non-empty value; concat needs a secondary column."""
    if config is None:
        return False
    if config.is_constant:
        return bool(config.constant_value)
    if config.operation == MappingOperation.CONCAT and not config.secondary_column:
        return False
    return bool(config.source_column)


def missing_required_fields(
    mapping_set: MappingSet,
    schema: TargetSchema,
    derived: Iterable[str] = (),
) -> tuple[str, ...]:
    """
    Required field keys (schema order) whose mapping is absent or unsatisfied.

    Fields in ``derived`` are filled by the entity's enricher and need no
    mapping; the validation gate still checks them after enrichment.
    """
    exempt = frozenset(derived)
    return tuple(
        f.key for f in schema
        if f.required and f.key not in exempt and not is_satisfied(mapping_set.get(f.key))
    )


def missing_required_count(
    mapping_set: MappingSet,
    schema: TargetSchema,
    derived: Iterable[str] = (),
) -> int:
    return len(missing_required_fields(mapping_set, schema, derived))


def is_complete(mapping_set: MappingSet, schema: TargetSchema, derived: Iterable[str] = ()) -> bool:
    return missing_required_count(mapping_set, schema, derived) == 0


def mapping_signature(entity_key: str, columns: Iterable[str]) -> str:
    """Stable lookup key for a confirmed mapping: entity key + sorted columns."""
    return f"{entity_key}_{'|'.join(sorted(columns))}"


def merge_suggestion(saved: MappingSet | None, suggestion: MappingSet) -> MappingSet:
    """Keep every saved entry and fill the remaining fields from the suggestion."""
    if not saved:
        return suggestion
    merged = dict(suggestion.entries)
    merged.update(saved.entries)
    return MappingSet(merged)


def check_mapping(
    mapping_set: MappingSet,
    schema: TargetSchema,
    catalog: TransformCatalog,
) -> None:
    """
    Reject mapping entries the pipeline cannot execute.

    Raises:
        InvalidMappingError: entry targets a field the schema does not declare.
        UnknownTransformError: entry names a transform not offered for its field.
    """
    for field_key in mapping_set:
        if field_key not in schema:
            raise InvalidMappingError(field_key, schema.entity_key)
    catalog.validate_ids(mapping_set)
