"""
Config-to-pipeline bridges.

Translates an ``EntityDef`` (human-authored YAML artifact) into the
pipeline's runtime ``TargetSchema``. Pure functions; no I/O.
"""

from __future__ import annotations

from intake_config.schema import EntityDef, TargetFieldDef
from intake_pipeline.domain.types import FieldType, TargetFieldSchema, TargetSchema


def build_field_schema(field_def: TargetFieldDef) -> TargetFieldSchema:
    return TargetFieldSchema(
        key=field_def.key,
        description=field_def.description,
        type=FieldType(field_def.type),
        required=field_def.required,
        pattern=field_def.pattern,
        enum=field_def.enum,
        minimum=field_def.minimum,
        maximum=field_def.maximum,
    )


def build_target_schema(entity: EntityDef) -> TargetSchema:
    """Compile an entity definition into the schema the pipeline validates against."""
    return TargetSchema(
        entity_key=entity.key,
        fields=tuple(build_field_schema(f) for f in entity.fields),
        required_any=entity.required_any,
    )
