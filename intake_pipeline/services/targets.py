"""
Import targets: everything the coordinator needs to know about an entity.

An ImportTarget bundles the compiled TargetSchema, the entity's enricher,
its default duplicate key and the key candidates tried when proposing a
different key.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from intake_config import EntityDef, get_entity_definition
from intake_config.bridges import build_target_schema

from intake_pipeline.domain.types import TargetSchema
from intake_pipeline.enrichment import PassThroughEnricher, RowEnricher, build_enricher


@dataclass(frozen=True)
class ImportTarget:
    schema: TargetSchema
    enricher: RowEnricher
    default_key_fields: tuple[str, ...]
    key_candidates: tuple[tuple[str, ...], ...] = ()
    label: str = ""
    sheet_keyword: str = ""

    @property
    def entity_key(self) -> str:
        return self.schema.entity_key

    @classmethod
    def from_entity(cls, entity: EntityDef) -> ImportTarget:
        return cls(
            schema=build_target_schema(entity),
            enricher=build_enricher(entity.enricher, entity.enricher_options),
            default_key_fields=entity.default_key_fields,
            key_candidates=entity.key_candidates,
            label=entity.label,
            sheet_keyword=entity.sheet_keyword,
        )

    @classmethod
    def plain(cls, schema: TargetSchema, default_key_fields: tuple[str, ...] = ()) -> ImportTarget:
        """Target without enrichment (rows pass through unchanged)."""
        return cls(schema=schema, enricher=PassThroughEnricher(), default_key_fields=default_key_fields)


def load_import_target(entity_key: str, config_dir: Path | None = None) -> ImportTarget:
    """ImportTarget for a configured entity."""
    return ImportTarget.from_entity(get_entity_definition(entity_key, config_dir))
