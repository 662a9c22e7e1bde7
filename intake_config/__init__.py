"""
intake_config -- public entrypoint for import entity definitions.

Responsibility:
    Provides ``get_entity_definition()`` and ``available_entities()``. No
    other component reads the entity YAML files directly.

Architecture position:
    Configuration. Sits above ``intake_kernel``; ``intake_config.bridges``
    translates an ``EntityDef`` into the pipeline's ``TargetSchema``.

Failure modes:
    - ``FileNotFoundError`` -- no YAML file for the requested entity key.
    - ``KeyError`` / ``ValueError`` -- structural errors in the YAML.
"""

from __future__ import annotations

from pathlib import Path

from intake_config.loader import compute_checksum, load_yaml_file, parse_entity
from intake_config.schema import EntityDef, TargetFieldDef
from intake_kernel.logging_config import get_logger

logger = get_logger("config")

# Default entity definitions directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "entities"


def available_entities(config_dir: Path | None = None) -> list[str]:
    """Entity keys with a definition file, sorted."""
    directory = Path(config_dir) if config_dir else _DEFAULT_CONFIG_DIR
    return sorted(p.stem for p in directory.glob("*.yaml"))


def get_entity_definition(entity_key: str, config_dir: Path | None = None) -> EntityDef:
    """
    Load the definition of one import entity.

    The file ``<entity_key>.yaml`` must declare the same ``key``.
    """
    directory = Path(config_dir) if config_dir else _DEFAULT_CONFIG_DIR
    path = directory / f"{entity_key}.yaml"
    if not path.exists():
        raise FileNotFoundError(
            f"No entity definition for {entity_key!r} in {directory} "
            f"(available: {available_entities(directory)})"
        )

    raw = load_yaml_file(path)
    entity = parse_entity(raw)
    if entity.key != entity_key:
        raise ValueError(f"{path.name} declares key {entity.key!r}, expected {entity_key!r}")

    logger.info(
        "entity_definition_loaded",
        extra={
            "entity_key": entity.key,
            "version": entity.version,
            "field_count": len(entity.fields),
            "checksum": compute_checksum(raw),
        },
    )
    return entity


__all__ = [
    "EntityDef",
    "TargetFieldDef",
    "available_entities",
    "compute_checksum",
    "get_entity_definition",
]
