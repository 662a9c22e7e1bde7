"""
Entity Loader (``intake_config.loader``).

Responsibility
--------------
Loads entity YAML files and parses them into typed
``intake_config.schema`` dataclass instances. Runtime callers go through
``intake_config.get_entity_definition()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required keys.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown field type or dangling key reference  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from intake_config.schema import FIELD_TYPES, EntityDef, TargetFieldDef


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _optional_number(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Expected a number, got {value!r}")
    return value


def parse_field(data: dict[str, Any]) -> TargetFieldDef:
    """Parse a TargetFieldDef from a dict."""
    field_type = data.get("type", "string")
    if field_type not in FIELD_TYPES:
        raise ValueError(f"Unknown field type {field_type!r} for field {data.get('key')!r}")
    return TargetFieldDef(
        key=data["key"],
        type=field_type,
        required=bool(data.get("required", False)),
        description=data.get("description", ""),
        pattern=data.get("pattern"),
        enum=tuple(str(v) for v in data.get("enum", ())),
        minimum=_optional_number(data.get("minimum")),
        maximum=_optional_number(data.get("maximum")),
    )


def parse_entity(data: dict[str, Any]) -> EntityDef:
    """
    Parse an ``EntityDef`` from a dict.

    Preconditions:
        - ``data`` contains ``key``, ``label`` and at least one ``fields`` entry.
    Raises:
        KeyError: if required keys are missing.
        ValueError: if a key group references an undeclared field.
    """
    fields = tuple(parse_field(f) for f in data["fields"])
    if not fields:
        raise ValueError(f"Entity {data['key']!r} declares no fields")
    declared = {f.key for f in fields}

    def _group(raw: Any, what: str) -> tuple[str, ...]:
        group = tuple(str(k) for k in raw)
        unknown = [k for k in group if k not in declared]
        if unknown:
            raise ValueError(f"{what} of entity {data['key']!r} references unknown fields {unknown}")
        return group

    return EntityDef(
        key=data["key"],
        label=data["label"],
        fields=fields,
        sheet_keyword=data.get("sheet_keyword", ""),
        required_any=tuple(_group(g, "required_any") for g in data.get("required_any", ())),
        default_key_fields=_group(data.get("default_key_fields", ()), "default_key_fields"),
        key_candidates=tuple(_group(g, "key_candidates") for g in data.get("key_candidates", ())),
        enricher=data.get("enricher"),
        enricher_options=dict(data.get("enricher_options") or {}),
        version=data.get("version", 1),
        description=data.get("description", ""),
    )


def load_entity_file(path: Path) -> EntityDef:
    """Load and parse one entity YAML file."""
    return parse_entity(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
