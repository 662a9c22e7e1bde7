"""
Entity definition schema.

Human-authored import targets. YAML files under ``entities/`` are parsed into
these types by the loader and compiled into the pipeline's ``TargetSchema``
by ``intake_config.bridges``.

Key distinction:
  EntityDef    = source artifact (human-authored, versioned)
  TargetSchema = runtime artifact consumed by the pipeline stages
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Fields
# ---------------------------------------------------------------------------

FIELD_TYPES = frozenset({"string", "number", "integer", "boolean", "date"})


@dataclass(frozen=True)
class TargetFieldDef:
    """One target column of an entity."""

    key: str
    type: str = "string"
    required: bool = False
    description: str = ""
    pattern: str | None = None
    enum: tuple[str, ...] = ()
    minimum: float | None = None
    maximum: float | None = None


# ---------------------------------------------------------------------------
# Entity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EntityDef:
    """
    A complete import target.

    ``enricher`` names an entry of the pipeline's enricher registry;
    ``enricher_options`` carries its field-name overrides. ``key_candidates``
    are tried in order when proposing duplicate key fields; the first whose
    fields are populated in the batch wins, else ``default_key_fields``.
    """

    key: str
    label: str
    fields: tuple[TargetFieldDef, ...]
    sheet_keyword: str = ""
    required_any: tuple[tuple[str, ...], ...] = ()
    default_key_fields: tuple[str, ...] = ()
    key_candidates: tuple[tuple[str, ...], ...] = ()
    enricher: str | None = None
    enricher_options: dict[str, Any] = field(default_factory=dict)
    version: int = 1
    description: str = ""

    @property
    def field_keys(self) -> tuple[str, ...]:
        return tuple(f.key for f in self.fields)
