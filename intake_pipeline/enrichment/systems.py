"""Systems enricher: default status and 1/0 favorite flag."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from intake_pipeline.enrichment.base import EnrichmentContext
from intake_pipeline.mapping.catalog import yes_no_flag
from intake_pipeline.mapping.engine import is_empty


class SystemsEnricher:
    name = "systems"
    document_prefix = "GEN-"

    def __init__(self, options: Mapping[str, Any] | None = None):
        opts = dict(options or {})
        self.status_field = opts.get("status_field", "status")
        self.favorite_field = opts.get("favorite_field", "is_favorite")
        self.default_status = opts.get("default_status", "unknown")

    @property
    def derived_fields(self) -> tuple[str, ...]:
        return (self.status_field, self.favorite_field)

    def reserved_ids(self, rows: Sequence[Mapping[str, Any]]) -> Iterable[str]:
        return ()

    def enrich(self, row: Mapping[str, Any], context: EnrichmentContext) -> dict[str, Any]:
        out = dict(row)
        if is_empty(out.get(self.status_field)):
            out[self.status_field] = self.default_status
        out[self.favorite_field] = yes_no_flag(out.get(self.favorite_field), self.favorite_field)
        return out
