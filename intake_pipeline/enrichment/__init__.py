"""Per-entity row enrichers and their registry."""

from intake_pipeline.enrichment.base import (
    ENTITY_ENRICHERS,
    DocumentIdIssuer,
    EnrichmentContext,
    PassThroughEnricher,
    RowEnricher,
    build_enricher,
    enrich_rows,
    random_token,
    register_enricher,
)
from intake_pipeline.enrichment.invoice_lines import InvoiceLinesEnricher, normalize_period
from intake_pipeline.enrichment.systems import SystemsEnricher

register_enricher(InvoiceLinesEnricher.name, InvoiceLinesEnricher)
register_enricher(SystemsEnricher.name, SystemsEnricher)

__all__ = [
    "ENTITY_ENRICHERS",
    "DocumentIdIssuer",
    "EnrichmentContext",
    "InvoiceLinesEnricher",
    "PassThroughEnricher",
    "RowEnricher",
    "SystemsEnricher",
    "build_enricher",
    "enrich_rows",
    "normalize_period",
    "random_token",
    "register_enricher",
]
