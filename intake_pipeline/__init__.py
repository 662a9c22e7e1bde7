"""
intake_pipeline -- tabular import: mapping, transformation, enrichment,
duplicate resolution, validation and commit.

Layers:
    domain/      pure types, duplicate resolver, validation gate (ZERO I/O)
    mapping/     transform catalog, mapping resolver, row transformer
    enrichment/  per-entity enrichers and their registry
    adapters/    tabular decoders (file I/O only)
    stores/      key-value settings, mapping profiles, row storage
    models/      SQLAlchemy tables behind the SQL stores
    services/    import coordinator, targets, notifications
"""
