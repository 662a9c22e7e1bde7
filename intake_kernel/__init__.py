"""
intake_kernel -- shared foundation for the intake packages.

Provides the typed exception hierarchy, structured JSON logging, pure domain
value types (clock, DTOs, numeric parsing) and the SQLAlchemy base/engine.

Architecture:
    intake_kernel imports nothing from intake_config or intake_pipeline.
"""
