"""
RowEnricher protocol, enrichment context and the entity enricher registry.

Enrichers derive required-but-derivable fields from the other fields of a
row. Each rule is a fallback chain: the first source that yields a value
wins, later sources are not consulted. Enrichers are pure apart from the
injected clock and document id issuer carried by the context.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol
from uuid import uuid4

from intake_kernel.domain.clock import Clock


def random_token() -> str:
    """12 upper-case hex characters."""
    return uuid4().hex[:12].upper()


class DocumentIdIssuer:
    """
    Issues synthetic document ids unique within one batch.

    Ids already present in the batch are reserved up front; a drawn token
    that collides with a reserved or previously issued id is re-drawn.
    """

    def __init__(
        self,
        prefix: str = "GEN-",
        reserved: Iterable[str] = (),
        token_factory: Callable[[], str] = random_token,
    ):
        self._prefix = prefix
        self._token_factory = token_factory
        self._taken: set[str] = {str(v) for v in reserved}

    def reserve(self, value: str) -> None:
        self._taken.add(str(value))

    def issue(self) -> str:
        while True:
            candidate = f"{self._prefix}{self._token_factory()}"
            if candidate not in self._taken:
                self._taken.add(candidate)
                return candidate


@dataclass(frozen=True)
class EnrichmentContext:
    """Per-row context: 1-based position in original order, clock, id issuer."""

    position: int
    clock: Clock
    document_ids: DocumentIdIssuer


class RowEnricher(Protocol):
    """Protocol for per-entity enrichment functions."""

    @property
    def name(self) -> str:
        """Registry name (e.g. 'invoice_lines')."""
        ...

    @property
    def document_prefix(self) -> str:
        """Prefix of synthetic document ids."""
        ...

    @property
    def derived_fields(self) -> tuple[str, ...]:
        """Required fields this enricher can fill, so they need no mapping."""
        ...

    def reserved_ids(self, rows: Sequence[Mapping[str, Any]]) -> Iterable[str]:
        """Explicit document ids already present in the batch."""
        ...

    def enrich(self, row: Mapping[str, Any], context: EnrichmentContext) -> dict[str, Any]:
        """Return an enriched copy of ``row``."""
        ...


class PassThroughEnricher:
    """Enricher for entities that derive nothing."""

    name = "none"
    document_prefix = "GEN-"
    derived_fields: tuple[str, ...] = ()

    def reserved_ids(self, rows: Sequence[Mapping[str, Any]]) -> Iterable[str]:
        return ()

    def enrich(self, row: Mapping[str, Any], context: EnrichmentContext) -> dict[str, Any]:
        return dict(row)


EnricherFactory = Callable[[Mapping[str, Any]], RowEnricher]

ENTITY_ENRICHERS: dict[str, EnricherFactory] = {}


def register_enricher(name: str, factory: EnricherFactory) -> None:
    if name in ENTITY_ENRICHERS:
        raise ValueError(f"Enricher {name!r} already registered")
    ENTITY_ENRICHERS[name] = factory


def build_enricher(name: str | None, options: Mapping[str, Any] | None = None) -> RowEnricher:
    """Enricher registered under ``name``; pass-through when ``name`` is None."""
    if name is None:
        return PassThroughEnricher()
    try:
        factory = ENTITY_ENRICHERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown enricher {name!r} (registered: {sorted(ENTITY_ENRICHERS)})"
        ) from None
    return factory(dict(options or {}))


def enrich_rows(
    rows: Sequence[Mapping[str, Any]],
    enricher: RowEnricher,
    clock: Clock,
    token_factory: Callable[[], str] = random_token,
) -> list[dict[str, Any]]:
    """Enrich a batch in original order with 1-based positions."""
    issuer = DocumentIdIssuer(enricher.document_prefix, enricher.reserved_ids(rows), token_factory)
    return [
        enricher.enrich(row, EnrichmentContext(position=i, clock=clock, document_ids=issuer))
        for i, row in enumerate(rows, start=1)
    ]
