"""
Invoice line enricher.

Fallback chains (first success wins):

    Period       MM.YYYY / MM-YYYY normalized to YYYY-MM
    FiscalYear   explicit integer -> year of YYYY-MM period
                 -> year of YYYY-MM-DD posting date -> clock's current year
    LineId       explicit integer -> 1-based batch position
    DocumentId   explicit non-empty value -> generated GEN-<12 hex>
    PostingDate  explicit value -> first day of the YYYY-MM period

Field names are overridable through the entity's enricher options.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime
from typing import Any

from intake_kernel.domain.numbers import coerce_int

from intake_pipeline.enrichment.base import EnrichmentContext
from intake_pipeline.mapping.engine import is_empty

_MONTH_YEAR = re.compile(r"^(\d{1,2})[.-](\d{4})$")
_ISO_PERIOD = re.compile(r"^(\d{4})-(\d{2})$")
_ISO_DATE_PREFIX = re.compile(r"^(\d{4})-\d{2}-\d{2}")


def normalize_period(value: Any) -> Any:
    """``03.2025`` / ``3-2025`` -> ``2025-03``; anything else unchanged."""
    if not isinstance(value, str):
        return value
    match = _MONTH_YEAR.match(value.strip())
    if match:
        return f"{match.group(2)}-{int(match.group(1)):02d}"
    return value


def _period_year(period: Any) -> int | None:
    if isinstance(period, str):
        match = _ISO_PERIOD.match(period.strip())
        if match:
            return int(match.group(1))
    return None


def _posting_year(posting_date: Any) -> int | None:
    if isinstance(posting_date, (date, datetime)):
        return posting_date.year
    if isinstance(posting_date, str):
        match = _ISO_DATE_PREFIX.match(posting_date.strip())
        if match:
            return int(match.group(1))
    return None


class InvoiceLinesEnricher:
    """Fills FiscalYear, LineId, DocumentId and PostingDate of invoice lines."""

    name = "invoice_lines"

    def __init__(self, options: Mapping[str, Any] | None = None):
        opts = dict(options or {})
        self.period_field = opts.get("period_field", "Period")
        self.fiscal_year_field = opts.get("fiscal_year_field", "FiscalYear")
        self.line_field = opts.get("line_field", "LineId")
        self.document_field = opts.get("document_field", "DocumentId")
        self.posting_date_field = opts.get("posting_date_field", "PostingDate")
        self.document_prefix = opts.get("document_prefix", "GEN-")

    @property
    def derived_fields(self) -> tuple[str, ...]:
        return (
            self.fiscal_year_field,
            self.line_field,
            self.document_field,
            self.posting_date_field,
        )

    def reserved_ids(self, rows: Sequence[Mapping[str, Any]]) -> Iterable[str]:
        return [
            str(row[self.document_field]) for row in rows
            if not is_empty(row.get(self.document_field))
        ]

    def enrich(self, row: Mapping[str, Any], context: EnrichmentContext) -> dict[str, Any]:
        out = dict(row)

        period = normalize_period(out.get(self.period_field))
        if self.period_field in out:
            out[self.period_field] = period

        out[self.fiscal_year_field] = self._fiscal_year(out, period, context)

        line = coerce_int(out.get(self.line_field))
        out[self.line_field] = line if line is not None else context.position

        if is_empty(out.get(self.document_field)):
            out[self.document_field] = context.document_ids.issue()

        if is_empty(out.get(self.posting_date_field)) and _period_year(period) is not None:
            out[self.posting_date_field] = f"{period.strip()}-01"

        return out

    def _fiscal_year(self, row: Mapping[str, Any], period: Any, context: EnrichmentContext) -> int:
        explicit = coerce_int(row.get(self.fiscal_year_field))
        if explicit is not None:
            return explicit
        year = _period_year(period)
        if year is not None:
            return year
        year = _posting_year(row.get(self.posting_date_field))
        if year is not None:
            return year
        return context.clock.current_year()
