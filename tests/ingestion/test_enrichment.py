"""Tests for row enrichers (intake_pipeline/enrichment)."""

from datetime import date, datetime, timezone

import pytest

from intake_kernel.domain.clock import DeterministicClock
from intake_pipeline.enrichment import (
    ENTITY_ENRICHERS,
    DocumentIdIssuer,
    EnrichmentContext,
    InvoiceLinesEnricher,
    PassThroughEnricher,
    SystemsEnricher,
    build_enricher,
    enrich_rows,
    normalize_period,
    random_token,
    register_enricher,
)


def _context(position=1, clock=None, issuer=None):
    return EnrichmentContext(
        position=position,
        clock=clock or DeterministicClock(),
        document_ids=issuer or DocumentIdIssuer(token_factory=lambda: "ABCDEF123456"),
    )


@pytest.fixture
def enricher():
    return InvoiceLinesEnricher()


class TestNormalizePeriod:
    @pytest.mark.parametrize(
        "raw,expected",
        [("03.2025", "2025-03"), ("3-2025", "2025-03"), ("12.2024", "2024-12"), ("2025-03", "2025-03")],
    )
    def test_forms(self, raw, expected):
        assert normalize_period(raw) == expected

    def test_non_string_unchanged(self):
        assert normalize_period(None) is None
        assert normalize_period(202503) == 202503


class TestFiscalYear:
    def test_explicit_wins(self, enricher):
        row = enricher.enrich({"FiscalYear": "2023", "Period": "2025-03"}, _context())
        assert row["FiscalYear"] == 2023

    def test_from_period(self, enricher):
        assert enricher.enrich({"Period": "03.2025"}, _context())["FiscalYear"] == 2025

    def test_from_posting_date(self, enricher):
        row = enricher.enrich({"PostingDate": "2022-07-15"}, _context())
        assert row["FiscalYear"] == 2022

    def test_from_posting_date_object(self, enricher):
        assert enricher.enrich({"PostingDate": date(2021, 5, 1)}, _context())["FiscalYear"] == 2021

    def test_falls_back_to_clock(self, enricher):
        clock = DeterministicClock(datetime(2026, 6, 1, tzinfo=timezone.utc))
        assert enricher.enrich({}, _context(clock=clock))["FiscalYear"] == 2026

    def test_unparseable_explicit_value_falls_through(self, enricher):
        row = enricher.enrich({"FiscalYear": "next year", "Period": "2025-01"}, _context())
        assert row["FiscalYear"] == 2025


class TestLineId:
    def test_explicit(self, enricher):
        assert enricher.enrich({"LineId": "7"}, _context(position=2))["LineId"] == 7

    def test_position_fallback(self, enricher):
        assert enricher.enrich({"LineId": ""}, _context(position=4))["LineId"] == 4
        assert enricher.enrich({}, _context(position=5))["LineId"] == 5

    def test_non_integral_uses_position(self, enricher):
        assert enricher.enrich({"LineId": "1.5"}, _context(position=3))["LineId"] == 3


class TestDocumentId:
    def test_explicit_kept(self, enricher):
        assert enricher.enrich({"DocumentId": "INV-9"}, _context())["DocumentId"] == "INV-9"

    def test_generated_when_empty(self, enricher):
        assert enricher.enrich({"DocumentId": " "}, _context())["DocumentId"] == "GEN-ABCDEF123456"

    def test_custom_prefix(self):
        enricher = InvoiceLinesEnricher({"document_prefix": "AUTO-"})
        rows = enrich_rows([{}], enricher, DeterministicClock(), token_factory=lambda: "X")
        assert rows[0]["DocumentId"] == "AUTO-X"


class TestPostingDate:
    def test_derived_from_period(self, enricher):
        assert enricher.enrich({"Period": "01.2025"}, _context())["PostingDate"] == "2025-01-01"

    def test_explicit_kept(self, enricher):
        row = enricher.enrich({"Period": "2025-01", "PostingDate": "2025-01-17"}, _context())
        assert row["PostingDate"] == "2025-01-17"

    def test_not_derived_from_unrecognized_period(self, enricher):
        assert "PostingDate" not in enricher.enrich({"Period": "Q1"}, _context())

    def test_period_normalized_in_row(self, enricher):
        assert enricher.enrich({"Period": "1-2025"}, _context())["Period"] == "2025-01"


class TestEnricherOptions:
    def test_field_names_overridable(self):
        enricher = InvoiceLinesEnricher({"period_field": "Periode", "fiscal_year_field": "GJ"})
        row = enricher.enrich({"Periode": "02.2024"}, _context())
        assert row["Periode"] == "2024-02"
        assert row["GJ"] == 2024

    def test_derived_fields_follow_overrides(self):
        enricher = InvoiceLinesEnricher({"line_field": "Pos"})
        assert enricher.derived_fields == ("FiscalYear", "Pos", "DocumentId", "PostingDate")
        assert SystemsEnricher().derived_fields == ("status", "is_favorite")
        assert PassThroughEnricher().derived_fields == ()

    def test_input_not_mutated(self, enricher):
        row = {"Period": "01.2025"}
        enricher.enrich(row, _context())
        assert row == {"Period": "01.2025"}


class TestDocumentIdIssuer:
    def test_redraws_on_collision_with_reserved(self):
        tokens = iter(["AAA", "AAA", "BBB"])
        issuer = DocumentIdIssuer(reserved=["GEN-AAA"], token_factory=lambda: next(tokens))
        assert issuer.issue() == "GEN-BBB"

    def test_issued_ids_unique(self):
        tokens = iter(["A", "A", "B"])
        issuer = DocumentIdIssuer(token_factory=lambda: next(tokens))
        assert [issuer.issue(), issuer.issue()] == ["GEN-A", "GEN-B"]

    def test_random_token_shape(self):
        token = random_token()
        assert len(token) == 12
        assert token == token.upper()
        int(token, 16)


class TestEnrichRows:
    def test_positions_are_one_based_in_order(self, enricher, deterministic_clock):
        rows = enrich_rows([{}, {}, {}], enricher, deterministic_clock, token_factory=random_token)
        assert [r["LineId"] for r in rows] == [1, 2, 3]

    def test_generated_ids_avoid_explicit_ids(self, enricher, deterministic_clock):
        tokens = iter(["DUP", "DUP", "NEW"])
        rows = enrich_rows(
            [{"DocumentId": "GEN-DUP"}, {}],
            enricher,
            deterministic_clock,
            token_factory=lambda: next(tokens),
        )
        assert [r["DocumentId"] for r in rows] == ["GEN-DUP", "GEN-NEW"]

    def test_deterministic_under_fixed_clock_and_tokens(self, enricher):
        rows = [{"Period": "03.2025"}, {}]

        def run():
            tokens = iter(["T1", "T2"])
            return enrich_rows(rows, enricher, DeterministicClock(), token_factory=lambda: next(tokens))

        first = run()
        assert first == run()
        assert first[1] == {"FiscalYear": 2024, "LineId": 2, "DocumentId": "GEN-T2"}


class TestSystemsEnricher:
    def test_defaults(self):
        row = SystemsEnricher().enrich({"name": "ERP"}, _context())
        assert row == {"name": "ERP", "status": "unknown", "is_favorite": 0}

    def test_favorite_flag_and_status_kept(self):
        row = SystemsEnricher().enrich({"name": "ERP", "status": "online", "is_favorite": "yes"}, _context())
        assert row["status"] == "online"
        assert row["is_favorite"] == 1

    def test_default_status_option(self):
        row = SystemsEnricher({"default_status": "offline"}).enrich({"name": "x"}, _context())
        assert row["status"] == "offline"


class TestRegistry:
    def test_bundled_enrichers_registered(self):
        assert {"invoice_lines", "systems"} <= set(ENTITY_ENRICHERS)

    def test_build_with_options(self):
        enricher = build_enricher("invoice_lines", {"document_prefix": "X-"})
        assert isinstance(enricher, InvoiceLinesEnricher)
        assert enricher.document_prefix == "X-"

    def test_none_is_pass_through(self):
        enricher = build_enricher(None)
        assert isinstance(enricher, PassThroughEnricher)
        assert enricher.enrich({"a": 1}, _context()) == {"a": 1}

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown enricher"):
            build_enricher("ledger")

    def test_duplicate_registration(self):
        with pytest.raises(ValueError, match="already registered"):
            register_enricher("systems", SystemsEnricher)
