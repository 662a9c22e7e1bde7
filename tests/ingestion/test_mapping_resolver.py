"""Tests for mapping suggestion and completeness (intake_pipeline/mapping/resolver.py)."""

import pytest

from intake_kernel.exceptions import InvalidMappingError, SchemaError, UnknownTransformError
from intake_pipeline.domain.types import (
    CONSTANT_SENTINEL,
    MappingConfig,
    MappingOperation,
    MappingSet,
    TargetFieldSchema,
    TargetSchema,
)
from intake_pipeline.mapping.catalog import DEFAULT_CATALOG
from intake_pipeline.mapping.resolver import (
    check_mapping,
    is_complete,
    is_satisfied,
    mapping_signature,
    merge_suggestion,
    missing_required_count,
    missing_required_fields,
    suggest,
)


@pytest.fixture
def small_schema():
    return TargetSchema(
        entity_key="demo",
        fields=(
            TargetFieldSchema("VendorName", required=True),
            TargetFieldSchema("Amount", required=True),
            TargetFieldSchema("CostCenter"),
        ),
    )


class TestSuggest:
    def test_case_insensitive_match(self, small_schema):
        result = suggest(["vendorname", "AMOUNT"], small_schema)
        assert result.get("VendorName").source_column == "vendorname"
        assert result.get("Amount").source_column == "AMOUNT"
        assert result.get("VendorName").operation == MappingOperation.DIRECT

    def test_loose_match_ignores_punctuation_and_spaces(self, small_schema):
        result = suggest(["Vendor Name", "cost_center"], small_schema)
        assert result.get("VendorName").source_column == "Vendor Name"
        assert result.get("CostCenter").source_column == "cost_center"

    def test_exact_match_preferred_over_loose(self, small_schema):
        result = suggest(["Vendor-Name", "VENDORNAME"], small_schema)
        assert result.get("VendorName").source_column == "VENDORNAME"

    def test_first_column_in_source_order_wins(self, small_schema):
        result = suggest(["vendor name", "Vendor_Name"], small_schema)
        assert result.get("VendorName").source_column == "vendor name"

    def test_unmatched_fields_left_unmapped(self, small_schema):
        result = suggest(["Something"], small_schema)
        assert len(result) == 0

    def test_deterministic(self, invoice_schema):
        columns = ["Period", "Amount", "vendor id", "Posting Date", "Extra"]
        assert suggest(columns, invoice_schema) == suggest(columns, invoice_schema)

    def test_no_schema(self):
        with pytest.raises(SchemaError):
            suggest(["a"], None)

    def test_invoice_columns(self, invoice_schema):
        result = suggest(["Period", "Vendor Name", "Amt"], invoice_schema)
        assert set(result) == {"Period", "VendorName"}
        assert missing_required_fields(result, invoice_schema) == ("PostingDate", "LineId", "Amount")


class TestCompleteness:
    def test_is_satisfied(self):
        assert not is_satisfied(None)
        assert is_satisfied(MappingConfig("col"))
        assert not is_satisfied(MappingConfig(""))

    def test_constant_needs_value(self):
        assert is_satisfied(MappingConfig.constant("EUR"))
        assert not is_satisfied(MappingConfig.constant(""))
        assert not is_satisfied(MappingConfig(CONSTANT_SENTINEL))

    def test_concat_needs_secondary(self):
        assert not is_satisfied(MappingConfig("a", operation=MappingOperation.CONCAT))
        assert is_satisfied(
            MappingConfig("a", operation=MappingOperation.CONCAT, secondary_column="b")
        )

    def test_coalesce_without_secondary_is_direct(self):
        assert is_satisfied(MappingConfig("a", operation=MappingOperation.COALESCE))

    def test_count_and_complete_agree(self, small_schema):
        partial = MappingSet({"VendorName": MappingConfig("v")})
        assert missing_required_count(partial, small_schema) == 1
        assert not is_complete(partial, small_schema)

        full = partial.with_entry("Amount", MappingConfig.constant("0"))
        assert missing_required_count(full, small_schema) == 0
        assert is_complete(full, small_schema)

    def test_missing_in_schema_order(self, small_schema):
        assert missing_required_fields(MappingSet(), small_schema) == ("VendorName", "Amount")

    def test_derived_fields_exempt(self, small_schema):
        mapping = MappingSet({"VendorName": MappingConfig("v")})
        assert missing_required_fields(mapping, small_schema, derived=("Amount",)) == ()
        assert missing_required_count(mapping, small_schema, derived=("Amount",)) == 0
        assert is_complete(mapping, small_schema, derived=("Amount",))

    def test_invoice_enricher_fields_exempt(self, invoice_target):
        result = suggest(["Period", "Vendor Name", "Amt"], invoice_target.schema)
        derived = invoice_target.enricher.derived_fields
        assert missing_required_fields(result, invoice_target.schema, derived) == ("Amount",)


class TestSignature:
    def test_column_order_irrelevant(self):
        assert mapping_signature("x", ["b", "a"]) == mapping_signature("x", ["a", "b"])

    def test_format(self):
        assert mapping_signature("invoice_items", ["Period", "Amt"]) == "invoice_items_Amt|Period"

    def test_entity_matters(self):
        assert mapping_signature("x", ["a"]) != mapping_signature("y", ["a"])


class TestMergeSuggestion:
    def test_no_saved_returns_suggestion(self):
        suggestion = MappingSet({"A": MappingConfig("a")})
        assert merge_suggestion(None, suggestion) is suggestion

    def test_saved_entries_win(self):
        saved = MappingSet({"A": MappingConfig("x", transform_id="Trim")})
        suggestion = MappingSet({"A": MappingConfig("a"), "B": MappingConfig("b")})
        merged = merge_suggestion(saved, suggestion)
        assert merged.get("A").source_column == "x"
        assert merged.get("B").source_column == "b"


class TestCheckMapping:
    def test_valid(self, small_schema):
        check_mapping(MappingSet({"VendorName": MappingConfig("v", transform_id="Trim")}), small_schema, DEFAULT_CATALOG)

    def test_unknown_target_field(self, small_schema):
        with pytest.raises(InvalidMappingError) as exc_info:
            check_mapping(MappingSet({"Nope": MappingConfig("v")}), small_schema, DEFAULT_CATALOG)
        assert exc_info.value.field_key == "Nope"
        assert exc_info.value.entity_key == "demo"

    def test_unknown_transform(self, small_schema):
        with pytest.raises(UnknownTransformError):
            check_mapping(
                MappingSet({"CostCenter": MappingConfig("c", transform_id="ParseDeCurrency")}),
                small_schema,
                DEFAULT_CATALOG,
            )
