"""Tests for the clock, DTO helpers and the exception hierarchy."""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from intake_kernel.domain.clock import DeterministicClock, SystemClock
from intake_kernel.domain.dtos import ValidationError, freeze_row, to_json_safe
from intake_kernel.exceptions import (
    BatchValidationError,
    DecodeError,
    IncompleteMappingError,
    IntakeError,
    InvalidMappingError,
    InvalidStateTransitionError,
    MappingError,
    NoDataError,
    RowProcessingError,
    SchemaError,
    SourceError,
    StorageCommitError,
    UnknownTransformError,
)


class TestDeterministicClock:
    def test_default_time(self):
        clock = DeterministicClock()
        assert clock.now() == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert clock.current_year() == 2024

    def test_fixed_time(self):
        fixed = datetime(2030, 12, 31, tzinfo=timezone.utc)
        clock = DeterministicClock(fixed)
        assert clock.now() == clock.now() == fixed
        assert clock.current_year() == 2030

    def test_system_clock_is_aware(self):
        assert SystemClock().now().tzinfo is not None


class TestDtos:
    def test_frozen_row_is_read_only(self):
        row = freeze_row({"Amount": Decimal("1")})
        with pytest.raises(TypeError):
            row["Amount"] = Decimal("2")

    def test_frozen_row_is_a_copy(self):
        source = {"a": 1}
        row = freeze_row(source)
        source["a"] = 2
        assert row["a"] == 1

    def test_to_json_safe(self):
        value = {
            "amount": Decimal("12.50"),
            "on": date(2025, 1, 31),
            "items": (1, Decimal("2")),
            "id": UUID("12345678-1234-5678-1234-567812345678"),
            "text": "x",
        }
        assert to_json_safe(value) == {
            "amount": "12.50",
            "on": "2025-01-31",
            "items": [1, "2"],
            "id": "12345678-1234-5678-1234-567812345678",
            "text": "x",
        }

    def test_validation_error_defaults(self):
        issue = ValidationError(code="X", message="m")
        assert issue.field is None
        assert issue.details is None


class TestExceptions:
    def test_hierarchy(self):
        assert issubclass(DecodeError, SourceError)
        assert issubclass(NoDataError, SourceError)
        assert issubclass(IncompleteMappingError, MappingError)
        assert issubclass(UnknownTransformError, MappingError)
        assert issubclass(InvalidMappingError, MappingError)
        for cls in (SourceError, MappingError, SchemaError, BatchValidationError,
                    RowProcessingError, StorageCommitError, InvalidStateTransitionError):
            assert issubclass(cls, IntakeError)

    def test_incomplete_mapping(self):
        exc = IncompleteMappingError(["Period", "Amount"])
        assert exc.code == "MAPPING_INCOMPLETE"
        assert exc.missing_count == 2
        assert str(exc) == "2 required field(s) not mapped: Period, Amount"

    def test_batch_validation(self):
        exc = BatchValidationError(["Row 1: Amount: is required"], invalid_rows=1, total_rows=3)
        assert exc.code == "BATCH_INVALID"
        assert exc.errors == ("Row 1: Amount: is required",)
        assert "1 of 3 row(s)" in str(exc)

    def test_codes(self):
        assert DecodeError("a.csv", "bad").code == "DECODE_FAILED"
        assert NoDataError("invoices").code == "NO_DATA"
        assert UnknownTransformError("Nope", "Amount").code == "UNKNOWN_TRANSFORM"
        assert InvalidMappingError("Ghost", "systems").code == "INVALID_MAPPING"
        assert SchemaError("empty").code == "SCHEMA_INVALID"
        assert RowProcessingError("enrich", "KeyError").code == "ROW_PROCESSING_FAILED"
        assert StorageCommitError("systems", "insert", "disk full").code == "STORAGE_COMMIT_FAILED"
        assert InvalidStateTransitionError("idle", "commit").code == "INVALID_STATE_TRANSITION"

    def test_messages_name_their_subject(self):
        assert "'invoices'" in str(NoDataError("invoices"))
        assert "'Nope'" in str(UnknownTransformError("Nope", "Amount"))
        assert "state 'idle'" in str(InvalidStateTransitionError("idle", "commit"))
