"""
Validation gate: checks enriched target rows against the target schema.

Per row:
    - required fields present and non-empty;
    - required_any groups: at least one member present;
    - declared-numeric fields that are present parse under the decimal
      convention of ``intake_kernel.domain.numbers``; integers must be
      integral;
    - supplements: date fields are ISO dates, boolean fields are boolean
      words, pattern, enum, minimum / maximum.

Failing rows are left out of ``valid``. Every failure contributes one
human-readable message ``"Row <n>: <field>: <rule>"`` (n 1-based) and one
``ValidationError`` DTO. Accepted rows carry numeric fields as ``Decimal``
(``int`` for integer fields) and are frozen.

Data-quality problems never raise. A missing or malformed schema raises
``SchemaError``.

Architecture: intake_pipeline/domain. ZERO I/O.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from intake_kernel.domain.dtos import ValidationError, freeze_row
from intake_kernel.domain.numbers import coerce_int, parse_decimal
from intake_kernel.exceptions import SchemaError

from intake_pipeline.domain.types import FieldType, TargetFieldSchema, TargetRow, TargetSchema

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")
_TRUE_WORDS = frozenset({"true", "yes", "y", "1"})
_FALSE_WORDS = frozenset({"false", "no", "n", "0"})


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of validating one batch."""

    valid: tuple[TargetRow, ...]
    errors: tuple[str, ...]
    issues: tuple[ValidationError, ...]
    total_rows: int

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def invalid_rows(self) -> int:
        return self.total_rows - len(self.valid)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _format_limit(limit: float) -> str:
    return str(int(limit)) if float(limit).is_integer() else str(limit)


class _RowChecker:
    """Collects findings for one row."""

    def __init__(self, position: int):
        self.position = position
        self.messages: list[str] = []
        self.issues: list[ValidationError] = []

    def fail(self, code: str, field: str, rule: str, value: Any = None) -> None:
        message = f"Row {self.position}: {field}: {rule}"
        self.messages.append(message)
        details: dict[str, Any] = {"row": self.position, "rule": rule}
        if value is not None:
            details["value"] = value
        self.issues.append(ValidationError(code=code, message=message, field=field, details=details))


class ValidationGate:
    """Validates batches of target rows against a TargetSchema."""

    def validate(self, rows: Sequence[Mapping[str, Any]], schema: TargetSchema) -> ValidationReport:
        patterns = self._check_schema(schema)
        valid: list[TargetRow] = []
        errors: list[str] = []
        issues: list[ValidationError] = []

        for position, row in enumerate(rows, start=1):
            checker = _RowChecker(position)
            normalized = self._check_row(row, schema, patterns, checker)
            if checker.messages:
                errors.extend(checker.messages)
                issues.extend(checker.issues)
            else:
                valid.append(freeze_row(normalized))

        return ValidationReport(
            valid=tuple(valid),
            errors=tuple(errors),
            issues=tuple(issues),
            total_rows=len(rows),
        )

    @staticmethod
    def _check_schema(schema: TargetSchema | None) -> dict[str, re.Pattern[str]]:
        if schema is None:
            raise SchemaError("no target schema")
        if not isinstance(schema, TargetSchema):
            raise SchemaError(f"expected TargetSchema, got {type(schema).__name__}")
        if not schema.fields:
            raise SchemaError(f"entity {schema.entity_key!r} declares no fields")
        patterns: dict[str, re.Pattern[str]] = {}
        for f in schema:
            if f.pattern:
                try:
                    patterns[f.key] = re.compile(f.pattern)
                except re.error as exc:
                    raise SchemaError(f"field {f.key!r} has invalid pattern: {exc}") from exc
        return patterns

    def _check_row(
        self,
        row: Mapping[str, Any],
        schema: TargetSchema,
        patterns: Mapping[str, re.Pattern[str]],
        checker: _RowChecker,
    ) -> dict[str, Any]:
        normalized = dict(row)

        for f in schema:
            value = row.get(f.key)
            if _is_blank(value):
                if f.required:
                    checker.fail("MISSING_REQUIRED_FIELD", f.key, "is required")
                elif f.type.is_numeric and f.key in normalized:
                    normalized[f.key] = None
                continue
            normalized[f.key] = self._check_value(f, value, patterns.get(f.key), checker)

        for group in schema.required_any:
            if all(_is_blank(row.get(k)) for k in group):
                checker.fail(
                    "MISSING_ONE_OF",
                    "/".join(group),
                    f"one of {', '.join(group)} is required",
                )

        return normalized

    def _check_value(
        self,
        f: TargetFieldSchema,
        value: Any,
        pattern: re.Pattern[str] | None,
        checker: _RowChecker,
    ) -> Any:
        if f.type.is_numeric:
            value = self._check_number(f, value, checker)
            if value is None:
                return None
        elif f.type == FieldType.DATE:
            self._check_date(f, value, checker)
        elif f.type == FieldType.BOOLEAN:
            value = self._check_boolean(f, value, checker)

        if pattern is not None and not pattern.fullmatch(str(value)):
            checker.fail("PATTERN_MISMATCH", f.key, f"must match pattern {f.pattern}", value)
        if f.enum and str(value) not in f.enum:
            checker.fail("VALUE_NOT_ALLOWED", f.key, f"must be one of {', '.join(f.enum)}", value)
        return value

    @staticmethod
    def _check_number(f: TargetFieldSchema, value: Any, checker: _RowChecker) -> Any:
        number = parse_decimal(value)
        if number is None:
            checker.fail("INVALID_NUMBER", f.key, "must be a number", value)
            return None
        if f.type == FieldType.INTEGER:
            integer = coerce_int(number)
            if integer is None:
                checker.fail("INVALID_INTEGER", f.key, "must be an integer", value)
                return None
            result: Any = integer
        else:
            result = number
        if f.minimum is not None and number < parse_decimal(f.minimum):
            checker.fail("BELOW_MINIMUM", f.key, f"must be >= {_format_limit(f.minimum)}", value)
        if f.maximum is not None and number > parse_decimal(f.maximum):
            checker.fail("ABOVE_MAXIMUM", f.key, f"must be <= {_format_limit(f.maximum)}", value)
        return result

    @staticmethod
    def _check_date(f: TargetFieldSchema, value: Any, checker: _RowChecker) -> None:
        if isinstance(value, (date, datetime)):
            return
        if isinstance(value, str) and _ISO_DATE.fullmatch(value.strip()):
            try:
                date.fromisoformat(value.strip())
                return
            except ValueError:
                pass
        checker.fail("INVALID_DATE", f.key, "must be an ISO date (YYYY-MM-DD)", value)

    @staticmethod
    def _check_boolean(f: TargetFieldSchema, value: Any, checker: _RowChecker) -> Any:
        if isinstance(value, bool):
            return value
        word = str(value).strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        checker.fail("INVALID_BOOLEAN", f.key, "must be true or false", value)
        return value
