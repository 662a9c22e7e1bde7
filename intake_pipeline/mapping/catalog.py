"""
Transform catalog: named pure value transforms, scoped by target field key.

A transform is a pure function of ``(value, field_key)``. The catalog is a
registry validated at construction: registering the same id twice for one
field is rejected, and ``validate_ids`` rejects a mapping set that references
an id the catalog does not offer for that field before any row is processed.

All bundled transforms are idempotent: applying one to its own output
returns the output unchanged.

ZERO I/O.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from intake_kernel.domain.numbers import parse_decimal, parse_decimal_de
from intake_kernel.exceptions import UnknownTransformError

from intake_pipeline.domain.types import MappingSet

TransformFn = Callable[[Any, str], Any]


@dataclass(frozen=True)
class TransformDef:
    """One catalog entry."""

    transform_id: str
    label: str
    fn: TransformFn
    description: str = ""
    idempotent: bool = True


class TransformCatalog:
    """Registry of transforms keyed by (field key, transform id)."""

    def __init__(self, entries: Iterable[tuple[Iterable[str], TransformDef]] = ()):
        self._by_field: dict[str, dict[str, TransformDef]] = {}
        for field_keys, definition in entries:
            self.register(field_keys, definition)

    def register(self, field_keys: Iterable[str], definition: TransformDef) -> None:
        """Offer ``definition`` for each of ``field_keys``."""
        for field_key in field_keys:
            scoped = self._by_field.setdefault(field_key, {})
            if definition.transform_id in scoped:
                raise ValueError(
                    f"Transform {definition.transform_id!r} registered twice "
                    f"for field {field_key!r}"
                )
            scoped[definition.transform_id] = definition

    def list_transforms(self, field_key: str) -> list[tuple[str, str]]:
        """``(id, label)`` pairs offered for a field, in registration order."""
        return [(d.transform_id, d.label) for d in self._by_field.get(field_key, {}).values()]

    def fields(self) -> list[str]:
        return list(self._by_field)

    def has(self, transform_id: str, field_key: str) -> bool:
        return transform_id in self._by_field.get(field_key, {})

    def get(self, transform_id: str, field_key: str) -> TransformDef:
        try:
            return self._by_field[field_key][transform_id]
        except KeyError:
            raise UnknownTransformError(transform_id, field_key) from None

    def apply(self, value: Any, transform_id: str, field_key: str) -> Any:
        """Apply a named transform. Raises UnknownTransformError for unknown ids."""
        return self.get(transform_id, field_key).fn(value, field_key)

    def validate_ids(self, mapping_set: MappingSet) -> None:
        """Reject the first mapping entry naming an unknown transform."""
        for field_key, config in mapping_set.items():
            if config.transform_id and not self.has(config.transform_id, field_key):
                raise UnknownTransformError(config.transform_id, field_key)


# -----------------------------------------------------------------------------
# Period
# -----------------------------------------------------------------------------

_PERIOD_3DIGIT = re.compile(r"^(\d{3})\.(\d{4})$")
_PERIOD_MONTH_YEAR = re.compile(r"^(\d{1,2})[.-](\d{4})$")


def period_from_3digit(value: Any, field_key: str) -> Any:
    """``001.2025`` -> ``2025-01``."""
    if not isinstance(value, str):
        return value
    match = _PERIOD_3DIGIT.match(value)
    if match:
        return f"{match.group(2)}-{int(match.group(1)):02d}"
    return value


def period_identity(value: Any, field_key: str) -> Any:
    return value


def period_from_month_year(value: Any, field_key: str) -> Any:
    """``01.2025`` / ``1-2025`` -> ``2025-01``."""
    if not isinstance(value, str):
        return value
    match = _PERIOD_MONTH_YEAR.match(value.strip())
    if match:
        return f"{match.group(2)}-{int(match.group(1)):02d}"
    return value


# -----------------------------------------------------------------------------
# Dates
# -----------------------------------------------------------------------------

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EXCEL_EPOCH = date(1899, 12, 30)
_EXCEL_SERIAL_FLOOR = 20000


def _reformat_date(value: Any, fmt: str) -> Any:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return value
    text = value.strip()
    if _ISO_DATE.match(text):
        return value
    try:
        return datetime.strptime(text, fmt).date().isoformat()
    except ValueError:
        return value


def date_from_german(value: Any, field_key: str) -> Any:
    """``31.01.2025`` -> ``2025-01-31``. ISO input untouched."""
    return _reformat_date(value, "%d.%m.%Y")


def date_from_us(value: Any, field_key: str) -> Any:
    """``01/31/2025`` -> ``2025-01-31``."""
    return _reformat_date(value, "%m/%d/%Y")


def date_from_excel_serial(value: Any, field_key: str) -> Any:
    """
    Excel day number (above 20000) -> ISO date. Fractional days are dropped;
    numbers past year 9999 are returned unchanged.
    """
    if isinstance(value, bool):
        return value
    number = parse_decimal(value) if isinstance(value, (str, int, float, Decimal)) else None
    if number is None or number <= _EXCEL_SERIAL_FLOOR:
        return value
    try:
        return (_EXCEL_EPOCH + timedelta(days=int(number))).isoformat()
    except OverflowError:
        return value


# -----------------------------------------------------------------------------
# Text
# -----------------------------------------------------------------------------

_WORD = re.compile(r"\w\S*")


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def text_trim(value: Any, field_key: str) -> str:
    return _text(value).strip()


def text_upper(value: Any, field_key: str) -> str:
    return _text(value).upper()


def text_lower(value: Any, field_key: str) -> str:
    return _text(value).lower()


def text_title(value: Any, field_key: str) -> str:
    """Capitalize the first letter of each word, lower-case the rest."""
    return _WORD.sub(lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), _text(value))


# -----------------------------------------------------------------------------
# Numbers
# -----------------------------------------------------------------------------

_NOT_NUMBER_CHARS = re.compile(r"[^0-9.\-]")


def number_from_german(value: Any, field_key: str) -> Any:
    """``1.234,56`` -> ``Decimal("1234.56")``. Unparseable input unchanged."""
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return value
    parsed = parse_decimal_de(value)
    return value if parsed is None else parsed


def number_clean(value: Any, field_key: str) -> Any:
    """Keep digits, ``.`` and ``-`` (``EUR -1,234.50`` -> ``Decimal("-1234.50")``)."""
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return value
    cleaned = _NOT_NUMBER_CHARS.sub("", value)
    if cleaned.count("-") > 1 or "-" in cleaned[1:]:
        return value
    parsed = parse_decimal(cleaned) if cleaned else None
    return value if parsed is None else parsed


# -----------------------------------------------------------------------------
# Codes and flags
# -----------------------------------------------------------------------------

_CURRENCY_SYMBOLS = {
    "€": "EUR",
    "$": "USD",
    "US$": "USD",
    "£": "GBP",
    "¥": "JPY",
    "FR.": "CHF",
    "SFR": "CHF",
}

_TRUTHY = frozenset({"1", "true", "yes", "y", "ja", "j", "x", "on"})


def currency_code(value: Any, field_key: str) -> Any:
    """Trim, upper-case and map currency symbols to ISO 4217 codes."""
    if not isinstance(value, str):
        return value
    code = value.strip().upper()
    return _CURRENCY_SYMBOLS.get(code, code)


def yes_no_flag(value: Any, field_key: str) -> int:
    """Truthy words and numbers -> 1, everything else -> 0."""
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (int, float, Decimal)):
        return 1 if value == 1 else 0
    return 1 if _text(value).strip().lower() in _TRUTHY else 0


# -----------------------------------------------------------------------------
# Default catalog
# -----------------------------------------------------------------------------

TEXT_FIELDS = (
    "VendorName",
    "VendorId",
    "DocumentId",
    "CostCenter",
    "Category",
    "SubCategory",
    "Service",
    "System",
    "Description",
    "name",
    "category",
)
NUMERIC_FIELDS = ("Amount", "UnitPrice", "Quantity")


def build_default_catalog() -> TransformCatalog:
    """Catalog with every bundled transform."""
    return TransformCatalog([
        (("Period",), TransformDef("MMM.YYYY", "MMM.YYYY (e.g. 001.2025)", period_from_3digit,
                                   "Converts 001.2025 to 2025-01")),
        (("Period",), TransformDef("YYYY-MM", "YYYY-MM (ISO)", period_identity,
                                   "Standard ISO format")),
        (("Period",), TransformDef("MM.YYYY", "MM.YYYY / MM-YYYY (e.g. 01.2025)", period_from_month_year,
                                   "Converts 01.2025 or 01-2025 to 2025-01")),
        (("PostingDate",), TransformDef("DD.MM.YYYY", "DD.MM.YYYY", date_from_german,
                                        "German date format")),
        (("PostingDate",), TransformDef("MM/DD/YYYY", "MM/DD/YYYY", date_from_us,
                                        "US date format")),
        (("PostingDate",), TransformDef("ExcelSerial", "Excel Serial Number", date_from_excel_serial,
                                        "Number like 45321")),
        (TEXT_FIELDS, TransformDef("Trim", "Trim Whitespace", text_trim,
                                   "Removes leading and trailing spaces")),
        (TEXT_FIELDS, TransformDef("UpperCase", "UPPER CASE", text_upper)),
        (TEXT_FIELDS, TransformDef("LowerCase", "lower case", text_lower)),
        (TEXT_FIELDS, TransformDef("TitleCase", "Title Case", text_title,
                                   "Capitalize First Letters")),
        (NUMERIC_FIELDS, TransformDef("ParseDeCurrency", "German Currency (1.234,56)", number_from_german,
                                      "Parses 1.234,56 to 1234.56")),
        (NUMERIC_FIELDS, TransformDef("CleanNumber", "Clean Number (Remove Symbols)", number_clean,
                                      "Keep only digits, dots and minus")),
        (("Currency",), TransformDef("CurrencyCode", "Currency Code (EUR)", currency_code,
                                     "Maps symbols like € to ISO codes")),
        (("is_favorite",), TransformDef("YesNoFlag", "Yes/No -> 1/0", yes_no_flag)),
    ])


DEFAULT_CATALOG = build_default_catalog()
