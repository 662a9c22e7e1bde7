"""
Numeric parsing for spreadsheet-sourced values.

Decimal convention (used by the validation gate):
    - whitespace (incl. non-breaking / thin spaces) and a leading "+" are removed;
    - if both "." and "," occur, the right-most one is the decimal separator
      and the other one is a thousands separator
      ("1.234,56" -> 1234.56, "1,234.56" -> 1234.56);
    - if only "," occurs it is the decimal separator ("12,5" -> 12.5);
      more than one "," without a "." is rejected;
    - if only "." occurs it is the decimal separator ("1.234" -> 1.234).

parse_decimal_de is the strict German reading used by the ParseDeCurrency
transform: every "." is a thousands separator and "," is the decimal mark.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any

_WHITESPACE = re.compile(r"\s+")
_PLAIN_NUMBER = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


def _from_native(value: Any) -> Decimal | None:
    """Decimal for native numbers, None for anything else. bool is not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else None
    return None


def _finish(text: str) -> Decimal | None:
    if not _PLAIN_NUMBER.fullmatch(text):
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def normalize_numeric_text(value: str) -> str:
    """Strip whitespace and a leading plus sign."""
    text = _WHITESPACE.sub("", value)
    if text.startswith("+"):
        text = text[1:]
    return text


def parse_decimal(value: Any) -> Decimal | None:
    """Parse a number under the module's decimal convention. None if not numeric."""
    native = _from_native(value)
    if native is not None or not isinstance(value, str):
        return native

    text = normalize_numeric_text(value)
    if not text:
        return None
    has_comma = "," in text
    has_dot = "." in text
    if has_comma and has_dot:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif has_comma:
        if text.count(",") > 1:
            return None
        text = text.replace(",", ".")
    return _finish(text)


def parse_decimal_de(value: Any) -> Decimal | None:
    """German reading: drop every ".", then "," becomes the decimal point."""
    native = _from_native(value)
    if native is not None or not isinstance(value, str):
        return native
    text = normalize_numeric_text(value).replace(".", "").replace(",", ".", 1)
    if not text:
        return None
    return _finish(text)


def coerce_int(value: Any) -> int | None:
    """Integer for integral numbers or numeric strings ("3", "3.0", 3.0); else None."""
    number = parse_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)
