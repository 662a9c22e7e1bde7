"""
intake_kernel.domain -- pure value types shared by every pipeline stage.

ZERO I/O (SystemClock is the one sanctioned time boundary).
"""

from intake_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from intake_kernel.domain.dtos import ValidationError, freeze_row, to_json_safe
from intake_kernel.domain.numbers import (
    coerce_int,
    parse_decimal,
    parse_decimal_de,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "ValidationError",
    "coerce_int",
    "freeze_row",
    "parse_decimal",
    "parse_decimal_de",
    "to_json_safe",
]
