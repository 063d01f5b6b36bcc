"""Fixed-point arithmetic over base-10 decimal strings.

Monetary amounts travel through the swap code as strings. These helpers do the
math with :class:`decimal.Decimal` in a wide local context so no float ever
touches an amount.
"""

from __future__ import annotations

import re
from decimal import ROUND_DOWN, Context, Decimal, InvalidOperation, localcontext

# Wide enough for 256-bit integers with 18 decimals on either side.
_CONTEXT = Context(prec=200, rounding=ROUND_DOWN)

DEFAULT_PRECISION = 16

# Plain base-10 only: no exponent, "+" prefix or digit separators
_DECIMAL_RE = re.compile(r"-?[0-9]+(\.[0-9]+)?")


def to_decimal(value: str) -> Decimal:
    """Parse a plain decimal string such as ``"-12.5"``.

    NaN, Infinity, exponents and underscore separators all raise
    :class:`InvalidOperation`.
    """

    if not isinstance(value, str):
        raise InvalidOperation(f"Expected a decimal string, got {type(value).__name__}")
    if not _DECIMAL_RE.fullmatch(value):
        raise InvalidOperation(f"Malformed amount: {value!r}")
    return Decimal(value)


def to_string(value: Decimal) -> str:
    """Render without exponent and without trailing fractional zeros."""

    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


def add(a: str, b: str) -> str:
    with localcontext(_CONTEXT):
        return to_string(to_decimal(a) + to_decimal(b))


def sub(a: str, b: str) -> str:
    with localcontext(_CONTEXT):
        return to_string(to_decimal(a) - to_decimal(b))


def mul(a: str, b: str) -> str:
    with localcontext(_CONTEXT):
        return to_string(to_decimal(a) * to_decimal(b))


def div(numerator: str, denominator: str, precision: int = DEFAULT_PRECISION) -> str:
    """Divide and truncate to ``precision`` fractional digits."""

    if precision < 0:
        raise ValueError("precision must be non-negative")
    with localcontext(_CONTEXT):
        quotient = to_decimal(numerator) / to_decimal(denominator)
        step = Decimal(1).scaleb(-precision)
        return to_string(quotient.quantize(step, rounding=ROUND_DOWN))


def truncate(value: str, precision: int = 0) -> str:
    """Drop fractional digits past ``precision`` (toward zero)."""

    with localcontext(_CONTEXT):
        step = Decimal(1).scaleb(-precision)
        return to_string(to_decimal(value).quantize(step, rounding=ROUND_DOWN))


def to_native_int(value: str) -> str:
    return truncate(value, 0)


def _compare(a: str, b: str) -> int:
    with localcontext(_CONTEXT):
        return int(to_decimal(a).compare(to_decimal(b)))


def eq(a: str, b: str) -> bool:
    return _compare(a, b) == 0


def gt(a: str, b: str) -> bool:
    return _compare(a, b) > 0


def lt(a: str, b: str) -> bool:
    return _compare(a, b) < 0


def gte(a: str, b: str) -> bool:
    return _compare(a, b) >= 0


def lte(a: str, b: str) -> bool:
    return _compare(a, b) <= 0


def is_integer_string(value: str) -> bool:
    """True for a non-negative base-10 integer such as ``"100000000"``."""

    return isinstance(value, str) and value.isdigit() and value.isascii()


__all__ = [
    "DEFAULT_PRECISION",
    "add",
    "sub",
    "mul",
    "div",
    "truncate",
    "to_native_int",
    "to_decimal",
    "to_string",
    "eq",
    "gt",
    "lt",
    "gte",
    "lte",
    "is_integer_string",
]
