"""
Numeric canonicalization for wire strings and scaled integers.

Every decimal that ends up inside a signed action goes through here so that
one numeric value always has exactly one byte encoding.
"""
import time
from decimal import Decimal, DecimalException, ROUND_HALF_UP, InvalidOperation, localcontext
from typing import Union

from hlsign.errors import PrecisionError

Number = Union[Decimal, str, int, float]

# Decimal contexts are per thread; every operation below runs in its own
DECIMAL_PRECISION = 40

WIRE_DECIMALS = 8
HASH_INT_POWER = 8
USD_INT_POWER = 6

_WIRE_TOLERANCE = Decimal("1e-12")
_INT_TOLERANCE = Decimal("1e-3")


def to_decimal(x: Number) -> Decimal:
    """Exact Decimal for `x`; floats go through their shortest repr."""
    if isinstance(x, bool):
        raise PrecisionError(f"Boolean is not a number: {x!r}")
    if isinstance(x, Decimal):
        d = x
    elif isinstance(x, float):
        d = Decimal(str(x))
    else:
        try:
            d = Decimal(str(x).strip())
        except InvalidOperation:
            raise PrecisionError(f"Not a decimal: {x!r}", {"value": str(x)})
    if not d.is_finite():
        raise PrecisionError(f"Non-finite value: {x!r}", {"value": str(x)})
    return d


def decimal_to_wire(x: Number, max_decimals: int = WIRE_DECIMALS) -> str:
    """
    Canonical wire string for `x` with at most `max_decimals` fractional digits.

    No trailing zeros, no trailing point, no exponent, "-0" becomes "0".
    Raises PrecisionError when rounding would move the value by 1e-12 or more,
    or when the value has more digits than DECIMAL_PRECISION can carry.
    """
    d = to_decimal(x)
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        try:
            rounded = d.quantize(Decimal(10) ** -max_decimals, rounding=ROUND_HALF_UP)
            drift = abs(rounded - d)
        except DecimalException:
            raise PrecisionError(
                f"decimal_to_wire out of range: {x}",
                {"value": str(x), "max_decimals": max_decimals},
            )
    if drift >= _WIRE_TOLERANCE:
        raise PrecisionError(
            f"decimal_to_wire causes rounding: {x}",
            {"value": str(x), "max_decimals": max_decimals},
        )
    s = format(rounded, "f")
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    if s in ("-0", ""):
        s = "0"
    return s


def decimal_to_scaled_int(x: Number, power: int) -> int:
    """`x * 10**power` as an int; PrecisionError if that is off an integer by 1e-3 or more."""
    d = to_decimal(x)
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        try:
            scaled = d.scaleb(power)
            rounded = scaled.to_integral_value(rounding=ROUND_HALF_UP)
            drift = abs(rounded - scaled)
        except DecimalException:
            raise PrecisionError(
                f"decimal_to_scaled_int out of range: {x}",
                {"value": str(x), "power": power},
            )
    if drift >= _INT_TOLERANCE:
        raise PrecisionError(
            f"decimal_to_scaled_int causes rounding: {x}",
            {"value": str(x), "power": power},
        )
    return int(rounded)


def decimal_to_hash_int(x: Number) -> int:
    return decimal_to_scaled_int(x, HASH_INT_POWER)


def decimal_to_usd_int(x: Number) -> int:
    return decimal_to_scaled_int(x, USD_INT_POWER)


def get_timestamp_ms() -> int:
    """Default nonce source."""
    return int(time.time() * 1000)
