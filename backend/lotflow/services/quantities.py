"""
Quantity and key normalization helpers

Firestore documents are edited from several screens and imports, so
quantity fields arrive as ints, floats, numeric strings, blanks or junk.
Everything that reads a quantity goes through these helpers.
"""
import math
import re
import secrets
import string
import time
from typing import Any, Mapping, Optional

_LEADING_INT = re.compile(r"^[+-]?\d+")
_LEADING_FLOAT = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_ID_ALPHABET = string.digits + string.ascii_lowercase

SCALE = 10000


def normalize_quantity(value: Any) -> int:
    """
    Coerce a stored quantity into a non-negative integer.

    Numbers are floored and clamped at zero (NaN/inf -> 0). Strings are
    trimmed and parsed as base-10 integers using their leading digits, so
    "12 pcs" is 12 and "abc" is 0. Any other type is 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return 0
        return max(0, math.floor(value))
    if isinstance(value, str):
        match = _LEADING_INT.match(value.strip())
        if not match:
            return 0
        return max(0, int(match.group(0)))
    return 0


def normalize_signed_quantity(value: Any) -> Optional[float]:
    """
    Parse a signed floating point quantity.

    Returns None when the value is absent or not a finite number, so
    callers can tell "no value" apart from an explicit zero.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_FLOAT.match(value.strip())
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def round_currency(value: Any) -> float:
    """
    Round half-up to 4 decimal places; non-finite input becomes 0.

    Scales by 10000, rounds ties toward +inf, then unscales, so -0.00005
    rounds to 0 and the binary value of the scaled float decides ties.
    """
    number = normalize_signed_quantity(value)
    if number is None:
        return 0.0
    scaled = number * SCALE
    if not math.isfinite(scaled):
        # Too large to carry a fractional part
        return number
    rounded = math.floor(scaled + 0.5) / SCALE
    # + 0.0 turns -0.0 into 0.0
    return rounded + 0.0


def build_variation_key(variation: Optional[Mapping[str, Any]], index: int = 0) -> str:
    """
    Stable identity for a lot variation.

    Priority: explicit variationKey, then variationId, then id (both as
    ``id::<id>``), then ``label::<lowercased label>::<index>``, then
    ``index::<index>``. `index` must be the position in the owning list.
    """
    if not variation:
        return f"index::{index}"
    explicit_key = variation.get("variationKey")
    if explicit_key:
        return str(explicit_key)
    if variation.get("variationId"):
        return f"id::{variation['variationId']}"
    if variation.get("id"):
        return f"id::{variation['id']}"
    label = variation.get("label")
    label = label.strip().lower() if isinstance(label, str) else ""
    if label:
        return f"label::{label}::{index}"
    return f"index::{index}"


def generate_id(prefix: str = "id") -> str:
    """Document id in the form ``<prefix>_<epoch ms>_<9 base-36 chars>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"
