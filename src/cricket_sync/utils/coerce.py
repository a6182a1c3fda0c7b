"""Centralized coercion utilities for loosely-typed feed values.

The feed sends numbers as strings, empty strings, dashes or nothing at
all. Parsing follows the feed's own conventions: a leading number is read
even when followed by junk (``"45*"`` -> 45), anything unparseable falls
back to the caller's default.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

# Common null/empty representations found in feed payloads
_NULLS = {"", "-", "—", "N/A", "NA", "null", "NULL", "None", "NONE", "--"}

_INT_PREFIX = re.compile(r"^[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)")


def _is_null(x: Any) -> bool:
    """Check if a value represents null/empty data."""
    if x is None:
        return True
    return str(x).strip() in _NULLS


def to_int_or_none(x: Any) -> Optional[int]:
    """Convert value to integer or None if null/invalid.

    - Empty/null values: None, "", "-", "N/A" -> None
    - Comma-separated numbers: "1,234" -> 1234
    - Float strings: "12.7" -> 12 (integer prefix)
    - Trailing junk: "45*" -> 45
    """
    if _is_null(x) or isinstance(x, bool):
        return None
    if isinstance(x, int):
        return x
    if isinstance(x, float):
        return int(x) if math.isfinite(x) else None

    s = str(x).replace(",", "").strip()
    match = _INT_PREFIX.match(s)
    if not match:
        return None
    return int(match.group(0))


def to_float_or_none(x: Any) -> Optional[float]:
    """Convert value to float or None if null/invalid.

    NaN and infinities count as invalid.
    """
    if _is_null(x) or isinstance(x, bool):
        return None
    if isinstance(x, (int, float)):
        result = float(x)
    else:
        s = str(x).replace(",", "").replace("%", "").strip()
        match = _FLOAT_PREFIX.match(s)
        if not match:
            return None
        result = float(match.group(0))
    return result if math.isfinite(result) else None


def to_int(x: Any, default: int = 0) -> int:
    """Integer with a fallback for missing or unparseable values."""
    value = to_int_or_none(x)
    return default if value is None else value


def to_float(x: Any, default: float = 0.0) -> float:
    """Float with a fallback for missing or unparseable values."""
    value = to_float_or_none(x)
    return default if value is None else value


def to_positive_float_or_none(x: Any) -> Optional[float]:
    """Float, with zero treated as "not reported" (strike rates, speeds)."""
    value = to_float_or_none(x)
    return value if value else None


def to_str_or_none(x: Any) -> Optional[str]:
    """Convert value to a stripped string or None if null/empty."""
    if _is_null(x):
        return None
    return str(x).strip()
