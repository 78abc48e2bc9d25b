"""
Cell-level coercion shared by every dataset normalizer.

Spreadsheet cells arrive as str/int/float/bool/datetime/None. These helpers turn
them into the typed values the records carry. Numeric parsing accepts a leading
numeric prefix ("12.5 km" -> 12.5) because several workbooks annotate figures
inline; anything without a numeric prefix is treated as missing.
"""

from __future__ import annotations

import math
import re
from typing import Any, List, Optional, TypeVar

_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_MULTI_VALUE_DELIMS = re.compile(r"[;,/]+")

T = TypeVar("T")


def is_blank(value: Any) -> bool:
    """True for None and whitespace-only strings."""

    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def coerce_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """
    Parse a cell as float, returning ``default`` when absent or unparseable.

    The default is chosen per field by the caller: population and crop
    quantities pass ``0.0`` (missing contributes nothing to sums), index scores
    keep ``None`` (missing is not a zero score).
    """

    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
        return default if math.isnan(number) else number
    match = _FLOAT_PREFIX.match(str(value))
    if not match:
        return default
    return float(match.group(1))


def coerce_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Parse the integer part of a cell ("2015", 2015.0, "1999.7" -> 1999)."""

    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return default
        return int(value)
    match = _INT_PREFIX.match(str(value))
    if not match:
        return default
    return int(match.group(1))


def coerce_flag(value: Any) -> bool:
    """Checkbox-style cells: only "x", "X" or a real boolean True count as set."""

    return value is True or value in ("x", "X")


def coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def split_multi_value(value: Any) -> List[str]:
    """Split free text holding several entries ("Kenya; Tanzania/Uganda") into trimmed tokens."""

    if is_blank(value):
        return []
    tokens = _MULTI_VALUE_DELIMS.split(coerce_text(value))
    return [token.strip() for token in tokens if token.strip()]


def first_present(row: dict, headers: tuple, default: T = None) -> Any | T:
    """Return the first non-blank cell among ``headers`` (already resolved for the worksheet)."""

    for header in headers:
        value = row.get(header)
        if not is_blank(value):
            return value
    return default
