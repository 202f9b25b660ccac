"""Length and weight normalisation to millimetres and grams."""

from __future__ import annotations

import math
from typing import Any, Optional

_LENGTH_FACTORS = {"mm": 1, "cm": 10, "m": 1000}
_WEIGHT_FACTORS = {"g": 1, "kg": 1000}

# Rounding keeps fingerprints stable across repeated conversions.
_LENGTH_DIGITS = 2
_WEIGHT_DIGITS = 1


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        x = float(value)
    except (TypeError, ValueError):
        return None
    return x if math.isfinite(x) else None


def _scale(value: Any, unit: Optional[str], factors: dict, digits: int) -> Optional[float]:
    x = _to_number(value)
    if x is None:
        return None
    factor = factors.get(str(unit or "").strip().lower(), 1)
    out = round(x * factor, digits)
    return out if math.isfinite(out) else None


def to_millimeters(value: Any, unit: Optional[str] = None) -> Optional[float]:
    """Convert a length to millimetres.

    Unknown or missing units are treated as millimetres.  Returns None for
    missing, unparseable or non-finite input, never zero.
    """
    return _scale(value, unit, _LENGTH_FACTORS, _LENGTH_DIGITS)


def to_grams(value: Any, unit: Optional[str] = None) -> Optional[float]:
    """Convert a weight to grams; unknown or missing units pass through."""
    return _scale(value, unit, _WEIGHT_FACTORS, _WEIGHT_DIGITS)


__all__ = ["to_millimeters", "to_grams"]
