"""Content hashes used as cheap equality tests for stored baselines.

Hashes are compared, never trusted as a security boundary.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Iterable, Optional

from .attributes import SelectedAttribute
from .dimensions import CanonicalDimensions


def _num(v: Optional[float]) -> Optional[float]:
    # 100 and 100.0 must serialise identically
    return None if v is None else float(v)


def _digest(payload: Any) -> str:
    raw = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def dimension_fingerprint(dims: CanonicalDimensions) -> str:
    return _digest(
        {
            "d": _num(dims.depth_mm),
            "w": _num(dims.width_mm),
            "h": _num(dims.height_mm),
            "wg": _num(dims.weight_g),
        }
    )


def attribute_fingerprint(attrs: Iterable[SelectedAttribute]) -> str:
    """Hash selected attributes in match order, values sorted per attribute."""
    return _digest(
        [{"n": a.name, "id": a.attribute_id, "v": sorted(a.values)} for a in attrs]
    )


__all__ = ["dimension_fingerprint", "attribute_fingerprint"]
