"""Canonical dimensions and their extraction from seller API payloads.

The seller API reports package dimensions in several incompatible shapes:

* the attributes endpoint puts them on the item root with its own unit
  fields (length defaults to mm, weight to g);
* the bulk info endpoint may carry them as top-level fields, or inside a
  nested object called ``dimensions``, ``dimension`` or
  ``package_dimensions``.

Each shape is read into a named :class:`Candidate`.  Which candidate wins is
decided in exactly one place, :func:`resolve_dimensions`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .units import to_grams, to_millimeters

_DEPTH_KEYS = ("depth", "length", "long")
_NESTED_KEYS = ("dimensions", "dimension", "package_dimensions")

FIELD_LABELS = (
    ("depth_mm", "Depth", "mm"),
    ("width_mm", "Width", "mm"),
    ("height_mm", "Height", "mm"),
    ("weight_g", "Weight", "g"),
)


@dataclass(frozen=True)
class CanonicalDimensions:
    depth_mm: Optional[float] = None
    width_mm: Optional[float] = None
    height_mm: Optional[float] = None
    weight_g: Optional[float] = None

    def is_empty(self) -> bool:
        return all(v is None for v in self.as_dict().values())

    def as_dict(self) -> Dict[str, Optional[float]]:
        return asdict(self)

    def changes(self, new: "CanonicalDimensions") -> List[Tuple[str, Optional[float], Optional[float]]]:
        """Return (field, old, new) for every field that differs, in fixed order."""
        out = []
        old_d, new_d = self.as_dict(), new.as_dict()
        for field, _label, _unit in FIELD_LABELS:
            if old_d[field] != new_d[field]:
                out.append((field, old_d[field], new_d[field]))
        return out


@dataclass(frozen=True)
class Candidate:
    name: str
    dimensions: CanonicalDimensions


def _first_present(obj: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for k in keys:
        v = obj.get(k)
        if v is not None:
            return v
    return None


def _first_truthy(obj: Mapping[str, Any], keys: Sequence[str], default: Any = None) -> Any:
    for k in keys:
        v = obj.get(k)
        if v:
            return v
    return default


def _read_fields(obj: Mapping[str, Any]) -> CanonicalDimensions:
    """Read a bulk-info shaped object; every length field may name its own unit."""
    return CanonicalDimensions(
        depth_mm=to_millimeters(
            _first_present(obj, _DEPTH_KEYS),
            _first_truthy(obj, ("dimension_unit", "length_unit", "unit")),
        ),
        width_mm=to_millimeters(
            obj.get("width"),
            _first_truthy(obj, ("dimension_unit", "width_unit", "unit")),
        ),
        height_mm=to_millimeters(
            obj.get("height"),
            _first_truthy(obj, ("dimension_unit", "height_unit", "unit")),
        ),
        weight_g=to_grams(obj.get("weight"), obj.get("weight_unit")),
    )


def info_candidates(info: Optional[Mapping[str, Any]]) -> List[Candidate]:
    """Candidates from a bulk info record: direct fields first, then the nested object."""
    if not info:
        return []
    direct = {
        k: info.get(k)
        for k in ("depth", "width", "height", "dimension_unit", "weight", "weight_unit")
    }
    nested: Mapping[str, Any] = {}
    nested_name = "nested"
    for key in _NESTED_KEYS:
        obj = info.get(key)
        if obj and isinstance(obj, Mapping):
            nested, nested_name = obj, f"nested:{key}"
            break
    return [
        Candidate("direct", _read_fields(direct)),
        Candidate(nested_name, _read_fields(nested)),
    ]


def attribute_candidates(item: Optional[Mapping[str, Any]]) -> List[Candidate]:
    """Candidate read from the root of an attributes endpoint record."""
    if not item:
        return []
    length_unit = _first_truthy(item, ("dimension_unit", "length_unit", "unit"), "mm")
    weight_unit = item.get("weight_unit") or "g"
    dims = CanonicalDimensions(
        depth_mm=to_millimeters(_first_present(item, _DEPTH_KEYS), length_unit),
        width_mm=to_millimeters(item.get("width"), length_unit),
        height_mm=to_millimeters(item.get("height"), length_unit),
        weight_g=to_grams(item.get("weight"), weight_unit),
    )
    return [Candidate("attributes", dims)]


def first_populated(candidates: Sequence[Candidate]) -> Optional[Candidate]:
    for c in candidates:
        if not c.dimensions.is_empty():
            return c
    return None


def resolve_dimensions(
    info: Optional[Mapping[str, Any]],
    attributes_item: Optional[Mapping[str, Any]] = None,
) -> Tuple[CanonicalDimensions, Optional[str]]:
    """Pick the canonical dimensions for one offer.

    Priority, highest first:

    1. attributes endpoint root fields (only passed in attribute-aware modes);
    2. bulk info direct top-level fields;
    3. bulk info nested dimensions object.

    The first candidate with at least one non-null field wins outright; the
    candidates are never merged.  Returns the dimensions and the name of the
    winning candidate, or all-null dimensions and None.
    """
    chosen = first_populated(attribute_candidates(attributes_item) + info_candidates(info))
    if chosen is None:
        return CanonicalDimensions(), None
    return chosen.dimensions, chosen.name


__all__ = [
    "CanonicalDimensions",
    "Candidate",
    "FIELD_LABELS",
    "info_candidates",
    "attribute_candidates",
    "first_populated",
    "resolve_dimensions",
]
