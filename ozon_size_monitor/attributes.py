"""Selection of size-related declared attributes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class SelectedAttribute:
    name: str
    attribute_id: Optional[int]
    values: Tuple[str, ...]


def _value_text(entry: Any) -> Optional[str]:
    # value, then text, then dictionary_value_id
    if not isinstance(entry, Mapping):
        return None
    for key in ("value", "text", "dictionary_value_id"):
        v = entry.get(key)
        if v is not None:
            return str(v) if v not in ("", 0) else None
    return None


def select_size_attributes(
    attributes_item: Optional[Mapping[str, Any]],
    patterns: Iterable[str],
) -> List[SelectedAttribute]:
    """Return the attributes whose name contains any of the patterns.

    Matching is case-insensitive.  Source order is kept, and so is the order
    of values inside each attribute.
    """
    pats = [p.lower() for p in patterns if p]
    out: List[SelectedAttribute] = []
    for attr in (attributes_item or {}).get("attributes") or []:
        if not isinstance(attr, Mapping):
            continue
        name = str(attr.get("name") or "")
        lowered = name.lower()
        if not any(p in lowered for p in pats):
            continue
        values = tuple(
            v for v in (_value_text(e) for e in attr.get("values") or []) if v
        )
        out.append(SelectedAttribute(name=name, attribute_id=attr.get("attribute_id"), values=values))
    return out


def describe(attrs: Iterable[SelectedAttribute]) -> str:
    return "; ".join(f"{a.name}: {', '.join(a.values)}" for a in attrs)


__all__ = ["SelectedAttribute", "select_size_attributes", "describe"]
