from ozon_size_monitor.attributes import SelectedAttribute
from ozon_size_monitor.dimensions import CanonicalDimensions
from ozon_size_monitor.fingerprint import (attribute_fingerprint,
                                           dimension_fingerprint)


def test_equal_dimensions_hash_equal() -> None:
    a = CanonicalDimensions(100.0, 50.0, 20.0, 300.0)
    b = CanonicalDimensions(100, 50, 20, 300)

    assert dimension_fingerprint(a) == dimension_fingerprint(b)
    assert len(dimension_fingerprint(a)) == 64


def test_any_field_change_changes_hash() -> None:
    base = CanonicalDimensions(100, 50, 20, 300)
    variants = [
        CanonicalDimensions(120, 50, 20, 300),
        CanonicalDimensions(100, 50, 20, None),
        CanonicalDimensions(50, 100, 20, 300),
    ]

    hashes = {dimension_fingerprint(v) for v in variants}

    assert dimension_fingerprint(base) not in hashes
    assert len(hashes) == len(variants)


def test_null_is_not_zero() -> None:
    assert dimension_fingerprint(CanonicalDimensions()) != dimension_fingerprint(CanonicalDimensions(0, 0, 0, 0))


def test_attribute_value_order_does_not_matter() -> None:
    a = [SelectedAttribute("Размер", 4295, ("46", "48", "50"))]
    b = [SelectedAttribute("Размер", 4295, ("50", "46", "48"))]

    assert attribute_fingerprint(a) == attribute_fingerprint(b)


def test_attribute_value_set_change_changes_hash() -> None:
    a = [SelectedAttribute("Размер", 4295, ("46", "48"))]
    b = [SelectedAttribute("Размер", 4295, ("46", "52"))]

    assert attribute_fingerprint(a) != attribute_fingerprint(b)


def test_empty_selection_hashes_consistently() -> None:
    assert attribute_fingerprint([]) == attribute_fingerprint(iter([]))
