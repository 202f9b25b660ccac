import math

import pytest

from ozon_size_monitor.units import to_grams, to_millimeters


@pytest.mark.parametrize(
    ("value", "unit", "expected"),
    [
        (1, "cm", 10),
        (1, "m", 1000),
        (1, "mm", 1),
        (25, "CM", 250),
        ("12.5", "cm", 125),
        (" 3 ", "m", 3000),
        (7, None, 7),
        (7, "", 7),
        (7, "inch", 7),
    ],
)
def test_to_millimeters_scales_by_declared_factor(value, unit, expected) -> None:
    assert to_millimeters(value, unit) == expected


@pytest.mark.parametrize(
    ("value", "unit", "expected"),
    [
        (1, "kg", 1000),
        (0.25, "KG", 250),
        (300, "g", 300),
        (300, None, 300),
        (300, "lb", 300),
        ("1.5", "kg", 1500),
    ],
)
def test_to_grams_scales_by_declared_factor(value, unit, expected) -> None:
    assert to_grams(value, unit) == expected


@pytest.mark.parametrize("value", [None, "", "   ", "abc", "1,5", float("nan"), float("inf"), "inf", True])
def test_missing_or_unparseable_values_are_null_not_zero(value) -> None:
    assert to_millimeters(value, "cm") is None
    assert to_grams(value, "kg") is None


def test_zero_is_a_real_value() -> None:
    assert to_millimeters(0, "cm") == 0
    assert to_grams("0", "g") == 0


def test_rounding_stabilises_float_noise() -> None:
    assert to_millimeters(0.1 + 0.2, "cm") == 3.0
    assert to_millimeters(1.23456, "mm") == 1.23
    assert to_grams(1.26, "g") == 1.3


def test_overflow_maps_to_null() -> None:
    assert to_millimeters(1e308, "m") is None
    assert not math.isnan(to_grams(1e300, "g"))


def test_scaling_is_monotonic() -> None:
    values = [0.5, 1, 2, 10.25, 99]
    for unit in ("mm", "cm", "m"):
        out = [to_millimeters(v, unit) for v in values]
        assert out == sorted(out)
