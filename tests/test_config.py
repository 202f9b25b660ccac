import pytest

from ozon_size_monitor import config
from ozon_size_monitor.config import TrackingMode


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("DIMENSIONS", TrackingMode.DIMENSIONS),
        ("attribute", TrackingMode.ATTRIBUTE),
        ("ATTRIBUTES", TrackingMode.ATTRIBUTE),
        (" both ", TrackingMode.BOTH),
        ("", TrackingMode.DIMENSIONS),
    ],
)
def test_tracking_mode_parse(raw, expected) -> None:
    assert TrackingMode.parse(raw) is expected


def test_tracking_mode_parse_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        TrackingMode.parse("sizes")


def test_tracking_mode_flags() -> None:
    assert TrackingMode.DIMENSIONS.tracks_dimensions and not TrackingMode.DIMENSIONS.tracks_attributes
    assert TrackingMode.ATTRIBUTE.tracks_attributes and not TrackingMode.ATTRIBUTE.tracks_dimensions
    assert TrackingMode.BOTH.tracks_dimensions and TrackingMode.BOTH.tracks_attributes


@pytest.mark.parametrize("raw, expected", [("1", True), ("Yes", True), ("on", True), ("0", False), ("off", False)])
def test_parse_bool(raw, expected) -> None:
    assert config._parse_bool(raw, not expected) is expected


def test_parse_bool_falls_back_to_default() -> None:
    assert config._parse_bool("maybe", True) is True
    assert config._parse_bool(None, False) is False


def test_list_parsing(monkeypatch) -> None:
    monkeypatch.setenv("SIZE_MONITOR_LIST", " A-1, ,B-2 ")

    assert config._get_list("SIZE_MONITOR_LIST") == ["A-1", "B-2"]


def test_validate_requires_credentials(monkeypatch) -> None:
    monkeypatch.setattr(config, "OZON_CLIENT_ID", "")

    with pytest.raises(RuntimeError, match="OZON_CLIENT_ID"):
        config.validate()
