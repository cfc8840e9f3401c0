from __future__ import annotations

import pytest

from booking import PassRequest, PassType, VehicleProfile
from booking.models import parse_preferred_day


@pytest.mark.parametrize(
    "value, day",
    [
        ("08/17", "17"),
        ("12/05", "05"),
        ("17", "17"),
        ("5", "5"),
        (" 08/17 ", "17"),
        ("2024-08-17", None),
        ("8/17", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_preferred_day(value, day):
    assert parse_preferred_day(value) == day


def test_pass_request_exposes_day():
    assert PassRequest(preferred_date="08/17").preferred_day == "17"
    assert PassRequest().preferred_day is None


@pytest.mark.parametrize("raw", ["all_day", "ALL-DAY", "all day", PassType.ALL_DAY])
def test_pass_type_parse(raw):
    assert PassType.parse(raw) is PassType.ALL_DAY


def test_pass_type_parse_rejects_unknown():
    with pytest.raises(ValueError):
        PassType.parse("weekend")


def test_pass_type_labels():
    assert "All Day Pass" in PassType.ALL_DAY.labels
    assert "Half-day Pass" in PassType.HALF_DAY.labels


def test_vehicle_search_terms():
    vehicle = VehicleProfile(license_plate="ABC123", make="Tesla", model="Y")

    assert vehicle.search_term() == "Y"
    assert vehicle.search_term(detailed=True) == "Tesla Y ABC123"
