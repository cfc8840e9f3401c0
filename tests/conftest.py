from __future__ import annotations

import pytest

from booking import BookingOptions, CheckpointPolicy, PassRequest, PassType, VehicleProfile

from .fakes import FakeBrowser


def fast_options(**overrides) -> BookingOptions:
    values = dict(
        phone_number="6045550123",
        action_delay_ms=0,
        click_retry_delay_ms=0,
        element_timeout_ms=0,
        popup_timeout_ms=0,
        settle_timeout_ms=0,
        poll_interval_ms=1,
        checkpoint=CheckpointPolicy(poll_interval_ms=1, timeout_ms=0),
    )
    values.update(overrides)
    return BookingOptions(**values)


@pytest.fixture
def browser() -> FakeBrowser:
    return FakeBrowser()


@pytest.fixture
def options() -> BookingOptions:
    return fast_options()


@pytest.fixture
def make_options():
    return fast_options


@pytest.fixture
def vehicle() -> VehicleProfile:
    return VehicleProfile(license_plate="ABC123", province="BC", color="BLACK", make="Tesla", model="Y")


@pytest.fixture
def request_all_day() -> PassRequest:
    return PassRequest(pass_type=PassType.ALL_DAY)
