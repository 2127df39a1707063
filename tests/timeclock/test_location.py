import time

from src.onpoint_sync.onpoint_sync.core.constants import LOCATION_UNAVAILABLE
from src.onpoint_sync.onpoint_sync.timeclock.location import (
    NOTICE_LOCATION_FAILED,
    NOTICE_PERMISSION_DENIED,
    LocationPermissionError,
    acquire_location,
    format_coordinates,
)


class Provider:
    def __init__(self, *, position=(1.0, 2.0), address=None, error=None, delay=0.0, geocode_error=None):
        self.position = position
        self.address = address
        self.error = error
        self.delay = delay
        self.geocode_error = geocode_error

    def current_position(self, *, timeout_seconds):
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return self.position

    def address_for(self, latitude, longitude):
        if self.geocode_error:
            raise self.geocode_error
        return self.address


def test_address_is_preferred():
    result = acquire_location(Provider(address="12 Nguyen Trai"))
    assert result.location == "12 Nguyen Trai"
    assert result.available
    assert result.notice is None


def test_failed_reverse_geocode_falls_back_to_coordinates():
    result = acquire_location(Provider(position=(10.5, 106.25), geocode_error=RuntimeError("boom")))
    assert result.location == format_coordinates(10.5, 106.25) == "Lat: 10.5000, Long: 106.2500"


def test_permission_denied():
    result = acquire_location(Provider(error=LocationPermissionError()))
    assert result.location == LOCATION_UNAVAILABLE
    assert result.notice == NOTICE_PERMISSION_DENIED


def test_timeout_degrades_to_unavailable():
    started = time.monotonic()
    result = acquire_location(Provider(delay=1.0), timeout_seconds=0.1)

    assert time.monotonic() - started < 0.9
    assert not result.available
    assert result.notice == NOTICE_LOCATION_FAILED


def test_no_provider():
    assert acquire_location(None).location == LOCATION_UNAVAILABLE
