from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Optional, Protocol

from ..core.constants import GEOLOCATION_INNER_TIMEOUT_SECONDS, GEOLOCATION_TIMEOUT_SECONDS, LOCATION_UNAVAILABLE

logger = logging.getLogger(__name__)

NOTICE_PERMISSION_DENIED = "Location permission denied. Entry saved without location."
NOTICE_LOCATION_FAILED = "Could not verify location. Entry saved locally."

# Shared by every clock action; a stuck provider only ever holds one worker.
_LOCATION_EXECUTOR = ThreadPoolExecutor(max_workers=2, thread_name_prefix="location")


class LocationPermissionError(Exception):
    """The device refused access to its position."""


class LocationProvider(Protocol):
    def current_position(self, *, timeout_seconds: float) -> tuple[float, float]:
        """Return ``(latitude, longitude)``; may block up to ``timeout_seconds``."""
        raise NotImplementedError

    def address_for(self, latitude: float, longitude: float) -> Optional[str]:
        raise NotImplementedError


@dataclass(frozen=True)
class LocationResult:
    location: str
    notice: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.location != LOCATION_UNAVAILABLE


def format_coordinates(latitude: float, longitude: float) -> str:
    return f"Lat: {latitude:.4f}, Long: {longitude:.4f}"


def acquire_location(
    provider: Optional[LocationProvider],
    *,
    timeout_seconds: float = GEOLOCATION_TIMEOUT_SECONDS,
) -> LocationResult:
    """Ask the provider for a position, but never wait longer than ``timeout_seconds``.

    Permission denial, provider errors and timeouts all degrade to
    "Location unavailable" with a notice; the clock action goes ahead.
    """

    if provider is None:
        return LocationResult(LOCATION_UNAVAILABLE, NOTICE_LOCATION_FAILED)

    future = _LOCATION_EXECUTOR.submit(
        provider.current_position, timeout_seconds=GEOLOCATION_INNER_TIMEOUT_SECONDS
    )
    try:
        latitude, longitude = future.result(timeout=timeout_seconds)
    except LocationPermissionError:
        logger.warning("Location permission denied")
        return LocationResult(LOCATION_UNAVAILABLE, NOTICE_PERMISSION_DENIED)
    except FutureTimeout:
        future.cancel()
        logger.warning("Location lookup timed out after %.1fs", timeout_seconds)
        return LocationResult(LOCATION_UNAVAILABLE, NOTICE_LOCATION_FAILED)
    except Exception as e:
        logger.warning("Location lookup failed: %s", e)
        return LocationResult(LOCATION_UNAVAILABLE, NOTICE_LOCATION_FAILED)

    try:
        address = provider.address_for(latitude, longitude)
    except Exception as e:
        logger.info("Reverse geocoding failed, using coordinates: %s", e)
        address = None
    return LocationResult(address or format_coordinates(latitude, longitude))
