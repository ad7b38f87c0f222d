"""Client utilities for the Nominatim (OpenStreetMap) geocoding API."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

import requests

from quiltshops.core.config import Settings, get_settings

logger = logging.getLogger(__name__)
_SESSION = requests.Session()


class GeocodeError(RuntimeError):
    """Raised when an address cannot be turned into coordinates."""


class GeocodeRateLimited(GeocodeError):
    """Raised when Nominatim answers with HTTP 429."""


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


class RateLimiter:
    """Blocks callers so requests are at least ``min_interval`` seconds apart."""

    def __init__(self, min_interval: float = 1.0) -> None:
        self.min_interval = min_interval
        self._lock = threading.Lock()
        self._last_call: Optional[float] = None

    def wait(self) -> None:
        with self._lock:
            now = time.monotonic()
            if self._last_call is not None:
                remaining = self.min_interval - (now - self._last_call)
                if remaining > 0:
                    time.sleep(remaining)
                    now = time.monotonic()
            self._last_call = now


_LIMITER = RateLimiter()


def geocode_address(address: str, *, settings: Optional[Settings] = None) -> Coordinates:
    settings = settings or get_settings()
    _LIMITER.min_interval = settings.geocode_min_interval
    _LIMITER.wait()

    params = {"format": "json", "q": address, "limit": 1}
    headers = {"User-Agent": settings.geocoder_user_agent}
    try:
        response = _SESSION.get(
            settings.geocoder_url,
            params=params,
            headers=headers,
            timeout=settings.geocode_timeout,
        )
    except requests.RequestException as exc:
        raise GeocodeError(f"HTTP request failed: {exc}") from exc

    if response.status_code == 429:
        raise GeocodeRateLimited("rate limited by Nominatim (HTTP 429)")
    if response.status_code != 200:
        raise GeocodeError(f"HTTP error: {response.status_code} {response.reason}")

    try:
        results = response.json()
    except ValueError as exc:
        raise GeocodeError(f"failed to parse JSON: {exc}") from exc

    if not isinstance(results, list) or not results:
        raise GeocodeError("no results found for address")

    first = results[0]
    try:
        latitude = float(first["lat"])
        longitude = float(first["lon"])
    except (KeyError, TypeError, ValueError) as exc:
        raise GeocodeError(f"failed to parse coordinates: {exc}") from exc

    logger.debug("Geocoded %s -> %.5f, %.5f", address, latitude, longitude)
    return Coordinates(latitude=latitude, longitude=longitude)
