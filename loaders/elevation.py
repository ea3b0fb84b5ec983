"""
Elevation Loader - Fetch terrain elevation from Open-Meteo.

Uses the Open-Meteo Elevation API (Copernicus DEM GLO-90, global coverage).
"""

import math
import threading
from dataclasses import dataclass
from typing import Dict, Optional
import logging

import requests
from tenacity import retry, retry_if_exception_type, wait_exponential

from loaders.throttle import RateLimiter, SingleFlight, stop_within_budget

log = logging.getLogger(__name__)


@dataclass
class ElevationResult:
    """Elevation data for a point."""
    latitude: float
    longitude: float
    elevation_meters: float
    data_source: str
    resolution_meters: float


class ElevationLoader:
    """
    Fetch elevation data from Open-Meteo.

    API Documentation:
    https://open-meteo.com/en/docs/elevation-api
    """

    ELEVATION_URL = "https://api.open-meteo.com/v1/elevation"
    DATA_SOURCE = "Copernicus DEM GLO-90 (Open-Meteo)"

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 10.0,
                 min_interval: float = 0.1, retry_budget: Optional[float] = None):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.retry_budget = retry_budget
        self._flight = SingleFlight()
        self._limiter = RateLimiter(min_interval)
        self._cache: Dict[str, ElevationResult] = {}
        self._cache_lock = threading.Lock()

    @staticmethod
    def _make_key(lat: float, lon: float) -> str:
        # Round to 5 decimal places (~1m precision)
        return f"{lat:.5f},{lon:.5f}"

    @retry(
        retry=retry_if_exception_type(requests.RequestException),
        stop=stop_within_budget,
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    def _make_request(self, lat: float, lon: float) -> Dict:
        self._limiter.wait()
        response = self.session.get(
            self.ELEVATION_URL,
            params={"latitude": f"{lat:.5f}", "longitude": f"{lon:.5f}"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def get_elevation(self, lat: float, lon: float) -> Optional[ElevationResult]:
        """
        Get elevation for a single point.

        Returns:
            ElevationResult, or None when the service has no value for the point.

        Raises:
            requests.RequestException after retries are exhausted.
        """
        key = self._make_key(lat, lon)
        with self._cache_lock:
            cached = self._cache.get(key)
        if cached:
            return cached
        return self._flight.do(key, self._fetch, key, lat, lon)

    def _fetch(self, key: str, lat: float, lon: float) -> Optional[ElevationResult]:
        data = self._make_request(lat, lon)
        values = data.get("elevation") or []
        elevation = _parse_elevation(values[0] if values else None)
        if elevation is None:
            log.debug(f"No elevation data for ({lat}, {lon})")
            return None

        result = ElevationResult(
            latitude=lat,
            longitude=lon,
            elevation_meters=elevation,
            data_source=self.DATA_SOURCE,
            resolution_meters=90.0,
        )
        with self._cache_lock:
            self._cache[key] = result
        log.debug(f"Elevation at ({lat:.4f}, {lon:.4f}): {elevation:.1f}m")
        return result


def _parse_elevation(value) -> Optional[float]:
    try:
        elevation = float(value)
    except (TypeError, ValueError):
        return None
    # Open-Meteo returns NaN for points without DEM coverage
    if math.isnan(elevation) or elevation < -1000:
        return None
    return elevation
