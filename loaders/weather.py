"""
Weather Loader - Historical climate data from the Open-Meteo archive.

Provides:
- One year of daily precipitation for rainfall scoring
- A climate-derived vegetation index (NDVI proxy) from the last 90 days
"""

import logging
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional

import requests
from tenacity import retry, retry_if_exception_type, wait_exponential

from loaders.throttle import RateLimiter, stop_within_budget

log = logging.getLogger(__name__)

_HEADERS = {
    "User-Agent": "ReFlourish/1.0 (restoration suitability engine)",
    "Accept": "application/json",
}


class WeatherLoader:
    """
    Open-Meteo Historical Weather API client.

    The archive lags real time by a few days, so every window ends
    `archive_lag_days` before `today()`.

    API Documentation:
    https://open-meteo.com/en/docs/historical-weather-api
    """

    ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/archive"

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 20.0,
        today: Callable[[], date] = date.today,
        archive_lag_days: int = 5,
        min_interval: float = 0.1,
        retry_budget: Optional[float] = None,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.retry_budget = retry_budget
        self.today = today
        self.archive_lag_days = archive_lag_days
        self._limiter = RateLimiter(min_interval)

    def _window(self, days: int):
        end = self.today() - timedelta(days=self.archive_lag_days)
        start = end - timedelta(days=days - 1)
        return start.isoformat(), end.isoformat()

    @retry(
        retry=retry_if_exception_type(requests.RequestException),
        stop=stop_within_budget,
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    def _fetch_daily(self, lat: float, lon: float, days: int, variables: str) -> Dict[str, List]:
        start, end = self._window(days)
        params = {
            "latitude": lat,
            "longitude": lon,
            "start_date": start,
            "end_date": end,
            "daily": variables,
            "timezone": "auto",
        }
        self._limiter.wait()
        response = self.session.get(self.ARCHIVE_URL, params=params, headers=_HEADERS,
                                    timeout=self.timeout)
        response.raise_for_status()
        data = response.json() or {}
        return data.get("daily") or {}

    def get_daily_precipitation(self, lat: float, lon: float, days: int = 365) -> List[float]:
        """
        Daily precipitation sums (mm) for the last `days` archived days.

        Days the archive reports as null are dropped; an empty list means
        the archive has no data for this location.
        """
        daily = self._fetch_daily(lat, lon, days, "precipitation_sum")
        values = [float(v) for v in daily.get("precipitation_sum") or [] if v is not None]
        log.debug(f"Precipitation at ({lat:.4f}, {lon:.4f}): {len(values)} days")
        return values

    def get_vegetation_index(self, lat: float, lon: float, days: int = 90) -> Optional[float]:
        """
        Estimate a vegetation index in [0, 1] from recent climate.

        High precipitation with moderate temperature means lush vegetation:
        400 mm over 90 days saturates the precipitation term and 22°C is the
        optimal mean temperature.
        """
        daily = self._fetch_daily(lat, lon, days, "precipitation_sum,temperature_2m_mean")
        precip = [p for p in daily.get("precipitation_sum") or [] if p is not None]
        temps = [t for t in daily.get("temperature_2m_mean") or [] if t is not None]
        if not precip or not temps:
            log.debug(f"No climate data for ({lat}, {lon})")
            return None

        total_precip = sum(precip)
        avg_temp = sum(temps) / len(temps)

        precip_factor = min(1.0, total_precip / 400.0)
        temp_factor = max(0.0, 1.0 - abs(avg_temp - 22) / 30.0)
        return precip_factor * 0.7 + temp_factor * 0.3
