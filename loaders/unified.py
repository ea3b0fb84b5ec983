"""
Unified Data Source - Combines the open-data loaders into one RealDataSource.

Fetches:
- Vegetation index proxy from the Open-Meteo climate archive
- Land-cover density and habitat heterogeneity from OpenStreetMap
- One year of daily precipitation from the Open-Meteo archive
- Elevation from the Open-Meteo elevation API

Methods are blocking and may raise; the factor providers run them in
worker threads under a timeout and fall back on any failure. A method
returning None means the source has no data for the point.
"""

import logging
from datetime import date
from typing import Callable, List, Optional

import requests

from core.config import EngineSettings
from loaders.elevation import ElevationLoader
from loaders.osm import OSMLoader
from loaders.weather import WeatherLoader

log = logging.getLogger(__name__)


class OpenDataSource:
    """
    RealDataSource backed by free open-data services.

    Usage:
        source = OpenDataSource.from_settings(EngineSettings(use_real_data=True))
        ndvi = source.get_ndvi(40.71, -74.01)
    """

    def __init__(
        self,
        elevation: ElevationLoader,
        weather: WeatherLoader,
        osm: OSMLoader,
        osm_radius_m: int = 500,
    ):
        self.elevation = elevation
        self.weather = weather
        self.osm = osm
        self.osm_radius_m = osm_radius_m

    @classmethod
    def from_settings(
        cls,
        settings: EngineSettings,
        session: Optional[requests.Session] = None,
        today: Callable[[], date] = date.today,
    ) -> "OpenDataSource":
        """
        Build the loaders around one shared HTTP session.

        Each request gets half of `provider_timeout` and retries stop once
        another attempt could not finish inside it.
        """
        session = session or requests.Session()
        budget = settings.provider_timeout
        timeout = budget / 2
        return cls(
            elevation=ElevationLoader(session=session, timeout=timeout, retry_budget=budget),
            weather=WeatherLoader(session=session, timeout=timeout, today=today, retry_budget=budget),
            osm=OSMLoader(cache_path=settings.osm_cache_path, timeout=int(max(1, timeout)),
                          session=session, retry_budget=budget),
            osm_radius_m=settings.osm_radius_m,
        )

    def get_ndvi(self, lat: float, lng: float) -> Optional[float]:
        return self.weather.get_vegetation_index(lat, lng)

    def get_land_cover(self, lat: float, lng: float) -> Optional[float]:
        cover = self.osm.fetch_land_cover(lat, lng, self.osm_radius_m)
        return cover.land_cover_density if cover else None

    def get_historical_precipitation(self, lat: float, lng: float) -> List[float]:
        return self.weather.get_daily_precipitation(lat, lng)

    def get_habitat_heterogeneity(self, lat: float, lng: float) -> Optional[float]:
        cover = self.osm.fetch_land_cover(lat, lng, self.osm_radius_m)
        return cover.habitat_heterogeneity if cover else None

    def get_elevation(self, lat: float, lng: float) -> Optional[float]:
        result = self.elevation.get_elevation(lat, lng)
        return result.elevation_meters if result else None
