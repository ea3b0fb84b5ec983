"""
Open-data loaders backing the real factor provider.

Includes:
- Elevation (Open-Meteo / Copernicus DEM)
- Historical weather (Open-Meteo archive)
- Land cover (OpenStreetMap Overpass)
- Unified data source (combines all of the above)
"""

from loaders.elevation import ElevationLoader, ElevationResult
from loaders.weather import WeatherLoader
from loaders.osm import OSMLoader, LandCoverData
from loaders.unified import OpenDataSource

__all__ = [
    "ElevationLoader",
    "ElevationResult",
    "WeatherLoader",
    "OSMLoader",
    "LandCoverData",
    "OpenDataSource",
]
