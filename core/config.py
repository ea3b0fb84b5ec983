"""
Engine configuration.

Defaults live on the dataclass; `EngineSettings.from_env()` overrides them
from REFLOURISH_* environment variables.
"""

import logging
import math
import os
from dataclasses import dataclass, replace
from typing import Optional

from core.errors import InvalidInput

log = logging.getLogger(__name__)

# Some deployments sample 9 points instead of 4.
DEFAULT_GRID_SIZE = 4
DEFAULT_MAX_GRID_SIZE = 100
DEFAULT_MAX_CONCURRENCY = 8
DEFAULT_PROVIDER_TIMEOUT = 10.0  # seconds per RealDataSource call

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class EngineSettings:
    """Runtime configuration for an analysis engine."""
    grid_size: int = DEFAULT_GRID_SIZE
    max_grid_size: int = DEFAULT_MAX_GRID_SIZE
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    provider_timeout: float = DEFAULT_PROVIDER_TIMEOUT
    use_real_data: bool = False
    history_db_path: str = "analysis_history.db"
    osm_cache_path: str = "osm_cache.db"
    osm_radius_m: int = 500

    def __post_init__(self):
        if self.max_grid_size < 1:
            raise InvalidInput(f"max_grid_size must be >= 1, got {self.max_grid_size}")
        validate_grid_size(self.grid_size, self.max_grid_size)
        if self.max_concurrency < 1:
            raise InvalidInput(f"max_concurrency must be >= 1, got {self.max_concurrency}")
        if not self.provider_timeout > 0:
            raise InvalidInput(f"provider_timeout must be > 0, got {self.provider_timeout}")
        if self.osm_radius_m <= 0:
            raise InvalidInput(f"osm_radius_m must be > 0, got {self.osm_radius_m}")

    @classmethod
    def from_env(cls, base: Optional["EngineSettings"] = None) -> "EngineSettings":
        """Read overrides from the environment on top of `base` (or defaults)."""
        settings = base or cls()
        overrides = {}

        grid_size = os.getenv("REFLOURISH_GRID_SIZE")
        if grid_size:
            overrides["grid_size"] = _parse(int, "REFLOURISH_GRID_SIZE", grid_size)

        max_grid = os.getenv("REFLOURISH_MAX_GRID_SIZE")
        if max_grid:
            overrides["max_grid_size"] = _parse(int, "REFLOURISH_MAX_GRID_SIZE", max_grid)

        concurrency = os.getenv("REFLOURISH_MAX_CONCURRENCY")
        if concurrency:
            overrides["max_concurrency"] = _parse(int, "REFLOURISH_MAX_CONCURRENCY", concurrency)

        timeout = os.getenv("REFLOURISH_PROVIDER_TIMEOUT")
        if timeout:
            overrides["provider_timeout"] = _parse(float, "REFLOURISH_PROVIDER_TIMEOUT", timeout)

        real = os.getenv("REFLOURISH_USE_REAL_DATA")
        if real:
            overrides["use_real_data"] = real.strip().lower() in _TRUE_VALUES

        history_db = os.getenv("REFLOURISH_HISTORY_DB")
        if history_db:
            overrides["history_db_path"] = history_db

        osm_cache = os.getenv("REFLOURISH_OSM_CACHE")
        if osm_cache:
            overrides["osm_cache_path"] = osm_cache

        radius = os.getenv("REFLOURISH_OSM_RADIUS_M")
        if radius:
            overrides["osm_radius_m"] = _parse(int, "REFLOURISH_OSM_RADIUS_M", radius)

        if overrides:
            log.debug(f"Settings overridden from environment: {sorted(overrides)}")
        return replace(settings, **overrides)


def validate_grid_size(n, max_size: Optional[int] = None) -> int:
    """
    Return sqrt(n) when n is a positive perfect square no larger than
    `max_size`, else raise InvalidInput.
    """
    if isinstance(n, bool) or not isinstance(n, int) or n < 1:
        raise InvalidInput(f"Grid size must be a positive perfect square, got {n!r}")
    side = math.isqrt(n)
    if side * side != n:
        raise InvalidInput(f"Grid size must be a positive perfect square, got {n}")
    if max_size is not None and n > max_size:
        raise InvalidInput(f"Grid size {n} exceeds the maximum of {max_size}")
    return side


def _parse(kind, name: str, raw: str):
    try:
        return kind(raw)
    except ValueError:
        raise InvalidInput(f"{name} has invalid value {raw!r}")
