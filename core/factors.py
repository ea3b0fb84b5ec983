"""
Factor providers: the four environmental factors for a coordinate.

Two implementations share one interface:
- FallbackFactorProvider evaluates the deterministic formulas only
- RealFactorProvider derives factors from a RealDataSource and falls
  back to the formula, per factor, on any error, timeout or missing data

Callers always receive a number. Only cancellation propagates.
"""

import asyncio
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from core import fallback
from core.config import DEFAULT_MAX_CONCURRENCY, EngineSettings
from core.errors import ProviderDegraded
from core.events import EventHook, emit, log_event
from core.fallback import FALLBACK_SOURCE, clamp
from core.models import FACTOR_NAMES, FactorSet, SamplePoint

log = logging.getLogger(__name__)

REAL_SOURCES = {
    "vegetation": "open-meteo-climate-ndvi",
    "soil": "openstreetmap-landcover+open-meteo-elevation",
    "rainfall": "open-meteo-archive-precipitation",
    "biodiversity": "openstreetmap-habitat+open-meteo-elevation",
}

# Daily precipitation that saturates the rainfall factor
RAINFALL_CEILING_MM_PER_DAY = 6.0
SEASONAL_AMPLITUDE = 0.05

# Data source calls behind one point: vegetation 1, soil 2, rainfall 1, biodiversity 2
CALLS_PER_POINT = 6


@dataclass(frozen=True)
class FactorReading:
    """A factor value and the tag of the source that produced it."""
    value: float
    source: str

    @property
    def is_fallback(self) -> bool:
        return self.source == FALLBACK_SOURCE


class RealDataSource(Protocol):
    """External data capability. Methods block and may raise or return None."""

    def get_ndvi(self, lat: float, lng: float) -> Optional[float]: ...

    def get_land_cover(self, lat: float, lng: float) -> Optional[float]: ...

    def get_historical_precipitation(self, lat: float, lng: float) -> List[float]: ...

    def get_habitat_heterogeneity(self, lat: float, lng: float) -> Optional[float]: ...

    def get_elevation(self, lat: float, lng: float) -> Optional[float]: ...


class FactorProvider:
    """Interface for per-coordinate factor acquisition."""

    async def get_vegetation(self, lat: float, lng: float) -> FactorReading:
        raise NotImplementedError

    async def get_soil(self, lat: float, lng: float) -> FactorReading:
        raise NotImplementedError

    async def get_rainfall(self, lat: float, lng: float) -> FactorReading:
        raise NotImplementedError

    async def get_biodiversity(self, lat: float, lng: float) -> FactorReading:
        raise NotImplementedError

    def close(self) -> None:
        """Release resources held by the provider."""

    async def get_factors(self, point: SamplePoint) -> Tuple[FactorSet, Dict[str, str]]:
        """Fetch all four factors concurrently for one point."""
        readings = await asyncio.gather(
            self.get_vegetation(point.lat, point.lng),
            self.get_soil(point.lat, point.lng),
            self.get_rainfall(point.lat, point.lng),
            self.get_biodiversity(point.lat, point.lng),
        )
        factors = FactorSet(*(r.value for r in readings))
        sources = {name: r.source for name, r in zip(FACTOR_NAMES, readings)}
        return factors, sources


class FallbackFactorProvider(FactorProvider):
    """Formula-only provider for offline and test use. Never suspends on I/O."""

    async def get_vegetation(self, lat: float, lng: float) -> FactorReading:
        return FactorReading(fallback.vegetation(lat, lng), FALLBACK_SOURCE)

    async def get_soil(self, lat: float, lng: float) -> FactorReading:
        return FactorReading(fallback.soil(lat, lng), FALLBACK_SOURCE)

    async def get_rainfall(self, lat: float, lng: float) -> FactorReading:
        return FactorReading(fallback.rainfall(lat, lng), FALLBACK_SOURCE)

    async def get_biodiversity(self, lat: float, lng: float) -> FactorReading:
        return FactorReading(fallback.biodiversity(lat, lng), FALLBACK_SOURCE)


class RealFactorProvider(FactorProvider):
    """
    Derives factors from a RealDataSource.

    Every data source call runs on the provider's own thread pool and is
    bounded by `timeout`. A call that overruns is abandoned to its thread;
    the event loop never waits on it.
    A failure of any call needed for a factor replaces that factor, and
    only that factor, with its fallback formula value.
    """

    def __init__(
        self,
        data_source: RealDataSource,
        timeout: float = 10.0,
        hook: EventHook = log_event,
        today: Callable[[], date] = date.today,
        max_workers: int = DEFAULT_MAX_CONCURRENCY * CALLS_PER_POINT,
    ):
        self.data_source = data_source
        self.timeout = timeout
        self.hook = hook
        self.today = today
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="factor-source")

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    async def _call(self, fn: Callable, lat: float, lng: float):
        loop = asyncio.get_running_loop()
        return await asyncio.wait_for(loop.run_in_executor(self._executor, fn, lat, lng),
                                      timeout=self.timeout)

    async def _with_fallback(self, factor: str, lat: float, lng: float, derive) -> FactorReading:
        try:
            value = await derive(lat, lng)
        except ProviderDegraded as e:
            degraded = e
        except Exception as e:
            degraded = ProviderDegraded(factor, lat, lng, e)
        else:
            return FactorReading(value, REAL_SOURCES[factor])

        log.warning(f"{degraded}; using fallback formula")
        emit(self.hook, "provider_degraded", {
            "factor": factor,
            "lat": lat,
            "lng": lng,
            "error": str(degraded.cause) if degraded.cause is not None else "no data",
        })
        return FactorReading(fallback.FORMULAS[factor](lat, lng), FALLBACK_SOURCE)

    def _seasonal_term(self) -> float:
        day_of_year = self.today().timetuple().tm_yday
        return SEASONAL_AMPLITUDE * math.sin(2 * math.pi * day_of_year / 365)

    async def _vegetation(self, lat: float, lng: float) -> float:
        ndvi = await self._call(self.data_source.get_ndvi, lat, lng)
        if ndvi is None:
            raise ProviderDegraded("vegetation", lat, lng)
        return clamp(ndvi + self._seasonal_term(), 0.1, 0.9)

    async def _soil(self, lat: float, lng: float) -> float:
        density, elevation = await asyncio.gather(
            self._call(self.data_source.get_land_cover, lat, lng),
            self._call(self.data_source.get_elevation, lat, lng),
        )
        if density is None or elevation is None:
            raise ProviderDegraded("soil", lat, lng)
        elevation_factor = clamp(1 - elevation / 3000, 0.5, 1.2)
        return clamp(density * elevation_factor, 0.1, 0.95)

    async def _rainfall(self, lat: float, lng: float) -> float:
        daily = await self._call(self.data_source.get_historical_precipitation, lat, lng)
        if not daily:
            raise ProviderDegraded("rainfall", lat, lng)
        mean_mm = sum(daily) / len(daily)
        return max(0.1, min(1.0, mean_mm / RAINFALL_CEILING_MM_PER_DAY))

    async def _biodiversity(self, lat: float, lng: float) -> float:
        heterogeneity, elevation = await asyncio.gather(
            self._call(self.data_source.get_habitat_heterogeneity, lat, lng),
            self._call(self.data_source.get_elevation, lat, lng),
        )
        if heterogeneity is None or elevation is None:
            raise ProviderDegraded("biodiversity", lat, lng)
        climate_stability = 0.6 + 0.2 * math.sin(elevation / 500)
        return clamp(heterogeneity * climate_stability, 0.05, 0.85)

    async def get_vegetation(self, lat: float, lng: float) -> FactorReading:
        return await self._with_fallback("vegetation", lat, lng, self._vegetation)

    async def get_soil(self, lat: float, lng: float) -> FactorReading:
        return await self._with_fallback("soil", lat, lng, self._soil)

    async def get_rainfall(self, lat: float, lng: float) -> FactorReading:
        return await self._with_fallback("rainfall", lat, lng, self._rainfall)

    async def get_biodiversity(self, lat: float, lng: float) -> FactorReading:
        return await self._with_fallback("biodiversity", lat, lng, self._biodiversity)


def build_factor_provider(
    settings: EngineSettings,
    data_source: Optional[RealDataSource] = None,
    hook: EventHook = log_event,
    today: Callable[[], date] = date.today,
) -> FactorProvider:
    """Select the provider implementation once, from configuration."""
    if not settings.use_real_data:
        return FallbackFactorProvider()
    if data_source is None:
        from loaders.unified import OpenDataSource
        data_source = OpenDataSource.from_settings(settings, today=today)
    return RealFactorProvider(
        data_source,
        timeout=settings.provider_timeout,
        hook=hook,
        today=today,
        max_workers=settings.max_concurrency * CALLS_PER_POINT,
    )
