"""
Deterministic fallback formulas for the four environmental factors.

Pure functions of (lat, lng). Trig arguments are the decimal-degree
values used directly as radians; the numbers must stay bit-identical
across runs, so do not reorder the arithmetic.
"""

import math

from core.models import FactorSet

FALLBACK_SOURCE = "fallback-formula"


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def vegetation(lat: float, lng: float) -> float:
    base = 0.6 + (math.sin(lat * 10) * 0.2) + (math.cos(lng * 10) * 0.2)
    return clamp(base, 0.1, 0.9)


def soil(lat: float, lng: float) -> float:
    base = 0.5 + (math.sin(lat * 8) * 0.3) + (math.cos(lng * 8) * 0.2)
    return clamp(base, 0.2, 0.95)


def rainfall(lat: float, lng: float) -> float:
    # Distance from the reference coastline at 74°W, in tens of degrees
    distance_from_coast = abs(lng + 74.0) / 10
    base = 0.7 - (distance_from_coast * 0.1) + (math.sin(lat * 5) * 0.15)
    return clamp(base, 0.3, 0.9)


def biodiversity(lat: float, lng: float) -> float:
    base = 0.4 + (math.sin(lat * 12) * 0.25) + (math.cos(lng * 12) * 0.2)
    return clamp(base, 0.1, 0.8)


FORMULAS = {
    "vegetation": vegetation,
    "soil": soil,
    "rainfall": rainfall,
    "biodiversity": biodiversity,
}


def fallback_factors(lat: float, lng: float) -> FactorSet:
    """All four fallback factors for a coordinate."""
    return FactorSet(
        vegetation=vegetation(lat, lng),
        soil=soil(lat, lng),
        rainfall=rainfall(lat, lng),
        biodiversity=biodiversity(lat, lng),
    )
