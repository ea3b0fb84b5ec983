"""
Core data models for the restoration suitability engine.

All models are immutable and created fresh for every analysis.
`to_dict()` produces the camelCase wire form returned to API callers.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Sequence

from core.errors import InvalidInput


FACTOR_NAMES = ("vegetation", "soil", "rainfall", "biodiversity")


class PriorityLevel(Enum):
    """Restoration priority tiers."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    VERY_LOW = "VERY_LOW"


@dataclass(frozen=True)
class SamplePoint:
    """A single coordinate sampled from a rectangle."""
    lat: float
    lng: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


def validate_coordinate(lat: float, lng: float) -> None:
    for name, value in (("lat", lat), ("lng", lng)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidInput(f"{name} must be a number, got {value!r}")
        if not math.isfinite(value):
            raise InvalidInput(f"{name} must be finite, got {value!r}")
    if not -90.0 <= lat <= 90.0:
        raise InvalidInput(f"Latitude {lat} outside [-90, 90]")
    if not -180.0 <= lng <= 180.0:
        raise InvalidInput(f"Longitude {lng} outside [-180, 180]")


@dataclass(frozen=True)
class Rectangle:
    """
    Geographic rectangle selected for analysis.

    All coordinates are in decimal degrees (WGS84). The south-west corner
    must not lie north or east of the north-east corner; use
    `from_bounds` to build one from unordered corners.
    """
    south_west: SamplePoint
    north_east: SamplePoint

    def __post_init__(self):
        if self.south_west is None or self.north_east is None:
            raise InvalidInput("Rectangle requires both corners")
        validate_coordinate(self.south_west.lat, self.south_west.lng)
        validate_coordinate(self.north_east.lat, self.north_east.lng)
        if self.south_west.lat > self.north_east.lat:
            raise InvalidInput("South-west latitude is north of north-east latitude")
        if self.south_west.lng > self.north_east.lng:
            raise InvalidInput("South-west longitude is east of north-east longitude")

    @property
    def center(self) -> SamplePoint:
        return SamplePoint(
            (self.south_west.lat + self.north_east.lat) / 2,
            (self.south_west.lng + self.north_east.lng) / 2,
        )

    @property
    def is_degenerate(self) -> bool:
        """True when the rectangle has zero width or zero height."""
        return (self.south_west.lat == self.north_east.lat or
                self.south_west.lng == self.north_east.lng)

    @classmethod
    def from_bounds(cls, bounds: Sequence[Sequence[float]]) -> "Rectangle":
        """
        Build a rectangle from `[[lat, lng], [lat, lng]]`, normalizing the
        corners so either diagonal ordering is accepted.
        """
        try:
            (lat_a, lng_a), (lat_b, lng_b) = bounds
        except (TypeError, ValueError):
            raise InvalidInput("Bounds must be [[swLat, swLng], [neLat, neLng]]")
        validate_coordinate(lat_a, lng_a)
        validate_coordinate(lat_b, lng_b)
        return cls(
            south_west=SamplePoint(float(min(lat_a, lat_b)), float(min(lng_a, lng_b))),
            north_east=SamplePoint(float(max(lat_a, lat_b)), float(max(lng_a, lng_b))),
        )

    def to_dict(self) -> Dict:
        return {
            "southWest": self.south_west.to_dict(),
            "northEast": self.north_east.to_dict(),
            "center": self.center.to_dict(),
            "bounds": [
                [self.south_west.lat, self.south_west.lng],
                [self.north_east.lat, self.north_east.lng],
            ],
        }


@dataclass(frozen=True)
class FactorSet:
    """Four normalized environmental factors, each in [0, 1]."""
    vegetation: float
    soil: float
    rainfall: float
    biodiversity: float

    def to_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in FACTOR_NAMES}


@dataclass(frozen=True)
class ScoredPoint:
    """Factors and suitability score for one sample point."""
    point: SamplePoint
    factors: FactorSet
    suitability_score: float
    data_sources: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "point": self.point.to_dict(),
            "factors": self.factors.to_dict(),
            "suitabilityScore": self.suitability_score,
            "dataSources": dict(self.data_sources),
        }


@dataclass(frozen=True)
class AnalysisResult:
    """
    Area-wide result of a suitability analysis.

    `detailed_scores` keeps the grid generation order.
    """
    overall_score: float
    priority_level: PriorityLevel
    detailed_scores: List[ScoredPoint]
    area_size: float  # km²
    data_sources: Dict[str, str]
    data_credibility: str

    def to_dict(self) -> Dict:
        return {
            "overallScore": self.overall_score,
            "priorityLevel": self.priority_level.value,
            "detailedScores": [s.to_dict() for s in self.detailed_scores],
            "areaSize": self.area_size,
            "dataSources": dict(self.data_sources),
            "dataCredibility": self.data_credibility,
        }


@dataclass(frozen=True)
class ImpactProjection:
    """Annual environmental and economic impact of restoring an area."""
    co2_sequestration: int        # tonnes CO₂ / year
    water_retention: int          # m³ / year
    soil_preservation: int        # tonnes / year
    air_quality_improvement: int  # kg pollutants / year
    economic_value: int           # USD / year
    biodiversity_gain: float      # 0-100 index

    def to_dict(self) -> Dict:
        return {
            "co2Sequestration": self.co2_sequestration,
            "biodiversityGain": self.biodiversity_gain,
            "waterRetention": self.water_retention,
            "soilPreservation": self.soil_preservation,
            "airQualityImprovement": self.air_quality_improvement,
            "economicValue": self.economic_value,
        }
