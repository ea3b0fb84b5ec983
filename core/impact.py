"""
Impact projection: annual environmental and economic benefit of restoring
an area, from its size and suitability score.
"""

import math
from dataclasses import dataclass

from core.errors import InvalidInput
from core.models import ImpactProjection

HECTARES_PER_KM2 = 100

# Some revisions used 2 t/ha/yr; 3 is the current midpoint.
SOIL_PRESERVATION_RATE = 3.0

BIODIVERSITY_BASE = 35.0
BIODIVERSITY_CAP = 100.0

# Scores this close outside [0, 1] are rounding noise and get clamped
SCORE_TOLERANCE = 1e-9


@dataclass(frozen=True)
class ImpactRates:
    """Per-hectare, per-year rates (literature midpoints)."""
    carbon_tonnes: float = 5.0
    water_m3: float = 1000.0
    soil_tonnes: float = SOIL_PRESERVATION_RATE
    air_quality_kg: float = 1.0
    economic_usd: float = 500.0


class ImpactProjector:
    """
    Linear metrics scale with hectares × score × rate and are rounded to
    integers. Biodiversity gain grows with the score and logarithmically
    with area, capped at 100 and rounded to one decimal.
    """

    def __init__(self, rates: ImpactRates = ImpactRates()):
        self.rates = rates

    def project(self, area_size: float, overall_score: float) -> ImpactProjection:
        if area_size < 0 or math.isnan(area_size):
            raise InvalidInput(f"Area size must be >= 0, got {area_size}")
        if not -SCORE_TOLERANCE <= overall_score <= 1.0 + SCORE_TOLERANCE:
            raise InvalidInput(f"Overall score must be in [0, 1], got {overall_score}")
        overall_score = min(1.0, max(0.0, overall_score))

        hectares = area_size * HECTARES_PER_KM2
        weighted = hectares * overall_score

        biodiversity_gain = min(
            BIODIVERSITY_CAP,
            BIODIVERSITY_BASE * overall_score * (1 + math.log10(hectares + 1) / 2),
        )

        return ImpactProjection(
            co2_sequestration=round(weighted * self.rates.carbon_tonnes),
            water_retention=round(weighted * self.rates.water_m3),
            soil_preservation=round(weighted * self.rates.soil_tonnes),
            air_quality_improvement=round(weighted * self.rates.air_quality_kg),
            economic_value=round(weighted * self.rates.economic_usd),
            biodiversity_gain=round(biodiversity_gain, 1),
        )
