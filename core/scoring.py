"""
Suitability Scoring Module

Combines the four environmental factors into one restoration suitability
score and classifies it into a priority tier.
"""

import logging
from typing import Dict, List, Tuple

from core.models import FACTOR_NAMES, FactorSet, PriorityLevel

log = logging.getLogger(__name__)


# Convex weights: with inputs in [0, 1] the score stays in [0, 1]
FACTOR_WEIGHTS: Dict[str, float] = {
    "vegetation": 0.4,
    "soil": 0.3,
    "rainfall": 0.2,
    "biodiversity": 0.1,
}

# Lower bound of each tier, inclusive, highest first
PRIORITY_THRESHOLDS: List[Tuple[float, PriorityLevel]] = [
    (0.7, PriorityLevel.HIGH),
    (0.5, PriorityLevel.MEDIUM),
    (0.3, PriorityLevel.LOW),
]


class SuitabilityScorer:
    """
    Weighted suitability scorer.

    score = 0.4·vegetation + 0.3·soil + 0.2·rainfall + 0.1·biodiversity
    """

    def __init__(self, weights: Dict[str, float] = None):
        self.weights = dict(weights or FACTOR_WEIGHTS)
        if set(self.weights) != set(FACTOR_NAMES):
            raise ValueError(f"Weights must cover exactly {FACTOR_NAMES}")
        total = sum(self.weights.values())
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Weights must sum to 1, got {total}")

    def score(self, factors: FactorSet) -> float:
        return (
            factors.vegetation * self.weights["vegetation"] +
            factors.soil * self.weights["soil"] +
            factors.rainfall * self.weights["rainfall"] +
            factors.biodiversity * self.weights["biodiversity"]
        )

    @staticmethod
    def classify(score: float) -> PriorityLevel:
        for threshold, level in PRIORITY_THRESHOLDS:
            if score >= threshold:
                return level
        return PriorityLevel.VERY_LOW
