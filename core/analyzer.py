"""
Analysis orchestrator for restoration suitability.
Samples a rectangle, scores each point and projects area-wide impact.
"""

import asyncio
import logging
import time
from typing import List, Optional, Tuple

from core.config import EngineSettings
from core.errors import AnalysisFailed, InvalidInput
from core.events import EventHook, emit, log_event
from core.factors import FactorProvider, FallbackFactorProvider
from core.fallback import FALLBACK_SOURCE
from core.grid import GridSampler, area_size_km2
from core.impact import ImpactProjector
from core.models import AnalysisResult, ImpactProjection, Rectangle, SamplePoint, ScoredPoint
from core.scoring import SuitabilityScorer

log = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """
    Runs one end-to-end analysis per call.

    Points are fetched concurrently, at most `settings.max_concurrency` at a
    time; each point's four factors are fetched concurrently as well.
    Holds no state between analyses.

    Usage:
        orchestrator = AnalysisOrchestrator(FallbackFactorProvider())
        result = await orchestrator.analyze(rectangle)
        impact = orchestrator.project(result)
    """

    def __init__(
        self,
        provider: Optional[FactorProvider] = None,
        settings: Optional[EngineSettings] = None,
        hook: EventHook = log_event,
        scorer: Optional[SuitabilityScorer] = None,
        projector: Optional[ImpactProjector] = None,
    ):
        self.settings = settings or EngineSettings()
        self.provider = provider or FallbackFactorProvider()
        self.hook = hook
        self.sampler = GridSampler(self.settings.grid_size, self.settings.max_grid_size)
        self.scorer = scorer or SuitabilityScorer()
        self.projector = projector or ImpactProjector()

    async def analyze(self, rectangle: Rectangle, grid_size: Optional[int] = None) -> AnalysisResult:
        """
        Score a rectangle.

        Raises:
            InvalidInput: missing rectangle or invalid grid size
            AnalysisFailed: any unexpected fault; no partial result is returned
        """
        if not isinstance(rectangle, Rectangle):
            raise InvalidInput("A rectangle with both corners is required")
        points = self.sampler.generate(rectangle, grid_size)

        started = time.monotonic()
        emit(self.hook, "analysis_started", {
            "center": f"{rectangle.center.lat:.5f},{rectangle.center.lng:.5f}",
            "points": len(points),
        })

        try:
            scored = await self._score_points(points)
            result = self._assemble(rectangle, scored)
        except InvalidInput:
            raise
        except Exception as e:
            log.exception("Analysis failed")
            emit(self.hook, "analysis_failed", {"error": f"{type(e).__name__}: {e}"})
            raise AnalysisFailed(str(e) or type(e).__name__) from e

        emit(self.hook, "analysis_completed", {
            "overall_score": round(result.overall_score, 3),
            "priority": result.priority_level.value,
            "area_km2": round(result.area_size, 3),
            "credibility": result.data_credibility,
            "elapsed_s": round(time.monotonic() - started, 3),
        })
        return result

    def project(self, result: AnalysisResult) -> ImpactProjection:
        """Annual impact for an analysis result."""
        try:
            return self.projector.project(result.area_size, result.overall_score)
        except InvalidInput as e:
            raise AnalysisFailed(str(e)) from e

    async def _score_points(self, points: List[SamplePoint]) -> List[ScoredPoint]:
        semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        async def score_one(index: int, point: SamplePoint) -> Tuple[int, ScoredPoint]:
            async with semaphore:
                factors, sources = await self.provider.get_factors(point)
            suitability = self.scorer.score(factors)
            emit(self.hook, "point_scored", {
                "index": index,
                "lat": round(point.lat, 5),
                "lng": round(point.lng, 5),
                "score": round(suitability, 3),
            })
            return index, ScoredPoint(point, factors, suitability, sources)

        results = await asyncio.gather(*(score_one(i, p) for i, p in enumerate(points)))
        return [scored for _, scored in sorted(results, key=lambda pair: pair[0])]

    def _assemble(self, rectangle: Rectangle, scored: List[ScoredPoint]) -> AnalysisResult:
        overall = sum(s.suitability_score for s in scored) / len(scored)
        return AnalysisResult(
            overall_score=overall,
            priority_level=self.scorer.classify(overall),
            detailed_scores=scored,
            area_size=area_size_km2(rectangle),
            data_sources=dict(scored[0].data_sources),
            data_credibility=data_credibility(scored),
        )


def data_credibility(scored: List[ScoredPoint]) -> str:
    """
    'high' when real data produced every factor, 'low' when only fallback
    formulas did, 'medium' for anything in between.
    """
    tags = [tag for s in scored for tag in s.data_sources.values()]
    fallback_count = sum(1 for tag in tags if tag == FALLBACK_SOURCE)
    if fallback_count == 0:
        return "high"
    if fallback_count == len(tags):
        return "low"
    return "medium"
