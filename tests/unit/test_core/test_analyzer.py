import asyncio
import math

import pytest
from core.analyzer import AnalysisOrchestrator, data_credibility
from core.config import EngineSettings
from core.errors import AnalysisFailed, InvalidInput
from core.events import EventRecorder
from core.factors import FactorProvider, FactorReading, FallbackFactorProvider
from core.fallback import FALLBACK_SOURCE
from core.models import FactorSet, PriorityLevel, Rectangle, SamplePoint, ScoredPoint


@pytest.fixture
def rectangle():
    return Rectangle(SamplePoint(40.70, -74.02), SamplePoint(40.72, -74.00))


class ConstantProvider(FactorProvider):
    """Returns the same reading for every factor, optionally after a delay."""

    def __init__(self, value=0.5, source="test-source", delay=None):
        self.value = value
        self.source = source
        self.delay = delay or (lambda lat, lng: 0)
        self.in_flight = 0
        self.max_in_flight = 0

    async def _read(self, lat, lng):
        return FactorReading(self.value, self.source)

    get_vegetation = get_soil = get_rainfall = get_biodiversity = _read

    async def get_factors(self, point):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay(point.lat, point.lng))
            return await super().get_factors(point)
        finally:
            self.in_flight -= 1


def test_fallback_scenario(rectangle):
    """Four corner points with fallback formulas only."""
    recorder = EventRecorder()
    orchestrator = AnalysisOrchestrator(FallbackFactorProvider(), hook=recorder)
    result = asyncio.run(orchestrator.analyze(rectangle))

    assert len(result.detailed_scores) == 4
    expected = [s.suitability_score for s in result.detailed_scores]
    assert result.overall_score == pytest.approx(sum(expected) / 4)
    assert result.area_size == pytest.approx(3.73, abs=0.01)
    assert result.data_credibility == "low"
    assert set(result.data_sources.values()) == {FALLBACK_SOURCE}
    assert result.priority_level == orchestrator.scorer.classify(result.overall_score)

    assert recorder.names()[0] == "analysis_started"
    assert recorder.names()[-1] == "analysis_completed"
    assert len(recorder.of_type("point_scored")) == 4


def test_analysis_is_deterministic(rectangle):
    orchestrator = AnalysisOrchestrator(FallbackFactorProvider(), hook=EventRecorder())
    first = asyncio.run(orchestrator.analyze(rectangle))
    second = asyncio.run(orchestrator.analyze(rectangle))
    assert first.to_dict() == second.to_dict()


def test_overall_score_is_mean_of_points(rectangle):
    orchestrator = AnalysisOrchestrator(ConstantProvider(0.8), hook=EventRecorder())
    result = asyncio.run(orchestrator.analyze(rectangle, grid_size=9))
    assert len(result.detailed_scores) == 9
    assert result.overall_score == pytest.approx(0.8)
    assert result.priority_level == PriorityLevel.HIGH
    assert result.data_credibility == "high"


def test_order_preserved_under_reversed_delays(rectangle):
    # Later grid points finish first
    provider = ConstantProvider(delay=lambda lat, lng: max(0.0, (40.73 - lat) * 2 + (-73.99 - lng)))
    orchestrator = AnalysisOrchestrator(provider, hook=EventRecorder())
    result = asyncio.run(orchestrator.analyze(rectangle, grid_size=9))

    expected = orchestrator.sampler.generate(rectangle, 9)
    assert [s.point for s in result.detailed_scores] == expected


def test_concurrency_is_bounded(rectangle):
    provider = ConstantProvider(delay=lambda lat, lng: 0.02)
    settings = EngineSettings(max_concurrency=2)
    orchestrator = AnalysisOrchestrator(provider, settings=settings, hook=EventRecorder())
    asyncio.run(orchestrator.analyze(rectangle, grid_size=9))
    assert provider.max_in_flight == 2


def test_single_point_grid(rectangle):
    orchestrator = AnalysisOrchestrator(hook=EventRecorder())
    result = asyncio.run(orchestrator.analyze(rectangle, grid_size=1))
    assert [s.point for s in result.detailed_scores] == [rectangle.center]


def test_degenerate_rectangle_is_accepted():
    point = SamplePoint(10.0, 20.0)
    orchestrator = AnalysisOrchestrator(hook=EventRecorder())
    result = asyncio.run(orchestrator.analyze(Rectangle(point, point)))
    assert result.area_size == 0.0
    assert len(result.detailed_scores) == 4
    impact = orchestrator.project(result)
    assert impact.co2_sequestration == 0


def test_invalid_inputs(rectangle):
    orchestrator = AnalysisOrchestrator(hook=EventRecorder())
    with pytest.raises(InvalidInput):
        asyncio.run(orchestrator.analyze(None))
    with pytest.raises(InvalidInput):
        asyncio.run(orchestrator.analyze(rectangle, grid_size=5))


def test_internal_fault_becomes_analysis_failed(rectangle):
    class BrokenProvider(FactorProvider):
        async def get_factors(self, point):
            raise KeyError("unexpected")

    recorder = EventRecorder()
    orchestrator = AnalysisOrchestrator(BrokenProvider(), hook=recorder)
    with pytest.raises(AnalysisFailed) as excinfo:
        asyncio.run(orchestrator.analyze(rectangle))

    assert isinstance(excinfo.value.__cause__, KeyError)
    assert recorder.names()[-1] == "analysis_failed"
    assert recorder.of_type("analysis_completed") == []


def test_projection_from_result(rectangle):
    orchestrator = AnalysisOrchestrator(ConstantProvider(1.0), hook=EventRecorder())
    result = asyncio.run(orchestrator.analyze(rectangle))
    impact = orchestrator.project(result)
    hectares = result.area_size * 100
    score = result.overall_score
    assert score == pytest.approx(1.0)
    assert impact.co2_sequestration == round(hectares * score * 5)
    assert impact.biodiversity_gain == round(min(100, 35 * score * (1 + math.log10(hectares + 1) / 2)), 1)


def _scored(*sources):
    return ScoredPoint(
        SamplePoint(0.0, 0.0),
        FactorSet(0.5, 0.5, 0.5, 0.5),
        0.5,
        dict(zip(("vegetation", "soil", "rainfall", "biodiversity"), sources)),
    )


def test_data_credibility_levels():
    real = ("a", "b", "c", "d")
    fb = (FALLBACK_SOURCE,) * 4
    mixed = ("a", FALLBACK_SOURCE, "c", "d")
    assert data_credibility([_scored(*real), _scored(*real)]) == "high"
    assert data_credibility([_scored(*fb), _scored(*fb)]) == "low"
    assert data_credibility([_scored(*real), _scored(*mixed)]) == "medium"


def test_failing_hook_does_not_fail_analysis(rectangle):
    def broken_hook(event, fields):
        raise RuntimeError("sink offline")

    orchestrator = AnalysisOrchestrator(FallbackFactorProvider(), hook=broken_hook)
    result = asyncio.run(orchestrator.analyze(rectangle))
    assert len(result.detailed_scores) == 4


def test_grid_size_over_limit_is_rejected(rectangle):
    provider = ConstantProvider()
    orchestrator = AnalysisOrchestrator(provider, settings=EngineSettings(max_grid_size=9),
                                        hook=EventRecorder())
    with pytest.raises(InvalidInput):
        asyncio.run(orchestrator.analyze(rectangle, grid_size=16))
    assert provider.max_in_flight == 0
