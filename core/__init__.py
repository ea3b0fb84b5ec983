"""
Core module for the ReFlourish restoration suitability engine.
Contains data models, factor providers, scoring, impact projection and
the analysis orchestrator.
"""

from core.models import (
    Rectangle, SamplePoint, FactorSet, ScoredPoint, AnalysisResult,
    ImpactProjection, PriorityLevel,
)
from core.errors import InvalidInput, ProviderDegraded, AnalysisFailed, PersistenceWarning
from core.config import EngineSettings
from core.grid import GridSampler, area_size_km2
from core.factors import FactorProvider, FallbackFactorProvider, RealFactorProvider, build_factor_provider
from core.scoring import SuitabilityScorer
from core.impact import ImpactProjector
from core.analyzer import AnalysisOrchestrator
from core.history import AnalysisStore

__all__ = [
    # Models
    "Rectangle",
    "SamplePoint",
    "FactorSet",
    "ScoredPoint",
    "AnalysisResult",
    "ImpactProjection",
    "PriorityLevel",
    # Errors
    "InvalidInput",
    "ProviderDegraded",
    "AnalysisFailed",
    "PersistenceWarning",
    # Engine
    "EngineSettings",
    "GridSampler",
    "area_size_km2",
    "FactorProvider",
    "FallbackFactorProvider",
    "RealFactorProvider",
    "build_factor_provider",
    "SuitabilityScorer",
    "ImpactProjector",
    "AnalysisOrchestrator",
    "AnalysisStore",
]
