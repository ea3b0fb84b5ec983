"""
Error taxonomy for the suitability engine.

Only InvalidInput and AnalysisFailed ever reach callers as failures.
ProviderDegraded is absorbed by the factor providers and
PersistenceWarning is reported next to an otherwise successful response.
"""


class EngineError(Exception):
    """Base class for engine errors."""


class InvalidInput(EngineError, ValueError):
    """Malformed or missing rectangle bounds, or a non-square grid size."""


class ProviderDegraded(EngineError):
    """A real data source call failed or timed out for one factor."""

    def __init__(self, factor: str, lat: float, lng: float, cause: BaseException = None):
        self.factor = factor
        self.lat = lat
        self.lng = lng
        self.cause = cause
        reason = f"{type(cause).__name__}: {cause}" if cause is not None else "no data"
        super().__init__(f"{factor} provider degraded at ({lat:.5f}, {lng:.5f}) - {reason}")


class AnalysisFailed(EngineError):
    """Unexpected internal fault during scoring or projection."""


class PersistenceWarning(UserWarning):
    """Saving an analysis to history failed after a successful analysis."""
