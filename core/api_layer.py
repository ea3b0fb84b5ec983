"""
API Layer - Request/response envelope around the analysis engine.

Transport-agnostic: the HTTP app and the command-line runner both hand a
decoded JSON payload in and get `(status_code, body)` back.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from core.analyzer import AnalysisOrchestrator
from core.errors import AnalysisFailed, InvalidInput, PersistenceWarning
from core.fallback import fallback_factors
from core.history import AnalysisStore
from core.models import Rectangle, validate_coordinate

log = logging.getLogger(__name__)

INVALID_COORDINATES = "Invalid coordinates provided"
ANALYSIS_FAILED = "Analysis failed"


def error_response(error: str, message: Optional[str] = None) -> Dict[str, Any]:
    body = {"success": False, "error": error}
    if message:
        body["message"] = message
    return body


def iso_timestamp(now: Optional[datetime] = None) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_analyze_request(payload: Any) -> Tuple[Rectangle, Dict[str, Any], Optional[int], bool]:
    """
    Validate an analyze request.

    Returns:
        (rectangle, echoed coordinates, grid size or None, save requested)

    Raises:
        InvalidInput: missing coordinates or bounds, malformed values
    """
    if not isinstance(payload, dict):
        raise InvalidInput("Request body must be a JSON object")
    coordinates = payload.get("coordinates")
    if not isinstance(coordinates, dict) or not coordinates.get("bounds"):
        raise InvalidInput("coordinates.bounds is required")

    rectangle = Rectangle.from_bounds(coordinates["bounds"])

    grid_size = payload.get("gridSize")
    if grid_size is not None and (isinstance(grid_size, bool) or not isinstance(grid_size, int)):
        raise InvalidInput(f"gridSize must be an integer, got {grid_size!r}")

    return rectangle, coordinates, grid_size, bool(payload.get("save", False))


async def handle_analyze_request(
    payload: Any,
    orchestrator: AnalysisOrchestrator,
    store: Optional[AnalysisStore] = None,
    user_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[int, Dict[str, Any]]:
    """
    Run one analysis request end to end.

    Saving happens only when the caller is identified, asked for it and a
    store is configured. A failed save keeps the response successful and
    adds a `warning` field.
    """
    try:
        rectangle, coordinates, grid_size, save = parse_analyze_request(payload)
        log.info(f"Analysis requested for center {rectangle.center.lat:.5f},{rectangle.center.lng:.5f}")
        analysis = await orchestrator.analyze(rectangle, grid_size)
        impact = orchestrator.project(analysis)
    except InvalidInput as e:
        log.info(f"Rejected analysis request: {e}")
        return 400, error_response(INVALID_COORDINATES, str(e))
    except AnalysisFailed as e:
        log.error(f"Analysis error: {e}")
        return 500, error_response(ANALYSIS_FAILED, str(e))

    body = {
        "success": True,
        "area": coordinates,
        "analysis": analysis.to_dict(),
        "impact": impact.to_dict(),
        "timestamp": iso_timestamp(now),
        "dataSources": dict(analysis.data_sources),
    }

    if save and user_id and store is not None:
        try:
            body["recordId"] = store.save(user_id, coordinates, analysis, impact)
        except Exception as e:
            warning = PersistenceWarning(f"Analysis completed but could not be saved: {e}")
            log.warning(str(warning))
            body["warning"] = str(warning)
    elif save:
        log.debug("Save requested without an authenticated user or store; skipping")

    return 200, body


def fallback_payload(lat: float, lng: float) -> Dict[str, Any]:
    """Fallback factor values for a single coordinate."""
    validate_coordinate(lat, lng)
    factors = fallback_factors(lat, lng)
    return {
        "coordinates": {"lat": lat, "lng": lng},
        "environmentalData": {
            "vegetationHealth": factors.vegetation,
            "soilQuality": factors.soil,
            "rainfallIndex": factors.rainfall,
            "biodiversityIndex": factors.biodiversity,
        },
    }
