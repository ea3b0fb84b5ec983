"""
ReFlourish HTTP API.

Thin Flask glue over the analysis engine:
    GET  /                          service descriptor
    GET  /api/health                liveness
    GET  /api/mock-data/<lat>/<lng> fallback factor values for a point
    POST /api/analyze               suitability analysis + impact projection

Run with `flask --app app:create_app run` or `python app.py`.
"""

import asyncio
import logging
import os
from typing import Callable, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from core.analyzer import AnalysisOrchestrator
from core.api_layer import error_response, fallback_payload, handle_analyze_request
from core.config import EngineSettings
from core.errors import InvalidInput
from core.events import log_event
from core.factors import build_factor_provider
from core.history import AnalysisStore

log = logging.getLogger(__name__)


def user_from_header(req) -> Optional[str]:
    """Default AuthContext: an opaque user id set by an upstream auth proxy."""
    return req.headers.get("X-User-Id") or None


def create_app(
    settings: Optional[EngineSettings] = None,
    orchestrator: Optional[AnalysisOrchestrator] = None,
    store: Optional[AnalysisStore] = None,
    resolve_user: Callable = user_from_header,
) -> Flask:
    settings = settings or EngineSettings.from_env()
    if orchestrator is None:
        provider = build_factor_provider(settings, hook=log_event)
        orchestrator = AnalysisOrchestrator(provider, settings, hook=log_event)
    if store is None:
        store = AnalysisStore(settings.history_db_path)

    app = Flask(__name__)
    CORS(app)

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "message": "ReFlourish API Server",
            "endpoints": {
                "health": "/api/health",
                "analyze": "/api/analyze (POST)",
                "mockData": "/api/mock-data/:lat/:lng (GET)",
            },
        })

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify({
            "status": "Server is running!",
            "realData": settings.use_real_data,
            "gridSize": settings.grid_size,
        })

    @app.route("/api/mock-data/<lat>/<lng>", methods=["GET"])
    def mock_data(lat, lng):
        try:
            return jsonify(fallback_payload(float(lat), float(lng)))
        except (ValueError, InvalidInput) as e:
            return jsonify(error_response("Invalid coordinates provided", str(e))), 400

    @app.route("/api/analyze", methods=["POST"])
    def analyze():
        payload = request.get_json(silent=True)
        status, body = asyncio.run(handle_analyze_request(
            payload,
            orchestrator,
            store=store,
            user_id=resolve_user(request),
        ))
        return jsonify(body), status

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s │ %(name)-20s │ %(levelname)-8s │ %(message)s',
        datefmt='%H:%M:%S',
    )
    create_app().run(port=int(os.getenv("PORT", "5000")))
