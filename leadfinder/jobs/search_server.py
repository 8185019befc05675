"""HTTP entrypoint that runs parallel lead searches (Cloud Run friendly)."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from leadfinder.core.config import get_settings
from leadfinder.core.models import InvalidRequest, Location, SearchFilters
from leadfinder.search.orchestrator import SearchOrchestrator
from leadfinder.vendors.gemini import GeminiGenerator, GenerationError

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App ----------
app = Flask(__name__)
_orchestrator: Optional[SearchOrchestrator] = None


def get_orchestrator() -> SearchOrchestrator:
    """Build the shared orchestrator lazily so tests can swap it out."""
    global _orchestrator
    if _orchestrator is None:
        settings = get_settings()
        _orchestrator = SearchOrchestrator(GeminiGenerator(settings.gemini_api_key), settings)
    return _orchestrator


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "model": settings.gemini_model,
                "batch_size": settings.batch_size,
                "max_batches": settings.max_batches,
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.post("/search")
def search() -> Any:
    """
    Run a search and return the deduplicated records.
    Required JSON fields: query, location {latitude, longitude}
    Optional: filters {target_count, city, state, radius_km}
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    query = str(payload.get("query") or "").strip()
    if not query:
        return jsonify({"error": "query is required"}), 400

    location_raw = payload.get("location")
    if not isinstance(location_raw, dict):
        return jsonify({"error": "location with latitude and longitude is required"}), 400
    try:
        location = Location(
            latitude=float(location_raw["latitude"]),
            longitude=float(location_raw["longitude"]),
        )
    except (KeyError, TypeError, ValueError):
        return jsonify({"error": "location latitude and longitude must be numeric"}), 400

    filters_raw = payload.get("filters")
    if filters_raw is not None and not isinstance(filters_raw, dict):
        return jsonify({"error": "filters must be an object"}), 400
    try:
        filters = SearchFilters.from_payload(filters_raw)
    except InvalidRequest as exc:
        return jsonify({"error": str(exc)}), 400
    if filters.target_count <= 0:
        return jsonify({"error": "target_count must be positive"}), 400

    try:
        records = get_orchestrator().search_sync(query, location, filters)
    except InvalidRequest as exc:
        return jsonify({"error": str(exc)}), 400
    except GenerationError as exc:
        logger.error("Search backend unavailable: %s", exc)
        return jsonify({"error": "search backend unavailable"}), 503

    items = [record.to_payload() for record in records]
    return jsonify({"data": {"count": len(items), "items": items}}), 200


def main() -> None:
    env_port = os.getenv("PORT")
    port = int(env_port or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
