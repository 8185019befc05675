"""CLI job that runs one parallel lead search and prints the records as JSON."""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from leadfinder.core.config import get_settings
from leadfinder.core.models import BusinessRecord, InvalidRequest, Location, SearchFilters
from leadfinder.search.orchestrator import SearchOrchestrator
from leadfinder.vendors.gemini import GeminiGenerator, GenerationError

logger = logging.getLogger(__name__)


def run_search_job(
    *,
    query: str,
    latitude: float,
    longitude: float,
    city: Optional[str],
    state: Optional[str],
    radius_km: float,
    target_count: int,
    orchestrator: Optional[SearchOrchestrator] = None,
) -> List[BusinessRecord]:
    if orchestrator is None:
        settings = get_settings()
        orchestrator = SearchOrchestrator(GeminiGenerator(settings.gemini_api_key), settings)

    filters = SearchFilters.from_payload(
        {"target_count": target_count, "city": city, "state": state, "radius_km": radius_km}
    )

    def on_progress(estimate: int, total: int) -> None:
        logger.info("Progress: ~%d/%d", min(estimate, total), total)

    records = asyncio.run(
        orchestrator.search(query, Location(latitude, longitude), filters, on_progress=on_progress)
    )
    logger.info("Search finished with %d unique records", len(records))
    return records


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a parallel AI business lead search")
    parser.add_argument("--query", required=True, help="Business category, e.g. 'padaria'")
    parser.add_argument("--lat", dest="latitude", type=float, default=0.0, help="GPS latitude")
    parser.add_argument("--lng", dest="longitude", type=float, default=0.0, help="GPS longitude")
    parser.add_argument("--city", help="City name (overrides the GPS radius)")
    parser.add_argument("--state", help="Two-letter state code")
    parser.add_argument("--radius-km", dest="radius_km", type=float, default=0.0, help="0 means no radius")
    parser.add_argument("--target-count", dest="target_count", type=int, default=50, help="Desired number of leads")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        records = run_search_job(
            query=args.query,
            latitude=args.latitude,
            longitude=args.longitude,
            city=args.city,
            state=args.state,
            radius_km=args.radius_km,
            target_count=args.target_count,
        )
    except InvalidRequest as exc:
        logger.error("Invalid search request: %s", exc)
        raise SystemExit(2) from exc
    except GenerationError as exc:
        logger.error("Search backend unavailable: %s", exc)
        raise SystemExit(1) from exc

    json.dump([record.to_payload() for record in records], sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
