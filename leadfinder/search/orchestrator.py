"""Fan a search out into concurrent batches and merge what comes back."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

from leadfinder.core.config import Settings, get_settings
from leadfinder.core.models import (
    BatchOutcome,
    BusinessRecord,
    InvalidRequest,
    Location,
    SearchFilters,
    SearchRequest,
)
from leadfinder.search.batch_fetcher import fetch_batch
from leadfinder.search.merge import dedupe_records, merge_outcomes
from leadfinder.search.strategies import BatchPlan, plan_batches
from leadfinder.vendors.gemini import GeminiGenerator, TextGenerator

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def require_query(query: str) -> str:
    """Return the trimmed query or raise InvalidRequest when it is blank."""
    if not query or not query.strip():
        raise InvalidRequest("Query must not be empty")
    return query.strip()


class SearchOrchestrator:
    """Runs one logical search as several concurrent generative requests.

    Every batch is awaited until it settles; a failed batch is dropped from the
    merge and never cancels the others. Dispatched batches cannot be cancelled.
    """

    def __init__(self, generator: TextGenerator, settings: Optional[Settings] = None) -> None:
        self.generator = generator
        self.settings = settings or get_settings()

    async def search(
        self,
        query: str,
        location: Location,
        filters: Optional[SearchFilters] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[BusinessRecord]:
        request = SearchRequest(query=require_query(query), location=location, filters=filters or SearchFilters())
        plans = plan_batches(
            request.filters.target_count,
            self.settings.batch_size,
            self.settings.max_batches,
        )
        logger.info(
            "Starting search query=%s batches=%d target=%d",
            request.query,
            len(plans),
            request.filters.target_count,
        )

        outcomes = await self._run_batches(request, plans, on_progress)
        records = dedupe_records(merge_outcomes(outcomes))

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        logger.info(
            "Completed search query=%s records=%d failed_batches=%d/%d",
            request.query,
            len(records),
            failed,
            len(outcomes),
        )
        return records

    async def _run_batches(
        self,
        request: SearchRequest,
        plans: List[BatchPlan],
        on_progress: Optional[ProgressCallback],
    ) -> List[BatchOutcome]:
        tasks = [asyncio.ensure_future(self._fetch(request, plan)) for plan in plans]

        # Outcomes are collected in settlement order, not submission order.
        outcomes: List[BatchOutcome] = []
        for settled, future in enumerate(asyncio.as_completed(tasks), start=1):
            try:
                outcome = await future
            except Exception as exc:  # noqa: BLE001
                logger.error("Batch task raised unexpectedly: %s", exc, exc_info=True)
                outcome = BatchOutcome.failed("unknown", str(exc))
            outcomes.append(outcome)
            self._report_progress(on_progress, settled, request.filters.target_count)
        return outcomes

    async def _fetch(self, request: SearchRequest, plan: BatchPlan) -> BatchOutcome:
        return await fetch_batch(
            self.generator,
            request.query,
            request.location,
            request.filters,
            plan.strategy,
            plan.batch_size,
            model=self.settings.gemini_model,
            timeout=self.settings.batch_timeout,
            default_radius_km=self.settings.default_radius_km,
        )

    def _report_progress(self, on_progress: Optional[ProgressCallback], settled: int, total: int) -> None:
        if on_progress is None:
            return
        # Coarse estimate: batches settled times batch size, not records received.
        try:
            on_progress(settled * self.settings.batch_size, total)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Progress callback failed: %s", exc)

    def search_sync(
        self,
        query: str,
        location: Location,
        filters: Optional[SearchFilters] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[BusinessRecord]:
        return asyncio.run(self.search(query, location, filters, on_progress))


async def find_places(
    query: str,
    location: Location,
    filters: Optional[SearchFilters] = None,
    on_progress: Optional[ProgressCallback] = None,
    settings: Optional[Settings] = None,
) -> List[BusinessRecord]:
    """Run a search with a Gemini-backed generator built from settings."""
    # Validate before building the generator so an empty query is reported
    # ahead of a missing API key.
    require_query(query)
    settings = settings or get_settings()
    orchestrator = SearchOrchestrator(GeminiGenerator(settings.gemini_api_key), settings)
    return await orchestrator.search(query, location, filters, on_progress)
