"""Merge batch outcomes and deduplicate records by business name."""

from __future__ import annotations

from typing import Dict, Iterable, List

from leadfinder.core.models import BatchOutcome, BusinessRecord


def normalize_name(name: str) -> str:
    return (name or "").strip().lower()


def merge_outcomes(outcomes: Iterable[BatchOutcome]) -> List[BusinessRecord]:
    """Concatenate the records of successful outcomes in the order given."""
    records: List[BusinessRecord] = []
    for outcome in outcomes:
        if outcome.ok:
            records.extend(outcome.records)
    return records


def dedupe_records(records: Iterable[BusinessRecord]) -> List[BusinessRecord]:
    """Keep one record per normalized name.

    The last record seen for a name replaces earlier ones but keeps the
    position where the name first appeared. Blank names share the "" key.
    """
    by_name: Dict[str, BusinessRecord] = {}
    for record in records:
        by_name[normalize_name(record.name)] = record
    return list(by_name.values())
