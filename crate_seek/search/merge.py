"""
Merging of per-source results.

This module provides the quota-bounded accumulation of records across
sources, identifier-based deduplication, and the enrichment steps that stamp
local project/installed versions and registry metadata onto records.
"""

import logging
from typing import Dict, List

from crate_seek.core.interfaces import CrateDetail, CrateRecord


logger = logging.getLogger(__name__)


def extend_records(accumulated: List[CrateRecord], new_records: List[CrateRecord], quota: int) -> int:
    """
    Append up to ``quota`` records from ``new_records`` to ``accumulated``.

    Args:
        accumulated: Records gathered so far for the current page; extended in place.
        new_records: Records returned by the next source, in its order.
        quota: Number of records the page can still take.

    Returns:
        The remaining quota after appending.
    """
    if quota <= 0:
        return 0
    taken = new_records[:quota]
    accumulated.extend(taken)
    return quota - len(taken)


def deduplicate(records: List[CrateRecord]) -> List[CrateRecord]:
    """
    Collapse records sharing an id into one.

    A record that is already hydrated is never replaced; otherwise the later
    record wins. The surviving record keeps the position of the first
    occurrence of its id.

    Args:
        records: Candidate records in priority order.

    Returns:
        The deduplicated records.
    """
    merged: Dict[str, CrateRecord] = {}

    for record in records:
        existing = merged.get(record.id)
        if existing is not None and existing.hydrated:
            continue
        merged[record.id] = record

    if len(merged) != len(records):
        logger.debug(f"Deduplicated {len(records)} records into {len(merged)}")

    return list(merged.values())


def annotate(records: List[CrateRecord], environment) -> None:
    """
    Stamp ``project_version`` and ``installed_version`` onto every record.

    Args:
        records: Records to update in place.
        environment: An EnvironmentSnapshot (or anything exposing
            ``local_version(name)`` and ``installed_version(name)``).
    """
    for record in records:
        record.project_version = environment.local_version(record.name)
        record.installed_version = environment.installed_version(record.name)


def hydrate_record(record: CrateRecord, detail: CrateDetail) -> None:
    """Merge extended registry metadata into ``record`` and mark it hydrated."""
    record.name = detail.name
    record.description = detail.description
    record.homepage = detail.homepage
    record.documentation = detail.documentation
    record.repository = detail.repository
    record.version = detail.version
    record.max_version = detail.max_version
    record.max_stable_version = detail.max_stable_version
    record.downloads = detail.downloads
    record.recent_downloads = detail.recent_downloads
    record.created_at = detail.created_at
    record.updated_at = detail.updated_at
    record.features = list(detail.features)
    record.categories = list(detail.categories)
    record.keywords = list(detail.keywords)
    record.license = detail.license
    record.exact_match = record.exact_match or detail.exact_match
    record.hydrated = True
