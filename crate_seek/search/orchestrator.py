"""
Single-flight search orchestration.

This module provides the SearchOrchestrator, which runs each search as a
background asyncio task over the enabled sources, shares one page quota
between them in priority order, and emits exactly one result event per
search that is not superseded.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from crate_seek.cargo.environment import EnvironmentSnapshot
from crate_seek.core.cancellation import CancellationHandle
from crate_seek.core.exceptions import SourceUnavailableError, TaskCancelled
from crate_seek.core.interfaces import (
    CrateRecord, Scope, SearchCompleted, SearchFailed, SearchRequest
)
from crate_seek.search.merge import annotate, deduplicate, extend_records
from crate_seek.search.results import ResultSet
from crate_seek.search.sources import SearchSource


logger = logging.getLogger(__name__)

SOURCE_PRIORITY = (Scope.PROJECT, Scope.INSTALLED, Scope.REGISTRY)


class SearchOrchestrator:
    """
    Runs at most one search at a time.

    Starting a search cancels the one before it. A cancelled search may
    finish a source call already in flight, but never emits anything.

    Every enabled source is queried for its match count even after the page
    quota is used up, so ``total_count`` (and therefore the page count) does
    not depend on how many records earlier sources materialized.
    """

    def __init__(
        self,
        sources: List[SearchSource],
        events: asyncio.Queue,
        environment: Callable[[], EnvironmentSnapshot]
    ):
        """
        Initialize the orchestrator.

        Args:
            sources: Available sources; ordering is fixed by SOURCE_PRIORITY.
            events: Queue that receives SearchCompleted / SearchFailed events.
            environment: Returns the current environment snapshot; called once
                per search, when the search is issued.
        """
        self.sources = sources
        self.events = events
        self._environment = environment
        self._cancel_search: Optional[CancellationHandle] = None
        self._task: Optional[asyncio.Task] = None

    def search(self, request: SearchRequest) -> asyncio.Task:
        """
        Start a search in the background, superseding any search in flight.

        Must be called from within a running event loop.

        Args:
            request: What to search for.

        Returns:
            The background task. Callers normally ignore it and read the
            result from the event queue.
        """
        self.cancel()

        handle = CancellationHandle(f"search '{request.term}' page {request.page}")
        self._cancel_search = handle
        snapshot = self._environment()

        logger.debug(f"Starting search for '{request.term}' in scope {request.scope.value} (page {request.page})")
        self._task = asyncio.get_running_loop().create_task(self._run(request, snapshot, handle))
        return self._task

    def cancel(self) -> None:
        """Cancel the search in flight, if any."""
        if self._cancel_search is not None:
            self._cancel_search.cancel()
            self._cancel_search = None

    @property
    def is_searching(self) -> bool:
        return self._task is not None and not self._task.done()

    def enabled_sources(self, scope: Scope) -> List[SearchSource]:
        """
        Sources enabled by ``scope``, in priority order.

        Args:
            scope: ALL enables every source, any other scope exactly one.

        Returns:
            The sources to query.
        """
        if scope == Scope.ALL:
            wanted = SOURCE_PRIORITY
        else:
            wanted = (scope,)

        ordered = []
        for source_scope in wanted:
            ordered.extend(s for s in self.sources if s.scope == source_scope)
        return ordered

    async def _run(
        self,
        request: SearchRequest,
        environment: EnvironmentSnapshot,
        handle: CancellationHandle
    ) -> None:
        try:
            results = await self._collect(request, environment, handle)
        except TaskCancelled:
            logger.debug(f"Search for '{request.term}' superseded")
            return
        except SourceUnavailableError as e:
            if handle.cancelled:
                logger.debug(f"Search for '{request.term}' failed after being superseded: {e}")
                return
            logger.error(f"Search for '{request.term}' failed: {e}")
            self.events.put_nowait(SearchFailed(message=str(e), request=request))
            return

        if handle.cancelled:
            logger.debug(f"Search for '{request.term}' superseded before emitting")
            return

        logger.info(
            f"Search for '{request.term}' found {results.total_count} matches, "
            f"showing {len(results)} on page {results.current_page}"
        )
        self.events.put_nowait(SearchCompleted(results=results, request=request))

    async def _collect(
        self,
        request: SearchRequest,
        environment: EnvironmentSnapshot,
        handle: CancellationHandle
    ) -> ResultSet:
        """
        Query the enabled sources and build the page.

        Raises:
            TaskCancelled: If the search was superseded.
            SourceUnavailableError: If a source failed; records gathered so far are dropped.
        """
        records: List[CrateRecord] = []
        remaining_quota = request.page_size
        total_count = 0

        for source in self.enabled_sources(request.scope):
            handle.raise_if_cancelled()

            result = await source.fetch(request.term, request, remaining_quota, environment, handle)

            handle.raise_if_cancelled()

            total_count += result.total
            remaining_quota = extend_records(records, result.records, remaining_quota)
            logger.debug(
                f"Source {source.name} reported {result.total} matches, "
                f"{remaining_quota} slots left on page {request.page}"
            )

        records = deduplicate(records)
        annotate(records, environment)

        return ResultSet(
            records=records,
            total_count=total_count,
            current_page=request.page,
            page_size=request.page_size
        )
