"""
Interactive search session.

This module provides the SearchSession class, the caller-side owner of the
live ResultSet. It issues searches through the orchestrator, applies the
events they produce, translates page navigation into new searches, and
requests hydration whenever the selection lands on a record that needs it.
"""

import asyncio
import logging
from typing import List, Optional, Union

from crate_seek.cargo.environment import CargoEnvironment, EnvironmentSnapshot
from crate_seek.core.interfaces import (
    CrateRecord, RecordHydrated, Scope, SearchCompleted, SearchConfig,
    SearchFailed, SearchRequest, Sort
)
from crate_seek.fetcher.crates_io import CratesIoClient
from crate_seek.search.hydration import HydrationService
from crate_seek.search.merge import annotate
from crate_seek.search.orchestrator import SearchOrchestrator
from crate_seek.search.results import ResultSet
from crate_seek.search.sources import SearchSource, default_sources


logger = logging.getLogger(__name__)

SearchEvent = Union[SearchCompleted, SearchFailed, RecordHydrated]


class SearchSession:
    """
    Search state for one user: current request, current results and selection.

    Events from background work are delivered on ``events``; the caller's
    loop pulls them with ``next_event`` or ``process_events``, which also
    apply them to the session.
    """

    def __init__(
        self,
        config: Optional[SearchConfig] = None,
        environment: Optional[CargoEnvironment] = None,
        client: Optional[CratesIoClient] = None,
        sources: Optional[List[SearchSource]] = None
    ):
        """
        Initialize the search session.

        Args:
            config: Search configuration. If None, uses default configuration.
            environment: Local cargo state. If None, an empty environment is used.
            client: crates.io client shared by search and hydration. If None,
                one is built from ``config``.
            sources: Search sources. If None, uses the project, installed and
                registry sources.
        """
        self.config = config or SearchConfig()
        self.environment = environment or CargoEnvironment()
        self.client = client or CratesIoClient(self.config)

        self.events: asyncio.Queue = asyncio.Queue()
        self.orchestrator = SearchOrchestrator(
            sources if sources is not None else default_sources(self.client),
            self.events,
            self.environment.snapshot
        )
        self.hydration = HydrationService(self.client, self.events, debounce=self.config.hydration_debounce)

        self.scope = self.config.default_scope
        self.sort = self.config.default_sort
        self.results: Optional[ResultSet] = None
        self.request: Optional[SearchRequest] = None
        # The request that produced ``results``; ``request`` may be newer
        self.results_request: Optional[SearchRequest] = None
        self.last_error: Optional[str] = None

    # Searching

    def search(
        self,
        term: str,
        page: int = 1,
        sort: Optional[Sort] = None,
        scope: Optional[Scope] = None
    ) -> SearchRequest:
        """
        Issue a search, superseding any search or hydration in flight.

        Args:
            term: Search term.
            page: 1-based page to load.
            sort: Sort order; also becomes the session default.
            scope: Scope; also becomes the session default.

        Returns:
            The request that was issued.
        """
        if sort is not None:
            self.sort = sort
        if scope is not None:
            self.scope = scope

        request = SearchRequest(
            term=term,
            sort=self.sort,
            scope=self.scope,
            page=page,
            page_size=self.config.page_size
        )
        self.hydration.cancel()
        self.request = request
        self.orchestrator.search(request)
        return request

    @property
    def is_searching(self) -> bool:
        return self.orchestrator.is_searching

    def set_scope(self, scope: Scope) -> Optional[SearchRequest]:
        """Change the scope and, if results are showing, reload from page 1."""
        self.scope = scope
        if self.results is None or self.request is None:
            return None
        return self.search(self.request.term, page=1)

    def set_sort(self, sort: Sort) -> Optional[SearchRequest]:
        """Change the sort order and, if results are showing, reload from page 1."""
        self.sort = sort
        if self.results is None or self.request is None:
            return None
        return self.search(self.request.term, page=1)

    # Page navigation

    def go_to_page(self, page: int) -> Optional[SearchRequest]:
        """
        Load another page by issuing a new search for it.

        Args:
            page: Target page; clamped to [1, page_count].

        Returns:
            The issued request, or None when there are no results or the
            clamped target is the current page.
        """
        if self.results is None or self.results_request is None:
            return None

        target = self.results.clamp_page(page)
        if target == self.results.current_page:
            return None

        # Page through the results on screen, not a newer search still in flight
        logger.debug(f"Loading page {target} of '{self.results_request.term}'")
        return self.search(self.results_request.term, page=target)

    def go_forward_pages(self, pages: int = 1) -> Optional[SearchRequest]:
        if self.results is None:
            return None
        return self.go_to_page(self.results.current_page + pages)

    def go_back_pages(self, pages: int = 1) -> Optional[SearchRequest]:
        if self.results is None:
            return None
        return self.go_to_page(self.results.current_page - pages)

    def go_first_page(self) -> Optional[SearchRequest]:
        return self.go_to_page(1)

    def go_last_page(self) -> Optional[SearchRequest]:
        if self.results is None:
            return None
        return self.go_to_page(self.results.page_count())

    # Selection

    def selected(self) -> Optional[CrateRecord]:
        return self.results.selected() if self.results else None

    def select(self, index: Optional[int]) -> Optional[CrateRecord]:
        return self._after_selection(self.results.select(index) if self.results else None)

    def select_next(self) -> Optional[CrateRecord]:
        return self._after_selection(self.results.select_next() if self.results else None)

    def select_previous(self) -> Optional[CrateRecord]:
        return self._after_selection(self.results.select_previous() if self.results else None)

    def select_first(self) -> Optional[CrateRecord]:
        return self._after_selection(self.results.select_first() if self.results else None)

    def select_last(self) -> Optional[CrateRecord]:
        return self._after_selection(self.results.select_last() if self.results else None)

    def _after_selection(self, record: Optional[CrateRecord]) -> Optional[CrateRecord]:
        if HydrationService.needs_hydration(record):
            self.hydration.request_hydration(record.id)
        else:
            # The selection moved away from whatever was being fetched
            self.hydration.cancel()
        return record

    # Events

    def handle_event(self, event: SearchEvent) -> None:
        """
        Apply a background event to the session state.

        A completed search replaces the results and selects the first exact
        match (or the first record). A failed search keeps the previous
        results. Hydrated metadata is merged into the current results, or
        dropped if its record is no longer there.
        """
        if isinstance(event, SearchCompleted):
            self.results = event.results
            self.results_request = event.request
            self.last_error = None
            self._after_selection(self.results.select_default())
        elif isinstance(event, SearchFailed):
            self.last_error = event.message
        elif isinstance(event, RecordHydrated):
            if self.results is not None:
                self.results.apply_detail(event.crate_id, event.detail)
        else:
            raise TypeError(f"Unknown search event: {event!r}")

    async def next_event(self, timeout: Optional[float] = None) -> SearchEvent:
        """
        Wait for the next event, apply it and return it.

        Raises:
            asyncio.TimeoutError: If ``timeout`` elapses first.
        """
        if timeout is None:
            event = await self.events.get()
        else:
            event = await asyncio.wait_for(self.events.get(), timeout)
        self.handle_event(event)
        return event

    def process_events(self) -> List[SearchEvent]:
        """Apply every event already queued, without waiting."""
        processed = []
        while not self.events.empty():
            event = self.events.get_nowait()
            self.handle_event(event)
            processed.append(event)
        return processed

    # Environment

    def refresh_environment(self) -> EnvironmentSnapshot:
        """
        Re-read the local cargo state and re-annotate the current results.

        Searches already in flight keep the snapshot they started with.
        """
        snapshot = self.environment.refresh()
        if self.results is not None:
            annotate(self.results.records, snapshot)
        return snapshot

    def close(self) -> None:
        self.orchestrator.cancel()
        self.hydration.cancel()
        self.client.close()
