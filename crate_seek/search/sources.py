"""
Search sources.

Each source answers a search term with the records it can materialize for the
current page and the total number of matches it knows about. The orchestrator
iterates them polymorphically in priority order.
"""

import abc
import logging
from typing import List, Optional

from crate_seek.cargo.environment import EnvironmentSnapshot
from crate_seek.core.cancellation import CancellationHandle
from crate_seek.core.interfaces import CrateRecord, Scope, SearchRequest, SourceResult
from crate_seek.fetcher.crates_io import CratesIoClient


logger = logging.getLogger(__name__)


class SearchSource(abc.ABC):
    """
    Abstract base class for search sources.
    """

    #: Scope that enables this source on its own
    scope: Scope

    @abc.abstractmethod
    async def fetch(
        self,
        term: str,
        request: SearchRequest,
        quota: int,
        environment: EnvironmentSnapshot,
        cancellation: Optional[CancellationHandle] = None
    ) -> SourceResult:
        """
        Search this source.

        Args:
            term: Search term.
            request: The request being served (page, page size, sort).
            quota: Maximum number of records to materialize. May be 0, in which
                case the source still reports its total.
            environment: Snapshot of the local cargo state taken when the search started.
            cancellation: Handle to poll at suspension points.

        Returns:
            SourceResult with at most ``quota`` records and the full match total.
        """
        pass

    @property
    def name(self) -> str:
        return self.scope.value

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class LocalSearchSource(SearchSource):
    """
    Base class for synchronous, in-memory sources.

    Local matches are paged client-side: matches belonging to earlier pages
    are skipped before the quota is applied.
    """

    @abc.abstractmethod
    def matches(self, term: str, environment: EnvironmentSnapshot) -> List[CrateRecord]:
        """Return every local record matching ``term``, in declaration order."""
        pass

    async def fetch(
        self,
        term: str,
        request: SearchRequest,
        quota: int,
        environment: EnvironmentSnapshot,
        cancellation: Optional[CancellationHandle] = None
    ) -> SourceResult:
        records = self.matches(term, environment)
        page_records = records[request.offset:request.offset + max(quota, 0)]
        return SourceResult(records=page_records, total=len(records))


class ProjectDependencySource(LocalSearchSource):
    """
    Dependencies declared by the current project's manifests.
    """

    scope = Scope.PROJECT

    def matches(self, term: str, environment: EnvironmentSnapshot) -> List[CrateRecord]:
        if environment.project is None:
            return []

        term_lower = term.lower()
        return [
            CrateRecord(
                id=dependency.name,
                name=dependency.name,
                version=dependency.req,
                exact_match=dependency.name.lower() == term_lower,
                project_version=dependency.req,
            )
            for dependency in environment.project.dependency_matches(term)
        ]


class InstalledBinarySource(LocalSearchSource):
    """
    Crates installed globally with ``cargo install``.
    """

    scope = Scope.INSTALLED

    def matches(self, term: str, environment: EnvironmentSnapshot) -> List[CrateRecord]:
        term_lower = term.lower()
        return [
            CrateRecord(
                id=binary.name,
                name=binary.name,
                version=binary.version,
                exact_match=binary.name.lower() == term_lower,
                installed_version=binary.version,
            )
            for binary in environment.installed.matches(term)
        ]


class RegistrySource(SearchSource):
    """
    The crates.io registry, paginated server-side.
    """

    scope = Scope.REGISTRY

    def __init__(self, client: CratesIoClient):
        self.client = client

    async def fetch(
        self,
        term: str,
        request: SearchRequest,
        quota: int,
        environment: EnvironmentSnapshot,
        cancellation: Optional[CancellationHandle] = None
    ) -> SourceResult:
        """
        Query one page of the registry.

        A quota of 0 still issues the request so the registry's total counts
        towards pagination; none of its records are kept.

        Raises:
            SourceUnavailableError: If the registry cannot be reached or decoded.
            TaskCancelled: If ``cancellation`` fired while waiting on the rate gate.
        """
        records, total = await self.client.search_async(
            term,
            sort=request.sort,
            page=request.page,
            per_page=quota,
            cancellation=cancellation
        )
        return SourceResult(records=records[:max(quota, 0)], total=total)


def default_sources(client: CratesIoClient) -> List[SearchSource]:
    """The three standard sources in priority order."""
    return [ProjectDependencySource(), InstalledBinarySource(), RegistrySource(client)]
