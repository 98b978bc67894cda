"""
Core interfaces for crate-seek.

This module contains the core data models shared by the search sources, the
orchestrator, the hydration service and the CLI.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Scope(Enum):
    """
    Which subset of sources a search queries.
    """
    ALL = "all"
    REGISTRY = "registry"
    PROJECT = "project"
    INSTALLED = "installed"

    def __str__(self) -> str:
        return self.value.capitalize()


class Sort(Enum):
    """
    Sort order forwarded to the registry.

    Local sources keep their declaration order regardless of the sort.
    """
    RELEVANCE = "relevance"
    NAME = "name"
    DOWNLOADS = "downloads"
    RECENT_DOWNLOADS = "recent-downloads"
    RECENTLY_UPDATED = "recently-updated"
    NEWLY_ADDED = "newly-added"

    @property
    def api_value(self) -> str:
        """Sort key understood by the crates.io search endpoint."""
        return _REGISTRY_SORT_KEYS[self]

    def __str__(self) -> str:
        return self.value.replace("-", " ").title()


_REGISTRY_SORT_KEYS = {
    Sort.RELEVANCE: "relevance",
    Sort.NAME: "alpha",
    Sort.DOWNLOADS: "downloads",
    Sort.RECENT_DOWNLOADS: "recent-downloads",
    Sort.RECENTLY_UPDATED: "recent-updates",
    Sort.NEWLY_ADDED: "new",
}


# crates.io serves at most this many rows per request, and a registry page must
# line up with a result page
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class SearchRequest:
    """
    A single search over one page of results.
    """
    term: str
    sort: Sort = Sort.RELEVANCE
    scope: Scope = Scope.ALL
    page: int = 1
    page_size: int = 100

    def __post_init__(self):
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be > 0, got {self.page_size}")
        if self.page_size > MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be <= {MAX_PAGE_SIZE}, got {self.page_size}")

    @property
    def offset(self) -> int:
        """Number of matches that belong to earlier pages."""
        return (self.page - 1) * self.page_size


@dataclass
class CrateRecord:
    """
    A matched crate.

    Records produced by the registry search carry the summary fields only;
    ``hydrated`` flips to True once the extended fields (features,
    categories, keywords, download counts and timestamps) have been merged in
    from the crate detail endpoint.
    """
    id: str
    name: str
    version: str
    description: Optional[str] = None
    homepage: Optional[str] = None
    documentation: Optional[str] = None
    repository: Optional[str] = None
    max_version: Optional[str] = None
    max_stable_version: Optional[str] = None
    downloads: Optional[int] = None
    recent_downloads: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    features: Optional[List[str]] = None
    categories: Optional[List[str]] = None
    keywords: Optional[List[str]] = None
    license: Optional[str] = None
    exact_match: bool = False
    project_version: Optional[str] = None
    installed_version: Optional[str] = None
    hydrated: bool = False

    @property
    def is_local(self) -> bool:
        return self.project_version is not None

    @property
    def is_installed(self) -> bool:
        return self.installed_version is not None


@dataclass(frozen=True)
class CrateDetail:
    """
    Full registry metadata for a single crate, as returned by the detail endpoint.
    """
    id: str
    name: str
    max_version: str
    max_stable_version: Optional[str] = None
    description: Optional[str] = None
    homepage: Optional[str] = None
    documentation: Optional[str] = None
    repository: Optional[str] = None
    downloads: Optional[int] = None
    recent_downloads: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    features: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    license: Optional[str] = None
    exact_match: bool = False

    @property
    def version(self) -> str:
        return self.max_stable_version or self.max_version


@dataclass
class SourceResult:
    """
    What a single search source contributes to one search.

    ``total`` is the source's full match count, which can be larger than the
    number of materialized ``records``.
    """
    records: List[CrateRecord] = field(default_factory=list)
    total: int = 0


@dataclass
class SearchCompleted:
    """Emitted once per non-cancelled, successful search."""
    results: Any  # ResultSet; typed loosely to keep this module free of search imports
    request: SearchRequest


@dataclass
class SearchFailed:
    """Emitted when a source fails; carries a human-readable message."""
    message: str
    request: SearchRequest


@dataclass
class RecordHydrated:
    """Emitted when extended metadata for a crate has been fetched."""
    crate_id: str
    detail: CrateDetail


@dataclass
class SearchConfig:
    """
    Configuration for searching and for the registry client.
    """
    registry_url: str = "https://crates.io/api/v1/"
    user_agent: str = "crate-seek (https://github.com/crate-seek/crate-seek)"
    page_size: int = 100
    hydration_debounce: float = 0.7
    rate_limit_interval: float = 1.1
    request_timeout: int = 10
    retry_count: int = 3
    default_scope: Scope = Scope.ALL
    default_sort: Sort = Sort.RELEVANCE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "registry_url": self.registry_url,
            "user_agent": self.user_agent,
            "page_size": self.page_size,
            "hydration_debounce": self.hydration_debounce,
            "rate_limit_interval": self.rate_limit_interval,
            "request_timeout": self.request_timeout,
            "retry_count": self.retry_count,
            "default_scope": self.default_scope.value,
            "default_sort": self.default_sort.value,
        }
