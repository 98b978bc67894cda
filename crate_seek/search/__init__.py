"""
Crate search and discovery functionality.

This module provides the search engine: sources, quota-based merging and
deduplication, paginated results, single-flight orchestration and debounced
hydration of the selected crate.
"""

from .hydration import HydrationService
from .orchestrator import SearchOrchestrator
from .results import ResultSet, SELECT_LAST
from .session import SearchSession
from .sources import (
    InstalledBinarySource, ProjectDependencySource, RegistrySource, SearchSource
)

__all__ = [
    'SearchSession',
    'SearchOrchestrator',
    'HydrationService',
    'ResultSet',
    'SELECT_LAST',
    'SearchSource',
    'ProjectDependencySource',
    'InstalledBinarySource',
    'RegistrySource'
]
