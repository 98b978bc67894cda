"""
Crate Seek - search Rust crates across the local project, installed binaries and crates.io.

This package provides the search aggregation engine behind crate-seek: it fans a
search out over several sources, merges and paginates the results, and lazily
hydrates the selected crate with registry metadata.
"""

__version__ = "0.1.0"
__author__ = "Crate Seek Team"

from .core.exceptions import (
    CrateSeekError, SourceUnavailableError, HydrationError, ConfigurationError
)
from .core.interfaces import CrateRecord, Scope, SearchConfig, SearchRequest, Sort
from .search.session import SearchSession

__all__ = [
    "SearchSession",
    "SearchRequest",
    "SearchConfig",
    "CrateRecord",
    "Scope",
    "Sort",
    "CrateSeekError",
    "SourceUnavailableError",
    "HydrationError",
    "ConfigurationError"
]
