"""
Registry client module for crate-seek.

This module provides functionality to query the crates.io package registry.
"""

from crate_seek.fetcher.base import HttpRegistryClient
from crate_seek.fetcher.crates_io import CratesIoClient
from crate_seek.fetcher.rate_limit import RateGate

__all__ = [
    'HttpRegistryClient',
    'CratesIoClient',
    'RateGate'
]
