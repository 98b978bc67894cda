"""
Exceptions for crate-seek.

This module contains the exception hierarchy for crate-seek operations.
"""


class CrateSeekError(Exception):
    """Base exception for crate-seek operations."""
    pass


class SourceUnavailableError(CrateSeekError):
    """Raised when a search source cannot be queried (network, timeout or decode failure)."""
    pass


class TaskCancelled(CrateSeekError):
    """Raised inside a search or hydration task once its cancellation handle has fired."""
    pass


class HydrationError(CrateSeekError):
    """Raised when extended crate metadata cannot be fetched."""
    pass


class ConfigurationError(CrateSeekError):
    """Raised when configuration is invalid."""
    pass


class CargoCommandError(CrateSeekError):
    """Raised when a cargo command fails or produces unreadable output."""
    pass
