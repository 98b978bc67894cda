"""
Pytest configuration and fixtures for crate-seek tests.
"""

import pytest

from crate_seek.cargo.environment import EnvironmentSnapshot, InstalledSnapshot
from crate_seek.cargo.metadata import Dependency, InstalledBinary, Package
from crate_seek.cargo.project import ProjectSnapshot
from crate_seek.core.interfaces import SearchConfig


def make_environment(dependencies=None, installed=None):
    """
    Build an EnvironmentSnapshot from plain tuples.

    Args:
        dependencies: Iterable of (name, req) pairs declared by a single package,
            or None for "not inside a project".
        installed: Iterable of (name, version) pairs.
    """
    project = None
    if dependencies is not None:
        project = ProjectSnapshot(packages=(
            Package(
                name="app",
                dependencies=tuple(Dependency(name=name, req=req) for name, req in dependencies)
            ),
        ))
    binaries = tuple(InstalledBinary(name=name, version=version) for name, version in (installed or []))
    return EnvironmentSnapshot(project=project, installed=InstalledSnapshot(binaries))


@pytest.fixture
def search_config():
    """Create a test search configuration."""
    return SearchConfig(
        page_size=10,
        hydration_debounce=0.01,  # Keep tests fast
        rate_limit_interval=0.0,
        request_timeout=5,
        retry_count=0
    )


@pytest.fixture
def serde_environment():
    """A project depending on serde and serde_json with ripgrep installed."""
    return make_environment(
        dependencies=[("serde", "1.0"), ("serde_json", "1.0")],
        installed=[("ripgrep", "14.1.0")]
    )
