"""
Snapshot of the local cargo environment used by searches.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

from crate_seek.cargo.commands import run_cargo
from crate_seek.cargo.metadata import InstalledBinary, parse_install_list
from crate_seek.cargo.project import Project, ProjectSnapshot
from crate_seek.core.exceptions import CargoCommandError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstalledSnapshot:
    """
    Immutable list of globally installed binaries.
    """
    binaries: Tuple[InstalledBinary, ...] = field(default_factory=tuple)

    def matches(self, term: str) -> List[InstalledBinary]:
        term = term.lower()
        return [b for b in self.binaries if term in b.name.lower()]

    def installed_version(self, name: str) -> Optional[str]:
        for binary in self.binaries:
            if binary.name == name:
                return binary.version
        return None


@dataclass(frozen=True)
class EnvironmentSnapshot:
    """
    The project and installed binaries as they were when a search started.

    ``project`` is None when crate-seek is not run inside a cargo project.
    """
    project: Optional[ProjectSnapshot] = None
    installed: InstalledSnapshot = field(default_factory=InstalledSnapshot)

    def local_version(self, name: str) -> Optional[str]:
        if self.project is None:
            return None
        return self.project.local_version(name)

    def installed_version(self, name: str) -> Optional[str]:
        return self.installed.installed_version(name)


def read_installed_binaries() -> List[InstalledBinary]:
    """
    List binaries installed with ``cargo install``.

    Raises:
        CargoCommandError: If cargo cannot be run.
    """
    return parse_install_list(run_cargo(["install", "--list"]))


class CargoEnvironment:
    """
    Mutable owner of the local cargo state.

    ``refresh`` re-reads the project and installed binaries; ``snapshot``
    hands out an immutable view so a search in flight never observes a
    half-refreshed environment.
    """

    def __init__(self, root: Optional[Union[str, Path]] = None, project: Optional[Project] = None):
        """
        Initialize the cargo environment.

        Args:
            root: Directory to look for a project from. If None, no project is used.
            project: An already located project; takes precedence over ``root``.
        """
        self.root = Path(root) if root is not None else None
        self.project = project
        if self.project is None and self.root is not None:
            self.project = Project.discover(self.root)
        self._snapshot = EnvironmentSnapshot(
            project=self.project.snapshot if self.project else None
        )

    def refresh(self) -> EnvironmentSnapshot:
        """
        Re-read the project and the installed binaries.

        Failures are logged and leave the affected part empty.

        Returns:
            The new snapshot.
        """
        if self.project is None and self.root is not None:
            self.project = Project.discover(self.root)

        project_snapshot = None
        if self.project is not None:
            try:
                project_snapshot = self.project.read()
            except CargoCommandError as e:
                logger.warning(f"Failed to read project {self.project.manifest_path}: {e}")
                project_snapshot = self.project.snapshot

        try:
            installed = InstalledSnapshot(tuple(read_installed_binaries()))
        except CargoCommandError as e:
            logger.warning(f"Failed to list installed binaries: {e}")
            installed = InstalledSnapshot()

        self._snapshot = EnvironmentSnapshot(project=project_snapshot, installed=installed)
        return self._snapshot

    def snapshot(self) -> EnvironmentSnapshot:
        return self._snapshot
