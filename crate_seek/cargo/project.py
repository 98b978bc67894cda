"""
The local Cargo project.

A Project locates the nearest Cargo.toml and reads its workspace metadata
into an immutable ProjectSnapshot that search tasks can hold on to.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from crate_seek.cargo.commands import run_cargo
from crate_seek.cargo.metadata import Dependency, Package, parse_metadata
from crate_seek.core.exceptions import CargoCommandError


logger = logging.getLogger(__name__)

MANIFEST_NAME = "cargo.toml"


@dataclass(frozen=True)
class ProjectSnapshot:
    """
    Immutable view of a project's packages and dependency requirements.
    """
    manifest_path: Optional[Path] = None
    packages: Tuple[Package, ...] = field(default_factory=tuple)

    def dependency_matches(self, term: str) -> List[Dependency]:
        """
        Return every dependency whose name contains ``term`` (case-insensitive).

        Dependencies repeated across workspace members are returned once per
        member.
        """
        term = term.lower()
        return [
            dependency
            for package in self.packages
            for dependency in package.dependencies
            if term in dependency.name.lower()
        ]

    def local_version(self, name: str) -> Optional[str]:
        """Version requirement declared for ``name``, or None if the project does not depend on it."""
        return self._versions().get(name)

    def _versions(self) -> Dict[str, str]:
        # Later workspace members win, matching the order cargo reports them
        versions = {}
        for package in self.packages:
            for dependency in package.dependencies:
                versions[dependency.name] = dependency.req
        return versions


def find_manifest(start_dir: Union[str, Path]) -> Optional[Path]:
    """
    Walk up from ``start_dir`` looking for a Cargo.toml.

    Args:
        start_dir: Directory to start from.

    Returns:
        Path to the nearest manifest, or None if there is none.
    """
    path = Path(start_dir).expanduser().resolve()
    if not path.is_dir():
        return None

    for directory in [path] + list(path.parents):
        try:
            for entry in directory.iterdir():
                if entry.name.lower() == MANIFEST_NAME and entry.is_file():
                    return entry
        except OSError as e:
            logger.debug(f"Cannot list {directory}: {e}")
    return None


class Project:
    """
    A local cargo project rooted at a manifest file.
    """

    def __init__(self, manifest_path: Union[str, Path]):
        self.manifest_path = Path(manifest_path)
        self._snapshot = ProjectSnapshot(manifest_path=self.manifest_path)

    @classmethod
    def discover(cls, start_dir: Union[str, Path]) -> Optional["Project"]:
        """Create a Project for the nearest manifest above ``start_dir``, if any."""
        manifest = find_manifest(start_dir)
        if manifest is None:
            logger.debug(f"No Cargo.toml found from {start_dir}")
            return None
        return cls(manifest)

    def read(self) -> ProjectSnapshot:
        """
        Re-read the project metadata.

        Returns:
            The new snapshot, which also becomes ``self.snapshot``.

        Raises:
            CargoCommandError: If the manifest is gone or cargo metadata fails.
        """
        if not self.manifest_path.exists():
            raise CargoCommandError(f"Manifest file no longer exists: {self.manifest_path}")

        output = run_cargo([
            "metadata", "--no-deps", "--format-version", "1",
            "--manifest-path", str(self.manifest_path)
        ])
        packages = parse_metadata(output)

        self._snapshot = ProjectSnapshot(manifest_path=self.manifest_path, packages=tuple(packages))
        logger.debug(
            f"Read {len(packages)} packages with "
            f"{sum(len(p.dependencies) for p in packages)} dependencies from {self.manifest_path}"
        )
        return self._snapshot

    @property
    def snapshot(self) -> ProjectSnapshot:
        return self._snapshot
