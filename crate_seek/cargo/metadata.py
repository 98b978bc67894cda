"""
Parsing of cargo's machine-readable and list outputs.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from crate_seek.core.exceptions import CargoCommandError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dependency:
    """
    A dependency declared in a package manifest.
    """
    name: str
    req: str
    kind: Optional[str] = None  # None for normal deps, "dev" or "build" otherwise
    optional: bool = False


@dataclass(frozen=True)
class Package:
    """
    A package (workspace member) and its declared dependencies.
    """
    name: str
    version: Optional[str] = None
    description: Optional[str] = None
    dependencies: Tuple[Dependency, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class InstalledBinary:
    """
    A crate installed globally with ``cargo install``.
    """
    name: str
    version: str


def parse_metadata(output: str) -> List[Package]:
    """
    Parse the JSON printed by ``cargo metadata --no-deps --format-version 1``.

    Args:
        output: Raw stdout of the command.

    Returns:
        The workspace packages in manifest order.

    Raises:
        CargoCommandError: If the output is not valid metadata JSON.
    """
    try:
        data = json.loads(output)
    except ValueError as e:
        raise CargoCommandError(f"Failed to parse cargo metadata output: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("packages"), list):
        raise CargoCommandError("cargo metadata output has no 'packages' list")

    return [_parse_package(raw) for raw in data["packages"]]


def _parse_package(raw: Dict[str, Any]) -> Package:
    dependencies = tuple(
        Dependency(
            name=dep["name"],
            req=dep.get("req", "*"),
            kind=dep.get("kind"),
            optional=bool(dep.get("optional", False))
        )
        for dep in raw.get("dependencies", [])
        if dep.get("name")
    )
    return Package(
        name=raw.get("name", ""),
        version=raw.get("version"),
        description=raw.get("description"),
        dependencies=dependencies
    )


def parse_install_list(output: str) -> List[InstalledBinary]:
    """
    Parse the output of ``cargo install --list``.

    Package lines look like ``ripgrep v14.1.0:``; the indented lines below
    them list the binaries and are skipped.

    Args:
        output: Raw stdout of the command.

    Returns:
        The installed packages.
    """
    binaries = []

    for line in output.splitlines():
        if not line or line.startswith(" ") or " v" not in line:
            continue

        parts = line.rstrip(":").split(" ")
        if len(parts) < 2:
            continue

        # Git and path installs append "(<source>)" after the version
        name, version = parts[0], parts[1]
        if not version.startswith("v"):
            logger.debug(f"Skipping unrecognised install list line: {line!r}")
            continue

        binaries.append(InstalledBinary(name=name, version=version[1:].rstrip(":")))

    return binaries
