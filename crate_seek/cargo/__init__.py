"""
Local Cargo state: the current project's dependencies and installed binaries.
"""

from crate_seek.cargo.environment import CargoEnvironment, EnvironmentSnapshot, InstalledSnapshot
from crate_seek.cargo.metadata import Dependency, InstalledBinary, Package
from crate_seek.cargo.project import Project, ProjectSnapshot

__all__ = [
    'CargoEnvironment',
    'EnvironmentSnapshot',
    'InstalledSnapshot',
    'Dependency',
    'InstalledBinary',
    'Package',
    'Project',
    'ProjectSnapshot'
]
