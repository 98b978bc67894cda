"""
Running cargo subcommands.
"""

import logging
import shutil
import subprocess
from typing import List

from crate_seek.core.exceptions import CargoCommandError


logger = logging.getLogger(__name__)

CARGO = "cargo"


def cargo_available() -> bool:
    """Return True if the cargo executable is on PATH."""
    return shutil.which(CARGO) is not None


def run_cargo(args: List[str], timeout: int = 30) -> str:
    """
    Run ``cargo <args>`` and return its standard output.

    Args:
        args: Arguments passed to cargo.
        timeout: Timeout in seconds for the command.

    Returns:
        The command's stdout.

    Raises:
        CargoCommandError: If cargo is missing, times out or exits non-zero.
    """
    command = [CARGO] + list(args)

    if not cargo_available():
        raise CargoCommandError("cargo executable not found on PATH")

    try:
        logger.debug(f"Executing command: {' '.join(command)}")
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False
        )
    except subprocess.TimeoutExpired:
        raise CargoCommandError(f"Command '{' '.join(command)}' timed out after {timeout} seconds")
    except (subprocess.SubprocessError, OSError) as e:
        raise CargoCommandError(f"Failed to execute command '{' '.join(command)}': {e}")

    if result.returncode != 0:
        raise CargoCommandError(
            f"Command '{' '.join(command)}' returned exit code {result.returncode}: "
            f"{result.stderr.strip()}"
        )

    return result.stdout
