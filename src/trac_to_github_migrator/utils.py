"""
Utility functions for the Trac to GitHub migration tool.
"""

from __future__ import annotations

import logging
import re
import subprocess
from typing import Final

LOG_FILE: Final[str] = "migration.log"
LOG_FORMAT: Final[str] = "%(asctime)s - %(levelname)s - %(message)s"


class PassError(Exception):
    """Base class for pass-related errors."""


class InvalidPassPathError(PassError):
    """Raised when the pass entry does not exist."""


def setup_logging(*, verbose: bool = False, log_file: str | None = LOG_FILE) -> None:
    """Configure logging for the migration process.

    Logs go to the console and, unless ``log_file`` is None, are appended to a
    file so an interrupted run can be audited before resuming it.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="a"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


def _validate_pass_path(pass_path: str) -> None:
    valid = re.fullmatch(r"(?:[A-Za-z0-9_.-]+)(?:/[A-Za-z0-9_.-]+)*", pass_path)
    if not valid or any(part in {".", ".."} for part in pass_path.split("/")):
        msg = f"Invalid pass path: {pass_path}"
        raise ValueError(msg)


def get_pass_value(pass_path: str) -> str:
    """Get the first line of a pass entry."""
    _validate_pass_path(pass_path)

    try:
        result = subprocess.run(  # noqa: S603
            ["pass", "show", pass_path], capture_output=True, text=True, check=True
        )
    except FileNotFoundError as e:
        msg = "The pass utility is not installed"
        raise PassError(msg) from e
    except subprocess.CalledProcessError as e:
        if "not in the password store" in e.stderr.lower():
            msg = f"Pass path '{pass_path}' not found."
            raise InvalidPassPathError(msg) from e
        msg = f"Failed to get value from pass at '{pass_path}': {e.stderr.strip()} (return code {e.returncode})"
        raise PassError(msg) from e

    lines = result.stdout.splitlines()
    return lines[0].strip() if lines else ""
