# git.py
# Small, focused wrapper around the Git CLI.
# testdrive only needs git to find the project root; everything else works
# in a plain directory.

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Optional


def _git(args: list[str], cwd: Optional[str | Path] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    Args:
        args: List of git arguments (e.g. ["rev-parse", "--show-toplevel"])
        cwd: Optional working directory in which to run the git command.

    Returns:
        Stdout from the git command with surrounding whitespace removed.

    Raises:
        subprocess.CalledProcessError: git exited non-zero (e.g. not a repo)
        FileNotFoundError: git is not installed
    """
    out = subprocess.check_output(
        ["git", *args],
        cwd=str(cwd) if cwd is not None else None,
        text=True,
        stderr=subprocess.DEVNULL,
    )
    return out.strip()


def repo_root(cwd: Optional[str | Path] = None) -> Path:
    """
    Return the absolute path to the root of the enclosing Git repository.

    `git rev-parse --show-toplevel` prints the repo root regardless of where
    the command is run from inside the repo.
    """
    return Path(_git(["rev-parse", "--show-toplevel"], cwd=cwd))


def project_root(cwd: Optional[str | Path] = None) -> Path:
    """
    Directory that workflows, config and relative working directories hang off.

    The git top-level when `cwd` is inside a repository, else `cwd` itself.
    """
    start = Path(cwd) if cwd is not None else Path(os.getcwd())
    try:
        return repo_root(start)
    except (subprocess.CalledProcessError, FileNotFoundError):
        return start
