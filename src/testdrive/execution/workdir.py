from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from ..errors import ResolutionError


def resolve_working_directory(
    root: Optional[str | Path],
    *candidates: Optional[str],
) -> Path:
    """
    Pick the directory a step runs in.

    Candidates are checked in order (step, job default, workflow default).
    The first non-blank one wins; relative paths hang off `root`. With no
    candidate set the step runs in `root`, or the current directory when no
    root is known.

    Raises:
        ResolutionError: the chosen directory is missing or not a directory.
    """
    for candidate in candidates:
        candidate = (candidate or "").strip()
        if not candidate:
            continue

        path = Path(candidate)
        if not path.is_absolute():
            path = Path(root or os.getcwd()) / path

        try:
            is_dir = path.is_dir()
            exists = is_dir or path.exists()
        except OSError as e:
            raise ResolutionError(
                f"stat working directory {str(path)!r}: {e}", details={"path": str(path)}
            ) from e
        if not exists:
            raise ResolutionError(
                f"working directory {str(path)!r} not found", details={"path": str(path)}
            )
        if not is_dir:
            raise ResolutionError(
                f"working directory {str(path)!r} is not a directory", details={"path": str(path)}
            )
        return path

    if root:
        return Path(root)
    return Path(os.getcwd())
