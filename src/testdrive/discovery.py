# discovery.py
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import NoWorkflowsError, ProviderError

WORKFLOW_DIR = Path(".github") / "workflows"
WORKFLOW_GLOBS = ("*.yml", "*.yaml")


def find_workflows(root: str | Path, explicit: Optional[Sequence[str]] = None) -> List[str]:
    """
    Return workflow file paths, relative to `root` where possible.

    Explicit paths are validated and returned in the order given (duplicates
    dropped). Otherwise `.github/workflows/*.yml|*.yaml` is globbed and the
    matches are sorted.

    Raises:
        NoWorkflowsError: nothing found
        ProviderError: an explicit path is missing or is a directory
    """
    root = Path(root)
    if explicit:
        return _resolve_explicit(root, explicit)

    matches = set()
    workflow_dir = root / WORKFLOW_DIR
    for pattern in WORKFLOW_GLOBS:
        matches.update(p for p in workflow_dir.glob(pattern) if p.is_file())

    if not matches:
        raise NoWorkflowsError(
            "no workflows found; specify --workflow to provide files",
            details={"looked_in": str(workflow_dir)},
        )
    return sorted(_rel_or_clean(root, p) for p in matches)


def _resolve_explicit(root: Path, explicit: Sequence[str]) -> List[str]:
    seen = set()
    resolved: List[str] = []
    for raw in explicit:
        path = Path(raw)
        if not path.is_absolute():
            path = root / path
        if not path.exists():
            raise ProviderError(f"workflow {raw!r} not found", details={"path": str(path)})
        if path.is_dir():
            raise ProviderError(f"workflow {raw!r} is a directory", details={"path": str(path)})
        rel = _rel_or_clean(root, path)
        if rel in seen:
            continue
        seen.add(rel)
        resolved.append(rel)
    return resolved


def _rel_or_clean(root: Path, path: Path) -> str:
    clean = os.path.normpath(str(path))
    try:
        rel = os.path.relpath(clean, os.path.normpath(str(root)))
    except ValueError:
        # different drives on Windows
        return clean
    if rel == "." or rel.startswith(".."):
        return clean
    return Path(rel).as_posix()
