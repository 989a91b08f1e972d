"""Environment merging for step subprocesses.

Workflow, job and step `env:` maps are layered over the inherited process
environment with increasing precedence.
"""

from __future__ import annotations

import os
from typing import Dict, Iterable, List, Mapping, Optional


def merge_env(
    base: Optional[Iterable[str] | Mapping[str, str]],
    *overlays: Optional[Mapping[str, str]],
) -> List[str]:
    """
    Merge overlays onto a base environment.

    Args:
        base: Inherited environment, either ``KEY=VALUE`` strings or a mapping
              (defaults to ``os.environ``).
        overlays: Maps applied in order; later ones win (workflow, job, step).

    Returns:
        Key-sorted ``KEY=VALUE`` strings.
    """
    if base is None:
        base = os.environ

    env: Dict[str, str] = {}
    if isinstance(base, Mapping):
        env.update(base)
    else:
        env.update(env_to_mapping(base))

    for overlay in overlays:
        if overlay:
            env.update(overlay)

    return [f"{key}={env[key]}" for key in sorted(env)]


def env_to_mapping(pairs: Iterable[str]) -> Dict[str, str]:
    """Split ``KEY=VALUE`` strings on the first ``=``; entries without one are dropped."""
    out: Dict[str, str] = {}
    for kv in pairs:
        key, sep, value = kv.partition("=")
        if sep and key:
            out[key] = value
    return out
