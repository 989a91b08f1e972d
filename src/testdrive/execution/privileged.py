"""Gate for run steps that would need root or mutate the host.

The default patterns are coarse substrings and will also match unrelated
script text that happens to mention a package manager.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from ..ui.console import get_console

ALLOW_PRIVILEGED_ENV = "TESTDRIVE_ALLOW_PRIVILEGED"

DEFAULT_PRIVILEGED_PATTERNS = [
    r"(?i)(?:^|[\s;&|(`])sudo\b",     # sudo anywhere a command can start
    r"(?i)\bapt-get\b",                # Debian/Ubuntu package manager
    r"(?i)\bapt\b",                    # modern apt command
    r"(?i)\byum\b",                    # Red Hat package manager
    r"(?i)\bdnf\b",                    # Fedora package manager
    r"(?i)\bzypper\b",                 # SUSE package manager
    r"(?i)\bpacman\b",                 # Arch package manager
    r"(?i)\bbrew\b",                   # macOS package manager
    r"(?i)\bchoco\b",                  # Windows package manager
    r"(?i)\bwinget\b",                 # Windows package manager
    r"(?i)\bpip\s+install\s+--user",   # user-site installs
    r"(?i)\bnpm\s+install\s+-g",       # global npm installs
    r"(?i)\byarn\s+global",            # global yarn installs
]


@dataclass(frozen=True)
class SkipDecision:
    """Why a step was not executed. A value, not an error."""
    pattern: str
    message: str


def privileged_allowed(environ: Optional[Mapping[str, str]] = None) -> bool:
    """True when the user opted in via TESTDRIVE_ALLOW_PRIVILEGED=1."""
    environ = os.environ if environ is None else environ
    return environ.get(ALLOW_PRIVILEGED_ENV, "") == "1"


def check_privileged(
    script: str,
    patterns: Optional[Sequence[str]] = None,
    allow: bool = False,
) -> Optional[SkipDecision]:
    """
    Decide whether a script must be skipped.

    Returns the decision for the first matching pattern, or None when the
    script may run. Patterns that fail to compile are ignored.
    """
    if allow:
        return None

    if patterns is None:
        patterns = DEFAULT_PRIVILEGED_PATTERNS

    for pattern in patterns:
        if not pattern:
            continue
        try:
            matched = re.search(pattern, script)
        except re.error as e:
            get_console().print_debug(f"ignoring privileged pattern {pattern!r}: {e}")
            continue
        if matched:
            return SkipDecision(
                pattern=pattern,
                message=(
                    f"skipped privileged command matching pattern {pattern!r}; "
                    f"set {ALLOW_PRIVILEGED_ENV}=1 to run"
                ),
            )
    return None
