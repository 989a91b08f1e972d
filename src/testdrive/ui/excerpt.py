"""Failure excerpts for the streaming renderer.

Strips framework noise (deprecation banners, migration notices) from a
failed step's combined output and, when the output contains a test report
we recognize, condenses it to one line per failing test.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional

ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")

NOISE_PATTERNS = [
    re.compile(r"^\s*DEPRECATION WARNING\b", re.IGNORECASE),
    re.compile(r"\bDeprecationWarning\b"),
    re.compile(r"\bPendingDeprecationWarning\b"),
    re.compile(r"^\s*npm WARN deprecated\b", re.IGNORECASE),
    re.compile(r"^\s*\(node:\d+\) \[DEP\d+\]"),
    re.compile(r"^\s*\(Use `node --trace-deprecation"),
    re.compile(r"\bis deprecated\b.*\bwill be removed\b", re.IGNORECASE),
    re.compile(r"^\s*\[DEPRECATED\]"),
    re.compile(r"^\s*(?:NOTE|NOTICE):.*\bmigrat", re.IGNORECASE),
    re.compile(r"\bplease migrate\b", re.IGNORECASE),
    re.compile(r"^\s*Migrations? (?:are )?pending\b", re.IGNORECASE),
]


def is_noise(line: str) -> bool:
    return any(p.search(line) for p in NOISE_PATTERNS)


def clean_lines(text: str) -> List[str]:
    """Drop escape codes, blank lines and known framework noise."""
    out: List[str] = []
    for raw in text.splitlines():
        line = ANSI_RE.sub("", raw).rstrip()
        if not line.strip() or is_noise(line):
            continue
        out.append(line)
    return out


@dataclass(frozen=True)
class ReportedFailure:
    name: str
    message: str = ""


# ---------------------------------------------------------------------
# Report parsers. Each returns None when its format is not present.
# ---------------------------------------------------------------------

_PYTEST_HEADER = re.compile(r"=+ short test summary info =+")
_PYTEST_LINE = re.compile(r"^(?:FAILED|ERROR) (\S+)(?: - (.*))?$")


def _parse_pytest(lines: List[str]) -> Optional[List[ReportedFailure]]:
    try:
        start = next(i for i, line in enumerate(lines) if _PYTEST_HEADER.search(line))
    except StopIteration:
        return None
    failures = []
    for line in lines[start + 1:]:
        m = _PYTEST_LINE.match(line.strip())
        if m:
            failures.append(ReportedFailure(m.group(1), (m.group(2) or "").strip()))
    return failures or None


_RSPEC_HEADER = re.compile(r"^Failed examples:\s*$")
_RSPEC_LINE = re.compile(r"^rspec (\S+) # (.*)$")


def _parse_rspec(lines: List[str]) -> Optional[List[ReportedFailure]]:
    if not any(_RSPEC_HEADER.match(line.strip()) for line in lines):
        return None
    failures = []
    for line in lines:
        m = _RSPEC_LINE.match(line.strip())
        if m:
            failures.append(ReportedFailure(m.group(2).strip(), m.group(1)))
    return failures or None


_GO_FAIL = re.compile(r"^\s*--- FAIL: (\S+) \(([\d.]+s)\)")
_GO_DETAIL = re.compile(r"^\s+\S+\.go:\d+: (.*)$")


def _parse_go(lines: List[str]) -> Optional[List[ReportedFailure]]:
    failures = []
    for i, line in enumerate(lines):
        m = _GO_FAIL.match(line)
        if not m:
            continue
        message = ""
        if i + 1 < len(lines):
            detail = _GO_DETAIL.match(lines[i + 1])
            if detail:
                message = detail.group(1).strip()
        failures.append(ReportedFailure(m.group(1), message))
    return failures or None


REPORT_PARSERS: List[Callable[[List[str]], Optional[List[ReportedFailure]]]] = [
    _parse_pytest,
    _parse_rspec,
    _parse_go,
]


def condense_report(lines: List[str]) -> Optional[List[str]]:
    """
    Reformat a recognized test report into a per-failure list.

    Returns None when no parser recognizes the output.
    """
    for parser in REPORT_PARSERS:
        failures = parser(lines)
        if failures:
            noun = "test" if len(failures) == 1 else "tests"
            out = [f"{len(failures)} failing {noun}:"]
            for f in failures:
                out.append(f"• {f.name}: {f.message}" if f.message else f"• {f.name}")
            return out
    return None


def failure_excerpt(stdout: str, stderr: str, max_lines: int = 20) -> List[str]:
    """Cleaned excerpt of a failed step's combined output."""
    lines = clean_lines(stdout) + clean_lines(stderr)
    condensed = condense_report(lines)
    if condensed is not None:
        return condensed
    if max_lines > 0 and len(lines) > max_lines:
        return lines[-max_lines:]
    return lines
