# filter.py
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import List, Optional, Pattern as RePattern, Sequence

from ..errors import FilterError
from ..model import Job, Step, Workflow


@dataclass(frozen=True)
class Pattern:
    """
    A filter condition.

    `/expr/` is a regular expression; anything else is a case-insensitive
    substring.
    """
    raw: str
    regex: Optional[RePattern[str]] = None

    def match(self, text: str) -> bool:
        if not text:
            return False
        if self.regex is not None:
            return self.regex.search(text) is not None
        return self.raw.lower() in text.lower()


def compile_patterns(patterns: Optional[Sequence[str]]) -> List[Pattern]:
    out: List[Pattern] = []
    for raw in patterns or []:
        raw = raw.strip()
        if not raw:
            continue
        if len(raw) >= 2 and raw.startswith("/") and raw.endswith("/"):
            try:
                out.append(Pattern(raw, re.compile(raw[1:-1])))
            except re.error as e:
                raise FilterError(f"compile regexp {raw!r}: {e}", details={"pattern": raw}) from e
            continue
        out.append(Pattern(raw))
    return out


def _any_match(patterns: List[Pattern], *texts: str) -> bool:
    return any(p.match(t) for p in patterns for t in texts)


def filter_workflows(
    workflows: Sequence[Workflow],
    job_patterns: Sequence[Pattern] = (),
    only_patterns: Sequence[Pattern] = (),
    skip_patterns: Sequence[Pattern] = (),
) -> List[Workflow]:
    """
    Reduce workflows to the jobs and run steps selected by the patterns.

    Jobs match on name or id; steps on name or run text. Steps without a
    `run:` are dropped, as are jobs and workflows left empty.
    """
    job_patterns, only_patterns, skip_patterns = list(job_patterns), list(only_patterns), list(skip_patterns)

    result: List[Workflow] = []
    for wf in workflows:
        jobs: List[Job] = []
        for job in wf.jobs:
            if job_patterns and not _any_match(job_patterns, job.name, job.raw_id):
                continue
            steps = _filter_steps(job.steps, only_patterns, skip_patterns)
            if not steps:
                continue
            jobs.append(replace(job, steps=steps))
        if jobs:
            result.append(replace(wf, jobs=jobs))
    return result


def _filter_steps(steps: Sequence[Step], only: List[Pattern], skip: List[Pattern]) -> List[Step]:
    out: List[Step] = []
    for step in steps:
        if not step.run:
            continue
        if only and not _any_match(only, step.name, step.run):
            continue
        if skip and _any_match(skip, step.name, step.run):
            continue
        out.append(step)
    return out
