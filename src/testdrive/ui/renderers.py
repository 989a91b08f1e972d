"""Run renderers and the once-per-run choice between them."""

from __future__ import annotations

import sys
from typing import List, Optional, Protocol, TextIO

from ..model import Job, Workflow
from ..report import RunReport, StepEvent
from .canvas import TerminalCanvas
from .json_output import JsonRenderer
from .pretty import PrettyRenderer
from .streaming import StreamingRenderer

FORMAT_PRETTY = "pretty"
FORMAT_JSON = "json"


class Renderer(Protocol):
    """Hooks the runner calls, in order, from its single thread."""

    def begin(self, workflows: List[Workflow]) -> None: ...

    def job_started(self, workflow: Workflow, job: Job) -> None: ...

    def step_finished(self, event: StepEvent) -> None: ...

    def job_finished(self, workflow: Workflow, job: Job) -> None: ...

    def finish(self, report: RunReport) -> None: ...

    def close(self) -> None: ...


class NullRenderer:
    """Renderer that draws nothing (library use, tests)."""

    def begin(self, workflows: List[Workflow]) -> None:
        pass

    def job_started(self, workflow: Workflow, job: Job) -> None:
        pass

    def step_finished(self, event: StepEvent) -> None:
        pass

    def job_finished(self, workflow: Workflow, job: Job) -> None:
        pass

    def finish(self, report: RunReport) -> None:
        pass

    def close(self) -> None:
        pass


def use_streaming(fmt: str, *, verbose: bool, dry_run: bool) -> bool:
    """Live rendering only for pretty output that is not mirroring raw step output."""
    return fmt.lower() == FORMAT_PRETTY and not verbose and not dry_run


def select_renderer(
    fmt: str,
    *,
    verbose: bool = False,
    dry_run: bool = False,
    out: Optional[TextIO] = None,
    provider: str = "",
    workflows: Optional[List[Workflow]] = None,
    warnings: Optional[List[str]] = None,
) -> Renderer:
    """
    Pick the renderer for a run from format, verbosity and dry-run.

    Pretty output to a stream that is not a terminal (a pipe, a log file)
    falls back to batch rendering.

    Raises:
        ValueError: unsupported format.
    """
    fmt = fmt.lower()
    if fmt == FORMAT_JSON:
        return JsonRenderer(out, provider=provider, workflows=workflows, warnings=warnings)
    if fmt != FORMAT_PRETTY:
        raise ValueError(f"unsupported format {fmt!r}")
    stream = out or sys.stdout
    if use_streaming(fmt, verbose=verbose, dry_run=dry_run) and stream.isatty():
        return StreamingRenderer(TerminalCanvas(stream))
    return PrettyRenderer(out)
