"""Live, in-place job progress for `testdrive run`.

Every job is drawn once, pending, when the run begins; that fixes its row on
the canvas. The runner thread is the only writer of job state. A background
ticker thread only reads that state to redraw elapsed times. Both sides draw
under one lock, so a redraw is never interleaved with another.

Step results inside a running job are buffered. When the job ends only its
row changes, unless it failed: then every buffered step is printed under the
row, with the command and a cleaned output excerpt for the failing ones.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from ..errors import TerminalIOError
from ..execution.process import DEFAULT_TAIL_LINES
from ..model import Job, Workflow
from ..report import FAILED, PASSED, SKIPPED, RunReport, StepEvent
from .canvas import Canvas
from .excerpt import failure_excerpt
from .format import decorate_name, format_duration, step_glyph, summary_line

PENDING = "pending"
RUNNING = "running"

TICK_INTERVAL = 1.0  # seconds

JOB_GLYPHS = {
    PENDING: "○",
    RUNNING: "▶",
    PASSED: "✅",
    FAILED: "❌",
    SKIPPED: "⏭",
}


@dataclass
class JobRunState:
    """Display state of one job: pending -> running -> passed|failed|skipped."""
    name: str
    status: str = PENDING
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    line: int = -1
    events: List[StepEvent] = field(default_factory=list)

    def outcome(self) -> str:
        statuses = [e.result.status for e in self.events]
        if FAILED in statuses:
            return FAILED
        if statuses and all(s == SKIPPED for s in statuses):
            return SKIPPED
        return PASSED


def job_key(workflow: Workflow, job: Job) -> Tuple[str, str]:
    return workflow.path, job.raw_id or job.name


class StreamingRenderer:
    """
    Renderer that redraws job rows in place while the run progresses.

    Args:
        canvas: Where rows are drawn (a TerminalCanvas, or MemoryCanvas in tests).
        interval: Seconds between ticker redraws.
        clock: Monotonic time source.
        excerpt_lines: Max output lines shown for a failed step.
    """

    def __init__(
        self,
        canvas: Canvas,
        *,
        interval: float = TICK_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        excerpt_lines: int = DEFAULT_TAIL_LINES,
    ):
        self.canvas = canvas
        self.interval = interval
        self.clock = clock
        self.excerpt_lines = excerpt_lines

        self._jobs: Dict[Tuple[str, str], JobRunState] = {}
        self._order: List[JobRunState] = []
        self._current: Optional[JobRunState] = None

        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._ticker: Optional[threading.Thread] = None
        self._ticker_error: Optional[TerminalIOError] = None

    # ---- run hooks (runner thread) ----

    def begin(self, workflows: List[Workflow]) -> None:
        with self._lock:
            for wf in workflows:
                jobs = [j for j in wf.jobs if j.run_steps]
                if not jobs:
                    continue
                self.canvas.append(f"Workflow {decorate_name(wf.name, wf.path)}")
                for job in jobs:
                    state = JobRunState(name=job.name)
                    state.line = self.canvas.append(self._job_line(state, 0.0))
                    self._jobs[job_key(wf, job)] = state
                    self._order.append(state)
        self._start_ticker()

    def job_started(self, workflow: Workflow, job: Job) -> None:
        self._raise_ticker_error()
        with self._lock:
            state = self._jobs[job_key(workflow, job)]
            state.status = RUNNING
            state.started_at = self.clock()
            self._current = state
            self.canvas.update(state.line, self._job_line(state, state.started_at))

    def step_finished(self, event: StepEvent) -> None:
        self._raise_ticker_error()
        with self._lock:
            if self._current is not None:
                self._current.events.append(event)

    def job_finished(self, workflow: Workflow, job: Job) -> None:
        self._raise_ticker_error()
        with self._lock:
            state = self._jobs[job_key(workflow, job)]
            state.status = state.outcome()
            state.finished_at = self.clock()
            self._current = None
            self.canvas.update(state.line, self._job_line(state, state.finished_at))

            if state.status != FAILED:
                return
            details = self._failure_details(state)
            self.canvas.insert(state.line + 1, details)
            for other in self._order:
                if other.line > state.line:
                    other.line += len(details)

    def finish(self, report: RunReport) -> None:
        self._stop_ticker()
        self._raise_ticker_error()
        with self._lock:
            self.canvas.append(summary_line(report.summary))

    def close(self) -> None:
        self._stop_ticker()

    # ---- ticker (read-only on job state) ----

    def refresh(self) -> None:
        """Redraw every job row from the current state."""
        with self._lock:
            now = self.clock()
            for state in self._order:
                self.canvas.update(state.line, self._job_line(state, now))

    def _start_ticker(self) -> None:
        if self._ticker is not None:
            return
        self._stop.clear()
        self._ticker = threading.Thread(target=self._tick, name="testdrive-ticker", daemon=True)
        self._ticker.start()

    def _stop_ticker(self) -> None:
        self._stop.set()
        if self._ticker is not None:
            self._ticker.join()
            self._ticker = None

    def _tick(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.refresh()
            except TerminalIOError as e:
                self._ticker_error = e
                return

    def _raise_ticker_error(self) -> None:
        if self._ticker_error is not None:
            err, self._ticker_error = self._ticker_error, None
            raise err

    # ---- drawing ----

    def _job_line(self, state: JobRunState, now: float) -> str:
        glyph = JOB_GLYPHS[state.status]
        if state.status == PENDING or state.started_at is None:
            return f"  {glyph} {state.name}"
        if state.status == RUNNING:
            return f"  {glyph} {state.name} ({int(now - state.started_at)}s)"
        return f"  {glyph} {state.name} ({format_duration(state.finished_at - state.started_at)})"

    def _failure_details(self, state: JobRunState) -> List[str]:
        lines: List[str] = []
        for event in state.events:
            res = event.result
            lines.append(f"    {step_glyph(res.status)} {res.label} ({format_duration(res.duration)})")
            if res.status == SKIPPED and res.stderr:
                lines.append(f"      note: {res.stderr.strip()}")
            if res.status != FAILED:
                continue
            lines.append(f"      exit code: {res.exit_code}")
            lines.append("      command:")
            lines.extend(f"        {line}" for line in res.step_run.rstrip("\n").split("\n"))
            excerpt = failure_excerpt(event.stdout, event.stderr, self.excerpt_lines)
            if excerpt:
                lines.append("      output:")
                lines.extend(f"        {line}" for line in excerpt)
        return lines
