"""Human readable, render-once output for `list` and batch `run`."""

from __future__ import annotations

from typing import List, Optional, TextIO

import click

from ..model import Job, Workflow
from ..report import FAILED, SKIPPED, RunReport, StepEvent, StepResult, Summary
from .format import decorate_name, format_duration, indent, step_glyph, summary_line


class PrettyRenderer:
    """
    Batch renderer: collects nothing during the run and prints every result,
    grouped by workflow and job, once the run is over.
    """

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out

    def _echo(self, text: str = "") -> None:
        click.echo(text, file=self.out)

    # ---- run hooks (batch mode draws nothing live) ----

    def begin(self, workflows: List[Workflow]) -> None:
        pass

    def job_started(self, workflow: Workflow, job: Job) -> None:
        pass

    def step_finished(self, event: StepEvent) -> None:
        pass

    def job_finished(self, workflow: Workflow, job: Job) -> None:
        pass

    def finish(self, report: RunReport) -> None:
        self.render_results(report.results, report.summary)

    def close(self) -> None:
        pass

    # ---- rendering ----

    def render_list(self, workflows: List[Workflow]) -> None:
        for wf in workflows:
            self._echo(f"Workflow {decorate_name(wf.name, wf.path)}")
            for job in wf.jobs:
                self._echo(f"  Job {job.name}")
                for step in job.steps:
                    if not step.run:
                        continue
                    self._echo(f"    • {step.name or step.run}")

    def render_results(self, results: List[StepResult], summary: Summary) -> None:
        current = None
        for res in results:
            key = (res.workflow_path, res.job_name)
            if key != current:
                current = key
                header = decorate_name(res.workflow_name, res.workflow_path)
                self._echo(f"Workflow {header}")
                self._echo(f"  Job {res.job_name}")

            self._echo(f"    {step_glyph(res.status)} {res.label} ({format_duration(res.duration)})")
            if res.status == FAILED and res.stderr:
                self._echo(f"      stderr: {indent(res.stderr, '      ').lstrip()}")
            if res.status == SKIPPED and res.stderr:
                self._echo(f"      note: {indent(res.stderr, '      ').lstrip()}")
            if res.dry_run:
                self._echo(f"      command: {res.step_run}")

        self._echo(summary_line(summary))
