# runner.py
from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence, TextIO

from .errors import ResolutionError, SpawnError
from .execution.command import resolve_command
from .execution.environment import env_to_mapping, merge_env
from .execution.privileged import check_privileged
from .execution.process import (
    DEFAULT_TAIL_LINES,
    NOT_RUN_EXIT_CODE,
    ProcessExecutor,
    simplify_error,
    tail_lines,
)
from .execution.workdir import resolve_working_directory
from .model import Job, Step, Workflow
from .report import FAILED, PASSED, SKIPPED, RunReport, StepEvent, StepResult, Summary
from .ui.console import get_console
from .ui.renderers import NullRenderer, Renderer

# local replay: workflow -> job -> step, one at a time, never stopping on failure


@dataclass
class RunOptions:
    """
    Knobs for a run.

    root:                project root; relative working directories hang off it
    env:                 inherited environment (defaults to os.environ)
    privileged_patterns: regexes gating host-mutating commands (None -> defaults)
    """
    root: Optional[str | Path] = None
    verbose: bool = False
    dry_run: bool = False
    tail_lines: int = DEFAULT_TAIL_LINES
    env: Optional[Mapping[str, str]] = None
    allow_privileged: bool = False
    privileged_patterns: Optional[List[str]] = None
    os_name: str = os.name
    stdout: Optional[TextIO] = None
    stderr: Optional[TextIO] = None

    def __post_init__(self) -> None:
        if self.tail_lines <= 0:
            self.tail_lines = DEFAULT_TAIL_LINES


# ----------------------------------------------------------------------
# Aggregation
# ----------------------------------------------------------------------

@dataclass
class ResultAggregator:
    """Accumulates step results in source order and keeps the summary in sync."""
    summary: Summary = field(default_factory=Summary)
    results: List[StepResult] = field(default_factory=list)

    def record(self, result: StepResult) -> None:
        self.summary.total_steps += 1
        if result.status == PASSED:
            self.summary.passed += 1
        elif result.status == FAILED:
            self.summary.failed += 1
            self.summary.exit_code = 1
        else:
            self.summary.skipped += 1
        self.summary.duration += result.duration
        self.results.append(result)

    def report(self) -> RunReport:
        return RunReport(results=list(self.results), summary=self.summary)


def count_eligible_steps(workflows: Sequence[Workflow]) -> int:
    return sum(len(job.run_steps) for wf in workflows for job in wf.jobs)


# ----------------------------------------------------------------------
# Execution primitives
# ----------------------------------------------------------------------

def _execute(
    wf: Workflow,
    job: Job,
    step: Step,
    opts: RunOptions,
    executor: ProcessExecutor,
):
    console = get_console()
    base_env = os.environ if opts.env is None else opts.env
    env = env_to_mapping(merge_env(base_env, wf.env, job.env, step.env))

    argv = resolve_command(
        step.run,
        step.shell,
        job.defaults.run_shell,
        wf.defaults.run_shell,
        os_name=opts.os_name,
        env=env,
    )
    cwd = resolve_working_directory(
        opts.root,
        step.working_directory,
        job.defaults.working_directory,
        wf.defaults.working_directory,
    )
    console.print_debug(f"[{job.name}] {step.name}: {argv!r} (cwd={cwd})")
    return executor.run(argv, cwd=cwd, env=env)


def _run_step(
    wf: Workflow,
    job: Job,
    step: Step,
    opts: RunOptions,
    executor: ProcessExecutor,
    clock: Callable[[], float],
) -> StepEvent:
    result = StepResult(
        workflow_path=wf.path,
        workflow_name=wf.name,
        job_name=job.name,
        step_name=step.name,
        step_run=step.run,
        dry_run=opts.dry_run,
    )

    decision = check_privileged(step.run, opts.privileged_patterns, opts.allow_privileged)
    if decision is not None:
        result.status = SKIPPED
        result.stderr = decision.message
        return StepEvent(result)

    if opts.dry_run:
        result.status = SKIPPED
        return StepEvent(result)

    start = clock()
    try:
        outcome = _execute(wf, job, step, opts, executor)
    except (ResolutionError, SpawnError) as e:
        get_console().print_debug(f"[{job.name}] {step.name}: {e}")
        result.duration = clock() - start
        result.status = FAILED
        result.exit_code = NOT_RUN_EXIT_CODE
        result.stderr = str(e)
        return StepEvent(result, stderr=str(e))
    result.duration = clock() - start
    result.exit_code = outcome.exit_code

    if outcome.exit_code == 0:
        result.status = PASSED
        result.stdout = outcome.stdout
        result.stderr = outcome.stderr
        return StepEvent(result, stdout=outcome.stdout, stderr=outcome.stderr)

    stderr = simplify_error(outcome.stderr)
    result.status = FAILED
    result.stdout = tail_lines(outcome.stdout, opts.tail_lines)
    result.stderr = tail_lines(stderr, opts.tail_lines)
    return StepEvent(result, stdout=outcome.stdout, stderr=stderr)


def _run_job(
    wf: Workflow,
    job: Job,
    opts: RunOptions,
    executor: ProcessExecutor,
    renderer: Renderer,
    aggregator: ResultAggregator,
    clock: Callable[[], float],
) -> None:
    steps = job.run_steps
    if not steps:
        return

    renderer.job_started(wf, job)
    for step in steps:
        event = _run_step(wf, job, step, opts, executor, clock)
        aggregator.record(event.result)
        renderer.step_finished(event)
    renderer.job_finished(wf, job)


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def run_workflows(
    workflows: Sequence[Workflow],
    options: Optional[RunOptions] = None,
    *,
    renderer: Optional[Renderer] = None,
    executor: Optional[ProcessExecutor] = None,
    clock: Callable[[], float] = time.monotonic,
) -> RunReport:
    """
    Run every eligible step of `workflows` in source order.

    A failing step never stops later steps, jobs or workflows. When there is
    nothing eligible to run the renderer is never touched and the returned
    report has `nothing_to_do` set.

    Raises:
        TerminalIOError: the renderer lost its terminal.
    """
    opts = options or RunOptions()
    renderer = renderer or NullRenderer()
    if executor is None:
        executor = ProcessExecutor(verbose=opts.verbose, stdout=opts.stdout, stderr=opts.stderr)

    aggregator = ResultAggregator()
    aggregator.summary.total_workflows = len(workflows)
    aggregator.summary.total_jobs = sum(len(wf.jobs) for wf in workflows)

    if count_eligible_steps(workflows) == 0:
        return aggregator.report()

    try:
        renderer.begin(list(workflows))
        for wf in workflows:
            for job in wf.jobs:
                _run_job(wf, job, opts, executor, renderer, aggregator, clock)
        report = aggregator.report()
        renderer.finish(report)
    finally:
        renderer.close()

    return report
