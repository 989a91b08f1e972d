from __future__ import annotations

import io
from pathlib import Path

import pytest

from conftest import FakeExecutor, make_job, make_workflow, posix_only
from testdrive.errors import TerminalIOError
from testdrive.execution.process import ProcessOutcome
from testdrive.model import Defaults, Step
from testdrive.report import FAILED, PASSED, SKIPPED, StepResult
from testdrive.runner import RunOptions, ResultAggregator, count_eligible_steps, run_workflows
from testdrive.ui.canvas import MemoryCanvas, TerminalCanvas
from testdrive.ui.pretty import PrettyRenderer
from testdrive.ui.streaming import StreamingRenderer


def options(tmp_path, step_env, **kw):
    return RunOptions(root=tmp_path, env=step_env, **kw)


# ----------------------------------------------------------------------
# Real subprocesses
# ----------------------------------------------------------------------

@posix_only
def test_passing_and_failing_steps(tmp_path, step_env):
    wf = make_workflow(make_job("build", Step("Say hi", run="echo hi"), Step("Break", run="exit 3")))

    report = run_workflows([wf], options(tmp_path, step_env))

    first, second = report.results
    assert (first.status, first.exit_code, first.stdout) == (PASSED, 0, "hi\n")
    assert (second.status, second.exit_code) == (FAILED, 3)
    s = report.summary
    assert (s.total_steps, s.passed, s.failed, s.skipped, s.exit_code) == (2, 1, 1, 0, 1)
    assert report.failed


@posix_only
def test_step_env_beats_job_and_workflow(tmp_path, step_env):
    wf = make_workflow(
        make_job(
            "env",
            Step("probe", run='printf "%s/%s/%s" "$A" "$B" "$C"', env={"A": "step"}),
            env={"A": "job", "B": "job"},
        ),
        env={"A": "wf", "B": "wf", "C": "wf"},
    )
    report = run_workflows([wf], options(tmp_path, step_env))
    assert report.results[0].stdout == "step/job/wf"


@posix_only
def test_job_default_working_directory(tmp_path, step_env):
    (tmp_path / "sub").mkdir()
    wf = make_workflow(make_job("wd", Step("where", run="pwd"), defaults=Defaults(working_directory="sub")))

    report = run_workflows([wf], options(tmp_path, step_env))

    assert Path(report.results[0].stdout.strip()).resolve() == (tmp_path / "sub").resolve()


@posix_only
def test_failure_does_not_stop_later_jobs(tmp_path, step_env):
    wf = make_workflow(
        make_job("first", Step("fail", run="exit 1")),
        make_job("second", Step("ok", run="true")),
    )
    report = run_workflows([wf], options(tmp_path, step_env))
    assert [r.status for r in report.results] == [FAILED, PASSED]


# ----------------------------------------------------------------------
# Step-local errors
# ----------------------------------------------------------------------

def test_missing_working_directory_is_recorded_as_127(tmp_path, step_env, fake_executor):
    wf = make_workflow(make_job("wd", Step("lost", run="true", working_directory="missing"), Step("next", run="true")))

    report = run_workflows([wf], options(tmp_path, step_env), executor=fake_executor)

    lost, nxt = report.results
    assert (lost.status, lost.exit_code) == (FAILED, 127)
    assert "not found" in lost.stderr
    assert nxt.status == PASSED
    assert len(fake_executor.calls) == 1


def test_bad_shell_spec_is_recorded_as_127(tmp_path, step_env, fake_executor):
    wf = make_workflow(make_job("sh", Step("quote", run="true", shell="bash 'oops")))
    report = run_workflows([wf], options(tmp_path, step_env), executor=fake_executor)
    assert report.results[0].exit_code == 127
    assert "invalid shell" in report.results[0].stderr


def test_unstartable_shell_is_recorded_as_127(tmp_path, step_env):
    wf = make_workflow(make_job("sh", Step("ghost", run="true", shell=str(tmp_path / "ghost-shell"))))
    report = run_workflows([wf], options(tmp_path, step_env))
    res = report.results[0]
    assert (res.status, res.exit_code) == (FAILED, 127)
    assert "ghost-shell" in res.stderr


# ----------------------------------------------------------------------
# Skips and truncation
# ----------------------------------------------------------------------

def test_dry_run_executes_nothing(tmp_path, step_env, fake_executor):
    wf = make_workflow(make_job("build", Step("a", run="make"), Step("b", run="make test")))

    report = run_workflows([wf], options(tmp_path, step_env, dry_run=True), executor=fake_executor)

    assert fake_executor.calls == []
    assert all(r.status == SKIPPED and r.dry_run for r in report.results)
    assert all(r.duration == 0 for r in report.results)
    assert report.summary.duration == 0
    assert report.summary.exit_code == 0


def test_privileged_step_is_skipped_with_note(tmp_path, step_env, fake_executor):
    wf = make_workflow(make_job("setup", Step("deps", run="sudo apt-get install -y jq")))

    report = run_workflows([wf], options(tmp_path, step_env), executor=fake_executor)

    res = report.results[0]
    assert res.status == SKIPPED
    assert "TESTDRIVE_ALLOW_PRIVILEGED=1" in res.stderr
    assert fake_executor.calls == []


def test_privileged_override_runs_the_step(tmp_path, step_env, fake_executor):
    wf = make_workflow(make_job("setup", Step("deps", run="sudo apt-get install -y jq")))
    report = run_workflows([wf], options(tmp_path, step_env, allow_privileged=True), executor=fake_executor)
    assert report.results[0].status == PASSED
    assert len(fake_executor.calls) == 1


def test_privileged_gate_wins_over_dry_run(tmp_path, step_env, fake_executor):
    wf = make_workflow(make_job("setup", Step("deps", run="sudo true")))
    report = run_workflows([wf], options(tmp_path, step_env, dry_run=True), executor=fake_executor)
    assert "skipped privileged command" in report.results[0].stderr


def test_failed_output_is_tail_truncated(tmp_path, step_env):
    noisy = "".join(f"line{i}\n" for i in range(1, 31))
    executor = FakeExecutor({"noisy": ProcessOutcome(2, noisy, noisy, 0.1)})
    wf = make_workflow(make_job("big", Step("noisy", run="noisy")))

    report = run_workflows([wf], options(tmp_path, step_env, tail_lines=5), executor=executor)

    res = report.results[0]
    assert res.stdout.split("\n") == [f"line{i}" for i in range(26, 31)]
    assert res.stderr.split("\n") == [f"line{i}" for i in range(26, 31)]


def test_passing_output_is_kept_whole(tmp_path, step_env):
    noisy = "".join(f"line{i}\n" for i in range(1, 31))
    executor = FakeExecutor({"noisy": ProcessOutcome(0, noisy, "", 0.1)})
    wf = make_workflow(make_job("big", Step("noisy", run="noisy")))
    report = run_workflows([wf], options(tmp_path, step_env, tail_lines=5), executor=executor)
    assert report.results[0].stdout == noisy


def test_non_positive_tail_lines_falls_back_to_default():
    assert RunOptions(tail_lines=0).tail_lines == 20
    assert RunOptions(tail_lines=-4).tail_lines == 20


# ----------------------------------------------------------------------
# Orchestration
# ----------------------------------------------------------------------

def test_nothing_to_do_never_touches_the_renderer(tmp_path, step_env, recording_renderer):
    wf = make_workflow(make_job("actions", Step("checkout", uses="actions/checkout@v4")))

    report = run_workflows([wf], options(tmp_path, step_env), renderer=recording_renderer)

    assert report.nothing_to_do
    assert recording_renderer.calls == []


def test_renderer_hooks_follow_source_order(tmp_path, step_env, fake_executor, recording_renderer):
    wf = make_workflow(
        make_job("a", Step("a1", run="x"), Step("checkout", uses="actions/checkout@v4"), Step("a2", run="y")),
        make_job("empty", Step("checkout", uses="actions/checkout@v4")),
        make_job("b", Step("b1", run="z")),
    )

    run_workflows([wf], options(tmp_path, step_env), renderer=recording_renderer, executor=fake_executor)

    assert recording_renderer.calls == [
        ("begin", 1),
        ("job_started", "a"),
        ("step_finished", "a1", PASSED),
        ("step_finished", "a2", PASSED),
        ("job_finished", "a"),
        ("job_started", "b"),
        ("step_finished", "b1", PASSED),
        ("job_finished", "b"),
        ("finish", 3),
        ("close",),
    ]


def test_summary_totals(tmp_path, step_env, fake_executor):
    wfs = [
        make_workflow(make_job("a", Step("a1", run="x")), make_job("b", Step("b1", run="y")), path="one.yml"),
        make_workflow(make_job("c", Step("c1", run="z")), path="two.yml"),
    ]
    report = run_workflows(wfs, options(tmp_path, step_env), executor=fake_executor)
    s = report.summary
    assert (s.total_workflows, s.total_jobs, s.total_steps, s.passed) == (2, 3, 3, 3)
    assert count_eligible_steps(wfs) == 3


def test_aggregator_keeps_counts_consistent():
    agg = ResultAggregator()
    for status in (PASSED, FAILED, SKIPPED, PASSED):
        agg.record(StepResult("ci.yml", "CI", "job", "step", "run", status=status, duration=0.5))
    s = agg.report().summary
    assert s.passed + s.failed + s.skipped == s.total_steps == 4
    assert s.exit_code == 1
    assert s.duration == pytest.approx(2.0)


def _comparable(results):
    out = []
    for r in results:
        d = r.to_dict()
        d.pop("duration_ms")
        out.append(d)
    return out


def _comparable_summary(summary):
    d = summary.to_dict()
    d.pop("duration_ms")
    return d


def test_streaming_and_batch_store_identical_results(tmp_path, step_env):
    noisy = "".join(f"line{i}\n" for i in range(1, 31))
    outcomes = {
        "ok": ProcessOutcome(0, "fine\n", "", 0.0),
        "bad": ProcessOutcome(1, noisy, "Could not find 'bundler' (2.4.10) required", 0.0),
    }
    wf = make_workflow(
        make_job("one", Step("ok", run="ok"), Step("bad", run="bad")),
        make_job("two", Step("deps", run="sudo make install"), Step("ok", run="ok")),
    )

    batch = run_workflows(
        [wf], options(tmp_path, step_env), renderer=PrettyRenderer(io.StringIO()), executor=FakeExecutor(outcomes)
    )
    streaming = run_workflows(
        [wf],
        options(tmp_path, step_env),
        renderer=StreamingRenderer(MemoryCanvas(), interval=60),
        executor=FakeExecutor(outcomes),
    )

    assert _comparable(batch.results) == _comparable(streaming.results)
    assert _comparable_summary(batch.summary) == _comparable_summary(streaming.summary)
    assert batch.summary.failed == 1


class BrokenStream(io.StringIO):
    def __init__(self):
        super().__init__()
        self.broken = False

    def write(self, s):
        if self.broken:
            raise OSError("terminal went away")
        return super().write(s)


def test_terminal_failure_aborts_the_run(tmp_path, step_env, fake_executor):
    stream = BrokenStream()
    renderer = StreamingRenderer(TerminalCanvas(stream, width=80), interval=60)

    class BreakOnFirstStep(FakeExecutor):
        def run(self, command, cwd, env):
            stream.broken = True
            return super().run(command, cwd, env)

    wf = make_workflow(make_job("a", Step("a1", run="x")), make_job("b", Step("b1", run="y")))

    with pytest.raises(TerminalIOError):
        run_workflows([wf], options(tmp_path, step_env), renderer=renderer, executor=BreakOnFirstStep())
