# conftest.py
from __future__ import annotations

import os
import shutil
import sys
from typing import Dict, List, Optional

import pytest

from testdrive.execution.process import ProcessOutcome
from testdrive.model import Defaults, Job, Step, Workflow
from testdrive.ui.console import Console, set_console

posix_only = pytest.mark.skipif(
    sys.platform.startswith("win") or shutil.which("bash") is None,
    reason="needs a POSIX shell",
)


@pytest.fixture(autouse=True)
def quiet_console():
    set_console(Console(debug=False))
    yield


@pytest.fixture
def step_env(tmp_path) -> Dict[str, str]:
    """Minimal inherited environment: PATH plus a HOME without version managers."""
    return {"PATH": os.environ.get("PATH", ""), "HOME": str(tmp_path)}


def make_workflow(
    *jobs: Job,
    path: str = "ci.yml",
    name: str = "CI",
    env: Optional[Dict[str, str]] = None,
    defaults: Optional[Defaults] = None,
) -> Workflow:
    return Workflow(path=path, name=name, jobs=list(jobs), env=env or {}, defaults=defaults or Defaults())


def make_job(name: str, *steps: Step, env=None, defaults=None, raw_id: str = "") -> Job:
    return Job(
        name=name,
        steps=list(steps),
        raw_id=raw_id or name,
        env=env or {},
        defaults=defaults or Defaults(),
    )


class FakeExecutor:
    """Stands in for ProcessExecutor: replays canned outcomes keyed by script."""

    def __init__(self, outcomes: Optional[Dict[str, ProcessOutcome]] = None):
        self.outcomes = outcomes or {}
        self.calls: List[dict] = []

    def run(self, command, cwd, env):
        self.calls.append({"command": list(command), "cwd": cwd, "env": dict(env)})
        script = command[-1].split("\n")[-1]
        outcome = self.outcomes.get(script)
        if outcome is None:
            return ProcessOutcome(exit_code=0, stdout="", stderr="", duration=0.0, command=list(command))
        return outcome


class RecordingRenderer:
    def __init__(self):
        self.calls: List[tuple] = []

    def begin(self, workflows):
        self.calls.append(("begin", len(workflows)))

    def job_started(self, workflow, job):
        self.calls.append(("job_started", job.name))

    def step_finished(self, event):
        self.calls.append(("step_finished", event.result.step_name, event.result.status))

    def job_finished(self, workflow, job):
        self.calls.append(("job_finished", job.name))

    def finish(self, report):
        self.calls.append(("finish", report.summary.total_steps))

    def close(self):
        self.calls.append(("close",))


@pytest.fixture
def fake_executor():
    return FakeExecutor()


@pytest.fixture
def recording_renderer():
    return RecordingRenderer()
