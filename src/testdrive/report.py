# report.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

PASSED = "passed"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass
class StepResult:
    """Outcome of a single run step, in source order."""
    workflow_path: str
    workflow_name: str
    job_name: str
    step_name: str
    step_run: str
    status: str = ""
    duration: float = 0.0  # seconds
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    dry_run: bool = False

    @property
    def duration_ms(self) -> int:
        return int(self.duration * 1000)

    @property
    def label(self) -> str:
        return self.step_name or self.step_run

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "workflow_path": self.workflow_path,
            "workflow_name": self.workflow_name,
            "job_name": self.job_name,
            "step_name": self.step_name,
            "step_run": self.step_run,
            "status": self.status,
            "duration_ms": self.duration_ms,
        }
        if self.stdout:
            out["stdout"] = self.stdout
        if self.stderr:
            out["stderr"] = self.stderr
        out["exit_code"] = self.exit_code
        out["dry_run"] = self.dry_run
        return out


@dataclass
class Summary:
    """
    Aggregate counts for a run.

    Invariants: passed + failed + skipped == total_steps, and
    exit_code == 1 iff failed > 0.
    """
    total_workflows: int = 0
    total_jobs: int = 0
    total_steps: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: float = 0.0
    exit_code: int = 0

    @property
    def duration_ms(self) -> int:
        return int(self.duration * 1000)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_workflows": self.total_workflows,
            "total_jobs": self.total_jobs,
            "total_steps": self.total_steps,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration_ms": self.duration_ms,
            "exit_code": self.exit_code,
        }


@dataclass(frozen=True)
class StepEvent:
    """
    Step completion as delivered to renderers.

    `result` is exactly what gets stored; `stdout`/`stderr` hold the
    untruncated capture so live renderers can build their own excerpt.
    """
    result: StepResult
    stdout: str = ""
    stderr: str = ""


@dataclass
class RunReport:
    results: List[StepResult] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)

    @property
    def nothing_to_do(self) -> bool:
        return self.summary.total_steps == 0

    @property
    def failed(self) -> bool:
        return self.summary.exit_code != 0
