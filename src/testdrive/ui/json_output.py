# json_output.py
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, TextIO

import click

from ..model import Job, Workflow
from ..report import RunReport, StepEvent, StepResult, Summary


def build_report(
    provider: str,
    workflows: List[Workflow],
    summary: Summary,
    steps: Optional[List[StepResult]] = None,
    warnings: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """JSON schema shared by `list` and `run`: steps/warnings are omitted when empty."""
    out: Dict[str, Any] = {
        "provider": provider,
        "workflows": [wf.to_dict() for wf in workflows],
    }
    if steps:
        out["steps"] = [s.to_dict() for s in steps]
    out["summary"] = summary.to_dict()
    if warnings:
        out["warnings"] = list(warnings)
    return out


class JsonRenderer:
    """Machine readable renderer; emits a single JSON document when the run ends."""

    def __init__(
        self,
        out: Optional[TextIO] = None,
        *,
        provider: str = "",
        workflows: Optional[List[Workflow]] = None,
        warnings: Optional[List[str]] = None,
    ):
        self.out = out
        self.provider = provider
        self.workflows = workflows or []
        self.warnings = warnings or []

    def begin(self, workflows: List[Workflow]) -> None:
        pass

    def job_started(self, workflow: Workflow, job: Job) -> None:
        pass

    def step_finished(self, event: StepEvent) -> None:
        pass

    def job_finished(self, workflow: Workflow, job: Job) -> None:
        pass

    def finish(self, report: RunReport) -> None:
        self.render(
            build_report(
                self.provider,
                self.workflows,
                report.summary,
                steps=report.results,
                warnings=self.warnings,
            )
        )

    def close(self) -> None:
        pass

    def render(self, document: Dict[str, Any]) -> None:
        click.echo(json.dumps(document, indent=2, ensure_ascii=False), file=self.out)
