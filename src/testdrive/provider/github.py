"""GitHub Actions workflow files -> testdrive's workflow model."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..errors import ProviderError
from ..model import Defaults, Job, ParseWarning, Step, Workflow

PROVIDER_NAME = "github"


@dataclass
class Pipeline:
    """Parsed workflows plus the non-fatal warnings collected along the way."""
    provider: str = PROVIDER_NAME
    workflows: List[Workflow] = field(default_factory=list)
    warnings: List[ParseWarning] = field(default_factory=list)


class Parser:
    """Loads workflow files, resolving relative paths against `root`."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def parse(self, paths: List[str]) -> Pipeline:
        pipeline = Pipeline()
        for rel_path in paths:
            full = Path(rel_path)
            if not full.is_absolute():
                full = self.root / rel_path
            wf, warnings = parse_workflow_file(full, rel_path)
            pipeline.workflows.append(wf)
            pipeline.warnings.extend(warnings)
        return pipeline


def parse_workflow_file(full_path: Path, display_path: str) -> Tuple[Workflow, List[ParseWarning]]:
    try:
        text = full_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ProviderError(f"open workflow {display_path!r}: {e}", details={"path": str(full_path)}) from e
    return decode_workflow(text, display_path)


def decode_workflow(text: str, display_path: str) -> Tuple[Workflow, List[ParseWarning]]:
    """
    Decode one workflow document.

    Jobs come out sorted by job id. A job without `name` is named after its
    id; a step without `name` becomes "step N". Matrix, services and `if:`
    conditions are not evaluated, only reported as warnings.
    """
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ProviderError(f"parse workflow {display_path!r}: {e}", details={"path": display_path}) from e
    if doc is None:
        doc = {}
    if not isinstance(doc, dict):
        raise ProviderError(
            f"parse workflow {display_path!r}: top level must be a mapping",
            details={"path": display_path},
        )

    warnings: List[ParseWarning] = []
    jobs_doc = _mapping(doc.get("jobs"), f"{display_path}: jobs")

    jobs: List[Job] = []
    for job_id in sorted(jobs_doc, key=str):
        job_doc = _mapping(jobs_doc[job_id], f"{display_path}: jobs.{job_id}")
        job_id = str(job_id)

        if job_doc.get("services") is not None:
            warnings.append(ParseWarning(display_path, job_id, "services are not supported"))
        strategy = job_doc.get("strategy")
        if isinstance(strategy, dict) and strategy.get("matrix") is not None:
            warnings.append(ParseWarning(display_path, job_id, "strategy.matrix is not supported"))
        if job_doc.get("if"):
            warnings.append(ParseWarning(display_path, job_id, "job-level if condition is ignored"))

        steps: List[Step] = []
        for idx, step_doc in enumerate(job_doc.get("steps") or []):
            step_doc = _mapping(step_doc, f"{display_path}: jobs.{job_id}.steps[{idx}]")
            name = _text(step_doc.get("name")) or f"step {idx + 1}"
            if step_doc.get("if"):
                warnings.append(
                    ParseWarning(display_path, job_id, f"step {name!r} has unsupported if condition")
                )
            steps.append(
                Step(
                    name=name,
                    run=_text(step_doc.get("run")),
                    uses=_text(step_doc.get("uses")),
                    env=_env(step_doc.get("env")),
                    shell=_text(step_doc.get("shell")),
                    working_directory=_text(step_doc.get("working-directory")),
                )
            )

        jobs.append(
            Job(
                name=_text(job_doc.get("name")) or job_id,
                raw_id=job_id,
                env=_env(job_doc.get("env")),
                defaults=_defaults(job_doc.get("defaults")),
                steps=steps,
            )
        )

    wf = Workflow(
        path=display_path,
        name=_text(doc.get("name")) or Path(display_path).name,
        env=_env(doc.get("env")),
        defaults=_defaults(doc.get("defaults")),
        jobs=jobs,
    )
    return wf, warnings


def _mapping(value: Any, where: str) -> Dict[Any, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ProviderError(f"{where}: expected a mapping, got {type(value).__name__}")
    return value


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _env(value: Optional[Dict[Any, Any]]) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): _scalar(value[k]) for k in sorted(value, key=str)}


def _scalar(value: Any) -> str:
    # YAML booleans come back as Python bools; CI sees them as lower-case text
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _defaults(value: Any) -> Defaults:
    if not isinstance(value, dict):
        return Defaults()
    run = value.get("run")
    if not isinstance(run, dict):
        return Defaults()
    return Defaults(
        run_shell=_text(run.get("shell")),
        working_directory=_text(run.get("working-directory")),
    )
