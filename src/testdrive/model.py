# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class Defaults:
    """`defaults.run` block shared by a workflow or job."""
    run_shell: str = ""
    working_directory: str = ""

    def to_dict(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        if self.run_shell:
            out["run_shell"] = self.run_shell
        if self.working_directory:
            out["working_directory"] = self.working_directory
        return out


@dataclass(frozen=True)
class Step:
    """A single step inside a CI job: either a `run:` script or a `uses:` action."""
    name: str
    run: str = ""
    uses: str = ""
    env: Dict[str, str] = field(default_factory=dict)
    shell: str = ""
    working_directory: str = ""

    @property
    def executable(self) -> bool:
        # action references are opaque to us
        return bool(self.run) and not self.uses

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name}
        if self.run:
            out["run"] = self.run
        if self.uses:
            out["uses"] = self.uses
        if self.shell:
            out["shell"] = self.shell
        if self.working_directory:
            out["working_directory"] = self.working_directory
        if self.env:
            out["env"] = dict(self.env)
        return out


@dataclass(frozen=True)
class Job:
    """
    A CI job: ordered steps plus the env/defaults they inherit.

    `raw_id` is the key under `jobs:`; `name` falls back to it.
    """
    name: str
    steps: List[Step] = field(default_factory=list)
    raw_id: str = ""
    env: Dict[str, str] = field(default_factory=dict)
    defaults: Defaults = field(default_factory=Defaults)

    @property
    def run_steps(self) -> List[Step]:
        return [s for s in self.steps if s.executable]

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name, "id": self.raw_id}
        if self.env:
            out["env"] = dict(self.env)
        out["defaults"] = self.defaults.to_dict()
        out["steps"] = [s.to_dict() for s in self.steps]
        return out


@dataclass(frozen=True)
class Workflow:
    """One workflow file, already parsed (and possibly filtered)."""
    path: str
    name: str
    jobs: List[Job] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    defaults: Defaults = field(default_factory=Defaults)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"path": self.path, "name": self.name}
        if self.env:
            out["env"] = dict(self.env)
        out["defaults"] = self.defaults.to_dict()
        out["jobs"] = [j.to_dict() for j in self.jobs]
        return out


@dataclass(frozen=True)
class ParseWarning:
    """Non-fatal issue found while reading a workflow (unsupported keys, ignored conditions)."""
    workflow: str
    job: str
    message: str

    def __str__(self) -> str:
        return f"{self.workflow}:{self.job}: {self.message}"
