# errors.py
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class CIError(Exception):
    """
    Structured testdrive error with enough context for:
      - clean CLI output
      - recording a failed step without a traceback
    """
    message: str
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


class ConfigError(CIError):
    """The .testdrive.yml file could not be read or parsed."""


class ProviderError(CIError):
    """A workflow file could not be opened or decoded."""


class FilterError(CIError):
    """A job/step filter pattern is invalid."""


class NoWorkflowsError(CIError):
    """Discovery found no workflow files."""


class ResolutionError(CIError):
    """
    The shell spec or working directory of a step could not be resolved.

    Step-local: the runner records the step as failed (exit 127) and moves on.
    """


class SpawnError(CIError):
    """The OS refused to start the step's process. Treated like ResolutionError."""


class TerminalIOError(CIError):
    """The streaming renderer could not write to the terminal. Fatal for the run."""
