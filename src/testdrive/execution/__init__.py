"""Per-step execution primitives.

Command resolution, environment merging, working-directory resolution,
the privileged-command gate and the subprocess executor used by the runner.
"""

from testdrive.execution.command import resolve_command
from testdrive.execution.environment import env_to_mapping, merge_env
from testdrive.execution.privileged import (
    ALLOW_PRIVILEGED_ENV,
    DEFAULT_PRIVILEGED_PATTERNS,
    SkipDecision,
    check_privileged,
    privileged_allowed,
)
from testdrive.execution.process import (
    DEFAULT_TAIL_LINES,
    NOT_RUN_EXIT_CODE,
    ProcessExecutor,
    ProcessOutcome,
    simplify_error,
    tail_lines,
)
from testdrive.execution.workdir import resolve_working_directory

__all__ = [
    "ALLOW_PRIVILEGED_ENV",
    "DEFAULT_PRIVILEGED_PATTERNS",
    "DEFAULT_TAIL_LINES",
    "NOT_RUN_EXIT_CODE",
    "ProcessExecutor",
    "ProcessOutcome",
    "SkipDecision",
    "check_privileged",
    "env_to_mapping",
    "merge_env",
    "privileged_allowed",
    "resolve_command",
    "resolve_working_directory",
    "simplify_error",
    "tail_lines",
]
