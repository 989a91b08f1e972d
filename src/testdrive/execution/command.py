"""Shell command resolution for run steps.

Turns a step's script plus the step/job/workflow `shell:` settings into the
argv handed to the process executor, mirroring how the hosted runner invokes
each shell.
"""

from __future__ import annotations

import os
import re
import shlex
from pathlib import Path
from typing import List, Mapping, Optional

from ..errors import ResolutionError

DEFAULT_POSIX_SHELL = "bash"
DEFAULT_WINDOWS_SHELL = "cmd"

LOGIN_SHELLS = ("bash", "zsh", "ksh", "fish")

# shell base name -> flag that introduces the script
INVOCATION_FLAGS = {
    "sh": ["-c"],
    "cmd": ["/C"],
    "pwsh": ["-Command"],
    "powershell": ["-Command"],
    "python": ["-c"],
    "python3": ["-c"],
}

# (env var naming the install dir, default dir under $HOME, posix init, fish init)
VERSION_MANAGERS = (
    ("ASDF_DIR", ".asdf", "asdf.sh", "asdf.fish"),
    ("NVM_DIR", ".nvm", "nvm.sh", None),
)

# GitHub's placeholder for the generated script file; we pass the script inline
_SCRIPT_PLACEHOLDER = "{0}"


def pick_shell(*candidates: Optional[str]) -> str:
    """Return the first non-blank shell spec (step, then job, then workflow)."""
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return ""


def shell_base_name(executable: str) -> str:
    base = re.split(r"[\\/]", executable)[-1].lower()
    if base.endswith(".exe"):
        base = base[: -len(".exe")]
    return base


def version_manager_scripts(
    shell: str,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> List[Path]:
    """
    Find version-manager init scripts that a login shell should source.

    The install dir comes from the manager's env var when set, else the
    home-directory convention. Fish only gets managers that ship a fish init.
    """
    env = os.environ if env is None else env
    if home is None:
        home = Path(env["HOME"]) if env.get("HOME") else Path.home()

    found: List[Path] = []
    for env_var, home_dir, posix_init, fish_init in VERSION_MANAGERS:
        init = fish_init if shell == "fish" else posix_init
        if init is None:
            continue
        root = Path(env[env_var]) if env.get(env_var) else home / home_dir
        candidate = root / init
        if candidate.is_file():
            found.append(candidate)
    return found


def _with_init_scripts(shell: str, script: str, init_scripts: List[Path]) -> str:
    if not init_scripts:
        return script
    keyword = "source" if shell == "fish" else "."
    lines = [f"{keyword} {shlex.quote(str(p))}" for p in init_scripts]
    return "\n".join(lines + [script])


def resolve_command(
    script: str,
    *shells: Optional[str],
    os_name: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> List[str]:
    """
    Build the argv for a run step.

    Args:
        script: The step's `run:` text.
        shells: Shell specs in precedence order (step, job default, workflow default).
        os_name: `os.name` of the target platform ("nt" selects Windows defaults).
        env: Environment used to discover version-manager init scripts.
        home: Home directory override for init-script discovery.

    Raises:
        ResolutionError: if the winning shell spec cannot be tokenized.
    """
    os_name = os.name if os_name is None else os_name
    spec = pick_shell(*shells)
    if not spec:
        spec = DEFAULT_WINDOWS_SHELL if os_name == "nt" else DEFAULT_POSIX_SHELL

    try:
        fields = shlex.split(spec, posix=os_name != "nt")
    except ValueError as e:
        raise ResolutionError(
            f"invalid shell {spec!r}: {e}", details={"shell": spec}
        ) from e
    fields = [f for f in fields if f != _SCRIPT_PLACEHOLDER]
    if not fields:
        raise ResolutionError(f"invalid shell {spec!r}: no executable", details={"shell": spec})

    executable, extra = fields[0], fields[1:]
    base = shell_base_name(executable)

    if base in LOGIN_SHELLS:
        init_scripts = version_manager_scripts(base, env=env, home=home)
        body = _with_init_scripts(base, script, init_scripts)
        return [executable, *extra, "-l", "-c", body]

    flags = INVOCATION_FLAGS.get(base)
    if flags is not None:
        return [executable, *extra, *flags, script]

    # unknown interpreter: hand it the script as a bare argument
    return [executable, *extra, script]
