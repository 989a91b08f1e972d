"""Subprocess execution for run steps.

Handles process spawn, stdout/stderr capture (optionally mirrored live),
wall-clock timing and exit-status normalization. There is no timeout: a hung
step blocks the run.
"""

from __future__ import annotations

import re
import subprocess
import sys
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Callable, List, Mapping, Optional, Sequence, TextIO

import click

from ..errors import SpawnError

DEFAULT_TAIL_LINES = 20

# exit code recorded when the command never ran (bad shell, bad cwd, spawn failure)
NOT_RUN_EXIT_CODE = 127


@dataclass
class ProcessOutcome:
    """Raw result of one subprocess; a non-zero exit is data, not an error."""
    exit_code: int
    stdout: str
    stderr: str
    duration: float  # seconds
    command: List[str] = field(default_factory=list)


def normalize_exit_code(returncode: int) -> int:
    """Fold Popen's negative signal codes into the shell convention 128 + N."""
    if returncode < 0:
        return 128 + (-returncode)
    return returncode


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


@dataclass
class ProcessExecutor:
    """
    Runs one resolved command to completion.

    Usage::

        executor = ProcessExecutor(verbose=True)
        outcome = executor.run(["bash", "-l", "-c", "make test"], cwd=root, env=env)

    In verbose mode every chunk read from the child is echoed to `stdout` /
    `stderr` as it arrives while still being captured.
    """

    verbose: bool = False
    stdout: Optional[TextIO] = None
    stderr: Optional[TextIO] = None
    clock: Callable[[], float] = time.monotonic

    def run(
        self,
        command: Sequence[str],
        cwd: str | Path,
        env: Mapping[str, str],
    ) -> ProcessOutcome:
        """
        Spawn `command` and wait for it.

        Raises:
            SpawnError: the OS could not start the process.
        """
        start = self.clock()
        try:
            proc = subprocess.Popen(
                list(command),
                cwd=str(cwd),
                env=dict(env),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise SpawnError(
                f"start {command[0]!r}: {e.strerror or e}",
                details={"command": list(command), "cwd": str(cwd)},
            ) from e

        if self.verbose:
            out, err = self._mirror(proc)
        else:
            raw_out, raw_err = proc.communicate()
            out, err = _decode(raw_out), _decode(raw_err)

        returncode = proc.wait()
        return ProcessOutcome(
            exit_code=normalize_exit_code(returncode),
            stdout=out,
            stderr=err,
            duration=self.clock() - start,
            command=list(command),
        )

    def _mirror(self, proc: subprocess.Popen) -> tuple[str, str]:
        out_chunks: List[str] = []
        err_chunks: List[str] = []
        readers = [
            threading.Thread(
                target=_pump,
                args=(proc.stdout, self.stdout or sys.stdout, out_chunks),
                daemon=True,
            ),
            threading.Thread(
                target=_pump,
                args=(proc.stderr, self.stderr or sys.stderr, err_chunks),
                daemon=True,
            ),
        ]
        for t in readers:
            t.start()
        proc.wait()
        for t in readers:
            t.join()
        return "".join(out_chunks), "".join(err_chunks)


def _pump(source: Optional[IO[bytes]], sink: TextIO, chunks: List[str]) -> None:
    if source is None:
        return
    with source:
        for raw in iter(source.readline, b""):
            text = _decode(raw)
            chunks.append(text)
            # color=True: pass the child's escape codes through untouched
            click.echo(text, nl=False, file=sink, color=True)


def tail_lines(text: str, max_lines: int = DEFAULT_TAIL_LINES) -> str:
    """Keep only the last `max_lines` lines of `text` (trailing newlines dropped)."""
    if not text:
        return ""
    lines = text.rstrip("\n").split("\n")
    if max_lines <= 0 or len(lines) <= max_lines:
        return "\n".join(lines)
    return "\n".join(lines[-max_lines:])


_BUNDLER_VERSION_RE = re.compile(r"bundler' \((\d+\.\d+(?:\.\d+)?)\)")


def simplify_error(stderr: str) -> str:
    """Rewrite known failure signatures into an actionable one-liner."""
    if "could not find 'bundler'" in stderr.lower():
        match = _BUNDLER_VERSION_RE.search(stderr)
        if match:
            version = match.group(1)
            return (
                f"missing bundler {version}; run `gem install bundler:{version}` "
                f"or `bundle update --bundler`"
            )
        return "missing bundler; run `gem install bundler` or `bundle update --bundler`"
    return stderr
