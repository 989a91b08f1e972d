from __future__ import annotations

import shlex

import pytest

from testdrive.errors import ResolutionError
from testdrive.execution.command import (
    pick_shell,
    resolve_command,
    shell_base_name,
    version_manager_scripts,
)


def resolve(script, *shells, os_name="posix", env=None, home=None):
    return resolve_command(script, *shells, os_name=os_name, env=env or {}, home=home)


def test_default_posix_shell_is_bash_login(tmp_path):
    assert resolve("echo hi", home=tmp_path) == ["bash", "-l", "-c", "echo hi"]


def test_default_windows_shell_is_cmd(tmp_path):
    assert resolve("echo hi", os_name="nt", home=tmp_path) == ["cmd", "/C", "echo hi"]


def test_step_shell_beats_job_and_workflow(tmp_path):
    argv = resolve("echo hi", "sh", "zsh", "pwsh", home=tmp_path)
    assert argv == ["sh", "-c", "echo hi"]


def test_blank_step_shell_falls_through_to_job_default(tmp_path):
    argv = resolve("echo hi", "  ", "pwsh", "sh", home=tmp_path)
    assert argv == ["pwsh", "-Command", "echo hi"]


@pytest.mark.parametrize(
    "shell, expected",
    [
        ("python", ["python", "-c", "print(1)"]),
        ("python3", ["python3", "-c", "print(1)"]),
        ("powershell", ["powershell", "-Command", "print(1)"]),
        ("node", ["node", "print(1)"]),
    ],
)
def test_interpreter_flags(tmp_path, shell, expected):
    assert resolve("print(1)", shell, home=tmp_path) == expected


def test_extra_arguments_are_kept_and_placeholder_dropped(tmp_path):
    argv = resolve("make", "bash -e {0}", home=tmp_path)
    assert argv == ["bash", "-e", "-l", "-c", "make"]


def test_unbalanced_quotes_raise(tmp_path):
    with pytest.raises(ResolutionError) as exc:
        resolve("make", "bash 'oops", home=tmp_path)
    assert "invalid shell" in str(exc.value)


def test_placeholder_only_spec_has_no_executable(tmp_path):
    with pytest.raises(ResolutionError):
        resolve("make", "{0}", home=tmp_path)


def test_shell_base_name_handles_windows_paths():
    assert shell_base_name(r"C:\Program Files\PowerShell\7\pwsh.EXE") == "pwsh"
    assert shell_base_name("/usr/local/bin/bash") == "bash"


def test_pick_shell_returns_empty_when_nothing_set():
    assert pick_shell(None, "", "   ") == ""


def test_login_shell_sources_version_managers(tmp_path):
    nvm = tmp_path / ".nvm"
    nvm.mkdir()
    (nvm / "nvm.sh").write_text("")

    argv = resolve("node -v", home=tmp_path)

    assert argv[:3] == ["bash", "-l", "-c"]
    assert argv[3] == f". {shlex.quote(str(nvm / 'nvm.sh'))}\nnode -v"


def test_version_manager_dir_from_env(tmp_path):
    asdf = tmp_path / "custom-asdf"
    asdf.mkdir()
    (asdf / "asdf.sh").write_text("")
    (asdf / "asdf.fish").write_text("")

    env = {"ASDF_DIR": str(asdf)}
    assert version_manager_scripts("bash", env=env, home=tmp_path) == [asdf / "asdf.sh"]
    assert version_manager_scripts("fish", env=env, home=tmp_path) == [asdf / "asdf.fish"]


def test_fish_skips_managers_without_fish_init(tmp_path):
    nvm = tmp_path / ".nvm"
    nvm.mkdir()
    (nvm / "nvm.sh").write_text("")

    argv = resolve("node -v", "fish", home=tmp_path)
    assert argv == ["fish", "-l", "-c", "node -v"]
