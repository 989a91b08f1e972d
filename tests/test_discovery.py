from __future__ import annotations

import subprocess

import pytest

from testdrive.discovery import find_workflows
from testdrive.errors import NoWorkflowsError, ProviderError
from testdrive.git_facts.git import project_root


@pytest.fixture
def repo(tmp_path):
    wf_dir = tmp_path / ".github" / "workflows"
    wf_dir.mkdir(parents=True)
    for name in ("test.yaml", "ci.yml", "notes.txt"):
        (wf_dir / name).write_text("jobs: {}\n")
    return tmp_path


def test_globs_yml_and_yaml_sorted(repo):
    assert find_workflows(repo) == [".github/workflows/ci.yml", ".github/workflows/test.yaml"]


def test_no_workflows(tmp_path):
    with pytest.raises(NoWorkflowsError) as exc:
        find_workflows(tmp_path)
    assert "--workflow" in str(exc.value)


def test_explicit_paths_keep_order_and_dedupe(repo):
    (repo / "extra.yml").write_text("jobs: {}\n")
    found = find_workflows(repo, ["extra.yml", ".github/workflows/ci.yml", "./extra.yml"])
    assert found == ["extra.yml", ".github/workflows/ci.yml"]


def test_explicit_absolute_path_inside_root_becomes_relative(repo):
    (repo / "extra.yml").write_text("jobs: {}\n")
    assert find_workflows(repo, [str(repo / "extra.yml")]) == ["extra.yml"]


def test_explicit_missing_path(repo):
    with pytest.raises(ProviderError) as exc:
        find_workflows(repo, ["missing.yml"])
    assert "not found" in str(exc.value)


def test_explicit_directory(repo):
    with pytest.raises(ProviderError) as exc:
        find_workflows(repo, [".github"])
    assert "is a directory" in str(exc.value)


def test_project_root_falls_back_to_directory(tmp_path, monkeypatch):
    def not_a_repo(*args, **kwargs):
        raise subprocess.CalledProcessError(128, args[0])

    monkeypatch.setattr(subprocess, "check_output", not_a_repo)
    assert project_root(tmp_path) == tmp_path


def test_project_root_uses_git_toplevel(tmp_path, monkeypatch):
    top = tmp_path / "top"

    def fake_git(args, **kwargs):
        assert args[:2] == ["git", "rev-parse"]
        return f"{top}\n"

    monkeypatch.setattr(subprocess, "check_output", fake_git)
    assert project_root(tmp_path / "top" / "nested") == top
