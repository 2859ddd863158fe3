"""Pytest fixtures for resultcheck tests."""

from __future__ import annotations

import io
import os
import shutil
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from resultcheck.config import ResultcheckConfig
from resultcheck.sandbox.manager import default_manager
from resultcheck.snapshots.store import SnapshotStore


class ScriptedConfirm:
    """Confirmation callable that answers from a fixed list."""

    def __init__(self, *answers: bool) -> None:
        self.answers = list(answers)
        self.questions: list[str] = []

    def __call__(self, question: str) -> bool:
        self.questions.append(question)
        return self.answers.pop(0) if self.answers else False


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("RESULTCHECK_"):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def no_terminal(monkeypatch: pytest.MonkeyPatch) -> None:
    """Tests never see an interactive stdin unless they ask for one."""
    monkeypatch.setattr(sys, "stdin", io.StringIO())


@pytest.fixture(autouse=True)
def forget_default_sandbox() -> Iterator[None]:
    default_manager.reset()
    yield
    last = default_manager.last
    if last is not None and last.exists():
        shutil.rmtree(last.path)
    default_manager.reset()


@pytest.fixture
def sandbox_base(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    base = tmp_path / "sandboxes"
    base.mkdir()
    monkeypatch.setenv("RESULTCHECK_SANDBOX_BASE", str(base))
    return base


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, sandbox_base: Path) -> Path:
    """A git-marked project with one data file, used as the working directory."""
    root = tmp_path / "project"
    (root / ".git").mkdir(parents=True)
    (root / "data").mkdir()
    (root / "data" / "input.csv").write_text("x,y\n1,2\n3,4\n")
    monkeypatch.chdir(root)
    return root.resolve()


@pytest.fixture
def config() -> ResultcheckConfig:
    return ResultcheckConfig()


@pytest.fixture
def store(project: Path, config: ResultcheckConfig) -> SnapshotStore:
    return SnapshotStore(root=project, config=config)


@pytest.fixture
def write_script(project: Path):
    """Write a script into the project and return its relative path."""

    def _write(relative: str, source: str) -> str:
        path = project / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source)
        return relative

    return _write


@pytest.fixture
def scripted_confirm():
    """Factory for confirmation callables with canned answers."""
    return ScriptedConfirm
