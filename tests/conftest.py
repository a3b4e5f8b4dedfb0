from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path

import pytest

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")

T1 = "2021-01-01T00:00:00+00:00"
T2 = "2022-01-01T00:00:00+00:00"
T3 = "2023-01-01T00:00:00+00:00"


def _git_env(when: str) -> dict[str, str]:
    env = dict(os.environ)
    env.update(
        {
            "GIT_AUTHOR_NAME": "katabole-tests",
            "GIT_AUTHOR_EMAIL": "katabole-tests@example.invalid",
            "GIT_COMMITTER_NAME": "katabole-tests",
            "GIT_COMMITTER_EMAIL": "katabole-tests@example.invalid",
            "GIT_AUTHOR_DATE": when,
            "GIT_COMMITTER_DATE": when,
            "GIT_CONFIG_NOSYSTEM": "1",
        }
    )
    return env


class TemplateRepo:
    """A throwaway upstream repository to clone from."""

    def __init__(self, path: Path) -> None:
        self.path = path
        path.mkdir(parents=True)
        self.git("init", "--quiet")
        self.git("symbolic-ref", "HEAD", "refs/heads/main")

    @property
    def url(self) -> str:
        return str(self.path)

    def git(self, *args: str, when: str = T1) -> str:
        proc = subprocess.run(
            ["git", "-c", "commit.gpgsign=false", "-c", "tag.gpgsign=false", *args],
            cwd=self.path,
            env=_git_env(when),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=True,
        )
        return proc.stdout.strip()

    def commit(self, files: dict[str, str], *, when: str = T1, message: str = "update") -> str:
        for name, content in files.items():
            p = self.path / name
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text(content, encoding="utf-8")
        self.git("add", "-A", when=when)
        self.git("commit", "--quiet", "-m", message, when=when)
        return self.git("rev-parse", "HEAD")

    def tag(self, name: str, target: str = "HEAD", *, annotated: bool = False, when: str = T1) -> None:
        if annotated:
            self.git("tag", "-a", "-m", name, name, target, when=when)
        else:
            self.git("tag", name, target, when=when)

    def branch(self, name: str, start: str = "HEAD") -> None:
        self.git("branch", name, start)


@pytest.fixture
def template_repo(tmp_path: Path) -> TemplateRepo:
    return TemplateRepo(tmp_path / "upstream")
