"""
git_repo.py

Responsibility: Isolate all direct interaction with the `git` executable.

This module must be the only place that:
- Builds `git` command lines
- Runs `git` subprocesses
- Interprets `git` output / exit codes

Everything else (resolution policy, stamping, CLI behavior) should use `WorkingCopy`.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from katabole import KataboleError

logger = logging.getLogger(__name__)

_FIELD_SEP = "\x1f"

# name, type of the object the ref points at, and (for annotated tags) the
# type and name of the object the tag object names directly. Newer git peels
# the whole tag chain for %(*...) fields, so the peeled date only counts when
# %(type) is a commit. The date fields are empty for non-commits.
_TAG_FORMAT = _FIELD_SEP.join(
    [
        "%(refname)",
        "%(objecttype)",
        "%(objectname)",
        "%(committerdate:unix)",
        "%(type)",
        "%(object)",
        "%(*committerdate:unix)",
    ]
)


class GitError(KataboleError):
    def __init__(self, argv: list[str], returncode: int, output: str) -> None:
        msg = output.strip() or f"exit status {returncode}"
        super().__init__(f"Command failed: {' '.join(argv)}\n\n{msg}")
        self.argv = argv
        self.returncode = returncode
        self.output = output


@dataclass(frozen=True)
class TagRef:
    """A tag as listed by git, before deciding whether it names a commit."""

    name: str
    object_type: str
    object_name: str
    committer_time: int | None
    target_type: str
    target_name: str
    target_committer_time: int | None


def _git_env() -> dict[str, str]:
    env = dict(os.environ)
    # No interactive credential prompts.
    env.setdefault("GIT_TERMINAL_PROMPT", "0")
    return env


def run_git(args: list[str], *, cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    """Run git and return the completed process without checking the exit code."""
    cmd = ["git", *args]
    logger.debug("running %s (cwd=%s)", " ".join(cmd), cwd)
    return subprocess.run(
        cmd,
        cwd=str(cwd) if cwd is not None else None,
        env=_git_env(),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=False,
    )


def _check(proc: subprocess.CompletedProcess[str]) -> str:
    if proc.returncode != 0:
        raise GitError(list(proc.args), proc.returncode, proc.stderr or proc.stdout)
    return proc.stdout


def _parse_time(raw: str) -> int | None:
    raw = raw.strip()
    return int(raw) if raw else None


class WorkingCopy:
    """A local git working copy rooted at `path`."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"WorkingCopy({str(self.path)!r})"

    @classmethod
    def clone(cls, url: str, path: str | Path) -> WorkingCopy:
        """Clone `url` (with all tags) into `path`, which must not exist yet."""
        dest = Path(path)
        logger.info("cloning %s", url)
        _check(run_git(["clone", "--quiet", "--no-single-branch", "--", url, str(dest)]))
        return cls(dest)

    def git(self, *args: str) -> str:
        return _check(run_git(list(args), cwd=self.path))

    def fetch(self) -> None:
        """Fetch every origin branch into refs/remotes/origin and every tag."""
        self.git(
            "fetch",
            "--quiet",
            "--force",
            "--tags",
            "origin",
            "+refs/heads/*:refs/remotes/origin/*",
        )

    def has_ref(self, refname: str) -> bool:
        proc = run_git(["show-ref", "--verify", "--quiet", refname], cwd=self.path)
        return proc.returncode == 0

    def object_type(self, name: str) -> str | None:
        """Return the type of the object `name` refers to, or None if it does not exist."""
        proc = run_git(["cat-file", "-t", name], cwd=self.path)
        if proc.returncode != 0:
            return None
        return proc.stdout.strip()

    def checkout(self, target: str) -> None:
        """Check out `target` (a commit id or fully qualified ref) as a detached HEAD."""
        self.git("-c", "advice.detachedHead=false", "checkout", "--quiet", "--detach", target)

    def head(self) -> str:
        return self.git("rev-parse", "HEAD").strip()

    def iter_tags(self) -> Iterator[TagRef]:
        """Yield tags in the order `git for-each-ref` lists them."""
        out = self.git("for-each-ref", f"--format={_TAG_FORMAT}", "refs/tags")
        for line in out.splitlines():
            if not line:
                continue
            fields = line.split(_FIELD_SEP)
            if len(fields) != 7:
                logger.debug("ignoring unparsable tag line %r", line)
                continue
            refname, otype, oname, ctime, ttype, tname, tctime = fields
            yield TagRef(
                name=refname.removeprefix("refs/tags/"),
                object_type=otype,
                object_name=oname,
                committer_time=_parse_time(ctime),
                target_type=ttype,
                target_name=tname,
                target_committer_time=_parse_time(tctime),
            )
