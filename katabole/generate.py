"""
generate.py

Responsibility: Materialize a template repository into a new project directory.

High-level flow:
1) Refuse if the destination already exists (before any network access)
2) Clone the template into a private scratch directory
3) Resolve and check out the revision to use
4) Strip `.git`, stamp placeholders over the tree
5) Rename the finished tree onto the destination

The scratch directory is removed on every exit path, so a failed run leaves
neither a partial clone nor a partial destination behind.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from katabole import KataboleError
from katabole.config import DEFAULT_TEMPLATE_REPOSITORY
from katabole.git_repo import GitError, WorkingCopy
from katabole.placeholders import default_placeholders
from katabole.project import ProjectIdentity
from katabole.resolver import ResolutionError, ResolvedRevision, resolve
from katabole.stamper import StampError, StampResult, stamp

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "kbexample"


class Phase(str, Enum):
    CLONE = "clone"
    RESOLVE = "resolve"
    STAMP = "stamp"
    RELOCATE = "relocate"


class DestinationExistsError(KataboleError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"directory '{path}' already exists")
        self.path = path


class GenerateError(KataboleError):
    def __init__(self, phase: Phase, message: str) -> None:
        super().__init__(f"{phase.value} failed: {message}")
        self.phase = phase


@dataclass(frozen=True)
class GenerateRequest:
    identity: ProjectIdentity
    template_repository: str = DEFAULT_TEMPLATE_REPOSITORY
    template_ref: str = ""
    destination: Path | None = None

    def destination_path(self) -> Path:
        return self.destination if self.destination is not None else Path(self.identity.repo_name)


@dataclass(frozen=True)
class GenerateResult:
    destination: Path
    revision: ResolvedRevision
    stamp: StampResult


def generate(
    request: GenerateRequest,
    *,
    on_revision: Callable[[ResolvedRevision], None] | None = None,
) -> GenerateResult:
    """
    Run the full pipeline for `request`.

    `on_revision` is called once the revision is checked out, before stamping.
    """
    dest = request.destination_path()
    if os.path.lexists(dest):
        raise DestinationExistsError(dest)

    placeholders = default_placeholders(request.identity)

    with tempfile.TemporaryDirectory(prefix=SCRATCH_PREFIX) as scratch:
        clone_path = Path(scratch) / request.identity.repo_name

        try:
            wc = WorkingCopy.clone(request.template_repository, clone_path)
            wc.fetch()
        except GitError as e:
            raise GenerateError(Phase.CLONE, str(e)) from e

        try:
            revision = resolve(wc, request.template_ref or None)
        except (GitError, ResolutionError) as e:
            raise GenerateError(Phase.RESOLVE, str(e)) from e
        if on_revision is not None:
            on_revision(revision)

        try:
            shutil.rmtree(clone_path / ".git")
        except OSError as e:
            raise GenerateError(Phase.STAMP, f"cannot remove git metadata: {e}") from e

        try:
            result = stamp(clone_path, placeholders)
        except StampError as e:
            raise GenerateError(Phase.STAMP, str(e)) from e

        try:
            os.rename(clone_path, dest)
        except OSError as e:
            raise GenerateError(Phase.RELOCATE, f"cannot move project to {dest}: {e}") from e

    logger.info("created %s at %s", request.identity.repo_name, dest)
    return GenerateResult(destination=dest, revision=revision, stamp=result)
