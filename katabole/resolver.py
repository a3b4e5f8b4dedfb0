"""
resolver.py

Responsibility: Decide which revision of a cloned template gets materialized.

- With a ref hint, try it as each `RefKind` in priority order; the first kind that
  names an existing commit is checked out.
- Without a hint, check out the tag whose commit was committed most recently. A
  repository without usable tags keeps whatever the clone checked out.

No state is kept between calls; the result depends only on the working copy.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from katabole import KataboleError
from katabole.git_repo import TagRef, WorkingCopy

logger = logging.getLogger(__name__)

_FULL_HASH_RE = re.compile(r"^(?:[0-9a-fA-F]{40}|[0-9a-fA-F]{64})$")


class RefKind(str, Enum):
    """The kinds of reference a ref hint may name, in the order they are tried."""

    HASH = "hash"
    BRANCH = "branch"
    REMOTE_BRANCH = "remote-branch"
    TAG = "tag"

    def candidate(self, hint: str) -> str | None:
        """The name to look up for `hint` as this kind, or None if it cannot be one."""
        if self is RefKind.HASH:
            return hint.lower() if _FULL_HASH_RE.match(hint) else None
        prefixes: dict[RefKind, str] = {
            RefKind.BRANCH: "refs/heads/",
            RefKind.REMOTE_BRANCH: "refs/remotes/origin/",
            RefKind.TAG: "refs/tags/",
        }
        return prefixes[self] + hint


RESOLUTION_ORDER: tuple[RefKind, ...] = (
    RefKind.HASH,
    RefKind.BRANCH,
    RefKind.REMOTE_BRANCH,
    RefKind.TAG,
)


class ResolutionError(KataboleError):
    def __init__(self, hint: str) -> None:
        kinds = "/".join(k.value for k in RESOLUTION_ORDER)
        super().__init__(f"failed to checkout {hint!r}: not a valid {kinds}")
        self.hint = hint


@dataclass(frozen=True)
class ResolvedRevision:
    """
    The revision checked out in the working copy.

    `kind` and `ref` are None when no hint was given and no tag was usable, i.e.
    the clone's default branch was kept.
    """

    kind: RefKind | None
    ref: str | None
    commit: str


def _try_kind(wc: WorkingCopy, kind: RefKind, hint: str) -> str | None:
    name = kind.candidate(hint)
    if name is None:
        return None
    if kind is RefKind.HASH:
        if wc.object_type(name) != "commit":
            return None
    elif not wc.has_ref(name) or wc.object_type(f"{name}^{{commit}}") != "commit":
        return None
    wc.checkout(name)
    return name


def checkout_ref(wc: WorkingCopy, hint: str) -> ResolvedRevision:
    """Check out `hint`, trying it as a hash, branch, remote branch, then tag."""
    for kind in RESOLUTION_ORDER:
        name = _try_kind(wc, kind, hint)
        if name is not None:
            logger.info("resolved %r as %s %s", hint, kind.value, name)
            return ResolvedRevision(kind=kind, ref=hint, commit=wc.head())
        logger.debug("%r is not a %s", hint, kind.value)
    raise ResolutionError(hint)


def _tag_commit(tag: TagRef) -> tuple[str, int] | None:
    if tag.object_type == "commit" and tag.committer_time is not None:
        return tag.object_name, tag.committer_time
    if tag.object_type == "tag" and tag.target_type == "commit" and tag.target_committer_time is not None:
        return tag.target_name, tag.target_committer_time
    return None


def latest_tag(wc: WorkingCopy) -> TagRef | None:
    """
    Return the tag pointing at the most recently committed commit.

    Annotated tags are dereferenced one level. Tags that do not end up at a commit
    are skipped. On equal commit times the tag listed first wins.
    """
    best: TagRef | None = None
    best_time = 0
    for tag in wc.iter_tags():
        resolved = _tag_commit(tag)
        if resolved is None:
            logger.debug("skipping tag %s: does not point at a commit", tag.name)
            continue
        _commit, when = resolved
        if best is None or when > best_time:
            best, best_time = tag, when
    return best


def resolve(wc: WorkingCopy, ref_hint: str | None = None) -> ResolvedRevision:
    """Resolve and check out the revision to materialize."""
    if ref_hint:
        return checkout_ref(wc, ref_hint)

    tag = latest_tag(wc)
    if tag is None:
        logger.info("no tags found, keeping the default branch")
        return ResolvedRevision(kind=None, ref=None, commit=wc.head())

    wc.checkout(f"refs/tags/{tag.name}")
    logger.info("using latest tag %s", tag.name)
    return ResolvedRevision(kind=RefKind.TAG, ref=tag.name, commit=wc.head())
