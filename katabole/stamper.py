"""
stamper.py

Responsibility: Rewrite placeholder tokens in every regular file under a directory.

Rules:
- Walk files in sorted order to ensure deterministic output.
- Only file contents are rewritten; directory names are left alone.
- Symlinks and other non-regular entries are not followed or touched.
- Permission bits are captured before the write and restored exactly afterwards.
- The first read/write failure aborts the walk. Nothing is rolled back; the caller
  owns the tree and is expected to discard it.

This module intentionally does NOT know about git, cloning, or CLI parsing.
"""

from __future__ import annotations

import logging
import os
import stat
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from katabole import KataboleError
from katabole.placeholders import PlaceholderSet

logger = logging.getLogger(__name__)


class StampError(KataboleError):
    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path = path


@dataclass(frozen=True)
class StampResult:
    files_seen: int
    files_rewritten: int
    replacements: dict[bytes, int] = field(default_factory=dict)


def _raise(err: OSError) -> None:
    raise err


def _iter_files(root: Path) -> list[Path]:
    """
    Return the path of every file under root, relative to root and sorted by its
    "/"-separated form. A directory that cannot be listed raises StampError.
    """
    found: list[Path] = []
    try:
        for dirpath, _dirs, filenames in os.walk(root, onerror=_raise):
            base = Path(dirpath).relative_to(root)
            found.extend(base / name for name in filenames)
    except OSError as e:
        where = Path(e.filename) if e.filename else root
        raise StampError(f"Failed reading directory: {where}", where) from e
    return sorted(found, key=lambda p: p.as_posix())


def _write_file(path: Path, data: bytes, mode: int) -> None:
    with open(path, "wb") as f:
        f.write(data)
    os.chmod(path, mode)


def stamp(root: str | Path, placeholders: PlaceholderSet) -> StampResult:
    """Apply `placeholders` to every regular file under `root`, in place."""
    root_path = Path(root)
    if not root_path.is_dir():
        raise StampError(f"Not a directory: {root_path}", root_path)

    seen = 0
    rewritten = 0
    totals: Counter[bytes] = Counter({p.token: 0 for p in placeholders})

    for rel in _iter_files(root_path):
        path = root_path / rel
        try:
            st = path.lstat()
        except OSError as e:
            raise StampError(f"Failed reading file: {rel}", path) from e
        if not stat.S_ISREG(st.st_mode):
            logger.debug("skipping non-regular file %s", rel)
            continue

        seen += 1
        try:
            data = path.read_bytes()
        except OSError as e:
            raise StampError(f"Failed reading file: {rel}", path) from e

        out, counts = placeholders.apply(data)
        totals.update(counts)
        if out == data:
            continue

        try:
            _write_file(path, out, stat.S_IMODE(st.st_mode))
        except OSError as e:
            raise StampError(f"Failed writing file: {rel}", path) from e
        rewritten += 1
        logger.debug("stamped %s", rel)

    logger.info("stamped %d of %d files under %s", rewritten, seen, root_path)
    return StampResult(files_seen=seen, files_rewritten=rewritten, replacements=dict(totals))
