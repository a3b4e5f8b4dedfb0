"""
placeholders.py

Responsibility: Hold the ordered token -> replacement mapping applied by the stamper.

Replacements are applied as sequential whole-content passes, so a token that is a
substring of a later token would eat into it and leave a mangled mix behind. That
ordering is checked here, when the set is built, not left to call sites.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from katabole import KataboleError
from katabole.project import ProjectIdentity

TEMPLATE_IMPORT_PATH = "github.com/katabole/kbexample"
TEMPLATE_TITLE_NAME = "KBExample"
TEMPLATE_NAME_UNDERSCORES = "kb_example"
TEMPLATE_NAME = "kbexample"


class PlaceholderError(KataboleError, ValueError):
    pass


@dataclass(frozen=True)
class Placeholder:
    token: bytes
    replacement: bytes


class PlaceholderSet:
    """An immutable, validated sequence of `Placeholder` mappings."""

    def __init__(self, mappings: Sequence[tuple[str | bytes, str | bytes]]) -> None:
        items = tuple(Placeholder(_as_bytes(t), _as_bytes(r)) for t, r in mappings)
        _check_order(items)
        self._items = items

    def __iter__(self) -> Iterator[Placeholder]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        pairs = ", ".join(f"{p.token!r}->{p.replacement!r}" for p in self._items)
        return f"PlaceholderSet({pairs})"

    def apply(self, content: bytes) -> tuple[bytes, dict[bytes, int]]:
        """
        Run every replacement pass over `content`.

        Returns (new_content, {token: occurrences_replaced}).
        """
        counts: dict[bytes, int] = {}
        for p in self._items:
            n = content.count(p.token)
            counts[p.token] = n
            if n:
                content = content.replace(p.token, p.replacement)
        return content, counts


def _as_bytes(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def _check_order(items: tuple[Placeholder, ...]) -> None:
    for i, earlier in enumerate(items):
        if not earlier.token:
            raise PlaceholderError("placeholder tokens must not be empty")
        for later in items[i + 1 :]:
            if earlier.token == later.token:
                raise PlaceholderError(f"duplicate placeholder token {earlier.token!r}")
            if earlier.token in later.token:
                raise PlaceholderError(
                    f"placeholder {earlier.token!r} is contained in later placeholder "
                    f"{later.token!r}; list the longer token first"
                )


def default_placeholders(identity: ProjectIdentity) -> PlaceholderSet:
    """The placeholders used by the katabole example template."""
    return PlaceholderSet(
        [
            (TEMPLATE_IMPORT_PATH, identity.import_path),
            (TEMPLATE_TITLE_NAME, identity.title_name),
            (TEMPLATE_NAME_UNDERSCORES, identity.repo_name_underscores),
            (TEMPLATE_NAME, identity.repo_name),
        ]
    )
