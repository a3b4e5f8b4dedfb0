"""
project.py

Responsibility: Turn the user-supplied import path and title name into a
validated, typed project identity.

Validation happens here, before anything touches the filesystem or network.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from katabole import KataboleError

_REPO_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class IdentityError(KataboleError, ValueError):
    pass


@dataclass(frozen=True)
class ProjectIdentity:
    """Names stamped into the generated project."""

    import_path: str
    title_name: str
    repo_name: str
    repo_name_underscores: str


def validate_repo_name(repo_name: str) -> bool:
    """Return True if the name contains only letters, digits, dashes or underscores."""
    return bool(_REPO_NAME_RE.match(repo_name))


def title_case(name: str) -> str:
    """
    Capitalize the first letter of every word in `name`.

    A word is a run of letters, digits and underscores, so `my-app` becomes
    `My-App` while `my_app` becomes `My_app`. The rest of each word is left as is.
    """
    out: list[str] = []
    prev_sep = True
    for ch in name:
        out.append(ch.upper() if prev_sep else ch)
        prev_sep = not (ch.isalnum() or ch == "_")
    return "".join(out)


def parse_identity(import_path: str, title_name: str | None = None) -> ProjectIdentity:
    """
    Parse `host/user/name` into a `ProjectIdentity`.

    - import_path: exactly three non-empty slash-separated segments, no spaces
    - title_name: optional; derived from the repo name when empty
    """
    import_path = import_path.strip()
    if " " in import_path:
        raise IdentityError("import path must not contain spaces")

    parts = import_path.split("/")
    if len(parts) != 3 or not all(parts):
        raise IdentityError("import path must be in the form 'github.com/<user>/<app>'")

    repo_name = parts[2]
    if not validate_repo_name(repo_name):
        raise IdentityError("repository name can only contain letters, numbers, dashes or underscores")

    title = (title_name or "").strip()
    if " " in title:
        raise IdentityError("title name must not contain spaces")
    if not title:
        title = title_case(repo_name)

    return ProjectIdentity(
        import_path=import_path,
        title_name=title,
        repo_name=repo_name,
        repo_name_underscores=repo_name.replace("-", "_"),
    )
