"""
katabole package

This package implements `katabole gen`, which materializes a new project from a
template repository.

Key responsibilities are split across modules:
- `project.py`: parse the import path / title name into a validated identity
- `placeholders.py`: the ordered token -> replacement mapping and its validation
- `git_repo.py`: isolated `git` subprocess interactions (clone, fetch, refs, checkout)
- `resolver.py`: pick the revision to materialize (ref hint or latest tag)
- `stamper.py`: rewrite placeholder tokens in every file of a tree
- `config.py`: optional YAML configuration defaults
- `generate.py`: orchestration (clone -> resolve -> stamp -> rename)
- `cli.py`: CLI entrypoint
"""

from __future__ import annotations

__all__ = ["KataboleError", "__version__"]

__version__ = "0.1.0"


class KataboleError(RuntimeError):
    """Base class for every error katabole reports to the user."""
