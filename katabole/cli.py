"""
cli.py

Responsibility: CLI entrypoint for katabole.

High-level flow (single command `gen`):
1) Validate the import path / title name -> `ProjectIdentity`
2) Load config defaults, apply CLI overrides
3) Run the generation pipeline (`generate.py`)
4) Report the result

This module should orchestrate behavior but keep concerns isolated:
- Identity parsing: `project.py`
- Config: `config.py`
- Clone / resolve / stamp / rename: `generate.py`
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from katabole import KataboleError, __version__
from katabole.config import load_config
from katabole.generate import GenerateRequest, generate
from katabole.project import parse_identity
from katabole.resolver import RefKind, ResolvedRevision

logger = logging.getLogger(__name__)


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _report_revision(revision: ResolvedRevision) -> None:
    if revision.kind is RefKind.TAG and revision.ref is not None:
        print(f"Using latest release: {revision.ref}")


def gen_cmd(args: argparse.Namespace) -> int:
    identity = parse_identity(args.import_path, args.title_name)

    # CLI overrides
    config = load_config(args.config).with_overrides(
        template_repository=args.template_repository,
        template_ref=args.template_ref,
    )

    request = GenerateRequest(
        identity=identity,
        template_repository=config.template_repository,
        template_ref=config.template_ref,
        destination=Path(args.dest) if args.dest else None,
    )

    print(f"Creating {identity.repo_name}...")
    on_revision = _report_revision if not config.template_ref else None
    result = generate(request, on_revision=on_revision)

    print(f"Done! Created {result.destination}")
    print("\nNext:")
    print(f"\tcd {result.destination}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="katabole", description="The CLI tool for katabole web applications")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(dest="command", required=True)

    g = sub.add_parser(
        "gen",
        help="Generate a new katabole web application",
        epilog="example: katabole gen --import-path github.com/myuser/myapp --title-name MyApp",
    )
    g.add_argument("-n", "--import-path", required=True, help="Import path of the new app, e.g. github.com/<user>/<app>")
    g.add_argument("-t", "--title-name", default=None, help="Name for the app in title case (default: derived from the app name)")
    g.add_argument("--template-repository", default=None, help="Git repository URL to clone as a template")
    g.add_argument(
        "--template-ref",
        default=None,
        help="Commit hash, branch or tag to check out after cloning (default: latest tag)",
    )
    g.add_argument("--dest", default=None, help="Directory to create (default: ./<app>)")
    g.add_argument("--config", default=None, help="YAML config file (or set env KATABOLE_CONFIG)")
    g.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")

    g.set_defaults(func=gen_cmd)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        return int(args.func(args))
    except KataboleError as e:
        logger.debug("command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
