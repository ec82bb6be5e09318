"""
cli.py

Responsibility: CLI entrypoint for dirbuilder.

High-level flow (single command `build`):
1) Resolve `[src] <dest> [profile]` -> `BuildConfig`
2) Run the pipeline (clean, git info, pre-commands, copy, post-commands, .buildinfo)
3) Map the outcome to an exit code

This module should orchestrate behavior but keep concerns isolated:
- Config loading: `config.py`
- Stage sequencing: `pipeline.py`
- Shell commands: `commands.py`
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from dirbuilder import __version__
from dirbuilder.commands import DEFAULT_SHELL
from dirbuilder.config import ConfigError, resolve_config
from dirbuilder.pipeline import run_build

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BUILD_FAILED = 1
EXIT_CONFIG_ERROR = 2


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _split_positionals(src: str, dest: str | None) -> tuple[str, str]:
    # A single positional is the destination; the source is the current directory.
    if dest is None:
        return os.getcwd(), src
    return src, dest


def build_cmd(args: argparse.Namespace) -> int:
    src, dest = _split_positionals(args.src, args.dest)
    profile = (args.profile or "").strip()

    try:
        config = resolve_config(src, dest, profile or None)
    except ConfigError as e:
        logger.error("%s", e)
        print(f"FAILED: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    shell = args.shell or os.environ.get("DIRBUILDER_SHELL") or DEFAULT_SHELL
    result = run_build(config, shell=shell)
    if not result.ok:
        print(f"FAILED: {result.failure}", file=sys.stderr)
        return EXIT_BUILD_FAILED

    print("\nSUCCESS!")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="dirbuilder", description="dirbuilder - copy a project into a clean build directory")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: env DIRBUILDER_LOG_LEVEL or INFO)",
    )
    sub = p.add_subparsers(dest="command", required=True)

    b = sub.add_parser("build", help="Clean <dest>, run pre-commands, copy files, run post-commands, stamp .buildinfo")
    b.add_argument("src", help="Source directory (omit to use the current directory)")
    b.add_argument("dest", nargs="?", default=None, help="Destination directory")
    b.add_argument("profile", nargs="?", default="", help="Profile name in .buildrc")
    b.add_argument("--shell", default=None, help=f"Shell used to run commands (default: env DIRBUILDER_SHELL or {DEFAULT_SHELL})")

    b.set_defaults(func=build_cmd)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level or os.environ.get("DIRBUILDER_LOG_LEVEL") or "INFO")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
