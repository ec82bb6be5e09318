"""
gitinfo.py

Responsibility: Read the git identity of the source tree for the build stamp.

Not being in a git repository (or not having git installed) is normal; callers
get `None` and the stamp simply has no git line.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceControlInfo:
    branch: str
    short_hash: str
    commit_count: str

    @property
    def complete(self) -> bool:
        return bool(self.branch and self.short_hash and self.commit_count)


def _git(args: list[str], *, cwd: Path) -> str:
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        check=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        encoding="utf-8",
        errors="replace",
    )
    return proc.stdout.strip()


def read_git_info(repo_dir: str | Path) -> SourceControlInfo | None:
    """
    Return branch name, short hash and commit count of HEAD, or None if unavailable.
    """
    cwd = Path(repo_dir)
    try:
        branch = _git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=cwd)
        short_hash = _git(["rev-parse", "--short", "HEAD"], cwd=cwd)
        commit_count = _git(["rev-list", "--count", "HEAD"], cwd=cwd)
    except (OSError, subprocess.CalledProcessError) as e:
        logger.debug("No git info for %s: %s", cwd, e)
        return None

    info = SourceControlInfo(branch=branch, short_hash=short_hash, commit_count=commit_count)
    logger.info("Git info: #%s %s %s", info.commit_count, info.branch, info.short_hash)
    return info
