"""
copier.py

Responsibility: The filesystem side of a build: wipe the destination and copy the
whitelisted file set into it.

Selectors follow the usual "expand" rules of copy tasks:
- Each selector is a glob relative to the copy cwd (`**` recurses).
- Hidden files and directories are only matched by patterns that spell out the dot.
- A selector starting with `!` removes anything matched so far.
- Matched directories are created in the destination; matched files are copied.

This module intentionally does NOT know about configs, stages, or shell commands.
"""

from __future__ import annotations

import glob
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class CopyError(RuntimeError):
    pass


@dataclass(frozen=True)
class CopyResult:
    copied_files: int
    created_dirs: int


def remove_tree(path: str | Path) -> None:
    """
    Remove `path` whatever it is (directory tree, file or symlink). A missing path is fine.
    """
    target = Path(path)
    try:
        if target.is_symlink() or target.is_file():
            target.unlink()
        elif target.exists():
            shutil.rmtree(target)
        else:
            logger.debug("Nothing to remove at %s", target)
            return
    except OSError as e:
        raise CopyError(f"Failed removing {target}: {e}") from e
    logger.info("Removed %s.", target)


def expand_selectors(selectors: list[str] | tuple[str, ...], cwd: str | Path) -> list[str]:
    """
    Expand selectors into relative paths (posix separators), in first-match order.
    """
    base = str(cwd)
    matched: dict[str, None] = {}
    for selector in selectors:
        exclude = selector.startswith("!")
        pattern = selector[1:] if exclude else selector
        hits = sorted(glob.glob(pattern, root_dir=base, recursive=True))
        if not hits:
            logger.debug("Selector %r matched nothing under %s", selector, base)
        for hit in hits:
            rel = hit.replace(os.sep, "/").rstrip("/")
            if not rel or rel == ".":
                continue
            if exclude:
                matched.pop(rel, None)
            else:
                matched.setdefault(rel, None)
    return list(matched)


def copy_files(
    selectors: list[str] | tuple[str, ...],
    cwd: str | Path,
    dest: str | Path,
) -> CopyResult:
    """
    Copy everything `selectors` match under `cwd` into `dest`, keeping relative paths.

    `dest` is created even when nothing matches.
    """
    src_dir = Path(cwd)
    dst_dir = Path(dest)

    if selectors and not src_dir.is_dir():
        logger.warning("Copy cwd does not exist: %s", src_dir)

    copied = 0
    created = 0
    try:
        # Expand before creating dst_dir so a dest inside cwd never matches itself.
        matched = expand_selectors(selectors, src_dir)
        dst_dir.mkdir(parents=True, exist_ok=True)
        for rel in matched:
            src_path = src_dir / rel
            dst_path = dst_dir / rel
            if src_path.is_dir():
                dst_path.mkdir(parents=True, exist_ok=True)
                created += 1
            else:
                dst_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src_path, dst_path)
                copied += 1
    except OSError as e:
        raise CopyError(f"Failed copying from {src_dir} to {dst_dir}: {e}") from e

    logger.info("Copied %d files, created %d directories.", copied, created)
    return CopyResult(copied_files=copied, created_dirs=created)
