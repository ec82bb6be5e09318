"""
provenance.py

Responsibility: Render the `.buildinfo` stamp and write it into the destination tree.

The stamp is rendered from a small Jinja2 template so that its layout lives in one place:

    Build time: 2026-10-18, 09:41:07
    Git info: #128 main 1a2b3c4

The git line only appears when branch, hash and commit count are all known.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from jinja2 import Environment, StrictUndefined

from dirbuilder.gitinfo import SourceControlInfo

logger = logging.getLogger(__name__)

BUILDINFO_NAME = ".buildinfo"

# 12-hour clock, no meridiem; existing stamps in the wild use this layout.
BUILD_TIME_FORMAT = "%Y-%m-%d, %I:%M:%S"

BUILDINFO_TEMPLATE = (
    "Build time: {{ build_time }}\n"
    "{% if git %}Git info: #{{ git.commit_count }} {{ git.branch }} {{ git.short_hash }}\n{% endif %}"
)

_env = Environment(
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)


@dataclass(frozen=True)
class ProvenanceRecord:
    build_time: datetime
    git: SourceControlInfo | None = None

    @property
    def has_git_info(self) -> bool:
        return self.git is not None and self.git.complete


def capture_record(build_time: datetime, git: SourceControlInfo | None = None) -> ProvenanceRecord:
    if build_time.tzinfo is None:
        build_time = build_time.replace(tzinfo=timezone.utc)
    build_time = build_time.astimezone(timezone.utc).replace(microsecond=0)
    return ProvenanceRecord(build_time=build_time, git=git)


def render_buildinfo(record: ProvenanceRecord) -> str:
    template = _env.from_string(BUILDINFO_TEMPLATE)
    return template.render(
        build_time=record.build_time.astimezone(timezone.utc).strftime(BUILD_TIME_FORMAT),
        git=record.git if record.has_git_info else None,
    )


def write_buildinfo(record: ProvenanceRecord, dest_root: str | Path) -> Path:
    """
    Write (or overwrite) `<dest_root>/.buildinfo` and return its path.
    """
    path = Path(dest_root) / BUILDINFO_NAME
    logger.info("Writing build info to %s", BUILDINFO_NAME)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_buildinfo(record), encoding="utf-8", newline="\n")
    return path
