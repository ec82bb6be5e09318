"""
config.py

Responsibility: Load `<src>/.buildrc` and resolve it into a typed, immutable `BuildConfig`.

This implementation intentionally stays forgiving about the file itself:
- A missing `.buildrc` is not an error (a warning is logged, defaults apply).
- Malformed JSON is not fatal either: the error is logged and defaults apply.
- A value of the wrong type is logged and that key falls back to its default.

It is strict only about the two inputs the build cannot do without: an existing
source directory and a destination.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dirbuilder.commands import CommandStage, StageKind

logger = logging.getLogger(__name__)

BUILDRC_NAME = ".buildrc"


class ConfigError(ValueError):
    pass


class MissingSource(ConfigError):
    pass


class MissingDestination(ConfigError):
    pass


class MalformedConfig(ConfigError):
    pass


@dataclass(frozen=True)
class BuildConfig:
    """Everything one build invocation needs, with all paths made absolute."""

    source_root: Path
    dest_root: Path
    copy_cwd: Path
    file_selectors: tuple[str, ...] = ()
    pre_commands: tuple[str, ...] = ()
    post_commands: tuple[str, ...] = ()
    profile: str | None = None

    @property
    def pre_stage(self) -> CommandStage:
        return CommandStage(kind=StageKind.PRE, commands=self.pre_commands, cwd=self.source_root)

    @property
    def post_stage(self) -> CommandStage:
        return CommandStage(kind=StageKind.POST, commands=self.post_commands, cwd=self.dest_root)


def _parse_buildrc(text: str, path: Path) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedConfig(f"{path} is not a valid JSON file: {e}") from e
    if not isinstance(data, dict):
        raise MalformedConfig(f"{path} must contain a JSON object at the top level.")
    return data


def load_raw_config(source_root: str | Path) -> dict[str, Any]:
    """
    Read `.buildrc` from `source_root` without interpreting it.

    Returns an empty mapping when the file is missing or cannot be parsed.
    """
    path = Path(source_root) / BUILDRC_NAME
    if not path.is_file():
        logger.warning("Missing %s file. Default config is used!", BUILDRC_NAME)
        return {}

    try:
        return _parse_buildrc(path.read_text(encoding="utf-8"), path)
    except MalformedConfig as e:
        logger.error("%s Default config is used!", e)
        return {}


def _string_list(value: Any, key: str) -> tuple[str, ...]:
    """
    Accept a single string or a list of strings; empty/None means no entries.
    Anything else is logged and treated as no entries.
    """
    if value is None or value == "":
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        logger.error("`%s` must be a string or a list of strings; ignoring it.", key)
        return ()
    return tuple(value)


def select_profile(raw: dict[str, Any], profile: str | None) -> dict[str, Any]:
    """
    A profile replaces the whole config; nothing from the top level is inherited.
    """
    if not profile:
        return raw
    selected = raw.get(profile)
    if not isinstance(selected, dict):
        logger.warning("Profile %r not found in %s; using an empty config.", profile, BUILDRC_NAME)
        return {}
    return selected


def resolve_config(
    source_root: str | Path,
    dest_root: str | Path | None,
    profile: str | None = None,
) -> BuildConfig:
    """
    Resolve the build configuration for one invocation.

    Raises:
    - `MissingSource` if `source_root` does not exist
    - `MissingDestination` if no destination was given
    """
    src = Path(source_root).resolve()
    if not src.exists():
        raise MissingSource(f"Src directory does not exist: {src}")

    if dest_root is None or not str(dest_root).strip():
        raise MissingDestination("Please provide a destination.")
    dest = Path(dest_root).resolve()

    profile = (profile or "").strip() or None
    data = select_profile(load_raw_config(src), profile)

    cwd_raw = data.get("cwd") or ""
    if not isinstance(cwd_raw, str):
        logger.error("`cwd` must be a string; using the source directory.")
        cwd_raw = ""

    commands_raw = data.get("commands") or {}
    if not isinstance(commands_raw, dict):
        logger.error("`commands` must be an object/mapping; running no commands.")
        commands_raw = {}

    return BuildConfig(
        source_root=src,
        dest_root=dest,
        copy_cwd=(src / cwd_raw).resolve(),
        file_selectors=_string_list(data.get("files"), "files"),
        pre_commands=_string_list(commands_raw.get("pre"), "commands.pre"),
        post_commands=_string_list(commands_raw.get("post"), "commands.post"),
        profile=profile,
    )
