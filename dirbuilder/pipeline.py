"""
pipeline.py

Responsibility: Run one build as a fixed sequence of stages, stopping at the first failure.

Stages, in order:
1) clean               - remove the destination tree
2) provenance-capture  - read git info of the source tree (absence is fine)
3) pre-commands        - shell commands in the source root
4) copy                - copy the whitelisted file set into the destination
5) post-commands       - shell commands in the destination root
6) provenance-write    - write `.buildinfo`

There are no retries and no rollback: when post-commands fail, the copied files stay.
Collaborators (remove, copy, git, clock) are plain callables so they can be swapped out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Union

from dirbuilder.commands import DEFAULT_SHELL, CommandStage, OutputObserver, run_commands
from dirbuilder.config import BuildConfig
from dirbuilder.copier import CopyError
from dirbuilder.copier import copy_files as default_copy_files
from dirbuilder.copier import remove_tree as default_remove_tree
from dirbuilder.gitinfo import SourceControlInfo, read_git_info
from dirbuilder.provenance import ProvenanceRecord, capture_record, write_buildinfo

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    CLEAN = "clean"
    PROVENANCE_CAPTURE = "provenance-capture"
    PRE_COMMANDS = "pre-commands"
    COPY = "copy"
    POST_COMMANDS = "post-commands"
    PROVENANCE_WRITE = "provenance-write"


class PipelineState(str, Enum):
    SUCCESS = "success"
    ABORTED = "aborted"


class StageError(RuntimeError):
    def __init__(self, stage: Stage, message: str) -> None:
        super().__init__(f"[{stage.value}] {message}")
        self.stage = stage


@dataclass(frozen=True)
class StageOk:
    stage: Stage
    detail: Any = None


@dataclass(frozen=True)
class StageFailed:
    stage: Stage
    error: StageError


StageOutcome = Union[StageOk, StageFailed]


@dataclass
class BuildResult:
    state: PipelineState
    completed: list[Stage] = field(default_factory=list)
    failure: StageError | None = None
    provenance: ProvenanceRecord | None = None

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.SUCCESS

    def raise_for_failure(self) -> None:
        if self.failure is not None:
            raise self.failure


RemoveTree = Callable[[Path], Any]
CopyFiles = Callable[[tuple[str, ...], Path, Path], Any]
SourceControl = Callable[[Path], Union[SourceControlInfo, None]]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Pipeline:
    def __init__(
        self,
        config: BuildConfig,
        *,
        shell: str = DEFAULT_SHELL,
        on_output: OutputObserver | None = None,
        remove_tree: RemoveTree = default_remove_tree,
        copy_files: CopyFiles = default_copy_files,
        source_control: SourceControl = read_git_info,
        clock: Clock = _utcnow,
    ) -> None:
        self._config = config
        self._shell = shell
        self._on_output = on_output
        self._remove_tree = remove_tree
        self._copy_files = copy_files
        self._source_control = source_control
        self._clock = clock
        self._git: SourceControlInfo | None = None
        self._record: ProvenanceRecord | None = None

        self._handlers: dict[Stage, Callable[[], Any]] = {
            Stage.CLEAN: self._clean,
            Stage.PROVENANCE_CAPTURE: self._capture_provenance,
            Stage.PRE_COMMANDS: self._pre_commands,
            Stage.COPY: self._copy,
            Stage.POST_COMMANDS: self._post_commands,
            Stage.PROVENANCE_WRITE: self._write_provenance,
        }

    @property
    def config(self) -> BuildConfig:
        return self._config

    def _clean(self) -> None:
        src = self._config.source_root
        dest = self._config.dest_root
        if dest == src or dest in src.parents:
            raise CopyError(f"Refusing to remove {dest}: it contains the source directory {src}")
        self._remove_tree(dest)

    def _capture_provenance(self) -> SourceControlInfo | None:
        self._git = self._source_control(self._config.source_root)
        if self._git is None:
            logger.info("No git info available for %s", self._config.source_root)
        return self._git

    def _run_commands(self, commands: CommandStage) -> Any:
        outcome = run_commands(commands, shell=self._shell, on_output=self._on_output)
        if outcome.error is not None:
            raise outcome.error
        return outcome

    def _pre_commands(self) -> Any:
        return self._run_commands(self._config.pre_stage)

    def _copy(self) -> Any:
        cfg = self._config
        result = self._copy_files(cfg.file_selectors, cfg.copy_cwd, cfg.dest_root)
        # Post-commands run inside dest_root, so it has to exist even if nothing matched.
        cfg.dest_root.mkdir(parents=True, exist_ok=True)
        return result

    def _post_commands(self) -> Any:
        return self._run_commands(self._config.post_stage)

    def _write_provenance(self) -> Path:
        self._record = capture_record(self._clock(), self._git)
        return write_buildinfo(self._record, self._config.dest_root)

    def run_stage(self, stage: Stage) -> StageOutcome:
        """
        Run a single stage and turn any exception it raises into a tagged failure.
        """
        logger.info("Running stage: %s", stage.value)
        try:
            detail = self._handlers[stage]()
        except Exception as e:  # noqa: BLE001 - every stage failure is surfaced as StageError
            err = StageError(stage, str(e) or e.__class__.__name__)
            err.__cause__ = e
            return StageFailed(stage=stage, error=err)
        return StageOk(stage=stage, detail=detail)

    def run(self, on_complete: Callable[[BuildResult], Any] | None = None) -> BuildResult:
        """
        Run all stages in order. `on_complete` is called once with the result either way.
        """
        result = BuildResult(state=PipelineState.SUCCESS)
        for stage in Stage:
            outcome = self.run_stage(stage)
            if isinstance(outcome, StageFailed):
                logger.error("Stage %s failed: %s", stage.value, outcome.error)
                result.state = PipelineState.ABORTED
                result.failure = outcome.error
                break
            result.completed.append(stage)

        result.provenance = self._record
        if on_complete is not None:
            on_complete(result)
        return result


def run_build(config: BuildConfig, **kwargs: Any) -> BuildResult:
    """
    Convenience wrapper: build a `Pipeline` for `config` and run it once.
    """
    on_complete = kwargs.pop("on_complete", None)
    return Pipeline(config, **kwargs).run(on_complete=on_complete)
