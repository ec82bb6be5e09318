"""
commands.py

Responsibility: run shell commands for the pre/post stages.

- `run_command` feeds one command line to a shell subprocess and waits for it.
- `run_commands` runs a stage's commands in order and stops at the first failure.

A command fails if the shell cannot be spawned, if it exits non-zero, or if it
writes anything at all to stderr. The working directory is always passed to the
subprocess; the process-wide cwd is never changed.
"""

from __future__ import annotations

import logging
import subprocess
import sys
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import IO, Callable

logger = logging.getLogger(__name__)

OutputObserver = Callable[[str, str], None]

DEFAULT_SHELL = "bash"


class CommandError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        command: str,
        returncode: int | None = None,
        stderr: str = "",
        stage: str | None = None,
    ) -> None:
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        self.stage = stage


class StageKind(str, Enum):
    PRE = "pre"
    POST = "post"


@dataclass(frozen=True)
class CommandStage:
    """An ordered list of commands and the directory they run in."""

    kind: StageKind
    commands: tuple[str, ...]
    cwd: Path


@dataclass(frozen=True)
class ExecutionResult:
    command: str
    cwd: Path
    stdout: str = ""
    stderr: str = ""
    returncode: int | None = None
    error: CommandError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SequenceResult:
    stage: CommandStage
    results: list[ExecutionResult] = field(default_factory=list)

    @property
    def failed(self) -> ExecutionResult | None:
        for result in self.results:
            if not result.ok:
                return result
        return None

    @property
    def error(self) -> CommandError | None:
        failed = self.failed
        return failed.error if failed is not None else None

    @property
    def ok(self) -> bool:
        return self.failed is None


def echo_output(stream: str, text: str) -> None:
    """
    Default observer: pass command output straight through to our own stdout/stderr.
    """
    target = sys.stderr if stream == "stderr" else sys.stdout
    target.write(text)
    target.flush()


def _pump(pipe: IO[str], stream: str, chunks: list[str], on_output: OutputObserver) -> None:
    for line in iter(pipe.readline, ""):
        chunks.append(line)
        on_output(stream, line)
    pipe.close()


def run_command(
    command: str,
    cwd: str | Path,
    *,
    shell: str = DEFAULT_SHELL,
    on_output: OutputObserver | None = None,
) -> ExecutionResult:
    """
    Run a single command line through `shell` inside `cwd`.

    Output is forwarded to `on_output` while the command runs and is also
    collected on the returned `ExecutionResult`.
    """
    observer = on_output or echo_output
    workdir = Path(cwd)

    logger.info("Executing: %s", command)
    logger.info("CWD: %s", workdir)

    try:
        proc = subprocess.Popen(
            [shell],
            cwd=str(workdir),
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
    except OSError as e:
        err = CommandError(f"Failed to start {shell!r} in {workdir}: {e}", command=command)
        err.__cause__ = e
        return ExecutionResult(command=command, cwd=workdir, error=err)

    out_chunks: list[str] = []
    err_chunks: list[str] = []
    readers = [
        threading.Thread(target=_pump, args=(proc.stdout, "stdout", out_chunks, observer), daemon=True),
        threading.Thread(target=_pump, args=(proc.stderr, "stderr", err_chunks, observer), daemon=True),
    ]
    for t in readers:
        t.start()

    stdin: IO[str] = proc.stdin  # type: ignore[assignment]
    try:
        stdin.write(command + "\n")
        stdin.close()
    except BrokenPipeError:
        # The shell exited before reading its input; the exit code tells the story.
        pass

    returncode = proc.wait()
    for t in readers:
        t.join()

    stdout = "".join(out_chunks)
    stderr = "".join(err_chunks)

    error: CommandError | None = None
    if returncode != 0:
        error = CommandError(
            f"Command exited with status {returncode}: {command}",
            command=command,
            returncode=returncode,
            stderr=stderr,
        )
    elif stderr:
        error = CommandError(
            f"Command wrote to stderr: {command}\n\n{stderr.rstrip()}",
            command=command,
            returncode=returncode,
            stderr=stderr,
        )

    return ExecutionResult(
        command=command,
        cwd=workdir,
        stdout=stdout,
        stderr=stderr,
        returncode=returncode,
        error=error,
    )


def run_commands(
    stage: CommandStage,
    *,
    shell: str = DEFAULT_SHELL,
    on_output: OutputObserver | None = None,
) -> SequenceResult:
    """
    Run every command of `stage` in order, stopping at the first failure.

    The failing command's `CommandError` is tagged with the stage name.
    """
    outcome = SequenceResult(stage=stage)
    for command in stage.commands:
        result = run_command(command, stage.cwd, shell=shell, on_output=on_output)
        outcome.results.append(result)
        if result.error is not None:
            result.error.stage = stage.kind.value
            logger.error("%s-build command failed: %s", stage.kind.value.capitalize(), command)
            return outcome

    logger.info("%s-build commands executed.", stage.kind.value.capitalize())
    return outcome
