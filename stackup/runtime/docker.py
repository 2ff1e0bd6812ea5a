"""Utilities for invoking docker compose commands."""
from __future__ import annotations

import logging
import os
import shlex
import subprocess
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..constants import DEFAULT_COMMAND_TIMEOUT
from ..models import CommandResult

log = logging.getLogger(__name__)

Command = Union[str, Sequence[str]]

SPAWN_FAILED_EXIT = 127
TIMEOUT_EXIT = 124


class OutputMode(str, Enum):
    stream = "stream"  # forward child output to the operator's terminal
    capture = "capture"  # collect stdout/stderr as text


def split_command(command: Command) -> List[str]:
    if isinstance(command, str):
        return shlex.split(command)
    return list(command)


def format_command(command: Command) -> str:
    if isinstance(command, str):
        return command
    return shlex.join(command)


class CommandRunner:
    """Runs external commands pinned to the project root. Never raises."""

    def __init__(
        self,
        project_root: Path,
        project_name: Optional[str] = None,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        self.project_root = project_root
        self.project_name = project_name
        self.timeout = timeout

    def run(
        self,
        command: Command,
        mode: OutputMode = OutputMode.capture,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Run ``command`` and fold every failure into a ``CommandResult``.

        Captured commands are bounded by ``timeout`` (the runner default when
        omitted). Streamed commands are interactive setup steps and run until
        they exit on their own.
        """
        try:
            argv = split_command(command)
        except ValueError as exc:
            log.debug("cannot parse command %r: %s", command, exc)
            return CommandResult(
                succeeded=False,
                stderr=f"cannot parse command: {exc}",
                exit_code=SPAWN_FAILED_EXIT,
            )
        if not argv:
            return CommandResult(succeeded=False, stderr="empty command", exit_code=SPAWN_FAILED_EXIT)

        capture = mode is OutputMode.capture
        if capture and timeout is None:
            timeout = self.timeout
        log.debug("running %s (%s)", format_command(argv), mode.value)
        try:
            process = subprocess.run(
                argv,
                cwd=str(self.project_root),
                env=self._env(),
                capture_output=capture,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            log.debug("%s timed out after %ss", argv[0], exc.timeout)
            return CommandResult(
                succeeded=False,
                stderr=f"timed out after {exc.timeout}s",
                exit_code=TIMEOUT_EXIT,
            )
        except OSError as exc:
            log.debug("failed to spawn %s: %s", argv[0], exc)
            return CommandResult(succeeded=False, stderr=str(exc), exit_code=SPAWN_FAILED_EXIT)

        result = CommandResult(
            succeeded=process.returncode == 0,
            stdout=process.stdout or "",
            stderr=process.stderr or "",
            exit_code=process.returncode,
        )
        log.debug("%s exited with %d", argv[0], process.returncode)
        return result

    def spawn(self, command: Command) -> subprocess.Popen:
        """Start a long-lived child attached to the operator's terminal."""
        argv = split_command(command)
        log.debug("spawning %s", format_command(argv))
        return subprocess.Popen(argv, cwd=str(self.project_root), env=self._env())

    def _env(self) -> dict[str, str]:
        env = os.environ.copy()
        if self.project_name:
            env.setdefault("COMPOSE_PROJECT_NAME", self.project_name)
        return env


class ComposeControl:
    """Semantic queries against the docker compose control plane."""

    def __init__(self, runner: CommandRunner, compose_file: Path, project_name: str) -> None:
        self.runner = runner
        self.compose_file = compose_file
        self.project_name = project_name

    def compose(self, *args: str) -> List[str]:
        return [
            "docker",
            "compose",
            "-f",
            str(self.compose_file),
            "--project-name",
            self.project_name,
            *args,
        ]

    def available(self) -> CommandResult:
        """Check that the docker CLI and its compose plugin can be invoked."""
        result = self.runner.run(["docker", "--version"])
        if not result.succeeded:
            return result
        return self.runner.run(["docker", "compose", "version"])

    def up(self) -> CommandResult:
        return self.runner.run(
            self.compose("up", "-d", "--build", "--remove-orphans"), OutputMode.stream
        )

    def down(self) -> CommandResult:
        return self.runner.run(self.compose("down"), OutputMode.stream)

    def status(self) -> CommandResult:
        return self.runner.run(self.compose("ps"), OutputMode.stream)

    def service_state(self, service: str) -> CommandResult:
        return self.runner.run(self.compose("ps", service))

    def is_running(self, state: CommandResult) -> bool:
        return "Up" in state.stdout

    def health_status(self, container: str) -> Optional[str]:
        """Return the container's health status, or None when none is defined."""
        result = self.runner.run(
            ["docker", "inspect", "--format", "{{.State.Health.Status}}", container]
        )
        if not result.succeeded:
            return None
        status = result.stdout.strip().strip("'")
        if not status or status == "<no value>":
            return None
        return status

    def exec(
        self, service: str, command: Command, mode: OutputMode = OutputMode.capture
    ) -> CommandResult:
        return self.runner.run(self.compose("exec", "-T", service, *split_command(command)), mode)

    def follow_logs(self, services: Sequence[str] = ()) -> subprocess.Popen:
        return self.runner.spawn(self.compose("logs", "-f", *services))
