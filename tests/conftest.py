"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import Callable, List, Optional, Tuple
from unittest.mock import MagicMock

import pytest
from rich.console import Console

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from stackup.console import make_console
from stackup.models import CommandResult, ProbeResult, ProbeStatus
from stackup.runtime.docker import Command, ComposeControl, OutputMode, split_command

Handler = Callable[[List[str]], CommandResult]


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(succeeded=True, stdout=stdout, exit_code=0)


def failed(stderr: str = "boom", exit_code: int = 1) -> CommandResult:
    return CommandResult(succeeded=False, stderr=stderr, exit_code=exit_code)


READY = ProbeResult(ProbeStatus.ready, "ready")
NOT_READY = ProbeResult(ProbeStatus.not_ready, "not running")


class FakeRunner:
    """Stand-in for CommandRunner that records argv and answers via a handler."""

    def __init__(self, handler: Optional[Handler] = None, log: Optional[list] = None) -> None:
        self.handler = handler or (lambda argv: ok())
        self.calls: List[Tuple[List[str], OutputMode]] = []
        self.log = log if log is not None else []
        self.spawned: List[List[str]] = []
        self.process = MagicMock()

    def run(
        self,
        command: Command,
        mode: OutputMode = OutputMode.capture,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        argv = split_command(command)
        self.calls.append((argv, mode))
        self.log.append(("run", " ".join(argv)))
        return self.handler(argv)

    def spawn(self, command: Command):
        self.spawned.append(split_command(command))
        return self.process

    def commands(self) -> List[str]:
        return [" ".join(argv) for argv, _ in self.calls]


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def console(output: io.StringIO) -> Console:
    """Console writing plain text into ``output``."""
    return make_console(file=output)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps: List[float]):
    """Awaitable sleep that records delays instead of waiting."""

    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def control(fake_runner: FakeRunner) -> ComposeControl:
    return ComposeControl(fake_runner, Path("docker-compose.yml"), "docker-study")
