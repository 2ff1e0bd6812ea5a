"""Fatal error taxonomy for the bootstrap sequence.

Probe and subprocess failures never raise across component boundaries;
they are folded into ``CommandResult`` / ``ProbeResult`` values where they
happen. Only the exceptions below terminate a bootstrap run.
"""
from __future__ import annotations


class StackupError(Exception):
    """Base class for errors that abort the bootstrap sequence."""


class ToolUnavailable(StackupError):
    """The container control plane (docker / compose) cannot be invoked."""


class ServiceTimeout(StackupError):
    """A fatal-severity service did not become ready within its attempts."""

    def __init__(self, service: str, attempts: int) -> None:
        super().__init__(f"{service} failed to be ready after {attempts} attempts")
        self.service = service
        self.attempts = attempts


class CommandExecutionFailure(StackupError):
    """A probe command exited non-zero.

    Raised inside a readiness check and turned into a not-ready result by
    ``ServiceProbe``; it never escapes a wait loop.
    """

    def __init__(self, command: str, exit_code: int, detail: str = "") -> None:
        message = f"`{command}` exited with {exit_code}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code


class StepFailure(StackupError):
    """Any other explicit top-level bootstrap step failed."""


class SchemaBootstrapFailure(StackupError):
    """Schema apply failed even after its fallback command."""


class SettingsError(StackupError):
    """The settings file exists but cannot be parsed or validated."""
