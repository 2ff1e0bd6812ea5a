"""Bootstrap runner sequencing tool checks, deployment and service readiness."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from .. import console as out
from ..errors import SchemaBootstrapFailure, StackupError, StepFailure, ToolUnavailable
from ..models import BootstrapOutcome, ServiceDescriptor, StackSettings, StageEvent
from ..runtime.docker import ComposeControl, OutputMode
from .readiness import ReadinessOrchestrator

log = logging.getLogger(__name__)


@dataclass
class BootstrapRunner:
    """Runs the declared bootstrap steps in order; no step starts before its
    predecessor resolves.

    tool check -> dependencies -> compose up -> wait database -> apply schema
    -> generate client -> wait API -> wait UI -> status -> summary

    The settings profile decides which of the optional steps run.
    """

    settings: StackSettings
    control: ComposeControl
    readiness: ReadinessOrchestrator
    console: Console
    project_root: Path
    step_number: int = field(default=0, init=False)

    async def run(self) -> BootstrapOutcome:
        events: List[StageEvent] = []
        plan = self.settings.plan
        stage = "check.docker"
        try:
            self._check_tool(events)

            if plan.install_dependencies:
                stage = "prepare.dependencies"
                self._ensure_dependencies(events)

            stage = "deploy.compose"
            self._compose_up(events)

            if plan.wait_database:
                stage = "wait.database"
                await self._wait(events, self.settings.database(), "Waiting for database to be ready...")

            if plan.apply_schema:
                stage = "schema.apply"
                self._apply_schema(events)
                stage = "schema.generate"
                self._generate_client(events)

            if plan.wait_api:
                stage = "wait.backend"
                await self._wait(events, self.settings.api(), "Waiting for backend API...")

            if plan.wait_ui:
                stage = "wait.frontend"
                await self._wait(events, self.settings.ui(), "Waiting for frontend...")
        except StackupError as exc:
            out.error(self.console, str(exc))
            self._record(events, stage, "failed", str(exc))
            return BootstrapOutcome(ok=False, events=events, stage=stage, cause=exc)

        self._show_status(events)
        self._show_summary()
        return BootstrapOutcome(ok=True, events=events)

    # ------------------------------------------------------------------ steps

    def _check_tool(self, events: List[StageEvent]) -> None:
        self._step("Checking Docker...")
        result = self.control.available()
        if not result.succeeded:
            raise ToolUnavailable(
                "Docker is not installed or not running. Please start Docker Desktop. "
                f"({result.detail})"
            )
        out.success(self.console, "Docker is ready")
        self._record(events, "check.docker", "ok", result.detail)

    def _ensure_dependencies(self, events: List[StageEvent]) -> None:
        self._step("Checking dependencies...")
        missing = [
            marker
            for marker in self.settings.dependency_markers
            if not (self.project_root / marker).exists()
        ]
        if missing:
            out.warning(self.console, "Dependencies not found. Installing...")
            result = self.control.runner.run(self.settings.install_command, OutputMode.stream)
            if not result.succeeded:
                raise StepFailure("Failed to install dependencies")
            detail = f"installed ({', '.join(missing)} missing)"
        else:
            detail = "present"
        out.success(self.console, "Dependencies ready")
        self._record(events, "prepare.dependencies", "ok", detail)

    def _compose_up(self, events: List[StageEvent]) -> None:
        self._step("Starting Docker services...")
        result = self.control.up()
        if not result.succeeded:
            raise StepFailure("Failed to start Docker services")
        out.success(self.console, "Docker services started")
        self._record(events, "deploy.compose", "ok")

    async def _wait(
        self, events: List[StageEvent], descriptor: ServiceDescriptor, message: str
    ) -> None:
        self._step(message)
        stage = f"wait.{descriptor.name}"
        self._record(events, stage, "started", f"max_attempts={descriptor.max_attempts}")
        result = await self.readiness.wait_for(descriptor)
        self._record(
            events,
            stage,
            "ok" if result.ready else "warning",
            f"{result.resolution.value} after {result.attempts} attempts ({result.elapsed:.1f}s)",
        )

    def _apply_schema(self, events: List[StageEvent]) -> None:
        self._step("Setting up database schema...")
        migrations = self.settings.migrations
        primary = self.control.exec(migrations.service, migrations.primary, OutputMode.stream)
        if primary.succeeded:
            detail = "primary"
        else:
            if not migrations.fallback:
                raise SchemaBootstrapFailure("Failed to set up database schema")
            out.warning(self.console, "Database push failed, trying migrate deploy...")
            self._record(events, "schema.apply", "warning", "primary command failed")
            fallback = self.control.exec(migrations.service, migrations.fallback, OutputMode.stream)
            if not fallback.succeeded:
                raise SchemaBootstrapFailure("Failed to set up database schema")
            detail = "fallback"
        out.success(self.console, "Database schema ready")
        self._record(events, "schema.apply", "ok", detail)

    def _generate_client(self, events: List[StageEvent]) -> None:
        command: Optional[str] = self.settings.migrations.generate
        if not command:
            return
        self._step("Generating database client...")
        result = self.control.exec(self.settings.migrations.service, command, OutputMode.stream)
        if not result.succeeded:
            raise StepFailure("Failed to generate database client")
        out.success(self.console, "Database client generated")
        self._record(events, "schema.generate", "ok")

    def _show_status(self, events: List[StageEvent]) -> None:
        self._step("Checking service status...")
        result = self.control.status()
        if not result.succeeded:
            out.warning(self.console, f"Could not read service status: {result.detail}")
        self._record(events, "status", "ok" if result.succeeded else "warning", result.detail)

    def _show_summary(self) -> None:
        ports = self.settings.ports
        compose = f"docker compose --project-name {self.settings.project_name}"
        out.banner(
            self.console,
            f"{self.settings.profile.value.capitalize()} development environment is ready!",
            {
                "Service URLs:": [
                    f"Frontend: http://localhost:{ports.frontend}",
                    f"Backend API: http://localhost:{ports.backend}",
                    f"Database: localhost:{ports.database}",
                ],
                "Useful commands:": [
                    f"View all logs: {compose} logs -f",
                    f"View backend logs: {compose} logs -f backend",
                    f"View frontend logs: {compose} logs -f frontend",
                    f"Stop all services: {compose} down",
                    f"Restart services: {compose} restart",
                ],
                "Tips:": [
                    "- Code changes auto-reload in the running containers",
                    "- Database changes require running this command again",
                    "- Use Ctrl+C to stop all services gracefully",
                ],
            },
        )
        self.console.print()
        out.line(self.console, "Starting log stream (Ctrl+C to stop)...", "cyan")
        out.rule(self.console)

    # ------------------------------------------------------------------ helpers

    def _step(self, message: str) -> None:
        self.step_number += 1
        out.step(self.console, self.step_number, message)

    def _record(
        self,
        events: List[StageEvent],
        stage: str,
        status: str,
        detail: Optional[str] = None,
    ) -> None:
        event = StageEvent(stage=stage, status=status, detail=detail)
        events.append(event)
        log.debug("stage %s: %s %s", stage, status, detail or "")
