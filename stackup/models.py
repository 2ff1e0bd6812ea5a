"""Pydantic models and value types for the bootstrap sequencer."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    CLIENT_GENERATE_COMMAND,
    DATABASE_READY_COMMAND,
    DEFAULT_COMPOSE_FILE,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PORTS,
    DEFAULT_PROJECT_NAME,
    DEPENDENCY_MARKERS,
    HEALTH_PATHS,
    INSTALL_COMMAND,
    SCHEMA_FALLBACK_COMMAND,
    SCHEMA_PRIMARY_COMMAND,
    SCHEMA_SERVICE,
)
from .errors import CommandExecutionFailure


# ---------------------------------------------------------------------------
# Service descriptors
# ---------------------------------------------------------------------------


class ServiceKind(str, Enum):
    database = "database"
    api_server = "api-server"
    ui_server = "ui-server"
    generic = "generic"


class FailureSeverity(str, Enum):
    fatal = "fatal"
    degraded = "degraded"


class ServiceDescriptor(BaseModel):
    """Immutable description of one backing service to wait for."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ServiceKind = ServiceKind.generic
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, ge=0)
    severity: FailureSeverity = FailureSeverity.degraded
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    health_path: str = "/"
    container: Optional[str] = None
    ready_command: Tuple[str, ...] = ()

    def container_name(self, project_name: str) -> str:
        """Name of the running container, as compose names it by default."""
        return self.container or f"{project_name}-{self.name}-1"


# ---------------------------------------------------------------------------
# Probe and command results
# ---------------------------------------------------------------------------


class ProbeStatus(str, Enum):
    ready = "ready"
    not_ready = "not-ready"
    indeterminate = "indeterminate"


@dataclass
class ProbeResult:
    """Outcome of a single readiness probe call."""

    status: ProbeStatus
    detail: str = ""

    @property
    def ready(self) -> bool:
        return self.status is ProbeStatus.ready


@dataclass
class CommandResult:
    """Structured result of an external command. Never raised, always returned."""

    succeeded: bool
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0

    @property
    def detail(self) -> str:
        text = self.stdout.strip() if self.succeeded else self.stderr.strip()
        if not text:
            text = "ok" if self.succeeded else f"exit code {self.exit_code}"
        return text

    def raise_for_status(self, command: str) -> None:
        if not self.succeeded:
            raise CommandExecutionFailure(command, self.exit_code, self.stderr.strip())


# ---------------------------------------------------------------------------
# Wait loop state
# ---------------------------------------------------------------------------


@dataclass
class AttemptState:
    """Mutable attempt counter owned by a single service wait loop."""

    attempts: int = 0
    started_at: float = field(default_factory=time.monotonic)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


class WaitResolution(str, Enum):
    ready = "ready"
    degraded = "degraded"


@dataclass
class WaitResult:
    service: str
    resolution: WaitResolution
    attempts: int
    elapsed: float

    @property
    def ready(self) -> bool:
        return self.resolution is WaitResolution.ready


# ---------------------------------------------------------------------------
# Bootstrap events and outcome
# ---------------------------------------------------------------------------


class StageEvent(BaseModel):
    stage: str
    status: Literal["started", "ok", "warning", "failed"]
    detail: Optional[str] = None


@dataclass
class BootstrapOutcome:
    """Terminal record of a bootstrap run, used to pick the exit path."""

    ok: bool
    events: List[StageEvent] = field(default_factory=list)
    stage: Optional[str] = None
    cause: Optional[Exception] = None

    @property
    def summary(self) -> str:
        if self.ok:
            return "bootstrap complete"
        return f"{self.stage} failed: {self.cause}"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class Profile(str, Enum):
    fullstack = "fullstack"
    backend = "backend"
    frontend = "frontend"


@dataclass(frozen=True)
class ProfilePlan:
    """Which bootstrap steps and service waits a profile runs."""

    install_dependencies: bool
    wait_database: bool
    apply_schema: bool
    wait_api: bool
    wait_ui: bool
    log_services: Tuple[str, ...] = ()


PROFILE_PLANS: Dict[Profile, ProfilePlan] = {
    Profile.fullstack: ProfilePlan(
        install_dependencies=True,
        wait_database=True,
        apply_schema=True,
        wait_api=True,
        wait_ui=True,
    ),
    Profile.backend: ProfilePlan(
        install_dependencies=False,
        wait_database=True,
        apply_schema=True,
        wait_api=False,
        wait_ui=False,
    ),
    Profile.frontend: ProfilePlan(
        install_dependencies=False,
        wait_database=False,
        apply_schema=False,
        wait_api=True,
        wait_ui=False,
        log_services=("frontend",),
    ),
}


class PortsConfig(BaseModel):
    database: int = Field(default=DEFAULT_PORTS["database"], ge=1, le=65535)
    backend: int = Field(default=DEFAULT_PORTS["backend"], ge=1, le=65535)
    frontend: int = Field(default=DEFAULT_PORTS["frontend"], ge=1, le=65535)


class MigrationsConfig(BaseModel):
    service: str = SCHEMA_SERVICE
    primary: str = SCHEMA_PRIMARY_COMMAND
    fallback: Optional[str] = SCHEMA_FALLBACK_COMMAND
    generate: Optional[str] = CLIENT_GENERATE_COMMAND

    @field_validator("service", "primary")
    @classmethod
    def ensure_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value


class StackSettings(BaseModel):
    """Operator settings, read from ``stackup.yaml`` when present."""

    profile: Profile = Profile.fullstack
    project_name: str = DEFAULT_PROJECT_NAME
    compose_file: Path = Path(DEFAULT_COMPOSE_FILE)
    ports: PortsConfig = Field(default_factory=PortsConfig)
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, ge=0)
    install_command: str = INSTALL_COMMAND
    dependency_markers: List[str] = Field(default_factory=lambda: list(DEPENDENCY_MARKERS))
    migrations: MigrationsConfig = Field(default_factory=MigrationsConfig)
    log_services: Optional[List[str]] = None

    @field_validator("project_name")
    @classmethod
    def ensure_project_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("project_name must not be empty")
        return value

    @field_validator("install_command")
    @classmethod
    def ensure_install_command(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("install_command must not be empty")
        return value

    @property
    def plan(self) -> ProfilePlan:
        return PROFILE_PLANS[self.profile]

    @property
    def followed_services(self) -> List[str]:
        if self.log_services is not None:
            return list(self.log_services)
        return list(self.plan.log_services)

    def database(self) -> ServiceDescriptor:
        return ServiceDescriptor(
            name="database",
            kind=ServiceKind.database,
            max_attempts=self.max_attempts,
            poll_interval=self.poll_interval,
            severity=FailureSeverity.fatal,
            port=self.ports.database,
            ready_command=tuple(DATABASE_READY_COMMAND),
        )

    def api(self) -> ServiceDescriptor:
        return ServiceDescriptor(
            name="backend",
            kind=ServiceKind.api_server,
            max_attempts=self.max_attempts,
            poll_interval=self.poll_interval,
            severity=FailureSeverity.degraded,
            port=self.ports.backend,
            health_path=HEALTH_PATHS["backend"],
        )

    def ui(self) -> ServiceDescriptor:
        return ServiceDescriptor(
            name="frontend",
            kind=ServiceKind.ui_server,
            max_attempts=self.max_attempts,
            poll_interval=self.poll_interval,
            severity=FailureSeverity.degraded,
            port=self.ports.frontend,
            health_path=HEALTH_PATHS["frontend"],
        )
