"""Readiness probes, dispatched through a table keyed by service kind."""
from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

import httpx

from ..constants import HTTP_PROBE_TIMEOUT
from ..errors import CommandExecutionFailure
from ..models import ProbeResult, ProbeStatus, ServiceDescriptor, ServiceKind
from ..runtime.docker import ComposeControl, format_command

log = logging.getLogger(__name__)

ProtocolCheck = Callable[[ServiceDescriptor], ProbeResult]


class ServiceProbe:
    """Runs the readiness ladder for a service.

    1. the service's container must be up (``compose ps``);
    2. a ``healthy`` structured health status is ready;
    3. otherwise the check registered for the service's kind decides.

    Kinds without a registered check are ready as soon as they are running.
    """

    def __init__(
        self,
        control: ComposeControl,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.control = control
        self.http_client = http_client or httpx.Client(timeout=HTTP_PROBE_TIMEOUT)
        self.checks: Dict[ServiceKind, ProtocolCheck] = {
            ServiceKind.database: self.check_database,
            ServiceKind.api_server: self.check_http,
            ServiceKind.ui_server: self.check_http,
        }

    def register(self, kind: ServiceKind, check: ProtocolCheck) -> None:
        self.checks[kind] = check

    def close(self) -> None:
        self.http_client.close()

    def check(self, descriptor: ServiceDescriptor) -> ProbeResult:
        state = self.control.service_state(descriptor.name)
        if not state.succeeded:
            return ProbeResult(ProbeStatus.indeterminate, state.detail)
        if not self.control.is_running(state):
            return ProbeResult(ProbeStatus.not_ready, f"{descriptor.name} is not running")

        container = descriptor.container_name(self.control.project_name)
        health = self.control.health_status(container)
        if health == "healthy":
            return ProbeResult(ProbeStatus.ready, "healthy")
        log.debug("%s health status: %s", descriptor.name, health or "none")

        check = self.checks.get(descriptor.kind)
        if check is None:
            return ProbeResult(ProbeStatus.ready, "running")
        try:
            return check(descriptor)
        except CommandExecutionFailure as exc:
            return ProbeResult(ProbeStatus.not_ready, str(exc))

    # ------------------------------------------------------------------ checks

    def check_database(self, descriptor: ServiceDescriptor) -> ProbeResult:
        if not descriptor.ready_command:
            log.debug("%s has no readiness command; running is enough", descriptor.name)
            return ProbeResult(ProbeStatus.ready, "running")
        result = self.control.exec(descriptor.name, descriptor.ready_command)
        result.raise_for_status(format_command(descriptor.ready_command))
        return ProbeResult(ProbeStatus.ready, result.detail)

    def check_http(self, descriptor: ServiceDescriptor) -> ProbeResult:
        if descriptor.port is None:
            return ProbeResult(ProbeStatus.indeterminate, f"{descriptor.name} has no port")
        url = f"http://localhost:{descriptor.port}{descriptor.health_path}"
        try:
            response = self.http_client.get(url)
        except httpx.TimeoutException as exc:
            return ProbeResult(ProbeStatus.indeterminate, f"{url}: {exc.__class__.__name__}")
        except httpx.HTTPError as exc:
            return ProbeResult(ProbeStatus.not_ready, f"{url}: {exc}")
        if response.status_code < 400:
            return ProbeResult(ProbeStatus.ready, f"HTTP {response.status_code}")
        return ProbeResult(ProbeStatus.not_ready, f"{url} returned HTTP {response.status_code}")
