"""Tests for the per-kind readiness probe ladder."""
from __future__ import annotations

from pathlib import Path
from typing import List

import httpx
import pytest

from conftest import FakeRunner, failed, ok
from stackup.converge.probes import ServiceProbe
from stackup.errors import CommandExecutionFailure
from stackup.models import ProbeResult, ProbeStatus, ServiceDescriptor, ServiceKind
from stackup.runtime.docker import ComposeControl

RUNNING = "NAME                     STATUS\ndocker-study-database-1  Up 12 seconds\n"
STOPPED = "NAME                     STATUS\n"


def compose_handler(ps=ok(RUNNING), health=ok("starting"), exec_result=ok("accepting connections")):
    def handler(argv: List[str]):
        if "ps" in argv:
            return ps
        if argv[:2] == ["docker", "inspect"]:
            return health
        if "exec" in argv:
            return exec_result
        return ok()

    return handler


def http_client(status: int = 200, exc: Exception = None) -> httpx.Client:
    def handle(request: httpx.Request) -> httpx.Response:
        if exc is not None:
            raise exc
        return httpx.Response(status)

    return httpx.Client(transport=httpx.MockTransport(handle))


def build_probe(runner: FakeRunner, client: httpx.Client = None) -> ServiceProbe:
    control = ComposeControl(runner, Path("docker-compose.yml"), "docker-study")
    return ServiceProbe(control, http_client=client or http_client())


DATABASE = ServiceDescriptor(
    name="database",
    kind=ServiceKind.database,
    port=5432,
    ready_command=("pg_isready", "-U", "postgres"),
)
API = ServiceDescriptor(name="backend", kind=ServiceKind.api_server, port=3001, health_path="/health")
UI = ServiceDescriptor(name="frontend", kind=ServiceKind.ui_server, port=5173)
WORKER = ServiceDescriptor(name="worker", kind=ServiceKind.generic)


class TestRunStateGate:
    def test_ps_failure_is_indeterminate(self):
        runner = FakeRunner(compose_handler(ps=failed("cannot connect to daemon")))
        result = build_probe(runner).check(DATABASE)

        assert result.status is ProbeStatus.indeterminate
        assert "cannot connect" in result.detail
        assert len(runner.calls) == 1

    def test_stopped_container_is_not_ready(self):
        runner = FakeRunner(compose_handler(ps=ok(STOPPED)))
        result = build_probe(runner).check(DATABASE)

        assert result.status is ProbeStatus.not_ready
        assert len(runner.calls) == 1


class TestHealthStatus:
    def test_healthy_container_is_ready_without_protocol_probe(self):
        runner = FakeRunner(compose_handler(health=ok("healthy\n")))
        result = build_probe(runner).check(DATABASE)

        assert result.ready
        assert not any("exec" in command for command in runner.commands())

    def test_health_query_uses_compose_container_name(self):
        runner = FakeRunner(compose_handler(health=ok("healthy")))
        build_probe(runner).check(DATABASE)

        assert "docker inspect --format {{.State.Health.Status}} docker-study-database-1" in runner.commands()

    def test_unhealthy_falls_through_to_protocol_probe(self):
        runner = FakeRunner(compose_handler(health=ok("unhealthy"), exec_result=failed()))
        result = build_probe(runner).check(DATABASE)

        assert result.status is ProbeStatus.not_ready
        assert any("pg_isready" in command for command in runner.commands())


class TestDatabaseProbe:
    def test_pg_isready_success(self):
        runner = FakeRunner(compose_handler(health=failed("no such object")))
        result = build_probe(runner).check(DATABASE)

        assert result.ready
        assert (
            "docker compose -f docker-compose.yml --project-name docker-study "
            "exec -T database pg_isready -U postgres"
        ) in runner.commands()

    def test_pg_isready_failure(self):
        runner = FakeRunner(compose_handler(exec_result=failed("no response", exit_code=2)))
        result = build_probe(runner).check(DATABASE)

        assert result.status is ProbeStatus.not_ready
        assert "pg_isready -U postgres" in result.detail
        assert "exited with 2: no response" in result.detail

    def test_database_without_command_is_ready_when_running(self):
        runner = FakeRunner(compose_handler())
        bare = ServiceDescriptor(name="database", kind=ServiceKind.database)

        result = build_probe(runner).check(bare)

        assert result.ready
        assert not any("exec" in command for command in runner.commands())


class TestHttpProbe:
    @pytest.mark.parametrize("status", [200, 204, 302])
    def test_success_status_is_ready(self, status):
        probe = build_probe(FakeRunner(compose_handler()), http_client(status))
        assert probe.check(API).ready

    @pytest.mark.parametrize("status", [404, 500, 503])
    def test_error_status_is_not_ready(self, status):
        probe = build_probe(FakeRunner(compose_handler()), http_client(status))
        result = probe.check(UI)

        assert result.status is ProbeStatus.not_ready
        assert str(status) in result.detail

    def test_connection_refused_is_not_ready(self):
        probe = build_probe(
            FakeRunner(compose_handler()),
            http_client(exc=httpx.ConnectError("connection refused")),
        )
        assert probe.check(API).status is ProbeStatus.not_ready

    def test_timeout_is_indeterminate(self):
        probe = build_probe(
            FakeRunner(compose_handler()),
            http_client(exc=httpx.ReadTimeout("timed out")),
        )
        assert probe.check(API).status is ProbeStatus.indeterminate

    def test_requests_fixed_port_and_path(self):
        seen = []

        def handle(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200)

        client = httpx.Client(transport=httpx.MockTransport(handle))
        build_probe(FakeRunner(compose_handler()), client).check(API)

        assert seen == ["http://localhost:3001/health"]

    def test_missing_port_is_indeterminate(self):
        probe = build_probe(FakeRunner(compose_handler()))
        result = probe.check(ServiceDescriptor(name="backend", kind=ServiceKind.api_server))

        assert result.status is ProbeStatus.indeterminate


class TestStrategyTable:
    def test_generic_kind_is_ready_when_running(self):
        probe = build_probe(FakeRunner(compose_handler()))
        result = probe.check(WORKER)

        assert result.ready
        assert result.detail == "running"

    def test_registered_check_replaces_default(self):
        probe = build_probe(FakeRunner(compose_handler()))
        probe.register(ServiceKind.generic, lambda d: ProbeResult(ProbeStatus.not_ready, "queue empty"))

        result = probe.check(WORKER)

        assert result.status is ProbeStatus.not_ready
        assert result.detail == "queue empty"

    def test_failing_command_in_check_is_not_ready(self):
        probe = build_probe(FakeRunner(compose_handler()))

        def check(descriptor):
            raise CommandExecutionFailure("rabbitmqctl status", 69, "node down")

        probe.register(ServiceKind.generic, check)
        result = probe.check(WORKER)

        assert result.status is ProbeStatus.not_ready
        assert "node down" in result.detail
