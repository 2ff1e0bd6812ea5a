"""Bounded, fixed-interval readiness polling for one service at a time."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from rich.console import Console

from .. import console as out
from ..errors import ServiceTimeout
from ..models import (
    AttemptState,
    FailureSeverity,
    ServiceDescriptor,
    WaitResolution,
    WaitResult,
)
from .probes import ServiceProbe

log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ReadinessOrchestrator:
    """Polls a service until it is ready or its attempts run out.

    Each attempt probes once. A ready probe ends the loop immediately; any
    other result waits ``poll_interval`` (a fixed delay) before the next
    attempt, until ``max_attempts`` probes have been made. Exhaustion raises
    ``ServiceTimeout`` for fatal services (the caller reports it) and warns
    and returns a degraded result for the rest.
    """

    def __init__(
        self,
        probe: ServiceProbe,
        console: Console,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.probe = probe
        self.console = console
        self.sleep = sleep

    async def wait_for(self, descriptor: ServiceDescriptor) -> WaitResult:
        state = AttemptState()
        name = descriptor.name
        while state.attempts < descriptor.max_attempts:
            state.attempts += 1
            out.info(
                self.console,
                f"Checking {name}... (attempt {state.attempts}/{descriptor.max_attempts})",
            )
            result = self.probe.check(descriptor)
            log.debug("%s probe #%d: %s (%s)", name, state.attempts, result.status.value, result.detail)
            if result.ready:
                out.success(self.console, f"{name} is ready!")
                return WaitResult(name, WaitResolution.ready, state.attempts, state.elapsed)
            if state.attempts < descriptor.max_attempts:
                await self.sleep(descriptor.poll_interval)

        if descriptor.severity is FailureSeverity.fatal:
            raise ServiceTimeout(name, state.attempts)

        out.warning(self.console, f"{name} might not be ready yet, but continuing...")
        return WaitResult(name, WaitResolution.degraded, state.attempts, state.elapsed)
