"""Command-line entrypoint: bootstrap the local stack, then stream its logs."""
from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console

from . import console as out
from .constants import EXIT_FATAL
from .converge.probes import ServiceProbe
from .converge.readiness import ReadinessOrchestrator, Sleep
from .converge.runner import BootstrapRunner
from .errors import SettingsError
from .runtime.docker import CommandRunner, ComposeControl
from .runtime.lifecycle import ProcessLifecycleManager
from .settings import SettingsRepository, find_project_root

log = logging.getLogger(__name__)


def configure_logging() -> None:
    level = logging.DEBUG if os.environ.get("STACKUP_DEBUG") else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def run(
    root: Path,
    console: Console,
    sleep: Sleep = asyncio.sleep,
    probe: Optional[ServiceProbe] = None,
) -> int:
    """Run the bootstrap sequence from ``root`` and return the exit code."""
    try:
        settings = SettingsRepository(root).load()
    except SettingsError as exc:
        out.error(console, str(exc))
        return EXIT_FATAL

    out.line(console, f"Starting {settings.project_name} development environment", "bold")
    out.line(console, f"Profile: {settings.profile.value}. This will set up everything automatically...", "blue")

    runner = CommandRunner(root, settings.project_name)
    control = ComposeControl(runner, settings.compose_file, settings.project_name)
    probe = probe or ServiceProbe(control)
    bootstrap = BootstrapRunner(
        settings=settings,
        control=control,
        readiness=ReadinessOrchestrator(probe, console, sleep=sleep),
        console=console,
        project_root=root,
    )
    lifecycle = ProcessLifecycleManager(control, console, settings.followed_services)
    try:
        outcome = asyncio.run(bootstrap.run())
    except KeyboardInterrupt:
        console.print()
        out.error(console, "Setup interrupted")
        return EXIT_FATAL
    finally:
        probe.close()

    if not outcome.ok:
        log.debug("bootstrap aborted: %s", outcome.summary)
        return EXIT_FATAL

    return lifecycle.run()


def main() -> None:
    configure_logging()
    console = out.make_console()
    root = find_project_root(Path.cwd())
    try:
        code = run(root, console)
    except Exception as exc:  # pragma: no cover - last-resort report before exiting
        log.exception("unexpected failure")
        out.error(console, f"Setup failed: {exc}")
        code = EXIT_FATAL
    sys.exit(code)
