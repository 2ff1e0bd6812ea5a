"""Log streaming and interrupt-driven teardown after a bootstrap."""
from __future__ import annotations

import logging
import signal
import subprocess
import sys
from typing import Callable, Optional, Sequence

from rich.console import Console

from .. import console as out
from ..constants import EXIT_OK, LOG_FOLLOWER_GRACE
from .docker import ComposeControl

log = logging.getLogger(__name__)


class ShutdownRequested(BaseException):
    """Raised from the interrupt handler to unwind out of the log wait."""


class ProcessLifecycleManager:
    """Follows compose logs until interrupted, then tears the stack down once.

    The SIGINT handler only unwinds the blocking wait on the log follower;
    teardown runs afterwards on the main path. Interrupts after the first
    are ignored. Teardown is a single best-effort
    ``compose down`` with no retry, so it is not atomic with respect to
    signals arriving mid-call.
    """

    def __init__(
        self,
        control: ComposeControl,
        console: Console,
        services: Sequence[str] = (),
        exit: Callable[[int], object] = sys.exit,
    ) -> None:
        self.control = control
        self.console = console
        self.services = tuple(services)
        self._exit = exit
        self.process: Optional[subprocess.Popen] = None
        self.handler_installed = False
        self.shutting_down = False
        self.torn_down = False

    def run(self) -> int:
        """Block on the log stream; return the exit code when it ends by itself.

        The handler is installed before the follower is spawned, so an
        interrupt at any point from here on tears the stack down.
        """
        try:
            self.install_handler()
            try:
                self.process = self.control.follow_logs(self.services)
            except OSError as exc:
                out.warning(self.console, f"Could not start log stream: {exc}")
                return EXIT_OK
            code = self.process.wait()
        except (ShutdownRequested, KeyboardInterrupt):
            return self.shutdown()
        out.info(self.console, f"Log stream ended with code {code}")
        return EXIT_OK

    def install_handler(self) -> None:
        if self.handler_installed:
            return
        signal.signal(signal.SIGINT, self.handle_interrupt)
        self.handler_installed = True

    def handle_interrupt(self, signum: int, frame: object) -> None:
        if self.shutting_down:
            log.debug("interrupt received during teardown; ignoring")
            return
        self.shutting_down = True
        raise ShutdownRequested()

    def shutdown(self) -> int:
        """Stop the log follower, tear the stack down and exit 0. Runs once."""
        if self.torn_down:
            return EXIT_OK
        self.torn_down = True
        self.shutting_down = True

        self.console.print()
        out.info(self.console, "Stopping development environment...")
        self._stop_follower()
        result = self.control.down()
        if not result.succeeded:
            out.warning(self.console, f"Teardown reported a problem: {result.detail}")
        out.line(self.console, "Goodbye!", "green")
        self._exit(EXIT_OK)
        return EXIT_OK

    def _stop_follower(self) -> None:
        process = self.process
        if process is None or process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=LOG_FOLLOWER_GRACE)
        except subprocess.TimeoutExpired:
            log.debug("log follower did not exit after %ss; killing", LOG_FOLLOWER_GRACE)
            process.kill()
            process.wait()
