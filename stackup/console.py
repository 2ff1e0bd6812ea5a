"""Colored operator status lines.

Every helper takes the output sink as its first argument; nothing here
holds process-wide state.
"""
from __future__ import annotations

import sys
from typing import Mapping, Optional, Sequence, TextIO

from rich.console import Console
from rich.text import Text


def make_console(file: Optional[TextIO] = None) -> Console:
    """Console used by the entry point; tests pass a ``StringIO``."""
    return Console(file=file or sys.stdout, highlight=False, soft_wrap=True)


def line(console: Console, message: str, style: str = "") -> None:
    console.print(Text(message, style=style))


def step(console: Console, number: int, message: str) -> None:
    console.print()
    console.print(Text.assemble((str(number), "bold cyan"), " ", message))


def info(console: Console, message: str) -> None:
    line(console, message, "yellow")


def success(console: Console, message: str) -> None:
    console.print(Text.assemble(("✓", "green"), " ", message))


def warning(console: Console, message: str) -> None:
    console.print(Text.assemble(("⚠", "yellow"), " ", message))


def error(console: Console, message: str) -> None:
    console.print(Text.assemble(("✗", "red"), " ", message))


def banner(console: Console, title: str, sections: Mapping[str, Sequence[str]]) -> None:
    """Print a headline followed by titled, indented sections."""
    console.print()
    line(console, title, "bold")
    for heading, entries in sections.items():
        console.print()
        line(console, heading, "cyan")
        for entry in entries:
            line(console, f"   {entry}", "green" if "://" in entry else "yellow")


def rule(console: Console, width: int = 60) -> None:
    line(console, "=" * width, "blue")
