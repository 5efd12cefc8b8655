"""Interactive prompts.

The selection primitive returns the chosen *index*, so callers map the
answer back to their own candidates without parsing display labels.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt

type Chooser = Callable[[str, Sequence[str]], int]

console = Console(stderr=True)


def choose(message: str, labels: Sequence[str]) -> int:
    """Ask the user to pick one of ``labels``; returns its index."""
    if not labels:
        raise ValueError("nothing to choose from")
    console.print(f"[bold]{message}[/bold]")
    for i, label in enumerate(labels, start=1):
        console.print(f"  [cyan]{i}[/cyan]) {label}")
    answer = IntPrompt.ask(
        "Selection",
        choices=[str(i) for i in range(1, len(labels) + 1)],
        show_choices=False,
        console=console,
    )
    return answer - 1


class Prompter(Protocol):
    """Questions asked by the configure wizard."""

    def text(self, message: str, default: str | None = None) -> str: ...

    def secret(self, message: str) -> str: ...

    def confirm(self, message: str, default: bool = False) -> bool: ...

    def choose(self, message: str, labels: Sequence[str]) -> int: ...

    def warn(self, message: str) -> None: ...


class RichPrompter:
    def text(self, message: str, default: str | None = None) -> str:
        while True:
            if default is None:
                answer = Prompt.ask(message, console=console)
            else:
                answer = Prompt.ask(message, default=default, console=console)
            if answer.strip():
                return answer.strip()
            console.print("[red]A value is required[/red]")

    def secret(self, message: str) -> str:
        return Prompt.ask(message, password=True, console=console)

    def confirm(self, message: str, default: bool = False) -> bool:
        return Confirm.ask(message, default=default, console=console)

    def choose(self, message: str, labels: Sequence[str]) -> int:
        return choose(message, labels)

    def warn(self, message: str) -> None:
        console.print(f"[yellow]{message}[/yellow]")
