"""Operator notifications, standing in for the editor's modal dialogs."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel


class Notifier:
    """Shows a short message to the person running the installer.

    The base class discards messages, for unattended runs.
    """

    def notify(self, title: str, message: str, error: bool = False) -> None:
        pass


class ConsoleNotifier(Notifier):
    """Renders notifications as panels on a rich console."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def notify(self, title: str, message: str, error: bool = False) -> None:
        style = "red" if error else "green"
        self.console.print(Panel(message, title=title, border_style=style, expand=False))
